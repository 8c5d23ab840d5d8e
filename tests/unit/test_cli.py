# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import json

import pytest

from httpbuilder.cli import main as cli_main
from httpbuilder.http.adapters import StubTransport, text_response
from httpbuilder.http.headers import header_value


@pytest.fixture
def stub(monkeypatch):
    transport = StubTransport()
    captured = {}

    def factory(settings):
        captured["settings"] = settings
        return transport

    monkeypatch.setattr(cli_main, "create_default_transport", factory)
    transport.captured = captured
    return transport


def test_cli_prints_decoded_text(stub, capsys):
    stub.add("GET /hello", text_response(200, "hi there"))

    rc = cli_main.main(["get", "http://example.com/hello", "-H", "X-Trace: 1", "-b", "sid=abc"])

    assert rc == 0
    assert capsys.readouterr().out.strip() == "hi there"
    sent = stub.requests[0]
    assert sent.headers["X-Trace"] == "1"
    assert sent.cookies == {"sid": "abc"}
    assert stub.closed


def test_cli_json_output_and_status_exit_code(stub, capsys):
    stub.add("/missing", text_response(404, '{"error": "nope"}', content_type="application/json"))

    rc = cli_main.main(["GET", "http://example.com/missing", "--json"])
    payload = json.loads(capsys.readouterr().out)

    assert rc == 1
    assert payload["status"] == 404
    assert payload["body"] == {"error": "nope"}


def test_cli_status_line_and_post_body(stub, capsys):
    stub.add("POST /items", text_response(201, "made"))

    rc = cli_main.main(
        ["POST", "http://example.com/items", "-d", '{"a": 1}', "--content-type", "application/json", "--status"]
    )

    out = capsys.readouterr().out.splitlines()
    assert rc == 0
    assert out == ["201 Created", "made"]
    assert stub.requests[0].body == b'{"a": 1}'
    assert stub.requests[0].headers["Content-Type"] == "application/json"


def test_cli_basic_auth_and_ssl_flag(stub, capsys):
    stub.add("/", text_response(200, "ok"))

    rc = cli_main.main(["GET", "http://example.com/", "--basic", "admin:secret", "--ignore-ssl-errors"])

    assert rc == 0
    assert header_value(stub.requests[0].headers, "Authorization") == "Basic YWRtaW46c2VjcmV0"
    assert stub.captured["settings"].verify_ssl is False


def test_cli_reports_transport_errors(stub, capsys):
    stub.add("/", ConnectionRefusedError("refused"))

    rc = cli_main.main(["GET", "http://example.com/"])

    assert rc == 1
    assert capsys.readouterr().err.startswith("error: refused")


def test_cli_rejects_bad_credentials(stub):
    with pytest.raises(SystemExit):
        cli_main.main(["GET", "http://example.com/", "--digest", "no-colon"])


def test_cli_rejects_unknown_verb(stub):
    with pytest.raises(SystemExit):
        cli_main.main(["BREW", "http://example.com/"])
