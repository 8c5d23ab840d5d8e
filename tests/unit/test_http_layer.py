# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import httpx
import pytest

from httpbuilder import HttpBuilder
from httpbuilder.config import HttpSettings
from httpbuilder.errors import ConfigurationError, ErrorCategory, TransportError, TransportTimeoutError
from httpbuilder.http import client as client_module
from httpbuilder.http.adapters import StubTransport, text_response
from httpbuilder.http.headers import MimeType, content_type_value, cookie_header, header_value, split_pairs
from httpbuilder.http.httpx_client import HttpxTransport
from httpbuilder.http.models import FromServer, HttpRequest
from httpbuilder.http.url import UriBuilder, origin_of, request_target


def _mock_transport(handler, **settings):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpxTransport(HttpSettings(**settings), client=client)


def test_httpx_transport_sends_request_and_collects_response():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["cookie"] = request.headers.get("cookie")
        seen["x-test"] = request.headers.get("x-test")
        seen["body"] = request.content
        return httpx.Response(
            201,
            headers=[("Content-Type", "text/plain"), ("Set-Cookie", "sid=abc; Path=/"), ("Set-Cookie", "theme=dark")],
            content=b"created",
        )

    transport = _mock_transport(handler)
    response = transport.send(
        HttpRequest(
            url="http://example.com/items",
            method="POST",
            headers={"X-Test": "1", "Cookie": "pre=1"},
            cookies={"a": "b"},
            body=b"payload",
        )
    )

    assert seen == {
        "method": "POST",
        "url": "http://example.com/items",
        "cookie": "pre=1; a=b",
        "x-test": "1",
        "body": b"payload",
    }
    assert response.status_code == 201
    assert response.content == b"created"
    assert response.header("content-type") == "text/plain"
    assert response.cookies == {"sid": "abc", "theme": "dark"}
    assert response.url == "http://example.com/items"
    assert response.meta["body_truncated"] is False
    assert response.meta["body_bytes_read"] == 7


def test_httpx_transport_caps_body_size():
    transport = _mock_transport(lambda request: httpx.Response(200, content=b"0123456789"), max_body_bytes=4)
    response = transport.send(HttpRequest("http://example.com/"))

    assert response.content == b"0123"
    assert response.meta["body_truncated"] is True
    assert response.meta["body_bytes_limit"] == 4


def test_httpx_transport_maps_connect_errors():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError) as excinfo:
        _mock_transport(handler).send(HttpRequest("http://example.com/"))
    assert excinfo.value.category is ErrorCategory.CONNECTION_ERROR
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


def test_httpx_transport_maps_timeouts():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(TransportTimeoutError):
        _mock_transport(handler).send(HttpRequest("http://example.com/"))


def test_default_client_is_built_from_settings(monkeypatch):
    captured = {}

    class FakeHttpxClient:
        def __init__(self, **kwargs):
            captured.update(kwargs)

        def close(self):
            captured["closed"] = True

    monkeypatch.setattr(httpx, "Client", FakeHttpxClient)
    settings = HttpSettings(timeout=3.0, allow_redirects=False, verify_ssl=False)

    transport = client_module.create_default_transport(settings)
    transport.close()

    assert isinstance(transport, HttpxTransport)
    assert captured["timeout"] == 3.0
    assert captured["follow_redirects"] is False
    assert captured["verify"] is False
    assert captured["closed"] is True
    # The shared client must not store cookies between calls.
    assert captured["cookies"]._policy.allowed_domains() == ()


def test_builder_over_httpx_transport_decodes_json():
    def handler(request):
        assert request.headers["accept"] == "application/json"
        return httpx.Response(200, json={"items": [1, 2, 3]})

    transport = _mock_transport(handler)

    def configure(config):
        config.request.uri = "http://api.example.com/v1/"
        config.request.accept = "application/json"

    with HttpBuilder(configure, transport=transport, settings=HttpSettings()) as http:
        assert http.get(lambda c: setattr(c.request.uri, "path", "items")) == {"items": [1, 2, 3]}


def test_stub_transport_consumes_sequences_and_repeats_last():
    transport = StubTransport()
    transport.add("/seq", [text_response(500), text_response(200, "ok")])

    assert transport.send(HttpRequest("http://h/seq")).status_code == 500
    assert transport.send(HttpRequest("http://h/seq")).status_code == 200
    assert transport.send(HttpRequest("http://h/seq")).status_code == 200
    assert transport.calls == 3


def test_stub_transport_prefers_method_keys_and_fills_url():
    transport = StubTransport()
    transport.add("/x", text_response(200, "any"))
    transport.add("/x", text_response(200, "post"), method="post")

    posted = transport.send(HttpRequest("http://h/x?q=1", method="POST"))
    assert posted.content == b"post"
    assert posted.url == "http://h/x?q=1"
    assert transport.send(HttpRequest("http://h/x")).content == b"any"


def test_stub_transport_without_match_raises():
    with pytest.raises(TransportError):
        StubTransport().send(HttpRequest("http://h/none"))


def test_from_server_helpers():
    fs = FromServer(418, headers={"content-type": 'text/plain; charset="ISO-8859-1"'}, content=b"tea")
    assert fs.content_type.startswith("text/plain")
    assert fs.charset == "ISO-8859-1"
    assert fs.reason_phrase == "I'm a Teapot"
    assert fs.stream().read() == b"tea"
    assert FromServer(204).has_body is False


def test_mime_type_parsing():
    mime = MimeType.parse("Application/JSON; Charset=UTF-8")
    assert mime.essence == "application/json"
    assert mime.wildcard == "application/*"
    assert mime.charset == "UTF-8"
    assert MimeType.parse("garbage") is None
    assert MimeType.parse("") is None


def test_header_helpers():
    assert header_value({"x-one": " 1 "}, "X-One") == "1"
    assert header_value({"X-Two": None}, "x-two", "dflt") == "dflt"
    assert header_value({}, "X-Three", "dflt") == "dflt"
    assert cookie_header({"a": "1", "b": "2"}) == "a=1; b=2"
    assert content_type_value("text/plain", "utf-8") == "text/plain; charset=utf-8"
    assert content_type_value("text/plain; charset=ascii", "utf-8") == "text/plain; charset=ascii"
    assert split_pairs(["X-A: 1", "X-B:two:parts"], ":") == {"X-A": "1", "X-B": "two:parts"}
    with pytest.raises(ValueError):
        split_pairs(["missing"], "=")


def test_uri_builder_build_and_merge():
    uri = UriBuilder().set("HTTP://Example.com:8080/a/b?x=1&x=2#frag")
    assert uri.scheme == "http"
    assert uri.port == 8080
    assert uri.query == {"x": ["1", "2"]}
    assert uri.build() == "http://example.com:8080/a/b?x=1&x=2#frag"

    child = UriBuilder(path="c")
    assert child.merged(uri).build() == "http://example.com:8080/a/b/c?x=1&x=2#frag"


def test_uri_builder_rejects_bad_input():
    with pytest.raises(ConfigurationError):
        UriBuilder().set("http://host:99999/")
    with pytest.raises(ConfigurationError):
        UriBuilder().set("http:///nohost")
    with pytest.raises(ConfigurationError):
        UriBuilder(path="/x").build()


def test_origin_helpers():
    assert origin_of("http://Example.com/a") == "http://example.com:80"
    assert origin_of("https://example.com:8443/") == "https://example.com:8443"
    assert origin_of("http://example.com:80/b") == origin_of("http://example.com/a")
    assert origin_of("https://example.com/") == "https://example.com:443"
    assert request_target("http://h") == "/"
    assert request_target("http://h/p?q=1") == "/p?q=1"
