# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from httpbuilder.auth import BasicAuth, DigestAuth, NoAuth
from httpbuilder.chained import HttpConfig, freeze, merge_maps
from httpbuilder.errors import ConfigurationError
from httpbuilder.http.headers import merge_headers
from httpbuilder.interceptors import HttpVerb


def _base(configure=None):
    base = HttpConfig.base()
    base.request.uri = "http://example.com/api?x=1"
    if configure is not None:
        configure(base)
    return base.lock()


def test_headers_merge_case_insensitively_with_derived_winning():
    def configure(base):
        base.request.headers = {"Accept": "text/plain", "X-A": "1"}

    base = _base(configure)
    derived = HttpConfig.derived()
    derived.request.headers = {"accept": "application/json", "X-B": "2"}

    effective = freeze(base, derived)

    assert list(effective.headers) == ["Accept", "X-A", "X-B"]
    assert effective.headers["Accept"] == "application/json"
    assert effective.headers["X-B"] == "2"


def test_merge_headers_keeps_base_order_and_appends_new_names():
    merged = merge_headers({"B": "1", "A": "2"}, {"c": "3", "b": "4"})
    assert list(merged.items()) == [("B", "4"), ("A", "2"), ("c", "3")]


def test_cookies_merge_as_union():
    assert merge_maps({"a": "1", "b": "2"}, {"b": "3", "c": "4"}) == {"a": "1", "b": "3", "c": "4"}


def test_freeze_does_not_modify_either_level():
    def configure(base):
        base.request.header("X-Base", "1")
        base.request.cookie("session", "base")

    base = _base(configure)
    derived = HttpConfig.derived()
    derived.request.header("X-Call", "2")
    derived.request.cookie("session", "call")

    effective = freeze(base, derived)

    assert dict(effective.headers) == {"X-Base": "1", "X-Call": "2"}
    assert dict(effective.cookies) == {"session": "call"}
    assert dict(base.request.headers) == {"X-Base": "1"}
    assert dict(base.request.cookies) == {"session": "base"}
    assert derived.request.headers == {"X-Call": "2"}


def test_scalars_fall_back_to_base_then_default():
    def configure(base):
        base.request.timeout = 5.0
        base.request.charset = "latin-1"
        base.request.basic("user", "pw")

    base = _base(configure)
    derived = HttpConfig.derived()
    derived.request.charset = "utf-16"

    effective = freeze(base, derived)

    assert effective.timeout == 5.0
    assert effective.charset == "utf-16"
    assert effective.auth == BasicAuth("user", "pw")
    assert effective.body is None
    assert effective.content_type is None

    bare = freeze(_base())
    assert bare.auth == NoAuth()
    assert bare.verb is HttpVerb.GET
    assert bare.accept == ()


def test_derived_auth_replaces_base_auth():
    base = _base(lambda b: b.request.basic("user", "pw"))
    derived = HttpConfig.derived()
    derived.request.digest("admin", "secret")

    assert freeze(base, derived).auth == DigestAuth("admin", "secret")


def test_verb_argument_overrides_configured_verb():
    base = _base(lambda b: setattr(b.request, "verb", "put"))
    assert freeze(base).verb is HttpVerb.PUT
    assert freeze(base, None, "post").verb is HttpVerb.POST


def test_relative_path_resolves_against_base_path():
    derived = HttpConfig.derived()
    derived.request.uri.path = "users"
    assert freeze(_base(), derived).uri == "http://example.com/api/users?x=1"


def test_absolute_path_and_query_override_base():
    derived = HttpConfig.derived()
    derived.request.uri = "/v2/items"
    derived.request.uri.set_query({"page": 2})
    assert freeze(_base(), derived).uri == "http://example.com/v2/items?page=2"


def test_add_query_appends_to_resolved_query():
    derived = HttpConfig.derived()
    derived.request.uri.add_query("tag", ["a", "b"])
    assert freeze(_base(), derived).uri == "http://example.com/api?x=1&tag=a&tag=b"


def test_derived_full_uri_replaces_origin():
    derived = HttpConfig.derived()
    derived.request.uri = "https://other.example:8443/root"
    assert freeze(_base(), derived).uri == "https://other.example:8443/root?x=1"


def test_locked_base_rejects_changes():
    base = _base()
    assert base.locked

    with pytest.raises(ConfigurationError):
        base.request.header("X-Late", "1")
    with pytest.raises(ConfigurationError):
        base.request.body = "late"
    with pytest.raises(ConfigurationError):
        base.request.uri = "http://elsewhere"
    with pytest.raises(ConfigurationError):
        base.response.success(lambda fs, body: body)
    with pytest.raises(ConfigurationError):
        base.execution.interceptor("GET", lambda config, next_fn: next_fn(config))
    with pytest.raises(TypeError):
        base.request.headers["X-Sneaky"] = "1"


def test_lock_covers_shared_components():
    base = _base()
    assert base.request.uri.locked
    assert base.content.locked
    assert base.response.handlers.locked
    assert base.execution.interceptors.locked

    with pytest.raises(ConfigurationError):
        base.request.uri.host = "evil.example"
    with pytest.raises(ConfigurationError):
        base.request.uri.set_query({"y": "2"})
    with pytest.raises(ConfigurationError):
        base.content.default_decoder = lambda config, fs: fs.content
    with pytest.raises(ConfigurationError):
        base.request.encoder("text/plain", lambda config, body: b"")

    derived = HttpConfig.derived()
    derived.request.uri.add_query("y", "2")
    derived.response.when(201, lambda fs, body: "made")
    assert not derived.request.uri.locked
    assert freeze(base, derived.lock(), "GET").uri == "http://example.com/api?x=1&y=2"
    assert dict(base.request.uri.query) == {"x": ["1"]}



def test_empty_uri_is_rejected():
    config = HttpConfig.base()
    with pytest.raises(ConfigurationError):
        config.request.uri = "   "


def test_uri_without_host_fails_on_freeze():
    base = HttpConfig.base().lock()
    derived = HttpConfig.derived()
    derived.request.uri = "/only/a/path"
    with pytest.raises(ConfigurationError):
        freeze(base, derived)


def test_invalid_verb_is_rejected():
    config = HttpConfig.derived()
    with pytest.raises(ConfigurationError):
        config.request.verb = "BREW"


def test_accept_string_becomes_list():
    derived = HttpConfig.derived()
    derived.request.accept = "application/json"
    assert freeze(_base(), derived).accept == ("application/json",)


def test_header_and_cookie_merge_is_idempotent():
    base = {"Accept": "text/plain", "X-A": "1"}
    derived = {"accept": "application/json", "X-B": "2"}

    once = merge_headers(base, derived)
    assert merge_headers(once, derived) == once
    assert merge_maps(merge_maps(base, derived), derived) == merge_maps(base, derived)
