# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Two-level request configuration.

Every client owns one base ``HttpConfig``; every call builds a derived ``HttpConfig``
through the caller's configure function. ``freeze`` merges the two into an immutable
``EffectiveConfig`` without touching either level, so a derived config can be thrown
away after its call and the base stays safe to share between threads.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from .auth import AuthConfig, AuthStrategy, BasicAuth, BearerAuth, CustomAuth, DigestAuth, NoAuth
from .content import ContentRegistry, Decoder, Encoder, default_registry
from .errors import ConfigurationError, TransportError
from .http.headers import merge_headers
from .http.url import UriBuilder
from .interceptors import HttpVerb, Interceptor, InterceptorChain
from .status import ResponseHandler, ResponseHandlerTable

ExceptionHandler = Callable[[TransportError], Any]


class _Level:
    """Shared lock state for the three sections of one HttpConfig."""

    def __init__(self, name: str):
        self.name = name
        self.locked = False

    def check(self) -> None:
        if self.locked:
            raise ConfigurationError(f"The {self.name} configuration is frozen and can no longer be changed")


class RequestConfig:
    """Request side of one configuration level."""

    def __init__(self, level: _Level, content: ContentRegistry):
        self._level = level
        self._content = content
        self._uri = UriBuilder()
        self._headers: dict[str, str] = {}
        self._cookies: dict[str, str] = {}
        self.verb: HttpVerb | None = None
        self.body: Any = None
        self.content_type: str | None = None
        self.charset: str | None = None
        self.accept: list[str] | None = None
        self.auth: AuthConfig | None = None
        self.timeout: float | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        if not name.startswith("_"):
            self._level.check()
        if name == "verb" and value is not None:
            value = HttpVerb.of(value)
        if name == "accept" and isinstance(value, str):
            value = [value]
        object.__setattr__(self, name, value)

    @property
    def uri(self) -> UriBuilder:
        return self._uri

    @uri.setter
    def uri(self, value: str | UriBuilder) -> None:
        self._level.check()
        if isinstance(value, UriBuilder):
            self._uri = value
        else:
            self._uri = UriBuilder().set(value)

    @property
    def headers(self) -> dict[str, str]:
        return self._headers

    @headers.setter
    def headers(self, value: Mapping[str, str] | None) -> None:
        self._level.check()
        self._headers = {str(k): str(v) for k, v in (value or {}).items()}

    @property
    def cookies(self) -> dict[str, str]:
        return self._cookies

    @cookies.setter
    def cookies(self, value: Mapping[str, str] | None) -> None:
        self._level.check()
        self._cookies = {str(k): str(v) for k, v in (value or {}).items()}

    def header(self, name: str, value: str) -> None:
        self._level.check()
        self._headers[name] = str(value)

    def cookie(self, name: str, value: str) -> None:
        self._level.check()
        self._cookies[name] = str(value)

    def basic(self, user: str, password: str) -> None:
        self.auth = BasicAuth(user, password)

    def digest(self, user: str, password: str) -> None:
        self.auth = DigestAuth(user, password)

    def bearer(self, token: str) -> None:
        self.auth = BearerAuth(token)

    def custom(self, strategy: AuthStrategy) -> None:
        self.auth = CustomAuth(strategy)

    def no_auth(self) -> None:
        self.auth = NoAuth()

    def encoder(self, content_type: str | Iterable[str], encoder: Encoder) -> None:
        self._level.check()
        self._content.register_encoder(content_type, encoder)

    def _lock(self) -> None:
        self._uri.lock()
        self._headers = MappingProxyType(self._headers)  # type: ignore[assignment]
        self._cookies = MappingProxyType(self._cookies)  # type: ignore[assignment]


class ResponseConfig:
    """Response side of one configuration level."""

    def __init__(self, level: _Level, content: ContentRegistry, handlers: ResponseHandlerTable):
        self._level = level
        self._content = content
        self._handlers = handlers
        self._exception: ExceptionHandler | None = None

    @property
    def handlers(self) -> ResponseHandlerTable:
        return self._handlers

    @property
    def exception_handler(self) -> ExceptionHandler | None:
        return self._exception

    def when(self, status: Any, handler: ResponseHandler) -> None:
        self._level.check()
        self._handlers.when(status, handler)

    def success(self, handler: ResponseHandler) -> None:
        self._level.check()
        self._handlers.success(handler)

    def failure(self, handler: ResponseHandler) -> None:
        self._level.check()
        self._handlers.failure(handler)

    def parser(self, content_type: str | Iterable[str], decoder: Decoder) -> None:
        self._level.check()
        self._content.register_decoder(content_type, decoder)

    def exception(self, handler: ExceptionHandler) -> None:
        """Handle transport failures; the handler's return value becomes the call's result."""
        self._level.check()
        if not callable(handler):
            raise ConfigurationError("Exception handler must be callable")
        self._exception = handler


class ExecutionConfig:
    def __init__(self, level: _Level, interceptors: InterceptorChain):
        self._level = level
        self._interceptors = interceptors

    @property
    def interceptors(self) -> InterceptorChain:
        return self._interceptors

    def interceptor(self, verbs: HttpVerb | str | Iterable[HttpVerb | str], interceptor: Interceptor) -> None:
        self._level.check()
        self._interceptors.register(verbs, interceptor)


class HttpConfig:
    """
    One configuration level.

    ``HttpConfig.base()`` starts from the default content registry and the SUCCESS/FAILURE
    fallbacks; ``HttpConfig.derived()`` starts empty and only records overrides.
    """

    def __init__(self, name: str, content: ContentRegistry, handlers: ResponseHandlerTable):
        self._level = _Level(name)
        self._content = content
        self.request = RequestConfig(self._level, content)
        self.response = ResponseConfig(self._level, content, handlers)
        self.execution = ExecutionConfig(self._level, InterceptorChain())

    @classmethod
    def base(cls) -> HttpConfig:
        return cls("base", default_registry(), ResponseHandlerTable(with_defaults=True))

    @classmethod
    def derived(cls) -> HttpConfig:
        return cls("request", ContentRegistry(), ResponseHandlerTable())

    @property
    def content(self) -> ContentRegistry:
        return self._content

    @property
    def locked(self) -> bool:
        return self._level.locked

    def lock(self) -> HttpConfig:
        """Make this level read-only, including its URI, registries, handlers and interceptors."""
        if not self._level.locked:
            self.request._lock()
            self._content.lock()
            self.response.handlers.lock()
            self.execution.interceptors.lock()
            self._level.locked = True
        return self


@dataclass(frozen=True)
class EffectiveConfig:
    """The fully resolved, immutable configuration used for one call."""

    verb: HttpVerb
    uri: str
    headers: Mapping[str, str]
    cookies: Mapping[str, str]
    body: Any
    content_type: str | None
    charset: str | None
    accept: tuple[str, ...]
    auth: AuthConfig
    timeout: float | None
    content: ContentRegistry
    handlers: ResponseHandlerTable
    interceptors: InterceptorChain
    exception_handler: ExceptionHandler | None


def _pick(derived: Any, base: Any, default: Any = None) -> Any:
    if derived is not None:
        return derived
    if base is not None:
        return base
    return default


def merge_maps(base: Mapping[str, str] | None, derived: Mapping[str, str] | None) -> dict[str, str]:
    """Union of cookie maps: base order, derived-only keys appended, derived wins on collision."""
    merged = dict(base or {})
    merged.update(derived or {})
    return merged


def freeze(base: HttpConfig, derived: HttpConfig | None = None, verb: HttpVerb | str | None = None) -> EffectiveConfig:
    """Resolve ``derived`` over ``base``; neither level is modified."""
    derived = derived or HttpConfig.derived()
    req, base_req = derived.request, base.request

    uri = req.uri.merged(base_req.uri).build()
    resolved_verb = HttpVerb.of(_pick(verb, _pick(req.verb, base_req.verb, HttpVerb.GET)))

    return EffectiveConfig(
        verb=resolved_verb,
        uri=uri,
        headers=MappingProxyType(merge_headers(base_req.headers, req.headers)),
        cookies=MappingProxyType(merge_maps(base_req.cookies, req.cookies)),
        body=_pick(req.body, base_req.body),
        content_type=_pick(req.content_type, base_req.content_type),
        charset=_pick(req.charset, base_req.charset),
        accept=tuple(_pick(req.accept, base_req.accept, ())),
        auth=_pick(req.auth, base_req.auth, NoAuth()),
        timeout=_pick(req.timeout, base_req.timeout),
        content=base.content.merged(derived.content),
        handlers=base.response.handlers.merged(derived.response.handlers),
        interceptors=base.execution.interceptors.merged(derived.execution.interceptors),
        exception_handler=_pick(derived.response.exception_handler, base.response.exception_handler),
    )


__all__ = [
    "EffectiveConfig",
    "ExceptionHandler",
    "ExecutionConfig",
    "HttpConfig",
    "RequestConfig",
    "ResponseConfig",
    "freeze",
    "merge_maps",
]
