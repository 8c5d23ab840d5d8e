# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

import socket
import ssl as ssl_module
from enum import Enum
from typing import Any

import httpx


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DNS_ERROR = "DNS_ERROR"
    PROTOCOL_ERROR = "PROTOCOL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class HttpBuilderError(Exception):
    """Base class for every error raised by the request pipeline."""


class ConfigurationError(HttpBuilderError):
    """Malformed configuration input, raised while building or freezing a call."""


class InternalConfigurationError(HttpBuilderError):
    """No response handler matched a status; the fallbacks make this a library bug."""


class TransportError(HttpBuilderError):
    """Connection, TLS or timeout failure reported by the transport."""

    def __init__(self, message: str, *, category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR):
        super().__init__(message)
        self.category = category


class TransportTimeoutError(TransportError):
    def __init__(self, message: str):
        super().__init__(message, category=ErrorCategory.TIMEOUT)


class DecodingError(HttpBuilderError):
    """No decoder for the response content type, or the decoder failed."""

    def __init__(self, message: str, *, content_type: str | None = None):
        super().__init__(message)
        self.content_type = content_type


class HttpStatusError(HttpBuilderError):
    """Raised by the default failure handler.

    The message is the reason phrase of the status (``"Not Found"``, ``"Bad Request"``),
    which gives callers a stable string to match on.
    """

    def __init__(self, message: str, *, status_code: int, from_server: Any = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.from_server = from_server
        self.body = body


class AuthenticationError(HttpStatusError):
    """Final 401 response: credentials rejected or the digest retry was spent."""


class HandlerError(HttpBuilderError):
    """Optional base for errors raised from caller-owned handlers.

    The dispatcher never wraps handler exceptions; this class only exists so callers
    have a shared root to raise from and catch.
    """


class ResultTypeError(HttpBuilderError, TypeError):
    """The handled result is not an instance of the requested result type."""


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.
    """
    if isinstance(exc, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, (httpx.RemoteProtocolError, httpx.LocalProtocolError)):
        return ErrorCategory.PROTOCOL_ERROR

    if isinstance(exc, (httpx.ConnectError, httpx.NetworkError, httpx.ProxyError)):
        cause = exc.__cause__ or exc.__context__
        if cause is not None and not isinstance(cause, httpx.HTTPError):
            nested = categorize_exception(cause)
            if nested is not ErrorCategory.UNKNOWN_ERROR:
                return nested
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ssl_module.SSLError, ssl_module.CertificateError)):
        return ErrorCategory.SSL_ERROR

    if isinstance(exc, (socket.gaierror, socket.herror)):
        return ErrorCategory.DNS_ERROR

    if isinstance(exc, (TimeoutError, socket.timeout)):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, (ConnectionError, ConnectionRefusedError, ConnectionResetError)):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


def transport_error_from(exc: BaseException) -> TransportError:
    """Wrap a raw transport exception, keeping the original as ``__cause__`` at the raise site."""
    if isinstance(exc, TransportError):
        return exc
    category = categorize_exception(exc)
    message = str(exc) or type(exc).__name__
    if category is ErrorCategory.TIMEOUT:
        return TransportTimeoutError(message)
    return TransportError(message, category=category)


__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "DecodingError",
    "ErrorCategory",
    "HandlerError",
    "HttpBuilderError",
    "HttpStatusError",
    "InternalConfigurationError",
    "ResultTypeError",
    "TransportError",
    "TransportTimeoutError",
    "categorize_exception",
    "transport_error_from",
]
