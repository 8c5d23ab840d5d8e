# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
httpbuilder package entrypoint.

Requests and responses are described declaratively on a two-level configuration
(client-wide base plus per-call overrides) and executed against an injectable
transport, either on the calling thread or on a worker pool.
"""

from .auth import BasicAuth, BearerAuth, CustomAuth, DigestAuth, DigestChallengeCache, NoAuth
from .builder import AsyncCall, HttpBuilder
from .chained import EffectiveConfig, HttpConfig, freeze
from .config import HttpSettings, load_http_settings
from .content import ContentRegistry, default_registry
from .dispatch import Call, CallState, Dispatcher
from .errors import (
    AuthenticationError,
    ConfigurationError,
    DecodingError,
    ErrorCategory,
    HandlerError,
    HttpBuilderError,
    HttpStatusError,
    InternalConfigurationError,
    ResultTypeError,
    TransportError,
    TransportTimeoutError,
)
from .http import FromServer, HttpRequest, HttpxTransport, StubTransport, Transport
from .interceptors import HttpVerb, InterceptorChain
from .log import setup_logging
from .status import ResponseHandlerTable, Status
from .version import __version__

__all__ = [
    "AsyncCall",
    "AuthenticationError",
    "BasicAuth",
    "BearerAuth",
    "Call",
    "CallState",
    "ConfigurationError",
    "ContentRegistry",
    "CustomAuth",
    "DecodingError",
    "DigestAuth",
    "DigestChallengeCache",
    "Dispatcher",
    "EffectiveConfig",
    "ErrorCategory",
    "FromServer",
    "HandlerError",
    "HttpBuilder",
    "HttpBuilderError",
    "HttpConfig",
    "HttpRequest",
    "HttpSettings",
    "HttpStatusError",
    "HttpVerb",
    "HttpxTransport",
    "InterceptorChain",
    "InternalConfigurationError",
    "NoAuth",
    "ResponseHandlerTable",
    "ResultTypeError",
    "Status",
    "StubTransport",
    "Transport",
    "TransportError",
    "TransportTimeoutError",
    "default_registry",
    "freeze",
    "load_http_settings",
    "setup_logging",
    "__version__",
]
