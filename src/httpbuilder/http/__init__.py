# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transport layer exports."""

from .adapters import StubTransport, text_response
from .client import Transport, create_default_transport
from .headers import MimeType, cookie_header, header_value, merge_headers
from .httpx_client import HttpxTransport
from .models import Cookies, FromServer, Headers, HttpRequest, HttpResponse
from .url import UriBuilder, origin_of, request_target

__all__ = [
    "Cookies",
    "FromServer",
    "Headers",
    "HttpRequest",
    "HttpResponse",
    "HttpxTransport",
    "MimeType",
    "StubTransport",
    "Transport",
    "UriBuilder",
    "cookie_header",
    "create_default_transport",
    "header_value",
    "merge_headers",
    "origin_of",
    "request_target",
    "text_response",
]
