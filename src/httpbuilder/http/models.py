# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request/response data models exchanged with transports."""

from __future__ import annotations

import io
from dataclasses import dataclass, field, replace
from http import HTTPStatus
from typing import Any

from .headers import MimeType, header_value

Headers = dict[str, str]
Cookies = dict[str, str]


@dataclass
class HttpRequest:
    """Normalized request representation consumed by Transport implementations."""

    url: str
    method: str = "GET"
    headers: Headers = field(default_factory=dict)
    cookies: Cookies = field(default_factory=dict)
    body: bytes | None = None
    timeout: float | None = None
    allow_redirects: bool = True

    def with_header(self, name: str, value: str) -> HttpRequest:
        """Return a copy with ``name`` set, replacing any existing casing of the same header."""
        headers = {k: v for k, v in self.headers.items() if k.lower() != name.lower()}
        headers[name] = value
        return replace(self, headers=headers)


@dataclass
class FromServer:
    """Raw response as returned by a transport, before decoding.

    Handlers receive this object alongside the decoded body.
    """

    status_code: int
    headers: Headers = field(default_factory=dict)
    cookies: Cookies = field(default_factory=dict)
    content: bytes = b""
    url: str | None = None
    reason: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def content_type(self) -> str:
        return header_value(self.headers, "Content-Type")

    @property
    def charset(self) -> str | None:
        mime = MimeType.parse(self.content_type)
        return mime.charset if mime else None

    @property
    def has_body(self) -> bool:
        return bool(self.content)

    @property
    def reason_phrase(self) -> str:
        """Standard phrase for the status, falling back to what the server sent."""
        try:
            return HTTPStatus(self.status_code).phrase
        except ValueError:
            return self.reason or f"HTTP {self.status_code}"

    def header(self, name: str, default: str = "") -> str:
        return header_value(self.headers, name, default)

    def stream(self) -> io.BytesIO:
        """Return a fresh binary stream over the body."""
        return io.BytesIO(self.content)


HttpResponse = FromServer

__all__ = ["Cookies", "FromServer", "Headers", "HttpRequest", "HttpResponse"]
