# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transport abstraction and factory."""

from typing import Protocol

from ..config import HttpSettings, load_http_settings
from .models import FromServer, HttpRequest


class Transport(Protocol):
    """
    Minimal protocol the dispatcher sends requests through.

    ``send`` returns the raw response for any status code and raises (anything) on
    connection, TLS or timeout failures; the dispatcher maps those into TransportError.
    """

    def send(self, request: HttpRequest) -> FromServer: ...

    def close(self) -> None:  # pragma: no cover - optional for adapters
        ...


def create_default_transport(settings: HttpSettings | None = None) -> Transport:
    """Factory for the default httpx-backed transport."""
    from .httpx_client import HttpxTransport

    return HttpxTransport(settings or load_http_settings())
