# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""In-process transports for tests and for callers that mock around the network."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from urllib.parse import urlsplit

from ..errors import TransportError
from .client import Transport
from .models import FromServer, HttpRequest


class StubTransport(Transport):
    """
    Deterministic, programmable Transport.

    Responses are keyed by ``(METHOD, url)``, ``url`` or path. A registered value may be a
    FromServer, a callable producing one from the request, an exception instance to raise,
    or a list of any of these consumed in order (the last one repeats).
    """

    def __init__(self, responses: dict[str, object] | None = None):
        self._responses: dict[str, list[object]] = {}
        self._lock = threading.Lock()
        self.requests: list[HttpRequest] = []
        self.closed = False
        for key, value in (responses or {}).items():
            self.add(key, value)

    def add(self, key: str, response: object, *, method: str | None = None) -> None:
        items = list(response) if isinstance(response, (list, tuple)) else [response]
        full_key = f"{method.upper()} {key}" if method else key
        with self._lock:
            self._responses[full_key] = items

    def _lookup(self, request: HttpRequest) -> object | None:
        path = urlsplit(request.url).path or "/"
        bare_url = request.url.split("?", 1)[0]
        candidates: Iterable[str] = (
            f"{request.method} {request.url}",
            f"{request.method} {bare_url}",
            f"{request.method} {path}",
            request.url,
            bare_url,
            path,
        )
        with self._lock:
            for key in candidates:
                queue = self._responses.get(key)
                if queue:
                    return queue.pop(0) if len(queue) > 1 else queue[0]
        return None

    @property
    def calls(self) -> int:
        return len(self.requests)

    def send(self, request: HttpRequest) -> FromServer:
        with self._lock:
            self.requests.append(request)
        entry = self._lookup(request)
        if entry is None:
            raise TransportError(f"No stubbed response configured for {request.method} {request.url}")
        if isinstance(entry, BaseException):
            raise entry
        if callable(entry):
            entry = entry(request)
        if not isinstance(entry, FromServer):
            raise TypeError(f"Stubbed response for {request.url} is not a FromServer: {entry!r}")
        if entry.url is None:
            return FromServer(
                status_code=entry.status_code,
                headers=dict(entry.headers),
                cookies=dict(entry.cookies),
                content=entry.content,
                url=request.url,
                reason=entry.reason,
                meta=dict(entry.meta),
            )
        return entry

    def close(self) -> None:
        self.closed = True


def text_response(status_code: int, text: str = "", content_type: str = "text/plain", **headers: str) -> FromServer:
    """Build a FromServer carrying a UTF-8 text body."""
    all_headers = {"Content-Type": f"{content_type}; charset=utf-8"} if text else {}
    all_headers.update({k.replace("_", "-"): v for k, v in headers.items()})
    return FromServer(status_code=status_code, headers=all_headers, content=text.encode("utf-8"))


__all__ = ["StubTransport", "text_response"]
