# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed Transport implementation."""

from __future__ import annotations

from http.cookiejar import CookieJar, DefaultCookiePolicy
from http.cookies import CookieError, SimpleCookie

import httpx

from ..config import HttpSettings, load_http_settings
from ..errors import transport_error_from
from .client import Transport
from .headers import cookie_header, header_value
from .models import Cookies, FromServer, HttpRequest


def _stateless_cookie_jar() -> CookieJar:
    # Cookies are per-call configuration; the shared client must never replay them.
    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


def _response_cookies(resp: httpx.Response) -> Cookies:
    cookies: Cookies = {}
    for raw in resp.headers.get_list("set-cookie"):
        parsed = SimpleCookie()
        try:
            parsed.load(raw)
        except CookieError:
            continue
        for name, morsel in parsed.items():
            cookies[name] = morsel.value
    return cookies


class HttpxTransport(Transport):
    """Synchronous httpx client wrapper."""

    def __init__(self, settings: HttpSettings | None = None, client: httpx.Client | None = None):
        self.settings = settings or load_http_settings()
        self._client = client or httpx.Client(
            follow_redirects=self.settings.allow_redirects,
            timeout=self.settings.timeout,
            verify=self.settings.verify_ssl,
            cookies=_stateless_cookie_jar(),
        )

    def send(self, request: HttpRequest) -> FromServer:
        headers = dict(request.headers or {})
        rendered = cookie_header(request.cookies)
        if rendered:
            existing = header_value(headers, "Cookie")
            headers = {k: v for k, v in headers.items() if k.lower() != "cookie"}
            headers["Cookie"] = f"{existing}; {rendered}" if existing else rendered

        max_body_bytes = self.settings.max_body_bytes
        if max_body_bytes <= 0:
            max_body_bytes = 16 * 1024 * 1024
        timeout = request.timeout if request.timeout is not None else self.settings.timeout

        try:
            with self._client.stream(
                request.method,
                request.url,
                headers=headers,
                content=request.body,
                timeout=timeout,
                follow_redirects=request.allow_redirects,
            ) as resp:
                content = bytearray()
                truncated = False
                for chunk in resp.iter_bytes():
                    if not chunk:
                        continue
                    remaining = max_body_bytes - len(content)
                    if remaining <= 0:
                        truncated = True
                        break
                    if len(chunk) > remaining:
                        content.extend(chunk[:remaining])
                        truncated = True
                        break
                    content.extend(chunk)
        except httpx.HTTPError as exc:
            raise transport_error_from(exc) from exc
        except OSError as exc:
            raise transport_error_from(exc) from exc

        return FromServer(
            status_code=resp.status_code,
            headers=dict(resp.headers),
            cookies=_response_cookies(resp),
            content=bytes(content),
            url=str(resp.url),
            reason=resp.reason_phrase or None,
            meta={
                "http_version": resp.http_version,
                "body_truncated": truncated,
                "body_bytes_read": len(content),
                "body_bytes_limit": max_body_bytes,
            },
        )

    def close(self) -> None:
        self._client.close()
