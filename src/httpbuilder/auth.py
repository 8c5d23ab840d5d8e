# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Authentication strategies applied to outgoing requests.

Basic and bearer credentials are injected on every request. Digest needs a challenge
from the server first; challenges are cached per origin so later calls can answer
pre-emptively, and a call answers a fresh challenge at most once.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import os
import re
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

from .errors import ConfigurationError
from .http.headers import header_value
from .http.models import FromServer, HttpRequest
from .http.url import origin_of, request_target

logger = logging.getLogger(__name__)

AuthStrategy = Callable[[HttpRequest], Union[HttpRequest, None]]

_AUTH_PARAM_RE = re.compile(r'([\w-]+)\s*=\s*(?:"((?:[^"\\]|\\.)*)"|([^\s,]*))')
_HASHES = {
    "MD5": hashlib.md5,
    "SHA-256": hashlib.sha256,
    "SHA-512-256": lambda data: hashlib.new("sha512_256", data),
}


@dataclass(frozen=True)
class NoAuth:
    def apply(self, request: HttpRequest, cache: DigestChallengeCache) -> HttpRequest:  # noqa: ARG002
        return request


@dataclass(frozen=True)
class BasicAuth:
    user: str
    password: str

    def apply(self, request: HttpRequest, cache: DigestChallengeCache) -> HttpRequest:  # noqa: ARG002
        token = base64.b64encode(f"{self.user}:{self.password}".encode()).decode("ascii")
        return request.with_header("Authorization", f"Basic {token}")


@dataclass(frozen=True)
class BearerAuth:
    token: str

    def apply(self, request: HttpRequest, cache: DigestChallengeCache) -> HttpRequest:  # noqa: ARG002
        return request.with_header("Authorization", f"Bearer {self.token}")


@dataclass(frozen=True)
class CustomAuth:
    """Caller-supplied strategy; it may mutate the request in place or return a replacement."""

    strategy: AuthStrategy

    def apply(self, request: HttpRequest, cache: DigestChallengeCache) -> HttpRequest:  # noqa: ARG002
        replaced = self.strategy(request)
        return request if replaced is None else replaced


@dataclass(frozen=True)
class DigestChallenge:
    realm: str
    nonce: str
    qop: tuple[str, ...] = ()
    opaque: str | None = None
    algorithm: str = "MD5"
    stale: bool = False


@dataclass(frozen=True)
class DigestAuth:
    user: str
    password: str

    def apply(self, request: HttpRequest, cache: DigestChallengeCache) -> HttpRequest:
        reserved = cache.reserve(origin_of(request.url))
        if reserved is None:
            return request
        challenge, nonce_count = reserved
        return self.authorize(request, challenge, nonce_count)

    def authorize(self, request: HttpRequest, challenge: DigestChallenge, nonce_count: int) -> HttpRequest:
        header = build_digest_header(
            self,
            challenge,
            method=request.method,
            uri=request_target(request.url),
            nonce_count=nonce_count,
            body=request.body,
        )
        return request.with_header("Authorization", header)

    def answer(self, request: HttpRequest, challenge: DigestChallenge, cache: DigestChallengeCache) -> HttpRequest:
        """Cache a fresh server challenge and build the single authenticated retry for it."""
        nonce_count = cache.store(origin_of(request.url), challenge)
        logger.debug("Answering digest challenge for realm %r (nc=%d)", challenge.realm, nonce_count)
        return self.authorize(request, challenge, nonce_count)


AuthConfig = Union[NoAuth, BasicAuth, DigestAuth, BearerAuth, CustomAuth]


def apply_auth(auth: AuthConfig, request: HttpRequest, challenges: DigestChallengeCache) -> HttpRequest:
    """Return ``request`` with the credentials of ``auth`` applied."""
    return auth.apply(request, challenges)


class DigestChallengeCache:
    """
    Per-origin digest challenges shared by concurrent calls.

    All access goes through one lock. Each cached challenge carries its own nonce
    count so concurrent calls never reuse an ``nc`` value.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[DigestChallenge, int]] = {}

    def get(self, origin: str) -> DigestChallenge | None:
        with self._lock:
            entry = self._entries.get(origin)
        return entry[0] if entry else None

    def reserve(self, origin: str) -> tuple[DigestChallenge, int] | None:
        """Claim the next nonce count for the cached challenge, if any."""
        with self._lock:
            entry = self._entries.get(origin)
            if entry is None:
                return None
            challenge, count = entry
            self._entries[origin] = (challenge, count + 1)
            return challenge, count + 1

    def store(self, origin: str, challenge: DigestChallenge) -> int:
        """Cache ``challenge`` and return the nonce count to use with it."""
        with self._lock:
            entry = self._entries.get(origin)
            if entry is not None and entry[0].nonce == challenge.nonce:
                count = entry[1] + 1
            else:
                count = 1
            self._entries[origin] = (challenge, count)
            return count

    def invalidate(self, origin: str, challenge: DigestChallenge | None = None) -> None:
        """Drop the cached challenge; with ``challenge`` given, only if it is still the cached one."""
        with self._lock:
            entry = self._entries.get(origin)
            if entry is None:
                return
            if challenge is None or entry[0].nonce == challenge.nonce:
                del self._entries[origin]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def parse_digest_challenge(value: str | None) -> DigestChallenge | None:
    """Parse the Digest part of a ``WWW-Authenticate`` header."""
    if not value:
        return None
    match = re.search(r"\bdigest\s+", value, re.IGNORECASE)
    if match is None:
        return None
    params: dict[str, str] = {}
    for name, quoted, bare in _AUTH_PARAM_RE.findall(value[match.end() :]):
        key = name.lower()
        if key in params:
            # A following scheme's parameters (e.g. "Basic realm=...") start here.
            break
        params[key] = quoted.replace('\\"', '"') if quoted else bare
    realm = params.get("realm")
    nonce = params.get("nonce")
    if realm is None or not nonce:
        return None
    qop = tuple(item.strip().lower() for item in params.get("qop", "").split(",") if item.strip())
    return DigestChallenge(
        realm=realm,
        nonce=nonce,
        qop=qop,
        opaque=params.get("opaque"),
        algorithm=(params.get("algorithm") or "MD5").upper(),
        stale=params.get("stale", "").lower() == "true",
    )


def _hasher(algorithm: str) -> Callable[[bytes], str]:
    base = algorithm[: -len("-SESS")] if algorithm.endswith("-SESS") else algorithm
    factory = _HASHES.get(base)
    if factory is None:
        raise ConfigurationError(f"Unsupported digest algorithm {algorithm!r}")

    def digest(data: bytes) -> str:
        return factory(data).hexdigest()

    return digest


def build_digest_header(
    auth: DigestAuth,
    challenge: DigestChallenge,
    *,
    method: str,
    uri: str,
    nonce_count: int,
    cnonce: str | None = None,
    body: bytes | None = None,
) -> str:
    """Compute an RFC 7616 ``Authorization: Digest`` value."""
    algorithm = challenge.algorithm.upper()
    hash_bytes = _hasher(algorithm)

    def digest(text: str) -> str:
        return hash_bytes(text.encode("utf-8"))

    cnonce = cnonce or os.urandom(8).hex()
    nc_value = f"{nonce_count:08x}"

    ha1 = digest(f"{auth.user}:{challenge.realm}:{auth.password}")
    if algorithm.endswith("-SESS"):
        ha1 = digest(f"{ha1}:{challenge.nonce}:{cnonce}")

    qop: str | None = None
    if "auth" in challenge.qop:
        qop = "auth"
    elif "auth-int" in challenge.qop:
        qop = "auth-int"
    elif challenge.qop:
        raise ConfigurationError(f"Unsupported digest qop {','.join(challenge.qop)!r}")

    if qop == "auth-int":
        ha2 = digest(f"{method}:{uri}:{hash_bytes(body or b'')}")
    else:
        ha2 = digest(f"{method}:{uri}")

    if qop:
        response = digest(f"{ha1}:{challenge.nonce}:{nc_value}:{cnonce}:{qop}:{ha2}")
    else:
        response = digest(f"{ha1}:{challenge.nonce}:{ha2}")

    parts = [
        f'username="{auth.user}"',
        f'realm="{challenge.realm}"',
        f'nonce="{challenge.nonce}"',
        f'uri="{uri}"',
        f'response="{response}"',
        f"algorithm={challenge.algorithm}",
    ]
    if challenge.opaque is not None:
        parts.append(f'opaque="{challenge.opaque}"')
    if qop:
        parts.extend([f"qop={qop}", f"nc={nc_value}", f'cnonce="{cnonce}"'])
    return "Digest " + ", ".join(parts)


def digest_challenge_of(response: FromServer) -> DigestChallenge | None:
    """Return the digest challenge carried by a 401 response, if any."""
    if response.status_code != 401:
        return None
    return parse_digest_challenge(header_value(response.headers, "WWW-Authenticate"))


__all__ = [
    "AuthConfig",
    "AuthStrategy",
    "BasicAuth",
    "BearerAuth",
    "CustomAuth",
    "DigestAuth",
    "DigestChallenge",
    "DigestChallengeCache",
    "NoAuth",
    "apply_auth",
    "build_digest_header",
    "digest_challenge_of",
    "parse_digest_challenge",
]
