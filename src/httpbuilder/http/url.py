# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""URI building and origin helpers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from ..errors import ConfigurationError

Query = dict[str, list[str]]

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _normalize_query(query: Mapping[str, Any] | str | None) -> Query | None:
    if query is None:
        return None
    if isinstance(query, str):
        return {k: list(v) for k, v in parse_qs(query.lstrip("?"), keep_blank_values=True).items()}
    out: Query = {}
    for key, value in query.items():
        if value is None:
            out[str(key)] = [""]
        elif isinstance(value, (list, tuple)):
            out[str(key)] = [str(v) for v in value]
        else:
            out[str(key)] = [str(value)]
    return out


def _join_path(base_path: str | None, path: str) -> str:
    """
    Resolve a relative path against a base path treated as a directory.

    Example:
      ("/api", "users") -> "/api/users"
    """
    if path.startswith("/") or not base_path:
        return path if path.startswith("/") else f"/{path}"
    return base_path.rstrip("/") + "/" + path


@dataclass
class UriBuilder:
    """
    Per-field URI configuration for one configuration level.

    Every field is optional; unset fields fall back to the parent level when merged.
    Assigning a full URI string through :meth:`set` fills every component it contains.
    """

    scheme: str | None = None
    host: str | None = None
    port: int | None = None
    path: str | None = None
    query: Query | None = None
    fragment: str | None = None
    _extra_query: Query = field(default_factory=dict, repr=False)
    _locked: bool = field(default=False, init=False, repr=False, compare=False)

    def __setattr__(self, name: str, value: Any) -> None:
        self._check()
        object.__setattr__(self, name, value)

    def _check(self) -> None:
        if getattr(self, "_locked", False):
            raise ConfigurationError("The URI is frozen and can no longer be changed")

    @property
    def locked(self) -> bool:
        return self._locked

    def lock(self) -> UriBuilder:
        """Make this builder read-only; ``merged`` still returns unlocked copies."""
        if not self._locked:
            if self.query is not None:
                object.__setattr__(self, "query", MappingProxyType(self.query))
            object.__setattr__(self, "_extra_query", MappingProxyType(self._extra_query))
            object.__setattr__(self, "_locked", True)
        return self

    def set(self, value: str) -> UriBuilder:
        """Parse ``value`` into this builder, replacing the components it names."""
        text = str(value or "").strip()
        if not text:
            raise ConfigurationError("URI must not be empty")
        try:
            parts = urlsplit(text)
            port = parts.port
        except ValueError as exc:
            raise ConfigurationError(f"Unparseable URI {text!r}: {exc}") from exc
        if parts.scheme and not parts.hostname:
            raise ConfigurationError(f"URI {text!r} has no host")
        if parts.scheme:
            self.scheme = parts.scheme.lower()
        if parts.hostname:
            self.host = parts.hostname
        if port is not None:
            self.port = port
        if parts.path:
            self.path = parts.path
        if parts.query:
            self.query = _normalize_query(parts.query)
        if parts.fragment:
            self.fragment = parts.fragment
        return self

    def set_query(self, query: Mapping[str, Any] | str | None) -> None:
        self.query = _normalize_query(query)

    def add_query(self, name: str, value: Any) -> None:
        """Append a query parameter merged on top of whatever query the levels resolve to."""
        self._check()
        self._extra_query.setdefault(name, []).extend(_normalize_query({name: value})[name])

    def merged(self, parent: UriBuilder | None) -> UriBuilder:
        """Return a new builder with unset fields taken from ``parent``; neither input changes."""
        if parent is None:
            return UriBuilder(
                self.scheme,
                self.host,
                self.port,
                self.path,
                _normalize_query(self.query),
                self.fragment,
                {k: list(v) for k, v in self._extra_query.items()},
            )
        path = parent.path
        if self.path is not None:
            path = _join_path(parent.path, self.path)
        extra = {k: list(v) for k, v in parent._extra_query.items()}
        for key, values in self._extra_query.items():
            extra.setdefault(key, []).extend(values)
        query = self.query if self.query is not None else parent.query
        return UriBuilder(
            scheme=self.scheme or parent.scheme,
            host=self.host or parent.host,
            port=self.port if self.port is not None else parent.port,
            path=path,
            query=_normalize_query(query),
            fragment=self.fragment if self.fragment is not None else parent.fragment,
            _extra_query=extra,
        )

    def build(self) -> str:
        """Render the absolute URI; raises ConfigurationError when scheme or host is missing."""
        if not self.scheme or not self.host:
            raise ConfigurationError("Request URI is incomplete: scheme and host are required")
        if self.port is not None and not 0 < self.port < 65536:
            raise ConfigurationError(f"Invalid port {self.port}")
        host = f"[{self.host}]" if ":" in self.host else self.host
        netloc = host if self.port is None else f"{host}:{self.port}"
        query: Query = _normalize_query(self.query) or {}
        for key, values in self._extra_query.items():
            query.setdefault(key, []).extend(values)
        return urlunsplit(
            (
                self.scheme,
                netloc,
                self.path or "",
                urlencode(query, doseq=True) if query else "",
                self.fragment or "",
            )
        )


def origin_of(url: str) -> str:
    """Return ``scheme://host:port`` with the default port made explicit."""
    parts = urlsplit(str(url or ""))
    scheme = (parts.scheme or "").lower()
    host = (parts.hostname or "").lower()
    try:
        port = parts.port
    except ValueError:
        port = None
    if port is None:
        port = _DEFAULT_PORTS.get(scheme)
    return f"{scheme}://{host}" if port is None else f"{scheme}://{host}:{port}"


def request_target(url: str) -> str:
    """Return the path-and-query part of a URL, as used by the digest ``uri`` directive."""
    parts = urlsplit(str(url or ""))
    target = parts.path or "/"
    if parts.query:
        target = f"{target}?{parts.query}"
    return target


__all__ = ["Query", "UriBuilder", "origin_of", "request_target"]
