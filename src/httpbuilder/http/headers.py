# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Header, cookie and media-type utilities.

HTTP header field names are case-insensitive (RFC 9110). Configuration levels and
transports hand headers around as plain dicts, so lookups and merges here compare
names case-insensitively while keeping the casing the caller wrote.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field


def header_value(headers: Mapping[str, str] | None, name: str, default: str = "") -> str:
    """Return a header value using case-insensitive name matching."""
    if not headers or not name:
        return default
    if name in headers:
        value = headers[name]
        return default if value is None else str(value).strip()
    wanted = name.lower()
    for key, value in headers.items():
        if str(key).lower() == wanted:
            return default if value is None else str(value).strip()
    return default


def merge_headers(base: Mapping[str, str] | None, override: Mapping[str, str] | None) -> dict[str, str]:
    """
    Union two header maps.

    Iteration order is base order followed by override-only names. On a case-insensitive
    collision the override's value wins and the base's key position (and casing) is kept.
    """
    merged: dict[str, str] = {}
    positions: dict[str, str] = {}
    for source in (base or {}, override or {}):
        for key, value in source.items():
            lower = key.lower()
            existing = positions.get(lower)
            if existing is None:
                positions[lower] = key
                merged[key] = value
            else:
                merged[existing] = value
    return merged


def cookie_header(cookies: Mapping[str, str] | None) -> str:
    """Render a ``Cookie`` request header value."""
    if not cookies:
        return ""
    return "; ".join(f"{name}={value}" for name, value in cookies.items())


@dataclass(frozen=True)
class MimeType:
    """Parsed media type: ``type/subtype`` plus parameters (lowercased names)."""

    type: str
    subtype: str
    params: dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def essence(self) -> str:
        return f"{self.type}/{self.subtype}"

    @property
    def wildcard(self) -> str:
        return f"{self.type}/*"

    @property
    def charset(self) -> str | None:
        return self.params.get("charset")

    @classmethod
    def parse(cls, value: str | None) -> MimeType | None:
        """Parse a Content-Type value; returns None for empty or malformed input."""
        if not value:
            return None
        essence, _, raw_params = str(value).partition(";")
        major, sep, minor = essence.strip().lower().partition("/")
        major, minor = major.strip(), minor.strip()
        if not sep or not major or not minor:
            return None
        params: dict[str, str] = {}
        for item in raw_params.split(";"):
            name, eq, param_value = item.partition("=")
            if not eq or not name.strip():
                continue
            params[name.strip().lower()] = param_value.strip().strip('"')
        return cls(major, minor, params)


def content_type_value(content_type: str, charset: str | None = None) -> str:
    """Render a Content-Type header for a media type and optional charset."""
    if charset and "charset=" not in content_type.lower():
        return f"{content_type}; charset={charset}"
    return content_type


def split_pairs(values: Iterable[str], separator: str) -> dict[str, str]:
    """Parse ``name<sep>value`` strings (CLI flags) into a dict."""
    out: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(separator)
        if not sep or not name.strip():
            raise ValueError(f"expected NAME{separator}VALUE, got {raw!r}")
        out[name.strip()] = value.strip()
    return out


__all__ = [
    "MimeType",
    "content_type_value",
    "cookie_header",
    "header_value",
    "merge_headers",
    "split_pairs",
]
