# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Content negotiation: encoders and decoders keyed by media-type pattern.

Patterns are either exact (``application/json``) or wildcard-subtype (``text/*``).
Selection tries the exact type, then ``type/*``, then the registry default.
"""

from __future__ import annotations

import csv
import io
import json
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlencode

from .errors import ConfigurationError, DecodingError
from .http.headers import MimeType

if TYPE_CHECKING:
    from .chained import EffectiveConfig
    from .http.models import FromServer

Encoder = Callable[["EffectiveConfig", Any], bytes]
Decoder = Callable[["EffectiveConfig", "FromServer"], Any]

DEFAULT_CHARSET = "utf-8"
BINARY = "application/octet-stream"
JSON = "application/json"
XML = "application/xml"
FORM = "application/x-www-form-urlencoded"
TEXT = "text/plain"


def _patterns(pattern: str | Iterable[str]) -> list[str]:
    items = [pattern] if isinstance(pattern, str) else list(pattern)
    out = []
    for item in items:
        key = str(item).strip().lower()
        if not key:
            raise ConfigurationError("Content type pattern must not be empty")
        out.append(key)
    return out


def _lookup(table: Mapping[str, Any], content_type: str | None) -> Any | None:
    mime = MimeType.parse(content_type)
    if mime is None:
        return None
    exact = table.get(mime.essence)
    if exact is not None:
        return exact
    return table.get(mime.wildcard)


class ContentRegistry:
    """Pattern-keyed encoders and decoders with pass-through defaults."""

    def __init__(
        self,
        encoders: Mapping[str, Encoder] | None = None,
        decoders: Mapping[str, Decoder] | None = None,
        *,
        default_encoder: Encoder | None = None,
        default_decoder: Decoder | None = None,
    ):
        self._locked = False
        self._encoders: dict[str, Encoder] = dict(encoders or {})
        self._decoders: dict[str, Decoder] = dict(decoders or {})
        self.default_encoder = default_encoder
        self.default_decoder = default_decoder

    def __setattr__(self, name: str, value: Any) -> None:
        if not name.startswith("_"):
            self._check()
        object.__setattr__(self, name, value)

    def _check(self) -> None:
        if self._locked:
            raise ConfigurationError("The content registry is frozen and can no longer be changed")

    @property
    def locked(self) -> bool:
        return self._locked

    def lock(self) -> ContentRegistry:
        self._locked = True
        return self

    @property
    def encoders(self) -> Mapping[str, Encoder]:
        return dict(self._encoders)

    @property
    def decoders(self) -> Mapping[str, Decoder]:
        return dict(self._decoders)

    def register_encoder(self, pattern: str | Iterable[str], encoder: Encoder) -> None:
        self._check()
        for key in _patterns(pattern):
            self._encoders[key] = encoder

    def register_decoder(self, pattern: str | Iterable[str], decoder: Decoder) -> None:
        self._check()
        for key in _patterns(pattern):
            self._decoders[key] = decoder

    def find_encoder(self, content_type: str | None) -> Encoder | None:
        return _lookup(self._encoders, content_type) or self.default_encoder

    def find_decoder(self, content_type: str | None) -> Decoder | None:
        return _lookup(self._decoders, content_type) or self.default_decoder

    def select_encoder(self, content_type: str | None) -> Encoder:
        encoder = self.find_encoder(content_type)
        if encoder is None:
            raise ConfigurationError(f"No encoder registered for content type {content_type!r}")
        return encoder

    def select_decoder(self, content_type: str | None) -> Decoder:
        decoder = self.find_decoder(content_type)
        if decoder is None:
            raise DecodingError(f"No decoder registered for content type {content_type!r}", content_type=content_type)
        return decoder

    def merged(self, other: ContentRegistry | None) -> ContentRegistry:
        """Union keyed by pattern; ``other`` wins on identical patterns and non-None defaults."""
        if other is None:
            return ContentRegistry(
                self._encoders,
                self._decoders,
                default_encoder=self.default_encoder,
                default_decoder=self.default_decoder,
            )
        return ContentRegistry(
            {**self._encoders, **other._encoders},
            {**self._decoders, **other._decoders},
            default_encoder=other.default_encoder or self.default_encoder,
            default_decoder=other.default_decoder or self.default_decoder,
        )

    def __repr__(self) -> str:
        return f"ContentRegistry(encoders={sorted(self._encoders)}, decoders={sorted(self._decoders)})"


def _request_charset(config: EffectiveConfig) -> str:
    return getattr(config, "charset", None) or DEFAULT_CHARSET


def _response_charset(from_server: FromServer) -> str:
    return from_server.charset or DEFAULT_CHARSET


def _decode_text(from_server: FromServer) -> str:
    try:
        return from_server.content.decode(_response_charset(from_server), errors="replace")
    except LookupError:
        return from_server.content.decode(DEFAULT_CHARSET, errors="replace")


# Decoders


def decode_binary(config: EffectiveConfig, from_server: FromServer) -> bytes:  # noqa: ARG001
    return from_server.content


def decode_text(config: EffectiveConfig, from_server: FromServer) -> str:  # noqa: ARG001
    return _decode_text(from_server)


def decode_json(config: EffectiveConfig, from_server: FromServer) -> Any:  # noqa: ARG001
    return json.loads(_decode_text(from_server))


def decode_xml(config: EffectiveConfig, from_server: FromServer) -> ET.Element:  # noqa: ARG001
    return ET.fromstring(from_server.content)


def decode_csv(config: EffectiveConfig, from_server: FromServer) -> list[list[str]]:  # noqa: ARG001
    return [row for row in csv.reader(io.StringIO(_decode_text(from_server))) if row]


def decode_form(config: EffectiveConfig, from_server: FromServer) -> dict[str, list[str]]:  # noqa: ARG001
    return parse_qs(_decode_text(from_server), keep_blank_values=True)


# Encoders


def encode_binary(config: EffectiveConfig, body: Any) -> bytes:
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode(_request_charset(config))
    read = getattr(body, "read", None)
    if callable(read):
        data = read()
        return data.encode(_request_charset(config)) if isinstance(data, str) else bytes(data)
    raise ConfigurationError(f"Cannot encode {type(body).__name__} as binary content")


def encode_text(config: EffectiveConfig, body: Any) -> bytes:
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    return str(body).encode(_request_charset(config))


def encode_json(config: EffectiveConfig, body: Any) -> bytes:
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode(_request_charset(config))
    return json.dumps(body, separators=(",", ":")).encode(_request_charset(config))


def encode_xml(config: EffectiveConfig, body: Any) -> bytes:
    if isinstance(body, ET.Element):
        return ET.tostring(body, encoding=_request_charset(config))
    return encode_text(config, body)


def encode_csv(config: EffectiveConfig, body: Any) -> bytes:
    if isinstance(body, (str, bytes, bytearray)):
        return encode_text(config, body)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in body:
        writer.writerow(row)
    return buffer.getvalue().encode(_request_charset(config))


def encode_form(config: EffectiveConfig, body: Any) -> bytes:
    if isinstance(body, (str, bytes, bytearray)):
        return encode_text(config, body)
    return urlencode(body, doseq=True).encode(_request_charset(config))


def implied_content_type(body: Any) -> str:
    """Content type assumed for a body when the caller did not declare one."""
    if isinstance(body, str):
        return TEXT
    if isinstance(body, ET.Element):
        return XML
    if isinstance(body, (Mapping, list, tuple, int, float, bool)):
        return JSON
    return BINARY


def default_registry() -> ContentRegistry:
    """Build the registry every client starts from."""
    registry = ContentRegistry(default_encoder=encode_binary, default_decoder=decode_binary)
    registry.register_decoder(("text/*", TEXT, "text/html"), decode_text)
    registry.register_decoder((JSON, "text/json"), decode_json)
    registry.register_decoder((XML, "text/xml"), decode_xml)
    registry.register_decoder("text/csv", decode_csv)
    registry.register_decoder(FORM, decode_form)
    registry.register_decoder(BINARY, decode_binary)

    registry.register_encoder(("text/*", TEXT, "text/html"), encode_text)
    registry.register_encoder((JSON, "text/json"), encode_json)
    registry.register_encoder((XML, "text/xml"), encode_xml)
    registry.register_encoder("text/csv", encode_csv)
    registry.register_encoder(FORM, encode_form)
    registry.register_encoder(BINARY, encode_binary)
    return registry


__all__ = [
    "BINARY",
    "FORM",
    "JSON",
    "TEXT",
    "XML",
    "ContentRegistry",
    "Decoder",
    "Encoder",
    "default_registry",
    "implied_content_type",
]
