# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpbuilder CLI."""

from __future__ import annotations

import argparse
import json
import sys
import xml.etree.ElementTree as ET
from typing import Any

from ..builder import HttpBuilder
from ..chained import HttpConfig
from ..config import HttpSettings, load_http_settings
from ..errors import HttpBuilderError
from ..http import create_default_transport
from ..http.headers import split_pairs
from ..http.models import FromServer
from ..interceptors import HttpVerb
from ..log import setup_logging

CLI_TEXT_TRUNCATION_BYTES = 64 * 1024


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send one HTTP request and print the decoded response")
    parser.add_argument("method", type=str.upper, choices=[verb.value for verb in HttpVerb], help="HTTP verb")
    parser.add_argument("url", help="Absolute request URI")
    parser.add_argument("-H", "--header", action="append", default=[], metavar="NAME:VALUE", help="Request header (repeatable)")
    parser.add_argument("-b", "--cookie", action="append", default=[], metavar="NAME=VALUE", help="Request cookie (repeatable)")
    parser.add_argument("-d", "--data", help="Request body")
    parser.add_argument("--content-type", help="Content type of --data (implied from the body when omitted)")
    auth = parser.add_mutually_exclusive_group()
    auth.add_argument("--basic", metavar="USER:PASSWORD", help="Use HTTP Basic authentication")
    auth.add_argument("--digest", metavar="USER:PASSWORD", help="Use HTTP Digest authentication")
    auth.add_argument("--bearer", metavar="TOKEN", help="Send a bearer token")
    parser.add_argument("--status", action="store_true", help="Print the status line before the body")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output JSON instead of the raw decoded body",
    )
    parser.add_argument(
        "--ignore-ssl-errors",
        action="store_true",
        help="Skip TLS verification (useful for lab/self-signed targets)",
    )
    parser.add_argument("--log-level", help="Logging level (defaults to HTTPBUILDER_LOG_LEVEL or WARNING)")
    return parser


def _truncate_text_bytes(text: str, max_bytes: int) -> str:
    raw = text.encode("utf-8")
    if len(raw) <= max_bytes:
        return text
    suffix = "...[truncated]"
    suffix_bytes = suffix.encode("utf-8")
    keep = max_bytes - len(suffix_bytes)
    if keep <= 0:
        return suffix_bytes[:max_bytes].decode("utf-8", errors="ignore")
    prefix = raw[:keep].decode("utf-8", errors="ignore")
    return prefix + suffix


def _credentials(value: str) -> tuple[str, str]:
    user, sep, password = value.partition(":")
    if not sep:
        raise ValueError("credentials must look like USER:PASSWORD")
    return user, password


def _printable(value: Any) -> Any:
    if isinstance(value, ET.Element):
        return ET.tostring(value, encoding="unicode")
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return value


def _base_config(args: argparse.Namespace) -> Any:
    headers = split_pairs(args.header, ":")
    cookies = split_pairs(args.cookie, "=")
    basic = _credentials(args.basic) if args.basic else None
    digest = _credentials(args.digest) if args.digest else None

    def configure(config: HttpConfig) -> None:
        config.request.uri = args.url
        config.request.headers = headers
        config.request.cookies = cookies
        if args.data is not None:
            config.request.body = args.data
        if args.content_type:
            config.request.content_type = args.content_type
        if basic:
            config.request.basic(*basic)
        elif digest:
            config.request.digest(*digest)
        elif args.bearer:
            config.request.bearer(args.bearer)
        # Keep the status around for --status without failing on non-2xx.
        config.response.success(lambda fs, body: (fs, body))
        config.response.failure(lambda fs, body: (fs, body))

    return configure


def _emit(from_server: FromServer, body: Any, args: argparse.Namespace) -> None:
    payload = _printable(body)
    if args.json:
        document = {"status": from_server.status_code, "headers": from_server.headers, "body": payload}
        json.dump(document, sys.stdout, indent=2, sort_keys=True, default=str)
        sys.stdout.write("\n")
        return
    if args.status:
        print(f"{from_server.status_code} {from_server.reason_phrase}")
    if payload is None:
        return
    text = payload if isinstance(payload, str) else json.dumps(payload, indent=2, default=str)
    print(_truncate_text_bytes(text, CLI_TEXT_TRUNCATION_BYTES))


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    settings: HttpSettings = load_http_settings()
    if args.ignore_ssl_errors:
        settings.verify_ssl = False

    try:
        configure = _base_config(args)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        with HttpBuilder(configure, transport=create_default_transport(settings), settings=settings) as http:
            from_server, body = http.request(args.method)
    except HttpBuilderError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    _emit(from_server, body, args)
    return 0 if from_server.status_code < 400 else 1


if __name__ == "__main__":
    raise SystemExit(main())
