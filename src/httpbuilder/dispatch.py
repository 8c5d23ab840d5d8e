# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Single-call request pipeline.

A call moves through BUILDING → FROZEN → SENDING → DECODING → HANDLING → DONE, or
ends in FAILED. The dispatcher owns the part from SENDING onwards: it wraps the
exchange in the verb's interceptors, sends through the transport (answering at most
one digest challenge), decodes the body and runs the matching status handler.
"""

from __future__ import annotations

import itertools
import logging
import threading
from concurrent.futures import CancelledError
from enum import Enum
from functools import partial
from typing import Any

import httpx

from .auth import DigestAuth, DigestChallengeCache, apply_auth, digest_challenge_of
from .chained import EffectiveConfig
from .config import HttpSettings, load_http_settings
from .content import implied_content_type
from .errors import ConfigurationError, DecodingError, HttpBuilderError, TransportError, transport_error_from
from .http.client import Transport
from .http.headers import content_type_value, header_value
from .http.models import FromServer, HttpRequest
from .http.url import origin_of
from .interceptors import HttpVerb

logger = logging.getLogger(__name__)

_call_ids = itertools.count(1)


class CallState(str, Enum):
    BUILDING = "BUILDING"
    FROZEN = "FROZEN"
    SENDING = "SENDING"
    DECODING = "DECODING"
    HANDLING = "HANDLING"
    DONE = "DONE"
    FAILED = "FAILED"


TERMINAL_STATES = frozenset({CallState.DONE, CallState.FAILED})
# Past decoding, a cancel request can no longer stop the handler.
UNCANCELLABLE_STATES = TERMINAL_STATES | {CallState.HANDLING}


class Call:
    """Per-call bookkeeping: state history, transport attempts and the cancellation flag."""

    def __init__(self, verb: HttpVerb | str):
        self.id = next(_call_ids)
        self.verb = HttpVerb.of(verb)
        self.uri: str | None = None
        self.state = CallState.BUILDING
        self.history: list[CallState] = [CallState.BUILDING]
        self.attempts = 0
        self.error: BaseException | None = None
        self._cancel_requested = threading.Event()
        self._lock = threading.RLock()

    def transition(self, state: CallState) -> None:
        with self._lock:
            if self.state in TERMINAL_STATES:
                return
            logger.debug("call %d %s: %s -> %s", self.id, self.verb.value, self.state.value, state.value)
            self.state = state
            self.history.append(state)

    def advance(self, state: CallState) -> None:
        """Move to ``state`` unless cancellation was requested; both happen under one lock."""
        with self._lock:
            self.check_cancelled()
            self.transition(state)

    def fail(self, error: BaseException) -> None:
        with self._lock:
            if self.state in TERMINAL_STATES:
                return
            self.error = error
            self.transition(CallState.FAILED)

    def cancel(self) -> bool:
        """Request cancellation; a no-op returning False once handlers started or the call ended."""
        with self._lock:
            if self.state in UNCANCELLABLE_STATES:
                return False
            self._cancel_requested.set()
            return True

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    def check_cancelled(self) -> None:
        if self._cancel_requested.is_set():
            raise CancelledError(f"call {self.id} was cancelled")


class Dispatcher:
    """Runs frozen calls against one transport; safe to share between threads."""

    def __init__(
        self,
        transport: Transport,
        *,
        settings: HttpSettings | None = None,
        challenges: DigestChallengeCache | None = None,
    ):
        self.transport = transport
        self.settings = settings or load_http_settings()
        self.challenges = challenges if challenges is not None else DigestChallengeCache()

    def execute(self, call: Call, config: EffectiveConfig) -> Any:
        """Run the interceptor chain for ``call.verb`` around the exchange and return its result."""
        run = config.interceptors.compose(config.verb, partial(self._exchange, call))
        try:
            result = run(config)
            # An interceptor may return without reaching the handlers.
            call.advance(CallState.DONE)
        except BaseException as exc:
            call.fail(exc)
            raise
        return result

    def _exchange(self, call: Call, config: EffectiveConfig) -> Any:
        call.check_cancelled()
        call.uri = config.uri
        request = self.build_request(config)
        call.advance(CallState.SENDING)
        try:
            response = self._send(call, config, request)
        except TransportError as exc:
            if config.exception_handler is None:
                raise
            call.advance(CallState.HANDLING)
            logger.debug("call %d: transport error handed to exception handler: %s", call.id, exc)
            return config.exception_handler(exc)

        # Cancelled while the transport was busy: no handler may run.
        call.advance(CallState.DECODING)
        body = self.decode(config, response)

        call.advance(CallState.HANDLING)
        return config.handlers.dispatch(response, body)

    def build_request(self, config: EffectiveConfig) -> HttpRequest:
        """Encode the body and assemble the transport request."""
        headers = dict(config.headers)
        if self.settings.user_agent and not header_value(headers, "User-Agent"):
            headers["User-Agent"] = self.settings.user_agent
        if config.accept and not header_value(headers, "Accept"):
            headers["Accept"] = ", ".join(config.accept)

        body: bytes | None = None
        if config.body is not None:
            content_type = config.content_type or implied_content_type(config.body)
            encoder = config.content.select_encoder(content_type)
            try:
                body = encoder(config, config.body)
            except HttpBuilderError:
                raise
            except Exception as exc:
                raise ConfigurationError(f"Could not encode request body as {content_type}: {exc}") from exc
            if not header_value(headers, "Content-Type"):
                headers["Content-Type"] = content_type_value(content_type, config.charset)

        return HttpRequest(
            url=config.uri,
            method=config.verb.value,
            headers=headers,
            cookies=dict(config.cookies),
            body=body,
            timeout=config.timeout,
            allow_redirects=self.settings.allow_redirects,
        )

    def _transport_send(self, call: Call, request: HttpRequest) -> FromServer:
        call.attempts += 1
        try:
            return self.transport.send(request)
        except TransportError:
            raise
        except (OSError, httpx.HTTPError) as exc:
            raise transport_error_from(exc) from exc

    def _send(self, call: Call, config: EffectiveConfig, request: HttpRequest) -> FromServer:
        auth = config.auth
        response = self._transport_send(call, apply_auth(auth, request, self.challenges))
        if not isinstance(auth, DigestAuth):
            return response

        challenge = digest_challenge_of(response)
        if challenge is None:
            return response

        # Exactly one answer per call; a second challenge falls through to status dispatch.
        call.check_cancelled()
        origin = origin_of(request.url)
        retry = auth.answer(request, challenge, self.challenges)
        logger.debug("call %d: retrying %s with digest credentials", call.id, request.url)
        response = self._transport_send(call, retry)
        if response.status_code == 401:
            self.challenges.invalidate(origin, challenge)
        return response

    def decode(self, config: EffectiveConfig, response: FromServer) -> Any:
        """Decode the response body; a response without a body decodes to None."""
        if not response.has_body:
            return None
        content_type = response.content_type or None
        decoder = config.content.select_decoder(content_type)
        try:
            return decoder(config, response)
        except HttpBuilderError:
            raise
        except Exception as exc:
            raise DecodingError(
                f"Could not decode {content_type or 'untyped'} response: {exc}",
                content_type=content_type,
            ) from exc


__all__ = ["Call", "CallState", "Dispatcher", "TERMINAL_STATES", "UNCANCELLABLE_STATES"]
