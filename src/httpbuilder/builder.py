# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Client facade: blocking and non-blocking verb methods over one shared pipeline."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable, Generator
from concurrent.futures import CancelledError, Executor, Future, ThreadPoolExecutor
from contextlib import suppress
from typing import Any

from .auth import DigestChallengeCache
from .chained import HttpConfig, freeze
from .config import HttpSettings, load_http_settings
from .dispatch import Call, CallState, Dispatcher
from .errors import HttpBuilderError, ResultTypeError
from .http.client import Transport, create_default_transport
from .interceptors import HttpVerb

Configure = Callable[[HttpConfig], None]


def _check_result_type(result: Any, result_type: type | None) -> Any:
    if result_type is None or result is None or isinstance(result, result_type):
        return result
    raise ResultTypeError(f"Expected a {result_type.__name__} result, got {type(result).__name__}")


class AsyncCall:
    """
    Handle for a non-blocking call.

    Wraps a ``concurrent.futures.Future``; it can also be awaited from asyncio code.
    """

    def __init__(self, call: Call, future: Future):
        self.call = call
        self._future = future

    def result(self, timeout: float | None = None) -> Any:
        return self._future.result(timeout)

    def exception(self, timeout: float | None = None) -> BaseException | None:
        return self._future.exception(timeout)

    def cancel(self) -> bool:
        """Cancel the call; once the call finished this is a no-op returning False."""
        if self._future.done():
            return False
        if self._future.cancel():
            self.call.cancel()
            return True
        # Already running: handlers are skipped when the transport returns.
        return self.call.cancel()

    def cancelled(self) -> bool:
        if self._future.cancelled():
            return True
        if not self._future.done() or not self.call.cancel_requested:
            return False
        return isinstance(self._future.exception(), CancelledError)

    def done(self) -> bool:
        return self._future.done()

    def add_done_callback(self, fn: Callable[[AsyncCall], Any]) -> None:
        self._future.add_done_callback(lambda _future: fn(self))

    def __await__(self) -> Generator[Any, None, Any]:
        return asyncio.wrap_future(self._future).__await__()


class HttpBuilder:
    """
    Declarative HTTP client.

    ``configure`` receives the base HttpConfig once, at construction; the base is locked
    afterwards and shared by every call. Each verb method takes an optional per-call
    ``configure`` that fills a fresh derived config, plus an optional ``result_type``.
    """

    def __init__(
        self,
        configure: Configure | None = None,
        *,
        transport: Transport | None = None,
        settings: HttpSettings | None = None,
        executor: Executor | None = None,
    ):
        self.settings = settings or load_http_settings()
        self.transport = transport or create_default_transport(self.settings)
        base = HttpConfig.base()
        if configure is not None:
            configure(base)
        self.config = base.lock()
        self.challenges = DigestChallengeCache()
        self.dispatcher = Dispatcher(self.transport, settings=self.settings, challenges=self.challenges)
        self._executor = executor
        self._owns_executor = executor is None
        self._executor_lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise HttpBuilderError("HttpBuilder is closed")

    def _get_executor(self) -> Executor:
        with self._executor_lock:
            self._check_open()
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.settings.max_workers,
                    thread_name_prefix="httpbuilder",
                )
            return self._executor

    def _run(self, call: Call, configure: Configure | None, result_type: type | None) -> Any:
        try:
            derived = HttpConfig.derived()
            if configure is not None:
                configure(derived)
            derived.lock()
            effective = freeze(self.config, derived, call.verb)
        except BaseException as exc:
            call.fail(exc)
            raise
        call.transition(CallState.FROZEN)
        return _check_result_type(self.dispatcher.execute(call, effective), result_type)

    def request(self, verb: HttpVerb | str, configure: Configure | None = None, *, result_type: type | None = None) -> Any:
        """Run a call on the calling thread and return its handled result."""
        self._check_open()
        return self._run(Call(verb), configure, result_type)

    def request_async(
        self,
        verb: HttpVerb | str,
        configure: Configure | None = None,
        *,
        result_type: type | None = None,
    ) -> AsyncCall:
        """Schedule a call on the worker pool and return a handle for its result."""
        call = Call(verb)
        future = self._get_executor().submit(self._run, call, configure, result_type)
        return AsyncCall(call, future)

    def get(self, configure: Configure | None = None, *, result_type: type | None = None) -> Any:
        return self.request(HttpVerb.GET, configure, result_type=result_type)

    def get_async(self, configure: Configure | None = None, *, result_type: type | None = None) -> AsyncCall:
        return self.request_async(HttpVerb.GET, configure, result_type=result_type)

    def head(self, configure: Configure | None = None, *, result_type: type | None = None) -> Any:
        return self.request(HttpVerb.HEAD, configure, result_type=result_type)

    def head_async(self, configure: Configure | None = None, *, result_type: type | None = None) -> AsyncCall:
        return self.request_async(HttpVerb.HEAD, configure, result_type=result_type)

    def post(self, configure: Configure | None = None, *, result_type: type | None = None) -> Any:
        return self.request(HttpVerb.POST, configure, result_type=result_type)

    def post_async(self, configure: Configure | None = None, *, result_type: type | None = None) -> AsyncCall:
        return self.request_async(HttpVerb.POST, configure, result_type=result_type)

    def put(self, configure: Configure | None = None, *, result_type: type | None = None) -> Any:
        return self.request(HttpVerb.PUT, configure, result_type=result_type)

    def put_async(self, configure: Configure | None = None, *, result_type: type | None = None) -> AsyncCall:
        return self.request_async(HttpVerb.PUT, configure, result_type=result_type)

    def patch(self, configure: Configure | None = None, *, result_type: type | None = None) -> Any:
        return self.request(HttpVerb.PATCH, configure, result_type=result_type)

    def patch_async(self, configure: Configure | None = None, *, result_type: type | None = None) -> AsyncCall:
        return self.request_async(HttpVerb.PATCH, configure, result_type=result_type)

    def delete(self, configure: Configure | None = None, *, result_type: type | None = None) -> Any:
        return self.request(HttpVerb.DELETE, configure, result_type=result_type)

    def delete_async(self, configure: Configure | None = None, *, result_type: type | None = None) -> AsyncCall:
        return self.request_async(HttpVerb.DELETE, configure, result_type=result_type)

    def options(self, configure: Configure | None = None, *, result_type: type | None = None) -> Any:
        return self.request(HttpVerb.OPTIONS, configure, result_type=result_type)

    def options_async(self, configure: Configure | None = None, *, result_type: type | None = None) -> AsyncCall:
        return self.request_async(HttpVerb.OPTIONS, configure, result_type=result_type)

    def trace(self, configure: Configure | None = None, *, result_type: type | None = None) -> Any:
        return self.request(HttpVerb.TRACE, configure, result_type=result_type)

    def trace_async(self, configure: Configure | None = None, *, result_type: type | None = None) -> AsyncCall:
        return self.request_async(HttpVerb.TRACE, configure, result_type=result_type)

    def close(self) -> None:
        """Shut down the owned executor and the transport; later calls raise HttpBuilderError."""
        with self._executor_lock:
            if self._closed:
                return
            self._closed = True
            executor, self._executor = self._executor, None
        if executor is not None and self._owns_executor:
            executor.shutdown(wait=True)
        with suppress(Exception):
            if hasattr(self.transport, "close"):
                self.transport.close()

    def __enter__(self) -> HttpBuilder:
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        self.close()


__all__ = ["AsyncCall", "Configure", "HttpBuilder"]
