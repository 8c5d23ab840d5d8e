# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Per-verb interceptors wrapped around request execution."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING, Any

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .chained import EffectiveConfig

NextFn = Callable[["EffectiveConfig"], Any]
Interceptor = Callable[["EffectiveConfig", NextFn], Any]


class HttpVerb(str, Enum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"

    @classmethod
    def of(cls, value: HttpVerb | str) -> HttpVerb:
        if isinstance(value, HttpVerb):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError as exc:
            raise ConfigurationError(f"Unsupported HTTP verb {value!r}") from exc


def _verbs(verbs: HttpVerb | str | Iterable[HttpVerb | str]) -> list[HttpVerb]:
    if isinstance(verbs, (HttpVerb, str)):
        return [HttpVerb.of(verbs)]
    return [HttpVerb.of(verb) for verb in verbs]


def _invoke(interceptor: Interceptor, next_fn: NextFn, config: EffectiveConfig) -> Any:
    return interceptor(config, next_fn)


class InterceptorChain:
    """
    Ordered interceptors per verb.

    The first interceptor registered for a verb is the outermost when composed.
    """

    def __init__(self) -> None:
        self._chains: dict[HttpVerb, list[Interceptor]] = {}
        self._locked = False

    @property
    def locked(self) -> bool:
        return self._locked

    def lock(self) -> InterceptorChain:
        self._locked = True
        return self

    def register(self, verbs: HttpVerb | str | Iterable[HttpVerb | str], interceptor: Interceptor) -> None:
        if self._locked:
            raise ConfigurationError("The interceptor chain is frozen and can no longer be changed")
        if not callable(interceptor):
            raise ConfigurationError("Interceptor must be callable")
        for verb in _verbs(verbs):
            self._chains.setdefault(verb, []).append(interceptor)

    def for_verb(self, verb: HttpVerb | str) -> tuple[Interceptor, ...]:
        return tuple(self._chains.get(HttpVerb.of(verb), ()))

    def merged(self, other: InterceptorChain | None) -> InterceptorChain:
        """Concatenate per verb: this chain's interceptors wrap ``other``'s."""
        chain = InterceptorChain()
        for verb, items in self._chains.items():
            chain._chains[verb] = list(items)
        if other is not None:
            for verb, items in other._chains.items():
                chain._chains.setdefault(verb, []).extend(items)
        return chain

    def compose(self, verb: HttpVerb | str, base: NextFn) -> NextFn:
        """Nest every interceptor for ``verb`` around ``base``, outer-to-inner in registration order."""
        composed = base
        for interceptor in reversed(self.for_verb(verb)):
            composed = partial(_invoke, interceptor, composed)
        return composed

    def __bool__(self) -> bool:
        return any(self._chains.values())


__all__ = ["HttpVerb", "Interceptor", "InterceptorChain", "NextFn"]
