# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Status-driven response handler dispatch.

Handlers are bound to an exact status code or to one of the two symbolic ranges.
Lookup checks exact codes first, then ranges, so a handler registered for ``205``
always beats the SUCCESS handler regardless of which was registered first.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from .errors import AuthenticationError, ConfigurationError, HttpStatusError, InternalConfigurationError

if TYPE_CHECKING:
    from .http.models import FromServer

ResponseHandler = Callable[["FromServer", Any], Any]


class Status(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"

    def matches(self, code: int) -> bool:
        in_success = 200 <= code < 300
        return in_success if self is Status.SUCCESS else not in_success

    @classmethod
    def of(cls, code: int) -> Status:
        return cls.SUCCESS if cls.SUCCESS.matches(code) else cls.FAILURE


@dataclass(frozen=True)
class ExactCode:
    code: int

    def matches(self, code: int) -> bool:
        return self.code == code


@dataclass(frozen=True)
class StatusRange:
    status: Status

    def matches(self, code: int) -> bool:
        return self.status.matches(code)


StatusMatcher = Union[ExactCode, StatusRange]


def normalize_status(value: Any) -> StatusMatcher:
    """Turn an int, a digit string, a Status or a status name into a matcher."""
    if isinstance(value, (ExactCode, StatusRange)):
        return value
    if isinstance(value, Status):
        return StatusRange(value)
    if isinstance(value, bool):
        raise ConfigurationError(f"Unsupported status matcher {value!r}")
    if isinstance(value, int):
        if not 0 <= value < 1000:
            raise ConfigurationError(f"Status code out of range: {value}")
        return ExactCode(value)
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return normalize_status(int(text))
        try:
            return StatusRange(Status(text.upper()))
        except ValueError:
            pass
    raise ConfigurationError(f"Unsupported status matcher {value!r}")


def default_success(from_server: FromServer, body: Any) -> Any:  # noqa: ARG001
    """Fallback for SUCCESS: hand back the decoded body."""
    return body


def default_failure(from_server: FromServer, body: Any) -> Any:
    """Fallback for FAILURE: raise with the status reason phrase as the message."""
    status_code = from_server.status_code
    error_cls = AuthenticationError if status_code == 401 else HttpStatusError
    raise error_cls(from_server.reason_phrase, status_code=status_code, from_server=from_server, body=body)


class ResponseHandlerTable:
    """
    Matcher → handler bindings for one configuration level.

    Registering the same matcher again replaces the earlier handler. A table built
    with ``with_defaults=True`` carries the SUCCESS/FAILURE fallbacks.
    """

    def __init__(self, *, with_defaults: bool = False):
        self._handlers: dict[StatusMatcher, ResponseHandler] = {}
        self._locked = False
        if with_defaults:
            self._handlers[StatusRange(Status.SUCCESS)] = default_success
            self._handlers[StatusRange(Status.FAILURE)] = default_failure

    @property
    def locked(self) -> bool:
        return self._locked

    def lock(self) -> ResponseHandlerTable:
        self._locked = True
        return self

    @property
    def handlers(self) -> Mapping[StatusMatcher, ResponseHandler]:
        return dict(self._handlers)

    def when(self, status: Any, handler: ResponseHandler) -> None:
        if self._locked:
            raise ConfigurationError("The response handler table is frozen and can no longer be changed")
        if not callable(handler):
            raise ConfigurationError("Response handler must be callable")
        matcher = normalize_status(status)
        # Re-insert so dict order reflects recency.
        self._handlers.pop(matcher, None)
        self._handlers[matcher] = handler

    def success(self, handler: ResponseHandler) -> None:
        self.when(Status.SUCCESS, handler)

    def failure(self, handler: ResponseHandler) -> None:
        self.when(Status.FAILURE, handler)

    def merged(self, other: ResponseHandlerTable | None) -> ResponseHandlerTable:
        """Union keyed by matcher; ``other`` (the derived level) wins and counts as more recent."""
        table = ResponseHandlerTable()
        table._handlers.update(self._handlers)
        if other is not None:
            for matcher, handler in other._handlers.items():
                table._handlers.pop(matcher, None)
                table._handlers[matcher] = handler
        return table

    def resolve(self, code: int) -> ResponseHandler:
        """Exact-code tier first, then range tier; latest registration wins within a tier."""
        for tier in (ExactCode, StatusRange):
            for matcher, handler in reversed(self._handlers.items()):
                if isinstance(matcher, tier) and matcher.matches(code):
                    return handler
        raise InternalConfigurationError(f"No response handler matched status {code}")

    def dispatch(self, from_server: FromServer, body: Any) -> Any:
        return self.resolve(from_server.status_code)(from_server, body)

    def __len__(self) -> int:
        return len(self._handlers)


__all__ = [
    "ExactCode",
    "ResponseHandler",
    "ResponseHandlerTable",
    "Status",
    "StatusMatcher",
    "StatusRange",
    "default_failure",
    "default_success",
    "normalize_status",
]
