"""Errors raised while parsing parameter values and message bodies."""

from __future__ import annotations

import enum
from typing import Any, Iterable


class ParseErrorKind(enum.IntEnum):
    """What went wrong while parsing a value."""

    OTHER = 0
    UNSUPPORTED_FORMAT = 1
    INVALID_FORMAT = 2


class ParseError(Exception):
    """A value of a parameter, request body or response could not be parsed.

    Errors nest: an outer error carries the position (an item index or a
    property name) and its ``cause`` the inner error.
    """

    def __init__(
        self,
        kind: ParseErrorKind | int = ParseErrorKind.OTHER,
        value: Any = None,
        reason: str = "",
        cause: BaseException | None = None,
        path: Iterable[Any] = (),
    ) -> None:
        self.kind = ParseErrorKind(kind)
        self.value = value
        self.reason = reason
        self.cause = cause
        self._path = list(path)
        super().__init__(self._message())

    def __str__(self) -> str:
        return self._message()

    def __repr__(self) -> str:
        return (
            f"ParseError(kind={self.kind.name}, value={self.value!r}, "
            f"reason={self.reason!r}, cause={self.cause!r}, path={self._path!r})"
        )

    def _message(self) -> str:
        parts = []
        path = self.path()
        if path:
            parts.append("path " + ".".join(str(item) for item in path))
        parts.append(self._inner_message())
        return ": ".join(parts)

    def _inner_message(self) -> str:
        parts = []
        if self.value is not None:
            parts.append(f"value {self.value}")
        if self.reason:
            parts.append(self.reason)
        if self.cause is not None:
            if isinstance(self.cause, ParseError):
                parts.append(self.cause._inner_message())
            else:
                parts.append(str(self.cause))
        return ": ".join(parts)

    def root_cause(self) -> BaseException | None:
        """Return the innermost cause that is not itself a ParseError."""
        if isinstance(self.cause, ParseError):
            return self.cause.root_cause()
        return self.cause

    def path(self) -> list[Any]:
        """Return the path from the outermost value to the root cause."""
        result: list[Any] = []
        if isinstance(self.cause, ParseError):
            result.extend(self.cause.path())
        result.extend(self._path)
        return result