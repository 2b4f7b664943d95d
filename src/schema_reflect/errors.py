"""Schema reflection error types."""

from __future__ import annotations

from collections.abc import Sequence


class ReflectError(Exception):
    """Base class for schema reflection errors."""

    def __init__(self, message: str, *, path: Sequence[str] = ()) -> None:
        self.path = tuple(path)
        self.message = message
        location = ".".join(self.path)
        super().__init__(f"{location}: {message}" if location else message)


class UnsupportedTypeError(ReflectError, TypeError):
    """Raised when a value's type has no schema representation."""


class TagParseError(ReflectError, ValueError):
    """Raised when field metadata cannot be decoded."""

    def __init__(self, message: str, *, keyword: str, path: Sequence[str] = ()) -> None:
        self.keyword = keyword
        super().__init__(f"parsing {keyword}: {message}", path=path)


class HookError(ReflectError, RuntimeError):
    """Raised when an interceptor or capability hook fails."""


class SkipProperty(Exception):  # noqa: N818
    """Signal that the property being reflected should be left out."""


__all__ = [
    "HookError",
    "ReflectError",
    "SkipProperty",
    "TagParseError",
    "UnsupportedTypeError",
]
