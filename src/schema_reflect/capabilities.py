"""Capability protocols that types implement to customize their schema.

A capability is looked up on the sample value when one is available, and
otherwise on the class, where only ``classmethod`` and ``staticmethod``
implementations can be called.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Sequence
from typing import Any, Protocol, runtime_checkable

from schema_reflect.schema import Schema
from schema_reflect.type_info import MISSING


@runtime_checkable
class Titled(Protocol):
    """Exposes a schema title."""

    def json_schema_title(self) -> str:
        """Return the title."""
        ...


@runtime_checkable
class Described(Protocol):
    """Exposes a schema description."""

    def json_schema_description(self) -> str:
        """Return the description."""
        ...


@runtime_checkable
class Exposer(Protocol):
    """Replaces reflection with a complete schema."""

    def json_schema(self) -> Schema:
        """Return the schema for this type."""
        ...


@runtime_checkable
class RawExposer(Protocol):
    """Replaces reflection with a schema given as JSON."""

    def json_schema_bytes(self) -> bytes | str:
        """Return the schema as a JSON document."""
        ...


@runtime_checkable
class Preparer(Protocol):
    """Adjusts the reflected schema in place."""

    def prepare_json_schema(self, schema: Schema) -> None:
        """Mutate ``schema`` after reflection."""
        ...


@runtime_checkable
class Enum(Protocol):
    """Exposes enumerated values."""

    def json_schema_enum(self) -> Sequence[object]:
        """Return the allowed values."""
        ...


@runtime_checkable
class NamedEnum(Protocol):
    """Exposes enumerated values with their names."""

    def json_schema_named_enum(self) -> tuple[Sequence[object], Sequence[str]]:
        """Return the allowed values and their names."""
        ...


@runtime_checkable
class OneOfExposer(Protocol):
    """Exposes ``oneOf`` alternatives."""

    def json_schema_one_of(self) -> Sequence[object]:
        """Return alternatives to reflect."""
        ...


@runtime_checkable
class AnyOfExposer(Protocol):
    """Exposes ``anyOf`` alternatives."""

    def json_schema_any_of(self) -> Sequence[object]:
        """Return alternatives to reflect."""
        ...


@runtime_checkable
class AllOfExposer(Protocol):
    """Exposes ``allOf`` members."""

    def json_schema_all_of(self) -> Sequence[object]:
        """Return members to reflect."""
        ...


@runtime_checkable
class NotExposer(Protocol):
    """Exposes a ``not`` schema."""

    def json_schema_not(self) -> object:
        """Return the value to reflect."""
        ...


@runtime_checkable
class IfExposer(Protocol):
    """Exposes an ``if`` schema."""

    def json_schema_if(self) -> object:
        """Return the value to reflect."""
        ...


@runtime_checkable
class ThenExposer(Protocol):
    """Exposes a ``then`` schema."""

    def json_schema_then(self) -> object:
        """Return the value to reflect."""
        ...


@runtime_checkable
class ElseExposer(Protocol):
    """Exposes an ``else`` schema."""

    def json_schema_else(self) -> object:
        """Return the value to reflect."""
        ...


MARKER_INLINE = "inline_json_schema"
MARKER_REFER_EMBEDDED = "refer_embedded"
MARKER_IGNORE_TYPE_NAME = "ignore_type_name"


def capability(sample: object, cls: object, name: str) -> Callable[..., Any] | None:
    """Return the bound capability method ``name``, if implemented.

    Parameters
    ----------
    sample
        Instance being reflected, or ``MISSING``.
    cls
        Class being reflected.
    name
        Capability method name.

    Returns:
    -------
    Callable[..., Any] | None
        Bound method, or ``None`` when not available.
    """
    if sample is not MISSING and sample is not None and not isinstance(sample, type):
        method = getattr(sample, name, None)
        return method if callable(method) else None
    if not isinstance(cls, type):
        return None
    attr = inspect.getattr_static(cls, name, None)
    if isinstance(attr, (classmethod, staticmethod)):
        return getattr(cls, name)
    return None


def has_marker(sample: object, cls: object, name: str) -> bool:
    """Return whether the value or class carries a marker method."""
    if sample is not MISSING and sample is not None and hasattr(type(sample), name):
        return True
    return isinstance(cls, type) and hasattr(cls, name)


class _Composition:
    """Inline helper wrapping alternative values."""

    __slots__ = ("values",)

    def __init__(self, *values: object) -> None:
        self.values = values

    def inline_json_schema(self) -> None:
        """Keep the composed schema inline."""

    def prepare_json_schema(self, schema: Schema) -> None:
        """Drop structural keywords left by the wrapper itself."""
        schema.type = None
        schema.items = None


class OneOf(_Composition):
    """Expose values as ``oneOf`` alternatives."""

    __slots__ = ()

    def json_schema_one_of(self) -> Sequence[object]:
        """Return the wrapped values."""
        return self.values


class AnyOf(_Composition):
    """Expose values as ``anyOf`` alternatives."""

    __slots__ = ()

    def json_schema_any_of(self) -> Sequence[object]:
        """Return the wrapped values."""
        return self.values


class AllOf(_Composition):
    """Expose values as ``allOf`` members."""

    __slots__ = ()

    def json_schema_all_of(self) -> Sequence[object]:
        """Return the wrapped values."""
        return self.values


__all__ = [
    "MARKER_IGNORE_TYPE_NAME",
    "MARKER_INLINE",
    "MARKER_REFER_EMBEDDED",
    "AllOf",
    "AllOfExposer",
    "AnyOf",
    "AnyOfExposer",
    "Described",
    "ElseExposer",
    "Enum",
    "Exposer",
    "IfExposer",
    "NamedEnum",
    "NotExposer",
    "OneOf",
    "OneOfExposer",
    "Preparer",
    "RawExposer",
    "ThenExposer",
    "Titled",
    "capability",
    "has_marker",
]
