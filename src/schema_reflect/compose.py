"""Composition keywords exposed by capability methods."""

from __future__ import annotations

from collections.abc import Callable

from schema_reflect.capabilities import capability
from schema_reflect.context import ReflectContext
from schema_reflect.schema import Schema

type ReflectChild = Callable[[object, str], Schema]

_LIST_EXPOSERS: tuple[tuple[str, str, str], ...] = (
    ("json_schema_one_of", "one_of", "oneOf"),
    ("json_schema_any_of", "any_of", "anyOf"),
    ("json_schema_all_of", "all_of", "allOf"),
)
_SINGLE_EXPOSERS: tuple[tuple[str, str, str], ...] = (
    ("json_schema_not", "not_", "not"),
    ("json_schema_if", "if_", "if"),
    ("json_schema_then", "then", "then"),
    ("json_schema_else", "else_", "else"),
)


def apply_sub_schemas(
    ctx: ReflectContext,
    schema: Schema,
    *,
    sample: object,
    cls: object,
    reflect_child: ReflectChild,
) -> bool:
    """Reflect values exposed by composition capabilities into ``schema``.

    Parameters
    ----------
    ctx
        Reflection context.
    schema
        Schema receiving the composition keywords.
    sample
        Value being reflected, or ``MISSING``.
    cls
        Class being reflected.
    reflect_child
        Callable reflecting one exposed value under a path segment.

    Returns:
    -------
    bool
        Whether any composition keyword was set.
    """
    composed = False
    for method, attr, segment in _LIST_EXPOSERS:
        exposer = capability(sample, cls, method)
        if exposer is None:
            continue
        values = ctx.call_hook(exposer)
        setattr(schema, attr, [reflect_child(value, segment) for value in values])
        composed = True
    for method, attr, segment in _SINGLE_EXPOSERS:
        exposer = capability(sample, cls, method)
        if exposer is None:
            continue
        setattr(schema, attr, reflect_child(ctx.call_hook(exposer), segment))
        composed = True
    return composed


__all__ = ["apply_sub_schemas"]
