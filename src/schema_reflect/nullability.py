"""Property nullability resolution.

Shared definitions are not nullable themselves, so a nullable use-site of a
reference is expressed as ``anyOf: [{"type": "null"}, {"$ref": ...}]`` when
envelope mode is enabled. Fields with ``omitempty`` semantics are absent rather
than ``null`` when empty and never gain ``null``.
"""

from __future__ import annotations

import logging

from schema_reflect.context import InterceptNullabilityParams, ReflectContext
from schema_reflect.schema import Schema, SimpleType

logger = logging.getLogger(__name__)


def envelop(schema: Schema) -> Schema:
    """Return ``anyOf: [null, schema]``.

    Returns:
    -------
    Schema
        Envelope schema.
    """
    return Schema(any_of=[SimpleType.NULL.schema(), schema])


def reference_of(schema: Schema) -> str | None:
    """Return the reference of a plain or ``allOf``-wrapped ``$ref`` node."""
    if schema.ref is not None:
        return schema.ref
    if schema.types() or not schema.all_of or len(schema.all_of) != 1:
        return None
    inner = schema.all_of[0]
    return inner.ref if isinstance(inner, Schema) else None


def add_null(schema: Schema) -> bool:
    """Allow ``null`` for a non-reference schema.

    Unions gain a ``null`` alternative and enumerations gain a ``None`` value.
    Schemas without a type already accept ``null`` and are left unchanged.

    Returns:
    -------
    bool
        Whether the schema was changed.
    """
    if not schema.types():
        if not schema.any_of:
            return False
        if not any(isinstance(item, Schema) and item.has_type(SimpleType.NULL) for item in schema.any_of):
            schema.any_of.append(SimpleType.NULL.schema())
        return True
    schema.add_type(SimpleType.NULL)
    if schema.enum is not None and None not in schema.enum:
        schema.enum.append(None)
    return True


def resolve_nullability(
    schema: Schema,
    ctx: ReflectContext,
    *,
    annotation: object,
    optional: bool,
    omit_empty: bool,
    nullable: bool | None,
    struct_kind: bool,
) -> Schema:
    """Decide whether a property schema admits ``null`` and apply the decision.

    Parameters
    ----------
    schema
        Reflected property schema.
    ctx
        Reflection context.
    annotation
        Field annotation, passed to interceptors.
    optional
        Whether the annotation allows ``None``.
    omit_empty
        Whether empty values are omitted on encode.
    nullable
        Explicit override from field metadata.
    struct_kind
        Whether the field's type is an object-like class.

    Returns:
    -------
    Schema
        Property schema, possibly replaced by an envelope.
    """
    params = InterceptNullabilityParams(
        context=ctx,
        orig_schema=schema.copy(),
        schema=schema,
        annotation=annotation,
        optional=optional,
        omit_empty=omit_empty,
    )
    if nullable is not None:
        result = _apply_override(schema, nullable, params)
    elif omit_empty:
        result = schema
    else:
        result = _apply_rules(schema, ctx, params, optional=optional, struct_kind=struct_kind)
    params.schema = result
    ctx.run_nullability_hooks(params)
    return params.schema


def _apply_override(schema: Schema, nullable: bool, params: InterceptNullabilityParams) -> Schema:
    if nullable:
        if reference_of(schema) is not None:
            params.null_added = True
            return envelop(schema)
        params.null_added = add_null(schema)
        return schema
    if reference_of(schema) is None and schema.has_type(SimpleType.NULL):
        schema.remove_type(SimpleType.NULL)
    return schema


def _apply_rules(
    schema: Schema,
    ctx: ReflectContext,
    params: InterceptNullabilityParams,
    *,
    optional: bool,
    struct_kind: bool,
) -> Schema:
    ref = reference_of(schema)
    if ref is not None:
        if struct_kind and not optional:
            return schema
        definition = ctx.definition_for(ref)
        params.ref_definition = definition
        if definition is None or definition.has_type(SimpleType.NULL):
            return schema
        container = definition.has_type(SimpleType.ARRAY) or definition.has_type(SimpleType.OBJECT)
        if (container or optional) and ctx.envelop_nullability:
            logger.debug("Enveloping nullable reference %s", ref)
            params.null_added = True
            return envelop(schema)
        return schema
    if optional:
        params.null_added = add_null(schema)
        return schema
    if schema.has_type(SimpleType.ARRAY) or (
        schema.has_type(SimpleType.OBJECT) and not schema.properties
    ):
        params.null_added = add_null(schema)
    return schema


__all__ = ["add_null", "envelop", "reference_of", "resolve_nullability"]
