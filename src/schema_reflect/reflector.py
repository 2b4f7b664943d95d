"""Reflect Python types and sample values into JSON Schema.

The walker visits a value's type recursively. Named types (classes defined
outside the standard library, generic instantiations of them, and virtual
structs) become shared definitions referenced by ``$ref``; builtin and typing
constructs are always inlined. Re-entering a type that is still being expanded
yields a reference to its future definition, so recursive graphs terminate.
"""

from __future__ import annotations

import contextlib
import datetime as dt
import decimal
import logging
import pathlib
import typing
import uuid
from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import msgspec

from schema_reflect.capabilities import (
    MARKER_IGNORE_TYPE_NAME,
    MARKER_INLINE,
    MARKER_REFER_EMBEDDED,
    capability,
    has_marker,
)
from schema_reflect.compose import apply_sub_schemas
from schema_reflect.context import (
    InterceptPropParams,
    InterceptSchemaParams,
    ReflectContext,
    ReflectOption,
    definition_identity,
    intercept_def_name,
    mapping_key,
    split_value,
)
from schema_reflect.definitions import DefNameHook, default_definition_name
from schema_reflect.errors import SkipProperty, UnsupportedTypeError
from schema_reflect.nullability import add_null, envelop, reference_of, resolve_nullability
from schema_reflect.schema import X_ENUM_NAMES, Schema, SimpleType, merge_types
from schema_reflect.serde_msgspec import loads_schema
from schema_reflect.struct import VirtualStruct
from schema_reflect.tags import (
    FieldTags,
    apply_constraints,
    apply_examples,
    apply_inline_values,
    enum_values,
    merge_keywords,
    populate_keywords,
    wrap_reference,
)
from schema_reflect.type_info import (
    MISSING,
    ContainerShape,
    FieldInfo,
    NoneType,
    TypeIdentity,
    TypeInfo,
    TypeVarMap,
    class_typevars,
    container_shape,
    embedded_container,
    is_any,
    is_enum_class,
    is_literal,
    is_union,
    literal_values,
    object_fields,
    resolve_annotation,
    type_identity,
    type_name,
    union_members,
)

logger = logging.getLogger(__name__)

UUID_EXAMPLE = "248df4b7-aa70-47b8-a036-33ac447e668d"

_WELL_KNOWN: tuple[tuple[tuple[type, ...], Mapping[str, object]], ...] = (
    ((dt.datetime,), {"type": "string", "format": "date-time"}),
    ((dt.date,), {"type": "string", "format": "date"}),
    ((dt.time,), {"type": "string", "format": "time"}),
    ((dt.timedelta,), {"type": "string", "format": "duration"}),
    ((uuid.UUID,), {"type": "string", "format": "uuid", "examples": [UUID_EXAMPLE]}),
    ((bytes, bytearray, memoryview), {"type": "string", "format": "base64"}),
    ((decimal.Decimal,), {"type": "string", "format": "decimal"}),
    ((pathlib.PurePath,), {"type": "string"}),
    ((msgspec.Raw, Schema), {}),
)
_VALUE_TYPES: tuple[tuple[type, SimpleType], ...] = (
    (bool, SimpleType.BOOLEAN),
    (int, SimpleType.INTEGER),
    (float, SimpleType.NUMBER),
    (str, SimpleType.STRING),
    (NoneType, SimpleType.NULL),
)


def well_known_schema(tp: object) -> Schema | None:
    """Return the fixed schema of standard library value types.

    Returns:
    -------
    Schema | None
        Schema for ``datetime``, ``UUID``, ``bytes`` and similar types, or ``None``.
    """
    cls = typing.get_origin(tp) or tp
    if not isinstance(cls, type):
        return None
    for bases, payload in _WELL_KNOWN:
        if issubclass(cls, bases):
            return Schema.from_builtins(payload)
    return None


def check_schema_setup(params: InterceptSchemaParams) -> bool:
    """Apply enumeration and schema exposer capabilities before expansion.

    Named enumerations add ``x-enum-names`` next to the values. An exposer
    replaces the schema and stops default expansion.

    Returns:
    -------
    bool
        ``True`` when an exposer provided the complete schema.
    """
    if params.processed:
        return False
    ctx = params.context
    sample = params.value
    cls = typing.get_origin(params.annotation) or params.annotation
    named_enum = capability(sample, cls, "json_schema_named_enum")
    if named_enum is not None:
        values, names = ctx.call_hook(named_enum)
        params.schema.enum = list(values)
        params.schema.set_extra(X_ENUM_NAMES, list(names))
    else:
        enum = capability(sample, cls, "json_schema_enum")
        if enum is not None:
            params.schema.enum = list(ctx.call_hook(enum))
    exposer = capability(sample, cls, "json_schema")
    if exposer is not None:
        params.schema = ctx.call_hook(_exposed_schema, ctx.call_hook(exposer))
        return True
    raw = capability(sample, cls, "json_schema_bytes")
    if raw is not None:
        params.schema = ctx.call_hook(loads_schema, ctx.call_hook(raw))
        return True
    return False


def _exposed_schema(value: object) -> Schema:
    if isinstance(value, Schema):
        return value.copy()
    if isinstance(value, Mapping):
        return Schema.from_builtins(value)
    msg = f"json_schema() must return a Schema or a mapping, got {type(value).__name__}"
    raise TypeError(msg)


def _enum_types(values: Sequence[object]) -> list[str]:
    names: list[str] = []
    for value in values:
        name = next((kind for base, kind in _VALUE_TYPES if isinstance(value, base)), None)
        if name is None:
            return []
        if name not in names:
            names.append(name)
    if len(names) == 1 or (len(names) == 2 and SimpleType.NULL in names):  # noqa: PLR2004
        return names
    return []


def _element_sample(sample: object, *, mapping: bool) -> object:
    if mapping:
        if isinstance(sample, Mapping):
            return next(iter(sample.values()), MISSING)
        return MISSING
    if isinstance(sample, Collection) and not isinstance(sample, (str, bytes, Mapping)):
        return next(iter(sample), MISSING)
    return MISSING


class _Walker:
    """Recursive type walker bound to one reflection context."""

    def __init__(self, ctx: ReflectContext) -> None:
        self.ctx = ctx

    def reflect_root(self, value: object) -> Schema:
        annotation, sample = split_value(value)
        try:
            schema = self.reflect(annotation, sample, root=True)
        except SkipProperty as exc:
            msg = f"type is not supported: {type_name(annotation)}"
            raise UnsupportedTypeError(msg) from exc
        definitions = self.ctx.registry.by_name()
        if not definitions:
            return schema
        if self.ctx.collect_definitions is not None:
            for name, definition in definitions.items():
                self.ctx.call_hook(self.ctx.collect_definitions, name, definition)
        else:
            schema.definitions = dict(definitions)
        return schema

    def reflect(
        self,
        annotation: object,
        sample: object = MISSING,
        *,
        parent: Schema | None = None,
        typevars: TypeVarMap | None = None,
        root: bool = False,
        in_property: bool = False,
        constraints: Sequence[object] = (),
    ) -> Schema:
        """Reflect one annotation, with an optional sample value.

        Parameters
        ----------
        annotation
            Type annotation of the value.
        sample
            Value of that type, or ``MISSING``.
        parent
            Schema enclosing this value, passed to interceptors.
        typevars
            Type-variable bindings in scope.
        root
            Whether this is the top-level value.
        in_property
            Whether the caller resolves nullability itself.
        constraints
            Additional constraint objects declared by the field.

        Returns:
        -------
        Schema
            Inline schema or a reference.
        """
        info = resolve_annotation(annotation, typevars)
        if sample is None:
            sample = MISSING
        tp = info.tp
        if is_any(tp) and sample is not MISSING:
            tp = type(sample)
        schema = self._reflect_type(tp, sample, info=info, parent=parent, root=root)
        use_site = [item for item in (*info.metadata, *constraints) if not isinstance(item, Mapping)]
        if use_site:
            apply_constraints(schema, use_site, type_source=self._type_source(schema))
            schema = wrap_reference(schema)
        if info.optional and not in_property and not root:
            schema = self._add_null(schema)
        return schema

    def _type_source(self, schema: Schema) -> Schema:
        ref = reference_of(schema)
        if ref is None:
            return schema
        return self.ctx.definition_for(ref) or schema

    def _add_null(self, schema: Schema) -> Schema:
        if reference_of(schema) is not None:
            return envelop(schema) if self.ctx.envelop_nullability else schema
        if schema.has_type(SimpleType.OBJECT) and schema.properties:
            return schema
        add_null(schema)
        return schema

    def _reflect_type(
        self,
        tp: Any,
        sample: object,
        *,
        info: TypeInfo,
        parent: Schema | None,
        root: bool,
    ) -> Schema:
        ctx = self.ctx
        name_tp: object = tp
        mapped = ctx.type_mappings.get(tp, MISSING)
        if mapped is not MISSING:
            annotation, sample = split_value(mapped)
            mapped_tp = resolve_annotation(annotation).tp
            if not has_marker(sample, mapped_tp, MARKER_IGNORE_TYPE_NAME):
                name_tp = mapped_tp
            logger.debug("Substituting %s with %s", type_name(tp), type_name(mapped_tp))
            tp = mapped_tp
        elif has_marker(sample, tp, MARKER_IGNORE_TYPE_NAME):
            name_tp = None
        if tp is NoneType:
            return SimpleType.NULL.schema()
        if is_any(tp):
            return Schema()
        cls = typing.get_origin(tp) or tp
        identity, def_name = self._identify(name_tp, sample, cls)
        if root:
            ctx.root_identity = identity
        schema = Schema()
        params = InterceptSchemaParams(
            context=ctx,
            value=sample,
            annotation=tp,
            schema=schema,
            parent=parent,
        )
        if ctx.run_schema_hooks(params):
            return self._finalize(params.schema, identity, def_name, root=root)
        schema = params.schema
        well_known = well_known_schema(tp)
        if well_known is not None:
            merge_keywords(schema, well_known)
            return self._finalize(schema, None, None, root=root)
        if identity is not None:
            if identity in ctx.registry:
                return ctx.registry.ref(identity).schema()
            if ctx.guard.is_active(identity):
                if identity == ctx.root_identity and not ctx.root_ref:
                    return Schema(ref="#")
                ctx.guard.enter_cycle(identity)
                return ctx.registry.ref(identity).schema()
        guard = ctx.guard.expanding(identity, schema) if identity is not None else contextlib.nullcontext()
        with guard:
            self._describe(schema, sample, cls)
            composed = apply_sub_schemas(
                ctx,
                schema,
                sample=sample,
                cls=cls,
                reflect_child=lambda value, segment: self._reflect_child(value, segment, schema),
            )
            self._kind_switch(schema, tp, sample, info.typevars, composed=composed)
            params = InterceptSchemaParams(
                context=ctx,
                value=sample,
                annotation=tp,
                schema=schema,
                processed=True,
                parent=parent,
            )
            if not ctx.run_schema_hooks(params):
                preparer = capability(sample, cls, "prepare_json_schema")
                if preparer is not None:
                    ctx.call_hook(preparer, params.schema)
            schema = params.schema
        return self._finalize(schema, identity, def_name, root=root)

    def _identify(
        self, name_tp: object, sample: object, cls: object
    ) -> tuple[TypeIdentity | None, str | None]:
        ctx = self.ctx
        if isinstance(sample, VirtualStruct):
            name = sample.def_name or ctx.next_anonymous_name()
            identity = f"struct.{name}"
            return identity, ctx.registry.allocate_name(identity, name)
        if name_tp is None or well_known_schema(name_tp) is not None:
            return None, None
        if has_marker(sample, cls, MARKER_INLINE):
            return None, None
        identity = type_identity(name_tp)
        default_name = default_definition_name(name_tp)
        if identity is None or default_name is None:
            return None, None
        name = ctx.registry.allocate_name(
            identity,
            default_name,
            tp=name_tp,
            hook=ctx.definition_name_hook(),
        )
        return identity, name

    def _describe(self, schema: Schema, sample: object, cls: object) -> None:
        if isinstance(sample, VirtualStruct):
            if sample.title is not None:
                schema.title = sample.title
            if sample.description is not None:
                schema.description = sample.description
            return
        title = capability(sample, cls, "json_schema_title")
        if title is not None:
            schema.title = self.ctx.call_hook(title)
        description = capability(sample, cls, "json_schema_description")
        if description is not None:
            schema.description = self.ctx.call_hook(description)

    def _reflect_child(self, value: object, segment: str, parent: Schema) -> Schema:
        annotation, sample = split_value(value)
        return self._reflect_at(segment, annotation, sample, parent=parent)

    def _reflect_at(
        self,
        segment: str,
        annotation: object,
        sample: object,
        *,
        parent: Schema,
        typevars: TypeVarMap | None = None,
    ) -> Schema:
        self.ctx.path.append(segment)
        try:
            return self.reflect(annotation, sample, parent=parent, typevars=typevars)
        finally:
            self.ctx.path.pop()

    def _kind_switch(
        self,
        schema: Schema,
        tp: Any,
        sample: object,
        typevars: TypeVarMap,
        *,
        composed: bool,
    ) -> None:
        if isinstance(sample, VirtualStruct):
            schema.add_type(SimpleType.OBJECT)
            if sample.nullable:
                schema.add_type(SimpleType.NULL)
            self._walk_properties(schema, object_fields(tp, sample) or [], typevars)
            return
        if is_literal(tp):
            values = literal_values(tp)
            schema.enum = values
            merge_types(schema, _enum_types(values))
            return
        if is_union(tp):
            schema.any_of = [
                self.reflect(member, parent=schema, typevars=typevars) for member in union_members(tp)
            ]
            return
        cls = typing.get_origin(tp) or tp
        if not isinstance(cls, type):
            self._unsupported(tp, composed=composed)
            return
        if is_enum_class(cls):
            if schema.enum is None:
                schema.enum = [member.value for member in cls]
            merge_types(schema, _enum_types(schema.enum))
            return
        for base, kind in _VALUE_TYPES[:4]:
            if issubclass(cls, base):
                schema.add_type(kind)
                return
        shape = container_shape(tp)
        if shape is not None:
            self._container(schema, shape, sample, typevars)
            return
        fields = object_fields(tp, sample, typevars)
        if not typing.is_typeddict(cls):
            embedded = embedded_container(cls)
            if embedded is not None and not (self.ctx.skip_embedded_maps_slices and fields):
                self._container(schema, embedded, sample, typevars)
                return
        if fields is not None:
            schema.add_type(SimpleType.OBJECT)
            self._walk_properties(schema, fields, class_typevars(tp, typevars))
            return
        self._unsupported(tp, composed=composed)

    def _unsupported(self, tp: object, *, composed: bool) -> None:
        if composed:
            return
        if self.ctx.skip_unsupported_properties:
            logger.debug("Skipping unsupported type %s", type_name(tp))
            raise SkipProperty
        msg = f"type is not supported: {type_name(tp)}"
        raise UnsupportedTypeError(msg, path=self.ctx.dotted_path())

    def _container(
        self,
        schema: Schema,
        shape: ContainerShape,
        sample: object,
        typevars: TypeVarMap,
    ) -> None:
        if shape.kind == "mapping":
            schema.add_type(SimpleType.OBJECT)
            schema.additional_properties = self._reflect_at(
                "{}",
                shape.items[0],
                _element_sample(sample, mapping=True),
                parent=schema,
                typevars=typevars,
            )
            return
        schema.add_type(SimpleType.ARRAY)
        if shape.kind == "tuple":
            samples = list(sample) if isinstance(sample, tuple) else []
            schema.items = [
                self._reflect_at(
                    f"[{index}]",
                    item,
                    samples[index] if index < len(samples) else MISSING,
                    parent=schema,
                    typevars=typevars,
                )
                for index, item in enumerate(shape.items)
            ]
            schema.min_items = len(shape.items)
            schema.max_items = len(shape.items)
            return
        schema.items = self._reflect_at(
            "[]",
            shape.items[0],
            _element_sample(sample, mapping=False),
            parent=schema,
            typevars=typevars,
        )
        if shape.unique:
            schema.unique_items = True

    # -- properties -----------------------------------------------------------

    def _walk_properties(
        self,
        schema: Schema,
        fields: Sequence[FieldInfo],
        typevars: TypeVarMap,
    ) -> None:
        ctx = self.ctx
        for item in fields:
            info = resolve_annotation(item.annotation, typevars)
            tags = FieldTags.for_field(item, info.metadata, path=(*ctx.dotted_path(), item.name))
            name_tag = self._name_tag(item, tags)
            if name_tag == "-":
                continue
            if item.name == "_":
                self._configure_parent(schema, tags, name_tag)
                continue
            if name_tag is None and tags.flag("embed"):
                self._embed(schema, item, info, tags, typevars)
                continue
            if name_tag is None and not ctx.process_without_tags:
                continue
            self._reflect_property(schema, item, info, tags, name_tag, typevars)

    def _name_tag(self, item: FieldInfo, tags: FieldTags) -> str | None:
        ctx = self.ctx
        mapped = ctx.property_name_mapping.get(item.name)
        if mapped is not None:
            return mapped
        for key in (ctx.property_name_tag, *ctx.property_name_additional_tags):
            value = tags.text(key)
            if value is not None:
                return value
        return None

    def _configure_parent(self, schema: Schema, tags: FieldTags, name_tag: str | None) -> None:
        if self.ctx.unnamed_field_with_tag and name_tag is None:
            return
        populate_keywords(schema, tags)
        additional = tags.flag("additionalProperties")
        if additional is not None:
            schema.additional_properties = additional
        if not self.ctx.skip_non_constraints:
            apply_examples(schema, tags)

    def _embed(
        self,
        schema: Schema,
        item: FieldInfo,
        info: TypeInfo,
        tags: FieldTags,
        typevars: TypeVarMap,
    ) -> None:
        cls = typing.get_origin(info.tp) or info.tp
        refer = tags.flag("refer")
        if refer is None:
            refer = has_marker(item.sample, cls, MARKER_REFER_EMBEDDED)
        if refer:
            child = self.reflect(item.annotation, item.sample, parent=schema, typevars=typevars)
            schema.all_of = [*(schema.all_of or []), child]
            return
        fields = object_fields(info.tp, item.sample, info.typevars)
        if fields is None:
            msg = f"embedded field {item.name} is not an object type: {type_name(info.tp)}"
            raise UnsupportedTypeError(msg, path=self.ctx.dotted_path())
        self._walk_properties(schema, fields, class_typevars(info.tp, info.typevars))

    def _reflect_property(
        self,
        schema: Schema,
        item: FieldInfo,
        info: TypeInfo,
        tags: FieldTags,
        name_tag: str | None,
        typevars: TypeVarMap,
    ) -> None:
        ctx = self.ctx
        name_part, _, options = (name_tag or "").partition(",")
        name = name_part or item.alias or item.name
        omit_empty = "omitempty" in options.split(",") or bool(tags.flag("omitempty")) or item.omit_default
        required = tags.flag("required")
        nullable = tags.flag("nullable")
        ctx.path.append(name)
        try:
            params = InterceptPropParams(
                context=ctx,
                path=ctx.dotted_path(),
                name=name,
                field=item,
                tags=tags,
                parent_schema=schema,
            )
            ctx.run_prop_hooks(params)
            prop = self.reflect(
                item.annotation,
                item.sample,
                parent=schema,
                typevars=typevars,
                in_property=True,
                constraints=item.constraints,
            )
            source = self._type_source(prop)
            prop = resolve_nullability(
                prop,
                ctx,
                annotation=item.annotation,
                optional=info.optional,
                omit_empty=omit_empty,
                nullable=nullable,
                struct_kind=self._is_struct_kind(info, item.sample),
            )
            apply_inline_values(
                prop,
                tags,
                skip_non_constraints=ctx.skip_non_constraints,
                type_source=source,
            )
            if not ctx.skip_non_constraints:
                apply_examples(prop, tags, type_source=source)
            populate_keywords(prop, tags)
            values = enum_values(tags)
            if values is not None:
                prop.enum = values
            params.property_schema = wrap_reference(prop)
            params.processed = True
            ctx.run_prop_hooks(params)
            prop = params.property_schema
        except SkipProperty:
            logger.debug("Skipping property %s", ".".join(ctx.dotted_path()))
            return
        finally:
            ctx.path.pop()
        if schema.properties is None:
            schema.properties = {}
        schema.properties[name] = prop
        if required and name not in (schema.required or []):
            schema.required = [*(schema.required or []), name]

    @staticmethod
    def _is_struct_kind(info: TypeInfo, sample: object) -> bool:
        if isinstance(sample, VirtualStruct):
            return True
        cls = typing.get_origin(info.tp) or info.tp
        if not isinstance(cls, type) or is_enum_class(cls) or container_shape(info.tp) is not None:
            return False
        return object_fields(info.tp) is not None

    def _finalize(
        self,
        schema: Schema,
        identity: TypeIdentity | None,
        def_name: str | None,
        *,
        root: bool,
    ) -> Schema:
        ctx = self.ctx
        if root and ctx.root_nullable:
            add_null(schema)
        if schema.ref is not None or identity is None or def_name is None:
            return schema
        cyclic = ctx.guard.is_cyclic(identity)
        if ctx.inline_refs or identity in ctx.inline_definitions:
            if cyclic:
                ctx.registry.register(identity, schema)
                return schema.copy()
            ctx.registry.release(identity)
            return schema
        if root and not ctx.root_ref:
            return schema
        types = schema.types()
        if (
            not cyclic
            and types
            and SimpleType.OBJECT not in types
            and SimpleType.ARRAY not in types
            and schema.is_trivial(ctx.registry.resolve)
        ):
            ctx.registry.release(identity)
            return schema
        ctx.registry.register(identity, schema)
        return ctx.registry.ref(identity).schema()


@dataclass
class Reflector:
    """Reusable JSON Schema reflector.

    Holds default options, type mappings and inline definitions that apply to
    every :meth:`reflect` call. These are only read during a call, so a single
    reflector may serve concurrent calls.
    """

    default_options: list[ReflectOption] = field(default_factory=list)
    type_mappings: dict[object, object] = field(default_factory=dict)
    inline_definitions: set[TypeIdentity] = field(default_factory=set)

    def add_type_mapping(self, src: object, dst: object) -> None:
        """Reflect ``dst`` (a type, a sample or a Schema) wherever ``src`` is found."""
        self.type_mappings[mapping_key(src)] = dst

    def inline_definition(self, sample: object) -> None:
        """Always inline the schema of ``sample``'s type."""
        identity = definition_identity(sample)
        if identity is not None:
            self.inline_definitions.add(identity)

    def intercept_def_name(self, func: DefNameHook) -> None:
        """Add a definition-name hook applied to every call."""
        self.default_options.append(intercept_def_name(func))

    def reflect(self, value: object, *options: ReflectOption) -> Schema:
        """Reflect ``value`` into a JSON Schema.

        Parameters
        ----------
        value
            Type annotation or sample value.
        *options
            Options applied after the reflector defaults.

        Returns:
        -------
        Schema
            Root schema, with ``definitions`` unless they were collected.

        Raises:
            UnsupportedTypeError: If a type has no schema representation.
            TagParseError: If field metadata cannot be decoded.
            HookError: If an interceptor or capability fails.
        """
        ctx = ReflectContext(
            type_mappings=dict(self.type_mappings),
            inline_definitions=set(self.inline_definitions),
        )
        ctx.schema_hooks.append(check_schema_setup)
        for option in (*self.default_options, *options):
            option(ctx)
        return _Walker(ctx).reflect_root(value)


def reflect(value: object, *options: ReflectOption) -> Schema:
    """Reflect ``value`` with a fresh :class:`Reflector`.

    Returns:
    -------
    Schema
        Root schema.
    """
    return Reflector().reflect(value, *options)


__all__ = [
    "UUID_EXAMPLE",
    "Reflector",
    "check_schema_setup",
    "reflect",
    "well_known_schema",
]
