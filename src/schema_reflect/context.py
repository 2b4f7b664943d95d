"""Reflection context, hook parameters and reflect options."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from schema_reflect.cycles import CycleGuard
from schema_reflect.definitions import DEFAULT_DEFINITIONS_PREFIX, DefinitionRegistry, DefNameHook
from schema_reflect.errors import HookError, ReflectError, SkipProperty
from schema_reflect.schema import Schema
from schema_reflect.tags import FieldTags
from schema_reflect.type_info import (
    MISSING,
    FieldInfo,
    TypeIdentity,
    is_type_form,
    object_fields,
    resolve_annotation,
    type_identity,
)

type ReflectOption = Callable[[ReflectContext], None]
type InterceptSchemaFunc = Callable[[InterceptSchemaParams], bool | None]
type InterceptPropFunc = Callable[[InterceptPropParams], None]
type InterceptNullabilityFunc = Callable[[InterceptNullabilityParams], None]
type CollectDefinitionsFunc = Callable[[str, Schema], None]


@dataclass
class InterceptSchemaParams:
    """Arguments of a schema interceptor call.

    Interceptors may mutate ``schema`` in place or assign a new node to it.
    Returning ``True`` stops further processing of the value.
    """

    context: ReflectContext
    value: object
    annotation: object
    schema: Schema
    processed: bool = False
    parent: Schema | None = None


@dataclass
class InterceptPropParams:
    """Arguments of a property interceptor call.

    ``property_schema`` is ``None`` before the property is reflected. Raising
    :class:`~schema_reflect.errors.SkipProperty` leaves the property out.
    """

    context: ReflectContext
    path: tuple[str, ...]
    name: str
    field: FieldInfo
    tags: FieldTags
    parent_schema: Schema
    property_schema: Schema | None = None
    processed: bool = False


@dataclass
class InterceptNullabilityParams:
    """Outcome of a nullability decision, delivered after it is applied."""

    context: ReflectContext
    orig_schema: Schema
    schema: Schema
    annotation: object
    optional: bool = False
    omit_empty: bool = False
    null_added: bool = False
    ref_definition: Schema | None = None


@dataclass
class ReflectContext:
    """Mutable state of a single reflection call."""

    definitions_prefix: str = DEFAULT_DEFINITIONS_PREFIX
    property_name_tag: str = "json"
    property_name_additional_tags: list[str] = field(default_factory=list)
    property_name_mapping: dict[str, str] = field(default_factory=dict)
    process_without_tags: bool = True
    unnamed_field_with_tag: bool = False
    inline_refs: bool = False
    root_ref: bool = False
    root_nullable: bool = False
    envelop_nullability: bool = False
    skip_embedded_maps_slices: bool = False
    skip_unsupported_properties: bool = False
    skip_non_constraints: bool = False
    collect_definitions: CollectDefinitionsFunc | None = None
    schema_hooks: list[InterceptSchemaFunc] = field(default_factory=list)
    prop_hooks: list[InterceptPropFunc] = field(default_factory=list)
    nullability_hooks: list[InterceptNullabilityFunc] = field(default_factory=list)
    def_name_hooks: list[DefNameHook] = field(default_factory=list)
    type_mappings: dict[object, object] = field(default_factory=dict)
    inline_definitions: set[TypeIdentity] = field(default_factory=set)
    path: list[str] = field(default_factory=lambda: ["#"])
    registry: DefinitionRegistry = field(default_factory=DefinitionRegistry)
    guard: CycleGuard = field(default_factory=CycleGuard)
    root_identity: TypeIdentity | None = None
    _anonymous_count: int = 0

    def dotted_path(self) -> tuple[str, ...]:
        """Return the current path without the root marker."""
        return tuple(self.path[1:])

    def next_anonymous_name(self) -> str:
        """Return a fresh name for an unnamed virtual struct."""
        self._anonymous_count += 1
        return f"struct{self._anonymous_count}"

    def definition_name_hook(self) -> DefNameHook | None:
        """Return the chained definition-name hook, if any."""
        if not self.def_name_hooks:
            return None
        hooks = tuple(self.def_name_hooks)

        def _chained(tp: object, name: str) -> str:
            for hook in hooks:
                name = self.call_hook(hook, tp, name)
            return name

        return _chained

    def definition_for(self, pointer: str) -> Schema | None:
        """Return the definition, completed or in progress, a ``$ref`` points to."""
        identity = self.registry.identity_for_pointer(pointer)
        if identity is None:
            return None
        completed = self.registry.get(identity)
        if completed is not None:
            return completed
        return self.guard.slot(identity)

    def call_hook(self, func: Callable[..., Any], *args: object) -> Any:
        """Invoke user code, wrapping unexpected failures in :class:`HookError`.

        Returns:
        -------
        Any
            Hook result.

        Raises:
            HookError: If the hook raises anything other than a reflection error.
        """
        try:
            return func(*args)
        except (ReflectError, SkipProperty):
            raise
        except Exception as exc:
            name = getattr(func, "__qualname__", repr(func))
            msg = f"hook {name} failed: {exc}"
            raise HookError(msg, path=self.dotted_path()) from exc

    def run_schema_hooks(self, params: InterceptSchemaParams) -> bool:
        """Run schema interceptors in registration order.

        Returns:
        -------
        bool
            ``True`` when an interceptor stopped processing.
        """
        return any(self.call_hook(hook, params) for hook in self.schema_hooks)

    def run_prop_hooks(self, params: InterceptPropParams) -> None:
        """Run property interceptors in registration order."""
        for hook in self.prop_hooks:
            self.call_hook(hook, params)

    def run_nullability_hooks(self, params: InterceptNullabilityParams) -> None:
        """Run nullability interceptors in registration order."""
        for hook in self.nullability_hooks:
            self.call_hook(hook, params)


# -----------------------------------------------------------------------------
# Options
# -----------------------------------------------------------------------------


def definitions_prefix(prefix: str) -> ReflectOption:
    """Set the path prefix of definition references, ``#/definitions/`` by default.

    Returns:
    -------
    ReflectOption
        Option applying the prefix.
    """

    def _option(ctx: ReflectContext) -> None:
        ctx.definitions_prefix = prefix
        ctx.registry.prefix = prefix

    return _option


def property_name_tag(tag: str, *additional: str) -> ReflectOption:
    """Set the metadata key holding property names, with fallback keys.

    Returns:
    -------
    ReflectOption
        Option applying the keys.
    """

    def _option(ctx: ReflectContext) -> None:
        ctx.property_name_tag = tag
        ctx.property_name_additional_tags = list(additional)

    return _option


def property_name_mapping(mapping: Mapping[str, str]) -> ReflectOption:
    """Name properties by attribute name instead of metadata.

    Returns:
    -------
    ReflectOption
        Option applying the mapping.
    """

    def _option(ctx: ReflectContext) -> None:
        ctx.property_name_mapping = dict(mapping)

    return _option


def intercept_schema(func: InterceptSchemaFunc) -> ReflectOption:
    """Add a schema interceptor, called before and after default expansion.

    Returns:
    -------
    ReflectOption
        Option registering the interceptor.
    """

    def _option(ctx: ReflectContext) -> None:
        ctx.schema_hooks.append(func)

    return _option


def intercept_prop(func: InterceptPropFunc) -> ReflectOption:
    """Add a property interceptor, called before and after each property.

    Returns:
    -------
    ReflectOption
        Option registering the interceptor.
    """

    def _option(ctx: ReflectContext) -> None:
        ctx.prop_hooks.append(func)

    return _option


def intercept_nullability(func: InterceptNullabilityFunc) -> ReflectOption:
    """Add an observer of property nullability decisions.

    Returns:
    -------
    ReflectOption
        Option registering the observer.
    """

    def _option(ctx: ReflectContext) -> None:
        ctx.nullability_hooks.append(func)

    return _option


def intercept_def_name(func: DefNameHook) -> ReflectOption:
    """Add a definition-name hook receiving the type and the current name.

    Returns:
    -------
    ReflectOption
        Option registering the hook.
    """

    def _option(ctx: ReflectContext) -> None:
        ctx.def_name_hooks.append(func)

    return _option


def strip_definition_name_prefix(*prefixes: str) -> ReflectOption:
    """Strip the first matching prefix from definition names.

    Returns:
    -------
    ReflectOption
        Option registering the name hook.
    """

    def _strip(_tp: object, name: str) -> str:
        for prefix in prefixes:
            if name.startswith(prefix) and len(name) > len(prefix):
                return name[len(prefix) :]
        return name

    return intercept_def_name(_strip)


def collect_definitions(func: CollectDefinitionsFunc) -> ReflectOption:
    """Deliver definitions to ``func`` instead of embedding them in the root.

    Returns:
    -------
    ReflectOption
        Option registering the collector.
    """

    def _option(ctx: ReflectContext) -> None:
        ctx.collect_definitions = func

    return _option


def type_mapping(src: object, dst: object) -> ReflectOption:
    """Reflect ``dst`` (a type, sample or Schema) wherever ``src`` is found.

    Returns:
    -------
    ReflectOption
        Option registering the substitution.
    """

    def _option(ctx: ReflectContext) -> None:
        ctx.type_mappings[mapping_key(src)] = dst

    return _option


def inline_definition(sample: object) -> ReflectOption:
    """Always inline the schema of ``sample``'s type instead of referencing it.

    Returns:
    -------
    ReflectOption
        Option registering the type.
    """

    def _option(ctx: ReflectContext) -> None:
        identity = definition_identity(sample)
        if identity is not None:
            ctx.inline_definitions.add(identity)

    return _option


def inline_refs(ctx: ReflectContext) -> None:
    """Inline every named type instead of emitting references."""
    ctx.inline_refs = True


def root_ref(ctx: ReflectContext) -> None:
    """Store the root type as a definition and return a reference to it."""
    ctx.root_ref = True


def root_nullable(ctx: ReflectContext) -> None:
    """Allow ``null`` for the root value."""
    ctx.root_nullable = True


def envelop_nullability(ctx: ReflectContext) -> None:
    """Wrap nullable references as ``anyOf: [null, $ref]``."""
    ctx.envelop_nullability = True


def skip_embedded_maps_slices(ctx: ReflectContext) -> None:
    """Reflect classes deriving from builtin containers by their own fields."""
    ctx.skip_embedded_maps_slices = True


def skip_unsupported_properties(ctx: ReflectContext) -> None:
    """Leave out properties whose type has no schema instead of failing."""
    ctx.skip_unsupported_properties = True


def skip_non_constraints(ctx: ReflectContext) -> None:
    """Leave out ``default`` and example keywords."""
    ctx.skip_non_constraints = True


def process_without_tags(ctx: ReflectContext) -> None:
    """Reflect fields that carry no name metadata (the default)."""
    ctx.process_without_tags = True


def require_name_tags(ctx: ReflectContext) -> None:
    """Reflect only fields that carry name metadata."""
    ctx.process_without_tags = False


def unnamed_field_with_tag(ctx: ReflectContext) -> None:
    """Apply ``_`` fields to the parent only when they carry the name key."""
    ctx.unnamed_field_with_tag = True


def mapping_key(value: object) -> object:
    """Return the lookup key of a type or sample in type mappings."""
    annotation, _sample = split_value(value)
    return resolve_annotation(annotation).tp


def definition_identity(value: object) -> TypeIdentity | None:
    """Return the identity of a type or sample's type."""
    return type_identity(mapping_key(value))


def split_value(value: object) -> tuple[object, object]:
    """Split a reflected value into its annotation and sample.

    Types and typing forms are annotations without a sample; anything else is
    a sample of its own type. ``None`` reflects as an unconstrained value.

    Returns:
    -------
    tuple[object, object]
        Annotation and sample (``MISSING`` when there is none).
    """
    if value is None:
        return Any, MISSING
    if is_type_form(value):
        return value, MISSING
    return type(value), value


def make_property_name_mapping(tp: type, tag: str = "json") -> dict[str, str]:
    """Build a mapping of attribute names to names found under metadata key ``tag``.

    Returns:
    -------
    dict[str, str]
        Attribute name to property name, for fields that carry ``tag``.
    """
    mapping: dict[str, str] = {}
    for item in object_fields(tp) or ():
        info = resolve_annotation(item.annotation)
        tags = FieldTags.for_field(item, info.metadata)
        value = tags.text(tag)
        if value is not None:
            mapping[item.name] = value.split(",")[0] or item.name
    return mapping


__all__ = [
    "CollectDefinitionsFunc",
    "InterceptNullabilityFunc",
    "InterceptNullabilityParams",
    "InterceptPropFunc",
    "InterceptPropParams",
    "InterceptSchemaFunc",
    "InterceptSchemaParams",
    "ReflectContext",
    "ReflectOption",
    "collect_definitions",
    "definition_identity",
    "definitions_prefix",
    "envelop_nullability",
    "inline_definition",
    "inline_refs",
    "intercept_def_name",
    "intercept_nullability",
    "intercept_prop",
    "intercept_schema",
    "make_property_name_mapping",
    "mapping_key",
    "process_without_tags",
    "property_name_mapping",
    "property_name_tag",
    "require_name_tags",
    "root_nullable",
    "root_ref",
    "skip_embedded_maps_slices",
    "skip_non_constraints",
    "skip_unsupported_properties",
    "split_value",
    "strip_definition_name_prefix",
    "type_mapping",
    "unnamed_field_with_tag",
]
