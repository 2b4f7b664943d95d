"""JSON Schema node model and reference helpers."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import msgspec

type SchemaOrBool = Schema | bool
type RefResolver = Callable[[str], SchemaOrBool | None]

X_ENUM_NAMES = "x-enum-names"


class SimpleType(StrEnum):
    """Primitive JSON Schema type names."""

    ARRAY = "array"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    NULL = "null"
    NUMBER = "number"
    OBJECT = "object"
    STRING = "string"

    def schema(self) -> Schema:
        """Return a schema carrying only this type.

        Returns:
        -------
        Schema
            Schema with ``type`` set to this value.
        """
        return Schema(type=self.value)


class Schema(msgspec.Struct, kw_only=True, omit_defaults=True, repr_omit_defaults=True):
    """Mutable JSON Schema node.

    Field order is the order keys are emitted in. ``extra`` holds vendor
    keys (for example ``x-enum-names``) and is merged flat on output.
    """

    schema_uri: str | None = msgspec.field(default=None, name="$schema")
    id: str | None = msgspec.field(default=None, name="$id")
    ref: str | None = msgspec.field(default=None, name="$ref")
    comment: str | None = msgspec.field(default=None, name="$comment")
    title: str | None = None
    description: str | None = None
    definitions: dict[str, SchemaOrBool] | None = None
    required: list[str] | None = None
    properties: dict[str, SchemaOrBool] | None = None
    pattern_properties: dict[str, SchemaOrBool] | None = msgspec.field(
        default=None, name="patternProperties"
    )
    items: SchemaOrBool | list[SchemaOrBool] | None = None
    additional_properties: SchemaOrBool | None = msgspec.field(
        default=None, name="additionalProperties"
    )
    enum: list[Any] | None = None
    const: Any = msgspec.UNSET
    default: Any = msgspec.UNSET
    examples: list[Any] | None = None
    type: str | list[str] | None = None
    format: str | None = None
    pattern: str | None = None
    multiple_of: float | None = msgspec.field(default=None, name="multipleOf")
    maximum: float | None = None
    exclusive_maximum: float | None = msgspec.field(default=None, name="exclusiveMaximum")
    minimum: float | None = None
    exclusive_minimum: float | None = msgspec.field(default=None, name="exclusiveMinimum")
    max_length: int | None = msgspec.field(default=None, name="maxLength")
    min_length: int | None = msgspec.field(default=None, name="minLength")
    max_items: int | None = msgspec.field(default=None, name="maxItems")
    min_items: int | None = msgspec.field(default=None, name="minItems")
    unique_items: bool | None = msgspec.field(default=None, name="uniqueItems")
    max_properties: int | None = msgspec.field(default=None, name="maxProperties")
    min_properties: int | None = msgspec.field(default=None, name="minProperties")
    one_of: list[SchemaOrBool] | None = msgspec.field(default=None, name="oneOf")
    any_of: list[SchemaOrBool] | None = msgspec.field(default=None, name="anyOf")
    all_of: list[SchemaOrBool] | None = msgspec.field(default=None, name="allOf")
    not_: SchemaOrBool | None = msgspec.field(default=None, name="not")
    if_: SchemaOrBool | None = msgspec.field(default=None, name="if")
    then: SchemaOrBool | None = None
    else_: SchemaOrBool | None = msgspec.field(default=None, name="else")
    read_only: bool | None = msgspec.field(default=None, name="readOnly")
    write_only: bool | None = msgspec.field(default=None, name="writeOnly")
    deprecated: bool | None = None
    extra: dict[str, Any] | None = None

    # -- type helpers -------------------------------------------------------

    def types(self) -> tuple[str, ...]:
        """Return the declared type names as a tuple.

        Returns:
        -------
        tuple[str, ...]
            Declared types, empty when ``type`` is unset.
        """
        if self.type is None:
            return ()
        if isinstance(self.type, str):
            return (self.type,)
        return tuple(self.type)

    def has_type(self, name: str) -> bool:
        """Return whether the schema declares the given type."""
        return str(name) in self.types()

    def add_type(self, name: str) -> Schema:
        """Add a type, turning a single type into a list on the second distinct value.

        Returns:
        -------
        Schema
            This schema, for chaining.
        """
        value = str(name)
        current = self.types()
        if value in current:
            return self
        if not current:
            self.type = value
        else:
            self.type = [*current, value]
        return self

    def remove_type(self, name: str) -> Schema:
        """Remove a type, collapsing a one-element list back to a single value.

        Returns:
        -------
        Schema
            This schema, for chaining.
        """
        remaining = [item for item in self.types() if item != str(name)]
        if not remaining:
            self.type = None
        elif len(remaining) == 1:
            self.type = remaining[0]
        else:
            self.type = remaining
        return self

    def set_extra(self, key: str, value: object) -> Schema:
        """Set a vendor key that is merged into the encoded object.

        Returns:
        -------
        Schema
            This schema, for chaining.
        """
        if self.extra is None:
            self.extra = {}
        self.extra[key] = value
        return self

    def is_trivial(self, ref_resolver: RefResolver | None = None) -> bool:
        """Return whether the schema has no validation constraints other than type.

        Parameters
        ----------
        ref_resolver
            Optional callable resolving ``$ref`` strings to their definitions.
            References are non-trivial when no resolver is given.

        Returns:
        -------
        bool
            ``True`` when the schema only describes structure.
        """
        return _is_trivial(self, ref_resolver, set())

    # -- codec --------------------------------------------------------------

    def to_builtins(self) -> dict[str, Any]:
        """Convert the schema into JSON-compatible builtins.

        Returns:
        -------
        dict[str, Any]
            Mapping with only the keywords that are set.
        """
        payload: dict[str, Any] = {}
        for attr, key in _FIELD_KEYS:
            value = getattr(self, attr)
            if value is msgspec.UNSET or (value is None and attr not in _NULLABLE_VALUE_ATTRS):
                continue
            payload[key] = _value_to_builtins(attr, value)
        if self.extra:
            for key, value in self.extra.items():
                payload.setdefault(key, _plain_to_builtins(value))
        return payload

    @classmethod
    def from_builtins(cls, payload: Mapping[str, Any]) -> Schema:
        """Build a schema from a decoded JSON object.

        Unknown keys are kept in ``extra``.

        Returns:
        -------
        Schema
            Decoded schema node.

        Raises:
            TypeError: If the payload is not a mapping.
        """
        if not isinstance(payload, Mapping):
            msg = f"Schema payload must be an object, got {type(payload).__name__}."
            raise TypeError(msg)
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in payload.items():
            attr = _KEY_TO_ATTR.get(key)
            if attr is None:
                extra[key] = value
                continue
            kwargs[attr] = _value_from_builtins(attr, value)
        if extra:
            kwargs["extra"] = extra
        return cls(**kwargs)

    def to_json(self, *, pretty: bool = False) -> str:
        """Encode the schema as a JSON string.

        Returns:
        -------
        str
            JSON document.
        """
        from schema_reflect.serde_msgspec import dumps_json

        return dumps_json(self.to_builtins(), pretty=pretty).decode("utf-8")

    # -- capabilities -------------------------------------------------------

    def json_schema(self) -> Schema:
        """Expose a copy of this schema when used as a type substitute.

        Returns:
        -------
        Schema
            Deep copy of this node.
        """
        return self.copy()

    def ignore_type_name(self) -> None:
        """Mark schema values as anonymous, keeping a mapped source type's name."""

    def copy(self) -> Schema:
        """Return a deep copy of this schema.

        Returns:
        -------
        Schema
            Independent copy.
        """
        return Schema.from_builtins(self.to_builtins())


@dataclass(frozen=True)
class Ref:
    """Reference to a named definition."""

    path: str
    name: str = ""

    @property
    def pointer(self) -> str:
        """Return the ``$ref`` string for this reference."""
        return self.path + escape_ref_name(self.name)

    def schema(self) -> Schema:
        """Return a schema holding only this reference.

        Returns:
        -------
        Schema
            ``{"$ref": ...}`` node.
        """
        return Schema(ref=self.pointer)


def escape_ref_name(name: str) -> str:
    """Escape a definition name for use in a JSON pointer.

    Returns:
    -------
    str
        Name with ``~``, ``/`` and ``%`` escaped.
    """
    return name.replace("~", "~0").replace("/", "~1").replace("%", "%25")


def unescape_ref_name(name: str) -> str:
    """Reverse :func:`escape_ref_name`.

    Returns:
    -------
    str
        Unescaped definition name.
    """
    return name.replace("%25", "%").replace("~1", "/").replace("~0", "~")


def schema_or_bool_to_builtins(value: SchemaOrBool) -> object:
    """Encode a schema or boolean shorthand.

    Returns:
    -------
    object
        ``bool`` or builtins mapping.
    """
    if isinstance(value, Schema):
        return value.to_builtins()
    return value


def schema_or_bool_from_builtins(value: object) -> SchemaOrBool:
    """Decode a schema or boolean shorthand.

    Returns:
    -------
    SchemaOrBool
        Decoded schema or boolean.
    """
    if isinstance(value, bool):
        return value
    return Schema.from_builtins(value)  # type: ignore[arg-type]


_FIELD_KEYS: tuple[tuple[str, str], ...] = tuple(
    (attr, key)
    for attr, key in zip(Schema.__struct_fields__, Schema.__struct_encode_fields__, strict=True)
    if attr != "extra"
)
_KEY_TO_ATTR: dict[str, str] = {key: attr for attr, key in _FIELD_KEYS}

_NULLABLE_VALUE_ATTRS = frozenset({"const", "default"})
_SCHEMA_MAP_FIELDS = frozenset({"definitions", "properties", "pattern_properties"})
_SCHEMA_LIST_FIELDS = frozenset({"one_of", "any_of", "all_of"})
_SCHEMA_FIELDS = frozenset({"additional_properties", "not_", "if_", "then", "else_"})


def _plain_to_builtins(value: object) -> object:
    if isinstance(value, Schema):
        return value.to_builtins()
    if isinstance(value, Mapping):
        return {key: _plain_to_builtins(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain_to_builtins(item) for item in value]
    return value


def _value_to_builtins(attr: str, value: Any) -> object:
    if attr in _SCHEMA_MAP_FIELDS:
        return {key: schema_or_bool_to_builtins(item) for key, item in value.items()}
    if attr in _SCHEMA_LIST_FIELDS:
        return [schema_or_bool_to_builtins(item) for item in value]
    if attr in _SCHEMA_FIELDS:
        return schema_or_bool_to_builtins(value)
    if attr == "items":
        if isinstance(value, list):
            return [schema_or_bool_to_builtins(item) for item in value]
        return schema_or_bool_to_builtins(value)
    if attr == "type" and isinstance(value, list):
        return list(value)
    return _plain_to_builtins(value)


def _value_from_builtins(attr: str, value: Any) -> object:
    if attr in _SCHEMA_MAP_FIELDS:
        return {key: schema_or_bool_from_builtins(item) for key, item in value.items()}
    if attr in _SCHEMA_LIST_FIELDS:
        return [schema_or_bool_from_builtins(item) for item in value]
    if attr in _SCHEMA_FIELDS:
        return schema_or_bool_from_builtins(value)
    if attr == "items":
        if isinstance(value, list):
            return [schema_or_bool_from_builtins(item) for item in value]
        return schema_or_bool_from_builtins(value)
    if attr in {"enum", "examples", "required"} or (attr == "type" and isinstance(value, list)):
        return list(value)
    return value


_NON_TRIVIAL_ATTRS: tuple[str, ...] = (
    "format",
    "pattern",
    "multiple_of",
    "maximum",
    "exclusive_maximum",
    "minimum",
    "exclusive_minimum",
    "max_length",
    "min_length",
    "max_items",
    "min_items",
    "unique_items",
    "max_properties",
    "min_properties",
    "required",
    "enum",
    "not_",
    "if_",
    "then",
    "else_",
    "one_of",
    "any_of",
    "all_of",
    "pattern_properties",
)


def _is_trivial(value: SchemaOrBool, resolver: RefResolver | None, seen: set[str]) -> bool:
    if isinstance(value, bool):
        return value
    if value.const is not msgspec.UNSET:
        return False
    if any(getattr(value, attr) is not None for attr in _NON_TRIVIAL_ATTRS):
        return False
    if len([item for item in value.types() if item != SimpleType.NULL]) > 1:
        return False
    if value.ref is not None:
        if resolver is None:
            return False
        if value.ref in seen:
            return True
        seen.add(value.ref)
        target = resolver(value.ref)
        if target is None or not _is_trivial(target, resolver, seen):
            return False
    if isinstance(value.items, list):
        return False
    children: list[SchemaOrBool] = []
    if value.items is not None:
        children.append(value.items)
    if value.additional_properties is not None and value.additional_properties is not True:
        children.append(value.additional_properties)
    if value.properties:
        children.extend(value.properties.values())
    return all(_is_trivial(child, resolver, seen) for child in children)


def merge_types(target: Schema, names: Iterable[str]) -> Schema:
    """Add every type name in ``names`` to ``target``.

    Returns:
    -------
    Schema
        The updated target.
    """
    for name in names:
        target.add_type(name)
    return target


__all__ = [
    "X_ENUM_NAMES",
    "Ref",
    "RefResolver",
    "Schema",
    "SchemaOrBool",
    "SimpleType",
    "escape_ref_name",
    "merge_types",
    "schema_or_bool_from_builtins",
    "schema_or_bool_to_builtins",
    "unescape_ref_name",
]
