"""Field metadata parsing into schema keywords.

Field metadata comes from dataclass ``field(metadata=...)``, mappings placed in
``Annotated[...]``, ``msgspec.Meta(extra=...)`` and pydantic
``json_schema_extra``. Values may be strings, parsed the way struct tags are
(``"true"``, ``"1.5"``, ``"[1, 2]"``), or native Python values.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import msgspec

from schema_reflect.errors import TagParseError
from schema_reflect.schema import Schema, SimpleType
from schema_reflect.type_info import FieldInfo

logger = logging.getLogger(__name__)

_TRUE_TAGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_TAGS = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_STRING_KEYWORDS: dict[str, str] = {
    "$id": "id",
    "$comment": "comment",
    "title": "title",
    "description": "description",
    "format": "format",
    "pattern": "pattern",
}
_NUMBER_KEYWORDS: dict[str, str] = {
    "multipleOf": "multiple_of",
    "maximum": "maximum",
    "exclusiveMaximum": "exclusive_maximum",
    "minimum": "minimum",
    "exclusiveMinimum": "exclusive_minimum",
}
_INTEGER_KEYWORDS: dict[str, str] = {
    "maxLength": "max_length",
    "minLength": "min_length",
    "maxItems": "max_items",
    "minItems": "min_items",
    "maxProperties": "max_properties",
    "minProperties": "min_properties",
}
_BOOLEAN_KEYWORDS: dict[str, str] = {
    "uniqueItems": "unique_items",
    "readOnly": "read_only",
    "writeOnly": "write_only",
    "deprecated": "deprecated",
}
_REF_KEYWORDS = frozenset({"title", "description", "deprecated"})


@dataclass(frozen=True)
class FieldTags:
    """Merged metadata of one field.

    The first source that defines a key wins.
    """

    values: Mapping[str, object] = field(default_factory=dict)
    path: tuple[str, ...] = ()

    @classmethod
    def collect(
        cls,
        sources: Iterable[Mapping[str, object]],
        *,
        path: Sequence[str] = (),
    ) -> FieldTags:
        """Merge metadata mappings into one tag set.

        Returns:
        -------
        FieldTags
            Merged tags.
        """
        merged: dict[str, object] = {}
        for source in sources:
            for key, value in source.items():
                merged.setdefault(str(key), value)
        return cls(values=merged, path=tuple(path))

    @classmethod
    def for_field(
        cls,
        item: FieldInfo,
        metadata: Sequence[object],
        *,
        path: Sequence[str] = (),
    ) -> FieldTags:
        """Collect tags of a field from all supported metadata sources.

        Returns:
        -------
        FieldTags
            Merged tags for the field.
        """
        sources: list[Mapping[str, object]] = [item.metadata]
        sources.extend(entry for entry in metadata if isinstance(entry, Mapping))
        sources.extend(
            entry.extra
            for entry in (*metadata, *item.constraints)
            if isinstance(entry, msgspec.Meta) and entry.extra
        )
        return cls.collect(sources, path=path)

    def __contains__(self, key: str) -> bool:
        return key in self.values

    def get(self, key: str, default: object = None) -> object:
        """Return the raw value of a key."""
        return self.values.get(key, default)

    def text(self, key: str) -> str | None:
        """Return a key as text, or ``None`` when absent."""
        value = self.values.get(key)
        if value is None:
            return None
        return value if isinstance(value, str) else str(value)

    def flag(self, key: str) -> bool | None:
        """Return a key parsed as a boolean, or ``None`` when absent.

        Raises:
            TagParseError: If the value is not a boolean literal.
        """
        if key not in self.values:
            return None
        return parse_bool(self.values[key], keyword=key, path=self.path)

    def integer(self, key: str) -> int | None:
        """Return a key parsed as an integer, or ``None`` when absent.

        Raises:
            TagParseError: If the value is not an integer literal.
        """
        if key not in self.values:
            return None
        return parse_int(self.values[key], keyword=key, path=self.path)

    def number(self, key: str) -> float | None:
        """Return a key parsed as a number, or ``None`` when absent.

        Raises:
            TagParseError: If the value is not a number literal.
        """
        if key not in self.values:
            return None
        return parse_number(self.values[key], keyword=key, path=self.path)


def parse_bool(value: object, *, keyword: str, path: Sequence[str] = ()) -> bool:
    """Parse a boolean tag value.

    Returns:
    -------
    bool
        Parsed value.

    Raises:
        TagParseError: If the value is not a boolean literal.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text in _TRUE_TAGS:
            return True
        if text in _FALSE_TAGS:
            return False
    msg = f"invalid boolean {value!r}"
    raise TagParseError(msg, keyword=keyword, path=path)


def parse_int(value: object, *, keyword: str, path: Sequence[str] = ()) -> int:
    """Parse an integer tag value.

    Returns:
    -------
    int
        Parsed value.

    Raises:
        TagParseError: If the value is not an integer literal.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as exc:
            msg = f"invalid integer {value!r}"
            raise TagParseError(msg, keyword=keyword, path=path) from exc
    msg = f"invalid integer {value!r}"
    raise TagParseError(msg, keyword=keyword, path=path)


def parse_number(value: object, *, keyword: str, path: Sequence[str] = ()) -> float:
    """Parse a numeric tag value, keeping integral literals as ``int``.

    Returns:
    -------
    float
        Parsed value.

    Raises:
        TagParseError: If the value is not a number literal.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError as exc:
            msg = f"invalid number {value!r}"
            raise TagParseError(msg, keyword=keyword, path=path) from exc
    msg = f"invalid number {value!r}"
    raise TagParseError(msg, keyword=keyword, path=path)


def populate_keywords(schema: Schema, tags: FieldTags) -> None:
    """Copy validation and annotation keywords from tags onto ``schema``.

    Raises:
        TagParseError: If a keyword value cannot be parsed.
    """
    for key, attr in _STRING_KEYWORDS.items():
        text = tags.text(key)
        if text is not None:
            setattr(schema, attr, text)
    for key, attr in _NUMBER_KEYWORDS.items():
        number = tags.number(key)
        if number is not None:
            setattr(schema, attr, number)
    for key, attr in _INTEGER_KEYWORDS.items():
        integer = tags.integer(key)
        if integer is not None:
            setattr(schema, attr, integer)
    for key, attr in _BOOLEAN_KEYWORDS.items():
        flag = tags.flag(key)
        if flag is not None:
            setattr(schema, attr, flag)


def _items_have_string(schema: Schema) -> bool:
    return isinstance(schema.items, Schema) and schema.items.has_type(SimpleType.STRING)


def inline_value(schema: Schema, tags: FieldTags, keyword: str) -> tuple[bool, Any]:
    """Decode a literal tag value according to the schema type.

    Parameters
    ----------
    schema
        Property schema the value belongs to.
    tags
        Field tags.
    keyword
        Tag key, for example ``default`` or ``const``.

    Returns:
    -------
    tuple[bool, Any]
        Whether a value is present, and the decoded value.

    Raises:
        TagParseError: If the value is not valid JSON for a non-scalar schema.
    """
    if keyword not in tags:
        return False, None
    raw = tags.get(keyword)
    if not isinstance(raw, str):
        return True, raw
    text = raw.strip()
    if schema.has_type(SimpleType.NUMBER):
        try:
            return True, float(text)
        except ValueError:
            pass
    if schema.has_type(SimpleType.INTEGER):
        try:
            return True, int(text)
        except ValueError:
            pass
    if schema.has_type(SimpleType.BOOLEAN) and text in _TRUE_TAGS | _FALSE_TAGS:
        return True, text in _TRUE_TAGS
    if schema.has_type(SimpleType.STRING):
        return True, raw
    if schema.types() == (SimpleType.NULL.value,) or not text:
        return False, None
    try:
        return True, msgspec.json.decode(text)
    except msgspec.DecodeError as exc:
        if text.startswith("[") and text.endswith("]") and _items_have_string(schema):
            return True, text[1:-1].split(",")
        msg = f"invalid JSON {raw!r}: {exc}"
        raise TagParseError(msg, keyword=keyword, path=tags.path) from exc


def apply_inline_values(
    schema: Schema,
    tags: FieldTags,
    *,
    skip_non_constraints: bool,
    type_source: Schema | None = None,
) -> None:
    """Apply ``default`` and ``const`` tags.

    Raises:
        TagParseError: If a value cannot be decoded.
    """
    if not skip_non_constraints:
        found, value = inline_value(type_source or schema, tags, "default")
        if found:
            schema.default = value
    found, value = inline_value(type_source or schema, tags, "const")
    if found:
        schema.const = value


def apply_examples(schema: Schema, tags: FieldTags, *, type_source: Schema | None = None) -> None:
    """Apply ``example`` and ``examples`` tags.

    Raises:
        TagParseError: If a value cannot be decoded.
    """
    found, value = inline_value(type_source or schema, tags, "example")
    if found:
        schema.examples = [*(schema.examples or []), value]
    if "examples" not in tags:
        return
    raw = tags.get("examples")
    if isinstance(raw, str):
        try:
            raw = msgspec.json.decode(raw)
        except msgspec.DecodeError as exc:
            msg = f"invalid JSON array {tags.get('examples')!r}: {exc}"
            raise TagParseError(msg, keyword="examples", path=tags.path) from exc
    if not isinstance(raw, (list, tuple)):
        msg = f"expected an array, got {raw!r}"
        raise TagParseError(msg, keyword="examples", path=tags.path)
    schema.examples = [*(schema.examples or []), *raw]


def enum_values(tags: FieldTags) -> list[object] | None:
    """Return enumeration values from the ``enum`` tag.

    Strings are decoded as a JSON array, falling back to comma-separated items.

    Returns:
    -------
    list[object] | None
        Values, or ``None`` when the tag is absent or empty.
    """
    raw = tags.get("enum")
    if raw is None or raw == "":
        return None
    if isinstance(raw, (list, tuple, set, frozenset)):
        return list(raw)
    text = str(raw)
    try:
        decoded = msgspec.json.decode(text)
    except msgspec.DecodeError:
        decoded = None
    if isinstance(decoded, list):
        return decoded
    return text.split(",")


def apply_constraints(
    schema: Schema,
    constraints: Iterable[object],
    *,
    type_source: Schema | None = None,
) -> None:
    """Translate ``msgspec.Meta`` and annotated-types constraints into keywords.

    Parameters
    ----------
    schema
        Schema receiving the keywords.
    constraints
        Metadata objects from ``Annotated`` or a pydantic field.
    type_source
        Schema whose type selects between length, item and property bounds.
    """
    source = type_source if type_source is not None else schema
    for item in constraints:
        if isinstance(item, Mapping):
            continue
        _apply_bounds(schema, item, source)
        if isinstance(item, msgspec.Meta):
            _apply_meta_annotations(schema, item)


def _apply_bounds(schema: Schema, item: object, source: Schema) -> None:
    for attr, target in (
        ("ge", "minimum"),
        ("le", "maximum"),
        ("gt", "exclusive_minimum"),
        ("lt", "exclusive_maximum"),
        ("multiple_of", "multiple_of"),
    ):
        value = getattr(item, attr, None)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            setattr(schema, target, value)
    pattern = getattr(item, "pattern", None)
    if isinstance(pattern, str):
        schema.pattern = pattern
    if source.has_type(SimpleType.ARRAY):
        bounds = ("min_items", "max_items")
    elif source.has_type(SimpleType.OBJECT):
        bounds = ("min_properties", "max_properties")
    else:
        bounds = ("min_length", "max_length")
    for attr, target in zip(("min_length", "max_length"), bounds, strict=True):
        value = getattr(item, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            setattr(schema, target, value)


def _apply_meta_annotations(schema: Schema, meta: msgspec.Meta) -> None:
    if meta.title is not None:
        schema.title = meta.title
    if meta.description is not None:
        schema.description = meta.description
    if meta.examples is not None:
        schema.examples = list(meta.examples)
    if meta.extra_json_schema:
        merge_keywords(schema, Schema.from_builtins(meta.extra_json_schema))


def merge_keywords(target: Schema, patch: Schema) -> None:
    """Copy every keyword set on ``patch`` onto ``target``."""
    for attr in target.__struct_fields__:
        value = getattr(patch, attr)
        if value is None or value is msgspec.UNSET:
            continue
        if attr == "extra":
            for key, item in value.items():
                target.set_extra(key, item)
            continue
        setattr(target, attr, value)


def wrap_reference(schema: Schema) -> Schema:
    """Move a ``$ref`` into ``allOf`` when other constraints sit beside it.

    Returns:
    -------
    Schema
        ``schema`` unchanged, or a new node holding the reference in ``allOf``.
    """
    if schema.ref is None:
        return schema
    payload = schema.to_builtins()
    extra_keys = [key for key in payload if key != "$ref" and key not in _REF_KEYWORDS]
    if not extra_keys:
        return schema
    logger.debug("Wrapping reference %s with sibling keywords %s", schema.ref, extra_keys)
    reference = Schema(ref=schema.ref)
    schema.ref = None
    schema.all_of = [reference, *(schema.all_of or [])]
    return schema


__all__ = [
    "FieldTags",
    "apply_constraints",
    "apply_examples",
    "apply_inline_values",
    "enum_values",
    "inline_value",
    "merge_keywords",
    "parse_bool",
    "parse_int",
    "parse_number",
    "populate_keywords",
    "wrap_reference",
]
