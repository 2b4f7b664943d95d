"""Tests for interceptors and capability methods."""

from __future__ import annotations

import enum
from dataclasses import dataclass

import pytest

from schema_reflect import (
    X_ENUM_NAMES,
    HookError,
    InterceptPropParams,
    InterceptSchemaParams,
    Schema,
    SkipProperty,
    intercept_prop,
    intercept_schema,
    reflect,
    strip_definition_name_prefix,
)
from schema_reflect.definitions import camel_case

SHORT_NAMES = strip_definition_name_prefix(camel_case(__name__.rsplit(".", 1)[-1]))


@dataclass
class Credentials:
    user: str = ""
    secret: str = ""
    id: int = 0


class Color:
    @classmethod
    def json_schema(cls) -> dict[str, object]:
        return {"type": "string", "pattern": "^#[0-9a-f]{6}$"}


class Point:
    @staticmethod
    def json_schema_bytes() -> bytes:
        return b'{"type": "array", "items": {"type": "number"}, "minItems": 2}'


@dataclass
class Theme:
    accent: Color
    origin: Point


class Status(enum.Enum):
    ACTIVE = 1
    RETIRED = 2

    @classmethod
    def json_schema_named_enum(cls) -> tuple[list[int], list[str]]:
        return [member.value for member in cls], [member.name for member in cls]


class Currency(str):
    __slots__ = ()

    @classmethod
    def json_schema_enum(cls) -> list[str]:
        return ["EUR", "USD"]


@dataclass
class Invoice:
    number: str = ""

    @classmethod
    def json_schema_title(cls) -> str:
        return "Invoice"

    @classmethod
    def json_schema_description(cls) -> str:
        return "A bill"

    @classmethod
    def prepare_json_schema(cls, schema: Schema) -> None:
        schema.required = ["number"]


@dataclass
class Limit:
    maximum: int = 10

    def prepare_json_schema(self, schema: Schema) -> None:
        schema.properties["maximum"].maximum = self.maximum


class Broken:
    @classmethod
    def json_schema(cls) -> int:
        return 42


class TestSchemaInterceptors:
    """Interceptors around default expansion."""

    def test_pre_hook_replaces_schema(self) -> None:
        """Returning True keeps the schema set by the interceptor."""

        def _int_as_text(params: InterceptSchemaParams) -> bool:
            if params.annotation is int and not params.processed:
                params.schema = Schema(type="string", format="int64")
                return True
            return False

        schema = reflect(list[int], intercept_schema(_int_as_text))

        assert schema.to_builtins() == {"type": "array", "items": {"type": "string", "format": "int64"}}

    def test_post_hook_sees_expanded_schema(self) -> None:
        """Interceptors run again after expansion with ``processed`` set."""
        calls: list[tuple[object, bool]] = []

        def _tag(params: InterceptSchemaParams) -> None:
            calls.append((params.annotation, params.processed))
            if params.processed and params.annotation is Credentials:
                params.schema.set_extra("x-sensitive", True)

        schema = reflect(Credentials, intercept_schema(_tag))

        assert schema.extra == {"x-sensitive": True}
        assert calls[0] == (Credentials, False)
        assert calls[-1] == (Credentials, True)
        assert (str, True) in calls

    def test_parent_is_passed(self) -> None:
        """Property values see the enclosing object schema."""
        parents: list[Schema | None] = []

        def _record(params: InterceptSchemaParams) -> None:
            if params.annotation is int and not params.processed:
                parents.append(params.parent)

        reflect(Credentials, intercept_schema(_record))

        assert len(parents) == 1
        assert parents[0] is not None
        assert parents[0].has_type("object")

    def test_failure_is_wrapped_with_path(self) -> None:
        """Unexpected interceptor errors become HookError at the current path."""

        def _explode(params: InterceptSchemaParams) -> None:
            if params.annotation is int:
                msg = "boom"
                raise KeyError(msg)

        with pytest.raises(HookError, match="boom") as exc_info:
            reflect(Credentials, intercept_schema(_explode))

        assert exc_info.value.path == ("id",)
        assert isinstance(exc_info.value.__cause__, KeyError)


class TestPropInterceptors:
    """Interceptors around each property."""

    def test_skip_before_reflection(self) -> None:
        """Raising SkipProperty leaves the property out."""

        def _hide_secrets(params: InterceptPropParams) -> None:
            if params.name == "secret":
                raise SkipProperty

        schema = reflect(Credentials, intercept_prop(_hide_secrets))

        assert list(schema.properties) == ["user", "id"]

    def test_rewrite_after_reflection(self) -> None:
        """The property schema can be edited once it is built."""
        seen: list[tuple[tuple[str, ...], bool]] = []

        def _read_only_ids(params: InterceptPropParams) -> None:
            seen.append((params.path, params.processed))
            if params.processed and params.name == "id":
                params.property_schema.read_only = True
                params.parent_schema.required = ["id"]

        schema = reflect(Credentials, intercept_prop(_read_only_ids))

        assert schema.properties["id"].to_builtins() == {"type": "integer", "readOnly": True}
        assert schema.required == ["id"]
        assert seen[:2] == [(("user",), False), (("user",), True)]


class TestCapabilities:
    """Capability methods implemented by reflected types."""

    def test_exposers_define_shared_schemas(self) -> None:
        """Structured and raw exposers replace reflection of their type."""
        schema = reflect(Theme, SHORT_NAMES)

        assert schema.properties["accent"].ref == "#/definitions/Color"
        assert schema.definitions["Color"].to_builtins() == {"type": "string", "pattern": "^#[0-9a-f]{6}$"}
        assert schema.definitions["Point"].to_builtins() == {
            "type": "array",
            "items": {"type": "number"},
            "minItems": 2,
        }

    def test_raw_exposer_at_root(self) -> None:
        """A root exposer yields its schema body."""
        assert reflect(Point).min_items == 2

    def test_named_enum(self) -> None:
        """Named enumerations list values with their names."""
        assert reflect(Status).to_builtins() == {
            "enum": [1, 2],
            "type": "integer",
            X_ENUM_NAMES: ["ACTIVE", "RETIRED"],
        }

    def test_enum_exposer_on_scalar(self) -> None:
        """Enumerated values combine with the scalar type."""
        assert reflect(Currency).to_builtins() == {"enum": ["EUR", "USD"], "type": "string"}

    def test_title_description_and_preparer(self) -> None:
        """Class-level capabilities annotate and adjust the object schema."""
        assert reflect(Invoice).to_builtins() == {
            "title": "Invoice",
            "description": "A bill",
            "type": "object",
            "required": ["number"],
            "properties": {"number": {"type": "string"}},
        }

    def test_instance_capabilities_need_a_sample(self) -> None:
        """Instance methods apply only when a value is reflected."""
        assert reflect(Limit(maximum=5)).properties["maximum"].maximum == 5
        assert reflect(Limit).properties["maximum"].maximum is None

    def test_invalid_exposer_result(self) -> None:
        """Exposers must return a schema or a mapping."""
        with pytest.raises(HookError, match="must return a Schema"):
            reflect(Broken)
