"""Tests for reflecting scalars, containers and object-like classes."""

from __future__ import annotations

import datetime as dt
import decimal
import enum
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Annotated, Any, Literal, NotRequired, TypedDict

import msgspec
import pydantic
import pytest

from schema_reflect import (
    Reflector,
    Schema,
    UnsupportedTypeError,
    collect_definitions,
    definitions_prefix,
    inline_refs,
    reflect,
    root_ref,
    skip_unsupported_properties,
    strip_definition_name_prefix,
    type_mapping,
)
from schema_reflect.definitions import camel_case
from schema_reflect.reflector import UUID_EXAMPLE

SHORT_NAMES = strip_definition_name_prefix(camel_case(__name__.rsplit(".", 1)[-1]))


@dataclass
class Person:
    name: str = field(default="", metadata={"json": "name", "required": True})
    age: int = field(default=0, metadata={"json": "age"})


class Item(msgspec.Struct):
    sku: str
    price: Annotated[float, msgspec.Meta(ge=0)]
    labels: list[str] = msgspec.field(default_factory=list)


class Order(msgspec.Struct):
    id: int
    item: Item
    backup: Item | None = None


class Account(pydantic.BaseModel):
    login: str = pydantic.Field(min_length=3, json_schema_extra={"json": "login", "required": True})
    score: int = pydantic.Field(default=0, ge=0, le=100, description="Score")


class Movie(TypedDict):
    title: str
    year: NotRequired[int]


class Color(enum.Enum):
    RED = "red"
    GREEN = "green"


@dataclass
class Palette:
    primary: Color = Color.RED


@dataclass
class Page[T]:
    items: list[T]
    total: int = 0


@dataclass
class Catalog:
    page: Page[Item]


@dataclass
class Handler:
    name: str = ""
    callback: Callable[[], None] | None = None


@dataclass
class Event:
    at: dt.datetime
    id: uuid.UUID
    amount: decimal.Decimal
    payload: bytes


class Tags(list[str]):
    pass


@dataclass
class Money:
    amount: int = 0
    currency: str = ""


@dataclass
class Invoice:
    total: Money


def test_scenario_name_and_age() -> None:
    """Named properties reflect with required names."""
    schema = reflect(Person(name="Ann", age=3))

    assert schema.to_builtins() == {
        "type": "object",
        "required": ["name"],
        "properties": {"name": {"type": "string"}, "age": {"type": "integer"}},
    }


def test_type_and_sample_reflect_alike() -> None:
    """A class and an instance of it produce the same schema."""
    assert reflect(Person).to_builtins() == reflect(Person()).to_builtins()


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (int, {"type": "integer"}),
        (True, {"type": "boolean"}),
        ("text", {"type": "string"}),
        (1.5, {"type": "number"}),
        (None, {}),
        (Any, {}),
        (list[int], {"type": "array", "items": {"type": "integer"}}),
        (dict[str, float], {"type": "object", "additionalProperties": {"type": "number"}}),
        (set[str], {"type": "array", "items": {"type": "string"}, "uniqueItems": True}),
        (tuple[int, ...], {"type": "array", "items": {"type": "integer"}}),
        (list[int | None], {"type": "array", "items": {"type": ["integer", "null"]}}),
        (int | str, {"anyOf": [{"type": "integer"}, {"type": "string"}]}),
        (Literal["a", "b"], {"enum": ["a", "b"], "type": "string"}),
        (Literal[1, None], {"enum": [1, None], "type": ["integer", "null"]}),
    ],
)
def test_anonymous_values(value: object, expected: dict[str, object]) -> None:
    """Builtin values and typing constructs are inlined."""
    schema = reflect(value)

    assert schema.to_builtins() == expected
    assert schema.definitions is None


def test_fixed_tuple_bounds_items() -> None:
    """Fixed-length tuples list their item schemas with size bounds."""
    schema = reflect(tuple[int, str])

    assert schema.to_builtins() == {
        "type": "array",
        "items": [{"type": "integer"}, {"type": "string"}],
        "minItems": 2,
        "maxItems": 2,
    }


def test_well_known_types() -> None:
    """Standard library value types map to string formats."""
    schema = reflect(Event)

    assert schema.properties["at"].to_builtins() == {"type": "string", "format": "date-time"}
    assert schema.properties["id"].to_builtins() == {
        "examples": [UUID_EXAMPLE],
        "type": "string",
        "format": "uuid",
    }
    assert schema.properties["amount"].to_builtins() == {"type": "string", "format": "decimal"}
    assert schema.properties["payload"].to_builtins() == {"type": "string", "format": "base64"}
    assert schema.definitions is None


def test_msgspec_struct_with_nested_definition() -> None:
    """Named nested types become shared definitions."""
    schema = reflect(Order, SHORT_NAMES)

    assert schema.to_builtins() == {
        "type": "object",
        "properties": {
            "id": {"type": "integer"},
            "item": {"$ref": "#/definitions/Item"},
            "backup": {"$ref": "#/definitions/Item"},
        },
        "definitions": {
            "Item": {
                "type": "object",
                "properties": {
                    "sku": {"type": "string"},
                    "price": {"type": "number", "minimum": 0},
                    "labels": {"type": ["array", "null"], "items": {"type": "string"}},
                },
            },
        },
    }


def test_pydantic_model_fields() -> None:
    """Pydantic constraints, descriptions and extra metadata are honored."""
    schema = reflect(Account)

    assert schema.required == ["login"]
    assert schema.properties["login"].to_builtins() == {"type": "string", "minLength": 3}
    assert schema.properties["score"].to_builtins() == {
        "description": "Score",
        "type": "integer",
        "maximum": 100,
        "minimum": 0,
    }


def test_typed_dict() -> None:
    """TypedDict classes reflect as objects rather than mappings."""
    schema = reflect(Movie)

    assert schema.to_builtins() == {
        "type": "object",
        "properties": {"title": {"type": "string"}, "year": {"type": "integer"}},
    }


def test_enum_class() -> None:
    """Enumerations are inlined at the root and shared as properties."""
    assert reflect(Color).to_builtins() == {"enum": ["red", "green"], "type": "string"}

    schema = reflect(Palette, SHORT_NAMES)

    assert schema.properties["primary"].ref == "#/definitions/Color"
    assert schema.definitions["Color"].to_builtins() == {"enum": ["red", "green"], "type": "string"}


def test_generic_instantiation() -> None:
    """Generic parameters resolve to their arguments and appear in the name."""
    schema = reflect(Catalog, SHORT_NAMES)

    assert schema.properties["page"].ref == "#/definitions/Page[Item]"
    page = schema.definitions["Page[Item]"]
    assert page.properties["items"].to_builtins() == {
        "type": ["array", "null"],
        "items": {"$ref": "#/definitions/Item"},
    }
    assert set(schema.definitions) == {"Item", "Page[Item]"}


def test_sample_elements_drive_any_items() -> None:
    """Container samples refine untyped elements."""
    schema = reflect([Person()], SHORT_NAMES)

    assert schema.to_builtins()["items"] == {"$ref": "#/definitions/Person"}
    assert "Person" in schema.definitions


def test_class_deriving_from_a_container() -> None:
    """Subclasses of builtin containers reflect as the container."""
    assert reflect(Tags).to_builtins() == {"type": "array", "items": {"type": "string"}}


class TestUnsupported:
    """Types without a schema representation."""

    def test_unsupported_property_fails_with_path(self) -> None:
        """The error names the property being reflected."""
        with pytest.raises(UnsupportedTypeError, match="type is not supported") as exc_info:
            reflect(Handler)

        assert exc_info.value.path == ("callback",)
        assert isinstance(exc_info.value, TypeError)

    def test_skip_unsupported_properties(self) -> None:
        """Skipping leaves the property out."""
        schema = reflect(Handler, skip_unsupported_properties)

        assert list(schema.properties) == ["name"]


class TestDefinitionsOutput:
    """Placement of shared definitions."""

    def test_inline_refs(self) -> None:
        """Inlining removes every reference."""
        schema = reflect(Order, inline_refs)

        assert schema.definitions is None
        assert schema.properties["item"].has_type("object")

    def test_root_ref(self) -> None:
        """The root can be stored as a definition."""
        schema = reflect(Person, root_ref, SHORT_NAMES)

        assert schema.ref == "#/definitions/Person"
        assert set(schema.definitions) == {"Person"}

    def test_definitions_prefix(self) -> None:
        """References use the configured prefix."""
        schema = reflect(Order, definitions_prefix("#/components/schemas/"), SHORT_NAMES)

        assert schema.properties["item"].ref == "#/components/schemas/Item"

    def test_collect_definitions(self) -> None:
        """Collected definitions are not embedded in the root."""
        collected: dict[str, Schema] = {}

        schema = reflect(Order, collect_definitions(collected.__setitem__), SHORT_NAMES)

        assert schema.definitions is None
        assert list(collected) == ["Item"]

    def test_output_is_deterministic(self) -> None:
        """Repeated calls produce identical documents."""
        first = reflect(Catalog, SHORT_NAMES).to_json()

        assert reflect(Catalog, SHORT_NAMES).to_json() == first


class TestTypeMapping:
    """Type substitution."""

    def test_map_to_builtin_type(self) -> None:
        """A mapped type reflects as its substitute."""
        schema = reflect(Invoice, type_mapping(Money, str))

        assert schema.properties["total"].to_builtins() == {"type": "string"}

    def test_map_to_schema_keeps_original_name(self) -> None:
        """A schema substitute is stored under the original type's name."""
        mapping = type_mapping(Money, Schema(type="string", pattern="^[0-9]+ [A-Z]{3}$"))

        schema = reflect(Invoice, mapping, SHORT_NAMES)

        assert schema.properties["total"].ref == "#/definitions/Money"
        assert schema.definitions["Money"].pattern == "^[0-9]+ [A-Z]{3}$"

    def test_reflector_defaults(self) -> None:
        """Reflector mappings and options apply to every call."""
        reflector = Reflector(default_options=[SHORT_NAMES])
        reflector.add_type_mapping(Money, int)
        reflector.inline_definition(Item)

        invoice = reflector.reflect(Invoice)
        order = reflector.reflect(Order)

        assert invoice.properties["total"].to_builtins() == {"type": "integer"}
        assert order.properties["item"].has_type("object")
        assert order.definitions is None
