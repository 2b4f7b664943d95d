"""Tests for object shapes described at runtime."""

from __future__ import annotations

from schema_reflect import VirtualField, VirtualStruct, reflect, root_ref


def _login() -> VirtualStruct:
    return (
        VirtualStruct(title="Login", description="Sign-in form")
        .add_field("user", str, required=True, minLength=1)
        .add_field("remember", False)
        .add_field("display_name", str, json="displayName,omitempty")
    )


def test_fields_and_tags() -> None:
    """Virtual fields accept types, samples and field metadata."""
    assert reflect(_login()).to_builtins() == {
        "title": "Login",
        "description": "Sign-in form",
        "type": "object",
        "required": ["user"],
        "properties": {
            "user": {"type": "string", "minLength": 1},
            "remember": {"type": "boolean"},
            "displayName": {"type": "string"},
        },
    }


def test_unnamed_structs_are_numbered_per_call() -> None:
    """Anonymous structs draw names from a counter reset on every call."""
    first = reflect(_login(), root_ref)
    second = reflect(_login(), root_ref)

    assert first.ref == "#/definitions/struct1"
    assert second.ref == "#/definitions/struct1"


def test_nested_structs() -> None:
    """Nested structs become definitions, named or numbered."""
    outer = (
        VirtualStruct(def_name="Outer")
        .add_field("child", VirtualStruct(def_name="Child").add_field("x", 1))
        .add_field("first", VirtualStruct().add_field("a", "text"))
        .add_field("second", VirtualStruct().add_field("b", 2.5))
    )

    schema = reflect(outer)

    assert schema.properties["child"].ref == "#/definitions/Child"
    assert schema.properties["first"].ref == "#/definitions/struct1"
    assert schema.properties["second"].ref == "#/definitions/struct2"
    assert schema.definitions["Child"].to_builtins() == {
        "type": "object",
        "properties": {"x": {"type": "integer"}},
    }


def test_nullable_struct() -> None:
    """Nullable structs admit null in their own schema."""
    maybe = VirtualStruct(nullable=True, def_name="Maybe").add_field("a", str)
    holder = VirtualStruct().add_field("maybe", maybe)

    assert reflect(maybe).types() == ("object", "null")
    schema = reflect(holder)
    assert schema.properties["maybe"].to_builtins() == {"$ref": "#/definitions/Maybe"}
    assert schema.definitions["Maybe"].types() == ("object", "null")


def test_field_annotation() -> None:
    """Field values are annotations when they are types, samples otherwise."""
    assert VirtualField("ids", list[int]).annotation() == list[int]
    assert VirtualField("count", 3).annotation() is int
