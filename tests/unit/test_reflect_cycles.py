"""Tests for recursive and mutually recursive types."""

from __future__ import annotations

from dataclasses import dataclass, field

import msgspec

from schema_reflect import envelop_nullability, inline_refs, reflect, root_ref, strip_definition_name_prefix
from schema_reflect.definitions import camel_case

SHORT_NAMES = strip_definition_name_prefix(camel_case(__name__.rsplit(".", 1)[-1]))


@dataclass
class Node:
    value: int = field(default=0, metadata={"json": "value"})
    next: Node | None = field(default=None, metadata={"json": "next"})


@dataclass
class TreeNode:
    name: str
    children: list[TreeNode]


@dataclass
class Forest:
    trees: list[TreeNode]


class Employee(msgspec.Struct):
    name: str
    department: Department | None = None


class Department(msgspec.Struct):
    title: str
    staff: list[Employee] = msgspec.field(default_factory=list)


def test_self_reference_at_root_points_to_document() -> None:
    """A root type referring to itself uses ``#``."""
    schema = reflect(Node())

    assert schema.to_builtins() == {
        "type": "object",
        "properties": {"value": {"type": "integer"}, "next": {"$ref": "#"}},
    }


def test_root_ref_keeps_cycle_in_definitions() -> None:
    """With root references the cycle points at the definition."""
    schema = reflect(Node, root_ref, SHORT_NAMES)

    assert schema.ref == "#/definitions/Node"
    assert schema.definitions["Node"].properties["next"].ref == "#/definitions/Node"


def test_nested_self_reference_becomes_definition() -> None:
    """A recursive type below the root is stored once and referenced."""
    schema = reflect(Forest, SHORT_NAMES)

    assert schema.properties["trees"].to_builtins() == {
        "type": ["array", "null"],
        "items": {"$ref": "#/definitions/TreeNode"},
    }
    assert schema.definitions["TreeNode"].to_builtins() == {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "children": {"type": ["array", "null"], "items": {"$ref": "#/definitions/TreeNode"}},
        },
    }


def test_mutual_recursion() -> None:
    """Mutually recursive types terminate with one definition each."""
    schema = reflect(Department, root_ref, SHORT_NAMES)

    assert set(schema.definitions) == {"Department", "Employee"}
    employee = schema.definitions["Employee"]
    assert employee.properties["department"].ref == "#/definitions/Department"
    assert schema.definitions["Department"].properties["staff"].items.ref == "#/definitions/Employee"


def test_envelope_sees_definition_in_progress() -> None:
    """Nullability of a reference to a type under expansion uses its partial body."""
    schema = reflect(Department, root_ref, envelop_nullability, SHORT_NAMES)

    department = schema.definitions["Employee"].properties["department"]
    assert department.to_builtins() == {
        "anyOf": [{"type": "null"}, {"$ref": "#/definitions/Department"}],
    }


def test_inline_refs_still_define_cycles() -> None:
    """Inlining cannot expand a cycle, so cyclic types keep a definition."""
    schema = reflect(Forest, inline_refs, SHORT_NAMES)

    trees = schema.properties["trees"]
    assert trees.items.has_type("object")
    assert trees.items.properties["children"].items.ref == "#/definitions/TreeNode"
    assert set(schema.definitions) == {"TreeNode"}
