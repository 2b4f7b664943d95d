"""Tests for the JSON Schema node model and its codec."""

from __future__ import annotations

from pathlib import PurePosixPath

import pytest

from schema_reflect.schema import X_ENUM_NAMES, Ref, Schema, SimpleType, escape_ref_name, unescape_ref_name
from schema_reflect.serde_msgspec import dumps_json, loads_json, loads_schema


def test_to_builtins_omits_unset_keywords() -> None:
    """Only keywords that are set appear, under their JSON names."""
    schema = Schema(type="string", min_length=1, read_only=True)

    assert schema.to_builtins() == {"type": "string", "minLength": 1, "readOnly": True}


def test_to_builtins_keeps_falsy_values() -> None:
    """Zero bounds, false flags and empty lists are set values."""
    schema = Schema(type="integer", minimum=0, unique_items=False, required=[])

    assert schema.to_builtins() == {
        "type": "integer",
        "minimum": 0,
        "uniqueItems": False,
        "required": [],
    }


def test_extra_keys_are_flattened() -> None:
    """Vendor keys are merged into the encoded object."""
    schema = Schema(type="string", enum=["a", "b"])
    schema.set_extra(X_ENUM_NAMES, ["A", "B"])

    assert schema.to_builtins() == {"type": "string", "enum": ["a", "b"], "x-enum-names": ["A", "B"]}


def test_from_builtins_keeps_unknown_keys_in_extra() -> None:
    """Unknown keys decode into ``extra`` and nested schemas into nodes."""
    payload = {
        "type": "object",
        "properties": {"id": {"type": "integer"}, "any": True},
        "x-internal": True,
    }

    schema = Schema.from_builtins(payload)

    assert schema.extra == {"x-internal": True}
    assert isinstance(schema.properties["id"], Schema)
    assert schema.properties["any"] is True
    assert schema.to_builtins() == payload


def test_from_builtins_rejects_non_objects() -> None:
    """A schema payload must be a JSON object."""
    with pytest.raises(TypeError, match="must be an object"):
        Schema.from_builtins(["not", "an", "object"])  # type: ignore[arg-type]


def test_keyword_names_with_reserved_words() -> None:
    """Python-reserved keywords encode under their JSON Schema names."""
    schema = Schema(
        not_=Schema(type="null"),
        if_=Schema(type="string"),
        then=Schema(min_length=1),
        else_=False,
        ref="#/definitions/Item",
        schema_uri="http://json-schema.org/draft-07/schema#",
    )

    encoded = schema.to_builtins()

    assert encoded["not"] == {"type": "null"}
    assert encoded["if"] == {"type": "string"}
    assert encoded["then"] == {"minLength": 1}
    assert encoded["else"] is False
    assert encoded["$ref"] == "#/definitions/Item"
    assert encoded["$schema"] == "http://json-schema.org/draft-07/schema#"


def test_const_and_default_accept_null() -> None:
    """``None`` is a valid const or default value, distinct from unset."""
    schema = Schema(const=None, default=None)

    assert schema.to_builtins() == {"const": None, "default": None}
    assert Schema().to_builtins() == {}


class TestTypes:
    """Type list helpers."""

    def test_add_type_promotes_to_list(self) -> None:
        """A second distinct type turns ``type`` into a list."""
        schema = Schema(type="string")
        schema.add_type(SimpleType.NULL)
        schema.add_type(SimpleType.NULL)

        assert schema.type == ["string", "null"]
        assert schema.types() == ("string", "null")

    def test_remove_type_collapses_single_value(self) -> None:
        """Removing down to one type restores a single value."""
        schema = Schema(type=["array", "null"])
        schema.remove_type(SimpleType.NULL)

        assert schema.type == "array"
        schema.remove_type(SimpleType.ARRAY)
        assert schema.type is None

    def test_simple_type_schema(self) -> None:
        """Each primitive type builds a one-keyword schema."""
        assert SimpleType.BOOLEAN.schema().to_builtins() == {"type": "boolean"}


class TestTriviality:
    """Detection of constraint-free schemas."""

    def test_bare_type_is_trivial(self) -> None:
        """Annotations do not count as constraints."""
        assert Schema(type="string", title="Name", description="Full name").is_trivial()

    def test_constraints_are_not_trivial(self) -> None:
        """Validation keywords make a schema non-trivial."""
        assert not Schema(type="string", min_length=1).is_trivial()
        assert not Schema(type="string", enum=["a"]).is_trivial()
        assert not Schema(type="string", const="a").is_trivial()
        assert not Schema(type=["string", "integer"]).is_trivial()

    def test_nested_items_are_checked(self) -> None:
        """Children must be trivial too."""
        assert Schema(type="array", items=Schema(type="integer")).is_trivial()
        assert not Schema(type="array", items=Schema(type="integer", minimum=1)).is_trivial()

    def test_references_need_a_resolver(self) -> None:
        """References are resolved to decide triviality."""
        definitions = {"#/definitions/Id": Schema(type="integer")}
        schema = Schema(ref="#/definitions/Id")

        assert not schema.is_trivial()
        assert schema.is_trivial(definitions.get)

    def test_self_reference_terminates(self) -> None:
        """A reference cycle does not recurse forever."""
        definitions = {"#/definitions/Loop": Schema(ref="#/definitions/Loop")}

        assert Schema(ref="#/definitions/Loop").is_trivial(definitions.get)


class TestRef:
    """Reference helpers."""

    def test_ref_pointer_escapes_name(self) -> None:
        """Pointer-reserved characters are escaped."""
        ref = Ref(path="#/definitions/", name="a/b~c%d")

        assert ref.schema().ref == "#/definitions/a~1b~0c%25d"

    def test_escape_round_trip(self) -> None:
        """Unescaping reverses escaping."""
        name = "Page[a/b]~1"

        assert unescape_ref_name(escape_ref_name(name)) == name


class TestCodec:
    """JSON encoding and decoding of schema nodes."""

    def test_copy_is_independent(self) -> None:
        """Copies share no mutable state with the original."""
        original = Schema(type="object", properties={"id": Schema(type="integer")}, required=["id"])
        clone = original.copy()
        clone.properties["id"].minimum = 1
        clone.required.append("name")

        assert original.properties["id"].minimum is None
        assert original.required == ["id"]

    def test_to_json_is_stable(self) -> None:
        """Equal schemas encode to identical JSON."""
        first = Schema(type="object", properties={"b": Schema(type="string"), "a": Schema(type="integer")})
        second = Schema(type="object", properties={"a": Schema(type="integer"), "b": Schema(type="string")})

        assert first.to_json() == second.to_json()
        assert loads_json(first.to_json()) == first.to_builtins()

    def test_dumps_json_accepts_schema_nodes(self) -> None:
        """Schema nodes are encoded through their builtins form."""
        schema = Schema(type="string", format="uuid")

        assert loads_json(dumps_json(schema)) == {"type": "string", "format": "uuid"}
        assert b"\n" in dumps_json(schema, pretty=True)

    def test_loads_schema(self) -> None:
        """A JSON document decodes into a schema node."""
        schema = loads_schema(b'{"type": ["integer", "null"], "x-go-type": "int"}')

        assert schema.types() == ("integer", "null")
        assert schema.extra == {"x-go-type": "int"}

    def test_json_schema_exposes_a_copy(self) -> None:
        """A schema used as a value exposes an independent copy of itself."""
        schema = Schema(type="string")
        exposed = schema.json_schema()
        exposed.format = "email"

        assert schema.format is None

    def test_dumps_json_encodes_paths(self) -> None:
        """Paths in vendor values encode as text."""
        payload = {"file": PurePosixPath("a/b.json")}

        assert loads_json(dumps_json(payload)) == {"file": "a/b.json"}

    def test_dumps_json_rejects_unknown_objects(self) -> None:
        """Values without a JSON form are refused."""
        with pytest.raises(TypeError):
            dumps_json({"kind": Ref})
