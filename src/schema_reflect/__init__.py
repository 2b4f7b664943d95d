"""Reflect Python types and values into JSON Schema documents."""

from __future__ import annotations

from schema_reflect.capabilities import AllOf, AnyOf, OneOf
from schema_reflect.config import ReflectConfigSpec, load_reflect_config
from schema_reflect.context import (
    InterceptNullabilityParams,
    InterceptPropParams,
    InterceptSchemaParams,
    ReflectContext,
    ReflectOption,
    collect_definitions,
    definitions_prefix,
    envelop_nullability,
    inline_definition,
    inline_refs,
    intercept_def_name,
    intercept_nullability,
    intercept_prop,
    intercept_schema,
    make_property_name_mapping,
    process_without_tags,
    property_name_mapping,
    property_name_tag,
    require_name_tags,
    root_nullable,
    root_ref,
    skip_embedded_maps_slices,
    skip_non_constraints,
    skip_unsupported_properties,
    strip_definition_name_prefix,
    type_mapping,
    unnamed_field_with_tag,
)
from schema_reflect.errors import (
    HookError,
    ReflectError,
    SkipProperty,
    TagParseError,
    UnsupportedTypeError,
)
from schema_reflect.reflector import Reflector, reflect
from schema_reflect.schema import X_ENUM_NAMES, Ref, Schema, SchemaOrBool, SimpleType
from schema_reflect.struct import VirtualField, VirtualStruct
from schema_reflect.type_info import MISSING

__all__ = [
    "MISSING",
    "X_ENUM_NAMES",
    "AllOf",
    "AnyOf",
    "HookError",
    "InterceptNullabilityParams",
    "InterceptPropParams",
    "InterceptSchemaParams",
    "OneOf",
    "Ref",
    "ReflectConfigSpec",
    "ReflectContext",
    "ReflectError",
    "ReflectOption",
    "Reflector",
    "Schema",
    "SchemaOrBool",
    "SimpleType",
    "SkipProperty",
    "TagParseError",
    "UnsupportedTypeError",
    "VirtualField",
    "VirtualStruct",
    "collect_definitions",
    "definitions_prefix",
    "envelop_nullability",
    "inline_definition",
    "inline_refs",
    "intercept_def_name",
    "intercept_nullability",
    "intercept_prop",
    "intercept_schema",
    "load_reflect_config",
    "make_property_name_mapping",
    "process_without_tags",
    "property_name_mapping",
    "property_name_tag",
    "reflect",
    "require_name_tags",
    "root_nullable",
    "root_ref",
    "skip_embedded_maps_slices",
    "skip_non_constraints",
    "skip_unsupported_properties",
    "strip_definition_name_prefix",
    "type_mapping",
    "unnamed_field_with_tag",
]
