"""Type introspection helpers for schema reflection.

Annotations are normalized into :class:`TypeInfo` records: ``Annotated``
metadata is collected, ``X | None`` marks the value optional, and aliases,
``NewType`` wrappers and bound type variables are resolved. Object-like
classes (dataclasses, msgspec Structs, pydantic models, TypedDicts, and
annotated plain classes) expose their fields through :func:`object_fields`.
"""

from __future__ import annotations

import collections
import collections.abc
import dataclasses
import enum
import inspect
import types
import typing
from collections.abc import Hashable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Annotated, Any, ClassVar, Literal, TypeAliasType, TypeVar, Union

import msgspec
import pydantic

from schema_reflect.errors import UnsupportedTypeError
from schema_reflect.struct import VirtualStruct

type TypeVarMap = Mapping[object, object]
type TypeIdentity = Hashable


class _Missing(enum.Enum):
    """Marker for absent defaults and samples."""

    MISSING = "MISSING"

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing.MISSING
NoneType = type(None)

_UNION_ORIGINS = (Union, types.UnionType)
_WRAPPER_ORIGINS = tuple(
    wrapper
    for wrapper in (
        getattr(typing, "Required", None),
        getattr(typing, "NotRequired", None),
        getattr(typing, "ReadOnly", None),
    )
    if wrapper is not None
)
_STDLIB_CONTAINER_MODULES = frozenset({"builtins", "collections", "collections.abc", "typing"})
_ANONYMOUS_MODULES = frozenset({"builtins", "collections", "collections.abc", "typing", "types"})
_SCALAR_BASES: tuple[type, ...] = (bool, int, float, str, bytes, bytearray)


@dataclass(frozen=True)
class TypeInfo:
    """Normalized view of an annotation."""

    tp: Any
    optional: bool = False
    metadata: tuple[object, ...] = ()
    typevars: TypeVarMap = field(default_factory=dict)

    @property
    def origin(self) -> Any:
        """Return the runtime origin of a parametrized type, or the type itself."""
        return typing.get_origin(self.tp) or self.tp

    @property
    def args(self) -> tuple[Any, ...]:
        """Return the type arguments."""
        return typing.get_args(self.tp)


@dataclass(frozen=True)
class FieldInfo:
    """Field of an object-like type."""

    name: str
    annotation: Any
    alias: str | None = None
    metadata: Mapping[str, object] = field(default_factory=dict)
    constraints: tuple[object, ...] = ()
    default: object = MISSING
    has_default: bool = False
    omit_default: bool = False
    sample: object = MISSING


@dataclass(frozen=True)
class ContainerShape:
    """Element layout of a sequence, tuple or mapping type."""

    kind: Literal["array", "tuple", "mapping"]
    items: tuple[Any, ...] = ()
    unique: bool = False


def resolve_annotation(annotation: object, typevars: TypeVarMap | None = None) -> TypeInfo:
    """Unwrap an annotation into a :class:`TypeInfo`.

    Parameters
    ----------
    annotation
        Type annotation to normalize.
    typevars
        Bindings for type variables in scope.

    Returns:
    -------
    TypeInfo
        Normalized annotation.
    """
    bindings: dict[object, object] = dict(typevars or {})
    metadata: list[object] = []
    optional = False
    tp: Any = NoneType if annotation is None else annotation
    while True:
        if isinstance(tp, TypeVar):
            if tp in bindings and bindings[tp] is not tp:
                tp = bindings[tp]
                continue
            break
        origin = typing.get_origin(tp)
        if origin is Annotated:
            metadata.extend(tp.__metadata__)
            tp = typing.get_args(tp)[0]
            continue
        if origin is not None and origin in _WRAPPER_ORIGINS:
            tp = typing.get_args(tp)[0]
            continue
        if isinstance(tp, TypeAliasType):
            tp = tp.__value__
            continue
        if isinstance(origin, TypeAliasType):
            bindings.update(zip(origin.__type_params__, typing.get_args(tp), strict=False))
            tp = origin.__value__
            continue
        if isinstance(tp, typing.NewType):
            tp = tp.__supertype__
            continue
        if origin in _UNION_ORIGINS:
            members = [arg for arg in typing.get_args(tp) if arg is not NoneType]
            if len(members) < len(typing.get_args(tp)):
                optional = True
            if len(members) == 1:
                tp = members[0]
                continue
            if members:
                tp = Union[tuple(members)]  # noqa: UP007
            else:
                tp = NoneType
        break
    return TypeInfo(tp=tp, optional=optional, metadata=tuple(metadata), typevars=bindings)


def is_type_form(value: object) -> bool:
    """Return whether ``value`` is a type annotation rather than a sample."""
    if value is Any or isinstance(value, (type, TypeVar, TypeAliasType, typing.NewType)):
        return True
    return typing.get_origin(value) is not None


def is_union(tp: object) -> bool:
    """Return whether ``tp`` is a union of several members."""
    return typing.get_origin(tp) in _UNION_ORIGINS


def is_literal(tp: object) -> bool:
    """Return whether ``tp`` is a ``Literal[...]`` form."""
    return typing.get_origin(tp) is Literal


def is_enum_class(tp: object) -> bool:
    """Return whether ``tp`` is an ``Enum`` subclass."""
    return isinstance(tp, type) and issubclass(tp, enum.Enum)


def is_any(tp: object) -> bool:
    """Return whether ``tp`` places no constraint on values."""
    return tp is Any or tp is object or isinstance(tp, TypeVar)


def qualified_name(cls: type) -> str:
    """Return ``module.qualname`` for a class.

    Returns:
    -------
    str
        Qualified class name.
    """
    return f"{cls.__module__}.{cls.__qualname__}"


def type_name(tp: object) -> str:
    """Return a short readable name for a type or parametrized alias.

    Returns:
    -------
    str
        Readable type name, for example ``Page[Item]``.
    """
    if tp is NoneType or tp is None:
        return "None"
    if isinstance(tp, TypeVar):
        return tp.__name__
    origin = typing.get_origin(tp)
    if origin is not None and isinstance(origin, type):
        args = ",".join(type_name(arg) for arg in typing.get_args(tp))
        return f"{origin.__qualname__}[{args}]"
    if isinstance(tp, type):
        return tp.__qualname__
    return repr(tp).replace("typing.", "")


def is_named(tp: object) -> bool:
    """Return whether ``tp`` is a user-defined class or a parametrization of one."""
    origin = typing.get_origin(tp)
    cls = origin if origin is not None else tp
    return isinstance(cls, type) and cls.__module__ not in _ANONYMOUS_MODULES


def type_identity(tp: object) -> TypeIdentity | None:
    """Return a hashable identity for named types.

    A class is its own identity, so distinct classes sharing a qualified name
    stay apart. Parametrized generics pair their origin with the identities of
    their arguments. Builtin and typing constructs are anonymous and return
    ``None``.

    Returns:
    -------
    TypeIdentity | None
        Identity such as ``(Page, (Item,))``.
    """
    if not is_named(tp):
        return None
    origin = typing.get_origin(tp)
    if origin is None:
        return tp
    return (origin, tuple(_argument_identity(arg) for arg in typing.get_args(tp)))


def _argument_identity(arg: object) -> TypeIdentity:
    identity = type_identity(arg)
    if identity is not None:
        return identity
    if isinstance(arg, Hashable):
        return arg
    return type_name(arg)


def class_typevars(tp: object, typevars: TypeVarMap | None = None) -> dict[object, object]:
    """Return type-variable bindings implied by a parametrized generic class.

    Returns:
    -------
    dict[object, object]
        Mapping of type parameters to their arguments.
    """
    bindings: dict[object, object] = dict(typevars or {})
    origin = typing.get_origin(tp)
    if origin is None:
        return bindings
    params = getattr(origin, "__parameters__", ()) or getattr(origin, "__type_params__", ())
    args = [resolve_bound(arg, bindings) for arg in typing.get_args(tp)]
    bindings.update(zip(params, args, strict=False))
    return bindings


def resolve_bound(tp: object, typevars: TypeVarMap) -> object:
    """Substitute a bare type variable by its binding."""
    while isinstance(tp, TypeVar) and tp in typevars and typevars[tp] is not tp:
        tp = typevars[tp]
    return tp


def type_hints(cls: type) -> dict[str, Any]:
    """Return resolved annotations of a class, keeping ``Annotated`` metadata.

    Returns:
    -------
    dict[str, Any]
        Attribute name to annotation.

    Raises:
        UnsupportedTypeError: If annotations reference unresolvable names.
    """
    params = getattr(cls, "__type_params__", ()) or getattr(cls, "__parameters__", ())
    localns = {param.__name__: param for param in params} or None
    try:
        return typing.get_type_hints(cls, localns=localns, include_extras=True)
    except (NameError, TypeError) as exc:
        msg = f"cannot resolve annotations of {qualified_name(cls)}: {exc}"
        raise UnsupportedTypeError(msg) from exc


def container_shape(tp: object) -> ContainerShape | None:
    """Return the element layout of builtin and abstract container types.

    Returns:
    -------
    ContainerShape | None
        Layout, or ``None`` when ``tp`` is not a standard container.
    """
    origin = typing.get_origin(tp) or tp
    if not isinstance(origin, type) or origin.__module__ not in _STDLIB_CONTAINER_MODULES:
        return None
    if issubclass(origin, (str, bytes, bytearray, memoryview)):
        return None
    args = typing.get_args(tp)
    if issubclass(origin, tuple):
        if tp is tuple:
            return ContainerShape(kind="array", items=(Any,))
        if len(args) == 2 and args[1] is Ellipsis:  # noqa: PLR2004
            return ContainerShape(kind="array", items=(args[0],))
        return ContainerShape(kind="tuple", items=tuple(args))
    if issubclass(origin, collections.abc.Mapping):
        if issubclass(origin, collections.Counter):
            return ContainerShape(kind="mapping", items=(int,))
        value = args[1] if len(args) == 2 else Any  # noqa: PLR2004
        return ContainerShape(kind="mapping", items=(value,))
    item = args[0] if args else Any
    if issubclass(origin, collections.abc.Set):
        return ContainerShape(kind="array", items=(item,), unique=True)
    if issubclass(origin, (collections.abc.Sequence, collections.abc.Iterable)):
        return ContainerShape(kind="array", items=(item,))
    return None


def embedded_container(cls: type) -> ContainerShape | None:
    """Return the container layout a user class inherits from a builtin container.

    Returns:
    -------
    ContainerShape | None
        Layout of the first container base, or ``None``.
    """
    if issubclass(cls, tuple) and hasattr(cls, "_fields"):
        hints = type_hints(cls)
        items = tuple(hints.get(name, Any) for name in cls._fields)
        return ContainerShape(kind="tuple", items=items)
    for base in getattr(cls, "__orig_bases__", ()):
        shape = container_shape(base)
        if shape is not None:
            return shape
    for base in cls.__mro__[1:]:
        if base.__module__ == "builtins" and base is not object:
            shape = container_shape(base)
            if shape is not None:
                return shape
    return None


def is_scalar_subclass(cls: object) -> bool:
    """Return whether ``cls`` derives from a builtin scalar type."""
    return isinstance(cls, type) and issubclass(cls, _SCALAR_BASES)


def object_fields(
    tp: object,
    sample: object = MISSING,
    typevars: TypeVarMap | None = None,
) -> list[FieldInfo] | None:
    """Enumerate the fields of an object-like type.

    Parameters
    ----------
    tp
        Class or parametrized generic alias.
    sample
        Optional instance used to read field values.
    typevars
        Bindings for type variables in scope.

    Returns:
    -------
    list[FieldInfo] | None
        Fields in declaration order, or ``None`` when ``tp`` has no object shape.
    """
    if isinstance(sample, VirtualStruct):
        virtual: list[FieldInfo] = []
        for item in sample.fields:
            annotation = item.annotation()
            virtual.append(
                FieldInfo(
                    name=item.name,
                    annotation=annotation,
                    metadata=dict(item.tags),
                    sample=MISSING if annotation is item.value else item.value,
                )
            )
        return virtual
    origin = typing.get_origin(tp)
    cls = origin if origin is not None else tp
    if not isinstance(cls, type):
        return None
    if dataclasses.is_dataclass(cls):
        fields = _dataclass_fields(cls)
    elif issubclass(cls, msgspec.Struct):
        fields = _struct_fields(cls)
    elif issubclass(cls, pydantic.BaseModel):
        fields = _pydantic_fields(cls)
    elif typing.is_typeddict(cls):
        fields = _annotated_fields(cls)
    elif _is_plain_annotated(cls):
        fields = _annotated_fields(cls)
    else:
        return None
    if sample is MISSING or sample is None:
        return fields
    return [dataclasses.replace(item, sample=_sample_value(sample, item.name)) for item in fields]


def _keep_field(name: str, annotation: object) -> bool:
    if name.startswith("_") and name != "_":
        return False
    return typing.get_origin(annotation) is not ClassVar and annotation is not ClassVar


def _sample_value(sample: object, name: str) -> object:
    if isinstance(sample, Mapping):
        return sample.get(name, MISSING)
    return getattr(sample, name, MISSING)


def _dataclass_fields(cls: type) -> list[FieldInfo]:
    hints = type_hints(cls)
    fields: list[FieldInfo] = []
    for item in dataclasses.fields(cls):
        annotation = hints.get(item.name, Any)
        if not _keep_field(item.name, annotation):
            continue
        has_default = (
            item.default is not dataclasses.MISSING or item.default_factory is not dataclasses.MISSING
        )
        fields.append(
            FieldInfo(
                name=item.name,
                annotation=annotation,
                metadata=dict(item.metadata),
                default=MISSING if item.default is dataclasses.MISSING else item.default,
                has_default=has_default,
            )
        )
    return fields


def _struct_fields(cls: type[msgspec.Struct]) -> list[FieldInfo]:
    hints = type_hints(cls)
    omit_defaults = cls.__struct_config__.omit_defaults
    fields: list[FieldInfo] = []
    for item in msgspec.structs.fields(cls):
        annotation = hints.get(item.name, Any)
        if not _keep_field(item.name, annotation):
            continue
        has_default = not item.required
        default = item.default if item.default is not msgspec.NODEFAULT else MISSING
        fields.append(
            FieldInfo(
                name=item.name,
                annotation=annotation,
                alias=item.encode_name if item.encode_name != item.name else None,
                default=default,
                has_default=has_default,
                omit_default=omit_defaults and has_default,
            )
        )
    return fields


def _pydantic_fields(cls: type[pydantic.BaseModel]) -> list[FieldInfo]:
    fields: list[FieldInfo] = []
    for name, info in cls.model_fields.items():
        if not _keep_field(name, info.annotation):
            continue
        metadata: dict[str, object] = {}
        if isinstance(info.json_schema_extra, Mapping):
            metadata.update(info.json_schema_extra)
        for key in ("title", "description", "examples", "deprecated"):
            value = getattr(info, key, None)
            if value is not None:
                metadata.setdefault(key, value)
        has_default = not info.is_required()
        default = info.default if has_default and info.default_factory is None else MISSING
        fields.append(
            FieldInfo(
                name=name,
                annotation=info.annotation,
                alias=info.serialization_alias or info.alias,
                metadata=metadata,
                constraints=tuple(info.metadata),
                default=default,
                has_default=has_default,
            )
        )
    return fields


def _annotated_fields(cls: type) -> list[FieldInfo]:
    hints = type_hints(cls)
    fields: list[FieldInfo] = []
    for name, annotation in hints.items():
        if not _keep_field(name, annotation):
            continue
        default = getattr(cls, name, MISSING) if not typing.is_typeddict(cls) else MISSING
        fields.append(
            FieldInfo(
                name=name,
                annotation=annotation,
                default=default,
                has_default=default is not MISSING,
            )
        )
    return fields


def _is_plain_annotated(cls: type) -> bool:
    if cls.__module__ in _ANONYMOUS_MODULES or is_scalar_subclass(cls) or is_enum_class(cls):
        return False
    return any(inspect.get_annotations(base) for base in cls.__mro__ if base is not object)


def literal_values(tp: object) -> list[object]:
    """Return the flattened values of a (possibly nested) ``Literal``.

    Returns:
    -------
    list[object]
        Literal values in declaration order.
    """
    values: list[object] = []
    for arg in typing.get_args(tp):
        if is_literal(arg):
            values.extend(literal_values(arg))
        else:
            values.append(arg)
    return values


def union_members(tp: object) -> Sequence[object]:
    """Return the members of a union type."""
    return typing.get_args(tp)


__all__ = [
    "MISSING",
    "ContainerShape",
    "FieldInfo",
    "NoneType",
    "TypeIdentity",
    "TypeInfo",
    "TypeVarMap",
    "class_typevars",
    "container_shape",
    "embedded_container",
    "is_any",
    "is_enum_class",
    "is_literal",
    "is_type_form",
    "is_named",
    "is_scalar_subclass",
    "is_union",
    "literal_values",
    "object_fields",
    "qualified_name",
    "resolve_annotation",
    "resolve_bound",
    "type_hints",
    "type_identity",
    "type_name",
    "union_members",
]
