"""Dynamically described object shapes."""

from __future__ import annotations

import typing
from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class VirtualField:
    """Property of a :class:`VirtualStruct`.

    ``value`` is either a type annotation or a sample value whose type is
    reflected. ``tags`` carries the same metadata keys accepted on fields of
    regular classes.
    """

    name: str
    value: object
    tags: Mapping[str, object] = field(default_factory=dict)

    def annotation(self) -> object:
        """Return the annotation reflected for this field."""
        if isinstance(self.value, type) or typing.get_origin(self.value) is not None:
            return self.value
        return type(self.value)


@dataclass
class VirtualStruct:
    """Object schema described at runtime instead of by a class."""

    fields: list[VirtualField] = field(default_factory=list)
    title: str | None = None
    description: str | None = None
    nullable: bool = False
    def_name: str | None = None

    def add_field(self, name: str, value: object, **tags: object) -> VirtualStruct:
        """Append a field and return the struct for chaining.

        Returns:
        -------
        VirtualStruct
            This struct.
        """
        self.fields.append(VirtualField(name=name, value=value, tags=tags))
        return self


__all__ = ["VirtualField", "VirtualStruct"]
