"""Recursion tracking for named types under expansion."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from schema_reflect.schema import Schema
from schema_reflect.type_info import TypeIdentity

logger = logging.getLogger(__name__)


@dataclass
class CycleGuard:
    """Active expansion set with a stable slot per type identity.

    A slot holds the schema being built for its identity. Re-entering an
    active identity marks it cyclic so the finished schema is always stored as
    a shared definition.
    """

    _active: dict[TypeIdentity, Schema] = field(default_factory=dict)
    _cyclic: set[TypeIdentity] = field(default_factory=set)

    @contextmanager
    def expanding(self, identity: TypeIdentity, schema: Schema) -> Iterator[Schema]:
        """Mark ``identity`` active for the duration of the block.

        Yields:
        ------
        Schema
            The slot schema.
        """
        self._active[identity] = schema
        try:
            yield schema
        finally:
            self._active.pop(identity, None)

    def is_active(self, identity: TypeIdentity) -> bool:
        """Return whether ``identity`` is being expanded."""
        return identity in self._active

    def enter_cycle(self, identity: TypeIdentity) -> None:
        """Record a re-entry into an active identity."""
        if identity not in self._cyclic:
            logger.debug("Recursive reference to %s", identity)
        self._cyclic.add(identity)

    def is_cyclic(self, identity: TypeIdentity) -> bool:
        """Return whether ``identity`` was re-entered during its expansion."""
        return identity in self._cyclic

    def slot(self, identity: TypeIdentity) -> Schema | None:
        """Return the in-progress schema of an active identity."""
        return self._active.get(identity)


__all__ = ["CycleGuard"]
