"""Definition naming and the per-invocation definition registry."""

from __future__ import annotations

import logging
import re
import typing
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field

from schema_reflect.schema import Ref, Schema, unescape_ref_name
from schema_reflect.type_info import TypeIdentity, is_named, type_name

logger = logging.getLogger(__name__)

type DefNameHook = Callable[[object, str], str]

DEFAULT_DEFINITIONS_PREFIX = "#/definitions/"

_WORD_SPLIT_RE = re.compile(r"[^0-9A-Za-z\[\],]+")
_LOCALS_RE = re.compile(r"<locals>\.")


def camel_case(text: str) -> str:
    """Join separator-delimited words, capitalizing each.

    Returns:
    -------
    str
        ``snake_case.words`` as ``SnakeCaseWords``.
    """
    return "".join(_title(word) for word in _WORD_SPLIT_RE.split(text) if word)


def _title(word: str) -> str:
    return word[:1].upper() + word[1:]


def default_definition_name(tp: object) -> str | None:
    """Return the default definition name of a named type.

    The name joins the last module component and the class name in camel
    case. Types defined in ``__main__`` use the class name alone, and
    parametrized generics keep their arguments, as in ``ModelsPage[Item]``.

    Returns:
    -------
    str | None
        Definition name, or ``None`` for anonymous types.
    """
    if not is_named(tp):
        return None
    origin = typing.get_origin(tp)
    cls = typing.cast("type", origin if origin is not None else tp)
    base = _LOCALS_RE.sub("", type_name(tp))
    head, bracket, tail = base.partition("[")
    base = camel_case(head) + bracket + tail
    if cls.__module__ == "__main__":
        return base
    return camel_case(cls.__module__.rsplit(".", 1)[-1]) + base


@dataclass
class DefinitionRegistry:
    """Definition names and completed schemas of one reflection call.

    Names are allocated once per type identity. A name already held by a
    different identity gets a ``Type2``, ``Type3``, ... suffix. Names of
    identities that end up inlined are released for later types.
    """

    prefix: str = DEFAULT_DEFINITIONS_PREFIX
    _names: dict[str, TypeIdentity] = field(default_factory=dict)
    _identities: dict[TypeIdentity, str] = field(default_factory=dict)
    _definitions: dict[TypeIdentity, Schema] = field(default_factory=dict)

    def allocate_name(
        self,
        identity: TypeIdentity,
        default_name: str,
        *,
        tp: object = None,
        hook: DefNameHook | None = None,
    ) -> str:
        """Return the definition name of ``identity``, allocating it on first use.

        Parameters
        ----------
        identity
            Stable type identity.
        default_name
            Name derived from the type.
        tp
            Type passed to the name hook.
        hook
            Optional callable remapping the default name.

        Returns:
        -------
        str
            Allocated definition name.
        """
        existing = self._identities.get(identity)
        if existing is not None:
            return existing
        attempt = 1
        while True:
            name = default_name
            if hook is not None:
                name = hook(tp, name)
            if attempt > 1:
                name = f"{name}Type{attempt}"
            owner = self._names.get(name)
            if owner is None or owner == identity:
                break
            logger.debug("Definition name %s is taken by %s, retrying for %s", name, owner, identity)
            attempt += 1
        self._names[name] = identity
        self._identities[identity] = name
        return name

    def ref(self, identity: TypeIdentity) -> Ref:
        """Return the reference to ``identity``'s definition.

        Returns:
        -------
        Ref
            Reference under the configured prefix.

        Raises:
            KeyError: If no name was allocated for ``identity``.
        """
        return Ref(path=self.prefix, name=self._identities[identity])

    def register(self, identity: TypeIdentity, schema: Schema) -> Ref:
        """Store the completed definition of ``identity``.

        Returns:
        -------
        Ref
            Reference to the stored definition.
        """
        self._definitions[identity] = schema
        ref = self.ref(identity)
        logger.debug("Registered definition %s for %s", ref.name, identity)
        return ref

    def release(self, identity: TypeIdentity) -> None:
        """Free the name of ``identity`` when no definition was stored for it."""
        if identity in self._definitions:
            return
        name = self._identities.pop(identity, None)
        if name is not None and self._names.get(name) == identity:
            del self._names[name]

    def get(self, identity: TypeIdentity) -> Schema | None:
        """Return the completed definition of ``identity``."""
        return self._definitions.get(identity)

    def resolve(self, pointer: str) -> Schema | None:
        """Return the completed definition a ``$ref`` string points to."""
        identity = self.identity_for_pointer(pointer)
        if identity is None:
            return None
        return self._definitions.get(identity)

    def identity_for_pointer(self, pointer: str) -> TypeIdentity | None:
        """Return the identity a ``$ref`` string points to."""
        if not pointer.startswith(self.prefix):
            return None
        return self._names.get(unescape_ref_name(pointer[len(self.prefix) :]))

    def __contains__(self, identity: TypeIdentity) -> bool:
        return identity in self._definitions

    def __iter__(self) -> Iterator[TypeIdentity]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def by_name(self) -> Mapping[str, Schema]:
        """Return completed definitions keyed by name, sorted by name.

        Returns:
        -------
        Mapping[str, Schema]
            Definition name to schema.
        """
        named = {self._identities[identity]: schema for identity, schema in self._definitions.items()}
        return {name: named[name] for name in sorted(named)}


__all__ = [
    "DEFAULT_DEFINITIONS_PREFIX",
    "DefNameHook",
    "DefinitionRegistry",
    "camel_case",
    "default_definition_name",
]
