"""Declarative reflection settings from pyproject.toml and the environment."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

import msgspec

from schema_reflect import context
from schema_reflect.context import ReflectOption
from schema_reflect.definitions import DEFAULT_DEFINITIONS_PREFIX
from schema_reflect.env_utils import ENV_PREFIX, env_flag, env_list, env_text
from schema_reflect.serde_msgspec import StructBaseStrict, validation_error_payload

logger = logging.getLogger(__name__)

TOOL_SECTION = "schema_reflect"

_TOGGLES: tuple[str, ...] = (
    "inline_refs",
    "root_ref",
    "root_nullable",
    "envelop_nullability",
    "skip_embedded_maps_slices",
    "skip_unsupported_properties",
    "skip_non_constraints",
    "unnamed_field_with_tag",
)


class ReflectConfigSpec(StructBaseStrict, frozen=True):
    """Reflection settings shared by every call of a reflector."""

    definitions_prefix: str = DEFAULT_DEFINITIONS_PREFIX
    property_name_tag: str = "json"
    additional_tags: tuple[str, ...] = ()
    strip_prefixes: tuple[str, ...] = ()
    process_without_tags: bool = True
    inline_refs: bool = False
    root_ref: bool = False
    root_nullable: bool = False
    envelop_nullability: bool = False
    skip_embedded_maps_slices: bool = False
    skip_unsupported_properties: bool = False
    skip_non_constraints: bool = False
    unnamed_field_with_tag: bool = False

    def options(self) -> list[ReflectOption]:
        """Return reflect options equivalent to these settings.

        Returns:
        -------
        list[ReflectOption]
            Options in a stable order.
        """
        options: list[ReflectOption] = [
            context.definitions_prefix(self.definitions_prefix),
            context.property_name_tag(self.property_name_tag, *self.additional_tags),
        ]
        if self.strip_prefixes:
            options.append(context.strip_definition_name_prefix(*self.strip_prefixes))
        options.append(
            context.process_without_tags if self.process_without_tags else context.require_name_tags
        )
        options.extend(getattr(context, name) for name in _TOGGLES if getattr(self, name))
        return options


def load_reflect_config(path: Path | None = None) -> ReflectConfigSpec:
    """Load settings from ``[tool.schema_reflect]`` and ``SCHEMA_REFLECT_*`` variables.

    Parameters
    ----------
    path
        Explicit pyproject.toml path, or a directory holding one. When omitted,
        the current directory and its parents are searched.

    Returns:
    -------
    ReflectConfigSpec
        Settings with environment overrides applied.

    Raises:
        ValueError: If the configuration does not match the settings schema.
    """
    pyproject = _resolve_pyproject(path)
    payload: dict[str, object] = {}
    location = "environment"
    if pyproject is not None:
        section = _extract_tool_config(_read_toml(pyproject))
        if section is not None:
            payload.update(section)
            location = f"{pyproject}:tool.{TOOL_SECTION}"
    overrides = _env_overrides()
    if overrides:
        logger.debug("Applying environment overrides: %s", sorted(overrides))
        payload.update(overrides)
    try:
        return msgspec.convert(payload, type=ReflectConfigSpec, strict=True)
    except msgspec.ValidationError as exc:
        details = validation_error_payload(exc)
        msg = f"Config validation failed for {location}: {details}"
        raise ValueError(msg) from exc


def _resolve_pyproject(path: Path | None) -> Path | None:
    if path is None:
        return _find_in_parents("pyproject.toml")
    if path.is_dir():
        path /= "pyproject.toml"
    return path if path.exists() else None


def _find_in_parents(filename: str) -> Path | None:
    path = Path.cwd()
    while True:
        candidate = path / filename
        if candidate.exists():
            return candidate
        if path.parent == path:
            return None
        path = path.parent


def _read_toml(path: Path) -> dict[str, object]:
    payload = msgspec.toml.decode(path.read_text(encoding="utf-8"), type=object, strict=True)
    if not isinstance(payload, dict):
        msg = f"Expected TOML mapping in {path}, got {type(payload).__name__}."
        raise TypeError(msg)
    return payload


def _extract_tool_config(payload: Mapping[str, object]) -> Mapping[str, object] | None:
    tool = payload.get("tool")
    if not isinstance(tool, Mapping):
        return None
    section = tool.get(TOOL_SECTION)
    if not isinstance(section, Mapping):
        return None
    return section


def _env_overrides() -> dict[str, object]:
    overrides: dict[str, object] = {}
    for key in ("definitions_prefix", "property_name_tag"):
        value = env_text(key)
        if value is not None:
            overrides[key] = value
    for key in ("additional_tags", "strip_prefixes"):
        items = env_list(key)
        if items:
            overrides[key] = items
    for key in ("process_without_tags", *_TOGGLES):
        flag = env_flag(key)
        if flag is not None:
            overrides[key] = flag
    return overrides


__all__ = ["ENV_PREFIX", "TOOL_SECTION", "ReflectConfigSpec", "load_reflect_config"]
