"""Shared msgspec policy and helpers."""

from __future__ import annotations

import re
from pathlib import PurePath
from typing import Literal

import msgspec

from schema_reflect.schema import Schema


class StructBaseStrict(
    msgspec.Struct,
    frozen=True,
    kw_only=True,
    omit_defaults=True,
    repr_omit_defaults=True,
    forbid_unknown_fields=True,
):
    """Base struct for strict contracts."""


_DEFAULT_ORDER: Literal["deterministic"] = "deterministic"

_VALIDATION_RE = re.compile(r"^(?P<summary>.*?)(?:\s+-\s+at\s+`(?P<path>[^`]+)`)?$")


def _json_enc_hook(obj: object) -> object:
    if isinstance(obj, PurePath):
        return str(obj)
    raise TypeError


JSON_ENCODER = msgspec.json.Encoder(
    enc_hook=_json_enc_hook,
    order=_DEFAULT_ORDER,
    decimal_format="string",
    uuid_format="canonical",
)
_JSON_DECODER = msgspec.json.Decoder()


def _encodable(obj: object) -> object:
    if isinstance(obj, Schema):
        return obj.to_builtins()
    return obj


def validation_error_payload(exc: msgspec.ValidationError) -> dict[str, str]:
    """Normalize a msgspec ValidationError for diagnostics.

    Parameters
    ----------
    exc
        ValidationError raised by msgspec decoding/conversion.

    Returns
    -------
    dict[str, str]
        Normalized error payload containing type, summary, and optional path.
    """
    message = str(exc).strip()
    match = _VALIDATION_RE.match(message)
    payload: dict[str, str] = {"type": exc.__class__.__name__}
    if match:
        summary = (match.group("summary") or "").strip()
        if summary:
            payload["summary"] = summary
        path = match.group("path")
        if path:
            payload["path"] = path
        return payload
    payload["summary"] = message
    return payload


def dumps_json(obj: object, *, pretty: bool = False) -> bytes:
    """Serialize an object to JSON bytes.

    Mapping keys are sorted, so equal schemas encode to identical bytes.

    Parameters
    ----------
    obj
        Object to serialize.
    pretty
        Whether to format with indentation.

    Returns
    -------
    bytes
        JSON payload.
    """
    raw = JSON_ENCODER.encode(_encodable(obj))
    if not pretty:
        return raw
    return msgspec.json.format(raw, indent=2)


def loads_json(buf: bytes | str) -> object:
    """Deserialize JSON into builtins.

    Parameters
    ----------
    buf
        JSON payload.

    Returns
    -------
    object
        Decoded value.
    """
    return _JSON_DECODER.decode(buf)


def loads_schema(buf: bytes | str) -> Schema:
    """Deserialize a JSON Schema document.

    Parameters
    ----------
    buf
        JSON payload holding an object.

    Returns
    -------
    Schema
        Decoded schema node.
    """
    return Schema.from_builtins(_JSON_DECODER.decode(buf))  # type: ignore[arg-type]


__all__ = [
    "JSON_ENCODER",
    "StructBaseStrict",
    "dumps_json",
    "loads_json",
    "loads_schema",
    "validation_error_payload",
]
