"""Structural checks for raw (decoded JSON) and typed protocol nodes."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .types import (
    ConnectionSpec,
    Direction,
    EnumValue,
    FieldDefinition,
    FieldKind,
    FieldType,
    MessageType,
    ProtocolMetadata,
    ProtocolSpec,
    Transport,
    TypeDefinition,
)

_DIRECTIONS = frozenset(d.value for d in Direction)
_TRANSPORTS = frozenset(t.value for t in Transport)
_KINDS = frozenset(k.value for k in FieldKind)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _optional(value: Any, check) -> bool:
    return value is None or check(value)


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def is_field_type(value: Any) -> bool:
    if isinstance(value, FieldType):
        return True
    if not isinstance(value, Mapping) or value.get("kind") not in _KINDS:
        return False
    kind = value["kind"]
    if kind == FieldKind.STRING:
        return _optional(value.get("maxLength"), _is_int)
    if kind == FieldKind.NUMBER:
        return _optional(value.get("min"), _is_number) and _optional(value.get("max"), _is_number)
    if kind == FieldKind.ENUM:
        return _is_str_list(value.get("values"))
    if kind == FieldKind.BYTES:
        return _optional(value.get("length"), _is_int)
    return True


def is_field_definition(value: Any) -> bool:
    if isinstance(value, FieldDefinition):
        return True
    return (
        isinstance(value, Mapping)
        and isinstance(value.get("name"), str)
        and is_field_type(value.get("type"))
        and isinstance(value.get("required", True), bool)
        and _optional(value.get("validation"), lambda v: isinstance(v, Mapping))
        and _optional(value.get("delimiter"), lambda v: isinstance(v, str))
    )


def is_message_type(value: Any) -> bool:
    if isinstance(value, MessageType):
        return True
    if not isinstance(value, Mapping):
        return False
    fields = value.get("fields", [])
    return (
        isinstance(value.get("name"), str)
        and value.get("direction") in _DIRECTIONS
        and isinstance(fields, list)
        and all(is_field_definition(f) for f in fields)
        and _optional(value.get("format"), lambda v: isinstance(v, str))
        and _optional(value.get("delimiter"), lambda v: isinstance(v, str))
        and _optional(value.get("terminator"), lambda v: isinstance(v, str))
    )


def is_protocol_metadata(value: Any) -> bool:
    if isinstance(value, ProtocolMetadata):
        return True
    return (
        isinstance(value, Mapping)
        and isinstance(value.get("name"), str)
        and _is_int(value.get("port"))
        and isinstance(value.get("description"), str)
        and _optional(value.get("rfc"), lambda v: isinstance(v, str))
        and _optional(value.get("version"), lambda v: isinstance(v, str))
    )


def is_connection_spec(value: Any) -> bool:
    if isinstance(value, ConnectionSpec):
        return True
    return (
        isinstance(value, Mapping)
        and value.get("type") in _TRANSPORTS
        and _optional(value.get("timeout"), _is_int)
        and isinstance(value.get("keepAlive", False), bool)
    )


def is_enum_value(value: Any) -> bool:
    if isinstance(value, EnumValue):
        return True
    return (
        isinstance(value, Mapping)
        and isinstance(value.get("name"), str)
        and (isinstance(value.get("value"), str) or _is_int(value.get("value")))
    )


def is_type_definition(value: Any) -> bool:
    if isinstance(value, TypeDefinition):
        return True
    if not isinstance(value, Mapping) or not isinstance(value.get("name"), str):
        return False
    if value.get("kind") == "enum":
        values = value.get("values")
        return isinstance(values, list) and all(is_enum_value(v) for v in values)
    if value.get("kind") == "struct":
        fields = value.get("fields")
        return isinstance(fields, list) and all(is_field_definition(f) for f in fields)
    return False


def is_protocol_spec(value: Any) -> bool:
    if isinstance(value, ProtocolSpec):
        return True
    if not isinstance(value, Mapping):
        return False
    messages = value.get("messageTypes")
    types = value.get("types", [])
    return (
        is_protocol_metadata(value.get("protocol"))
        and is_connection_spec(value.get("connection"))
        and isinstance(messages, list)
        and all(is_message_type(m) for m in messages)
        and isinstance(types, list)
        and all(is_type_definition(t) for t in types)
    )
