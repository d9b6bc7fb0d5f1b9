"""Derive solver constraints and out-of-bounds values from message fields."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from wireforge.generator.types import FieldDefinition, FieldKind, MessageType

from .constraints import (
    Constraint,
    CustomConstraint,
    EnumConstraint,
    LengthConstraint,
    PatternConstraint,
    RangeConstraint,
)

_PATTERN_MISSES = ("!!", "", "0", "A", " ", "~~~~")


@dataclass(frozen=True)
class Violation:
    """A value just outside one declared bound of a field.

    `type_error` marks values of the wrong runtime type, which statically
    typed targets reject at compile time instead.
    """

    field: str
    label: str
    value: Any
    type_error: bool = False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _tighter_max(*values: float | None) -> Any:
    present = [v for v in values if v is not None]
    return min(present) if present else None


def _tighter_min(*values: float | None) -> Any:
    present = [v for v in values if v is not None]
    return max(present) if present else None


def string_bounds(fdef: FieldDefinition) -> tuple[int | None, int | None]:
    rule = fdef.validation
    return (
        rule.min_length if rule else None,
        _tighter_max(fdef.type.max_length, rule.max_length if rule else None),
    )


def number_bounds(fdef: FieldDefinition) -> tuple[float | None, float | None]:
    rule = fdef.validation
    return (
        _tighter_min(fdef.type.min, rule.min if rule else None),
        _tighter_max(fdef.type.max, rule.max if rule else None),
    )


def field_constraints(fdef: FieldDefinition) -> list[Constraint]:
    name = fdef.name
    kind = fdef.type.kind
    pattern = fdef.validation.pattern if fdef.validation else None
    out: list[Constraint] = []

    if kind == FieldKind.STRING:
        low, high = string_bounds(fdef)
        # representative examples are never empty for required strings
        if fdef.required and not low:
            low = 1
        if low is not None or high is not None:
            out.append(LengthConstraint(name, low, high))
        if pattern:
            out.append(PatternConstraint(name, pattern))
    elif kind == FieldKind.NUMBER:
        low, high = number_bounds(fdef)
        out.append(CustomConstraint(name, _is_number, "number"))
        if low is not None or high is not None:
            out.append(RangeConstraint(name, low, high))
    elif kind == FieldKind.ENUM:
        out.append(EnumConstraint(name, tuple(fdef.type.values or ())))
        if pattern:
            out.append(PatternConstraint(name, pattern))
    elif kind == FieldKind.BYTES:
        length = fdef.type.length
        if length is not None:
            out.append(LengthConstraint(name, length, length))
        else:
            out.append(LengthConstraint(name, 1 if fdef.required else 0, None))
    elif kind == FieldKind.BOOLEAN:
        out.append(CustomConstraint(name, _is_bool, "boolean"))
    return out


def extract_constraints(message: MessageType) -> list[Constraint]:
    """Constraints for every field of a message, in field order."""
    constraints: list[Constraint] = []
    for fdef in message.fields:
        constraints.extend(field_constraints(fdef))
    return constraints


def _pattern_miss(pattern: str) -> str | None:
    try:
        regex = re.compile(pattern)
    except re.error:
        return None
    for candidate in _PATTERN_MISSES:
        if regex.search(candidate) is None:
            return candidate
    return None


def boundary_violations(fdef: FieldDefinition) -> list[Violation]:
    """Values that a generated validator must reject for this field."""
    name = fdef.name
    kind = fdef.type.kind
    out: list[Violation] = []

    if kind == FieldKind.STRING:
        low, high = string_bounds(fdef)
        if high is not None:
            out.append(Violation(name, "too long", "a" * (high + 1)))
        if low:
            out.append(Violation(name, "too short", "a" * (low - 1)))
        out.append(Violation(name, "wrong type", 42, type_error=True))
    elif kind == FieldKind.NUMBER:
        low, high = number_bounds(fdef)
        if low is not None:
            out.append(Violation(name, "below min", low - 1))
        if high is not None:
            out.append(Violation(name, "above max", high + 1))
        out.append(Violation(name, "wrong type", "not a number", type_error=True))
    elif kind == FieldKind.ENUM:
        values = fdef.type.values or []
        invalid = "__invalid__"
        while invalid in values:
            invalid += "_"
        out.append(Violation(name, "unknown value", invalid))
    elif kind == FieldKind.BYTES:
        if fdef.type.length is not None:
            out.append(Violation(name, "wrong length", "a" * (fdef.type.length + 1)))
    elif kind == FieldKind.BOOLEAN:
        out.append(Violation(name, "wrong type", "yes", type_error=True))

    pattern = fdef.validation.pattern if fdef.validation else None
    if pattern and kind == FieldKind.STRING:
        miss = _pattern_miss(pattern)
        if miss is not None:
            out.append(Violation(name, "pattern mismatch", miss))
    return out
