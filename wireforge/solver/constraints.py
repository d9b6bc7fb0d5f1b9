"""Field constraints used to synthesise test values."""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any


@dataclass(frozen=True)
class LengthConstraint:
    field: str
    min: int | None = None
    max: int | None = None


@dataclass(frozen=True)
class RangeConstraint:
    field: str
    min: float | None = None
    max: float | None = None


@dataclass(frozen=True)
class PatternConstraint:
    field: str
    pattern: str


@dataclass(frozen=True)
class EnumConstraint:
    field: str
    values: tuple[str, ...]


@dataclass(frozen=True)
class CustomConstraint:
    field: str
    predicate: Callable[[Any], bool] = dataclasses.field(compare=False)
    description: str = "custom predicate"


Constraint = LengthConstraint | RangeConstraint | PatternConstraint | EnumConstraint | CustomConstraint


@dataclass(frozen=True)
class ConstraintCheck:
    valid: bool
    errors: list[str] = dataclasses.field(default_factory=list)


def constraint_kind(constraint: Constraint) -> str:
    return {
        LengthConstraint: "length",
        RangeConstraint: "range",
        PatternConstraint: "pattern",
        EnumConstraint: "enum",
        CustomConstraint: "custom",
    }[type(constraint)]


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def satisfies_constraint(value: Any, constraint: Constraint) -> bool:
    """Check one value against one constraint. Type mismatches never satisfy."""
    if isinstance(constraint, LengthConstraint):
        if not isinstance(value, (str, bytes, list, tuple)):
            return False
        if constraint.min is not None and len(value) < constraint.min:
            return False
        return constraint.max is None or len(value) <= constraint.max

    if isinstance(constraint, RangeConstraint):
        if not _is_number(value):
            return False
        if constraint.min is not None and value < constraint.min:
            return False
        return constraint.max is None or value <= constraint.max

    if isinstance(constraint, PatternConstraint):
        if not isinstance(value, str):
            return False
        try:
            return compile_pattern(constraint.pattern).search(value) is not None
        except re.error:
            return False

    if isinstance(constraint, EnumConstraint):
        return isinstance(value, str) and value in constraint.values

    try:
        return bool(constraint.predicate(value))
    except (TypeError, ValueError, AttributeError):
        return False


def validate_constraints(value: Any, constraints: Iterable[Constraint]) -> ConstraintCheck:
    errors = [
        f"Value does not satisfy {constraint_kind(c)} constraint for field {c.field}"
        for c in constraints
        if not satisfies_constraint(value, c)
    ]
    return ConstraintCheck(valid=not errors, errors=errors)


def get_field_constraints(field_name: str, constraints: Iterable[Constraint]) -> list[Constraint]:
    return [c for c in constraints if c.field == field_name]


def all_constraints_satisfied(record: Mapping[str, Any], constraints: Iterable[Constraint]) -> bool:
    """Every constraint on a field present in `record` must hold; absent fields are skipped."""
    return all(satisfies_constraint(record[c.field], c) for c in constraints if c.field in record)
