"""Static detection of contradictory constraints."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from dataclasses import dataclass
from itertools import combinations

from .constraints import (
    Constraint,
    EnumConstraint,
    LengthConstraint,
    PatternConstraint,
    RangeConstraint,
    compile_pattern,
    constraint_kind,
)


@dataclass(frozen=True)
class Conflict:
    reason: str
    constraints: tuple[Constraint, ...]

    @property
    def field(self) -> str:
        return self.constraints[0].field


class ConstraintConflictError(ValueError):
    """Raised when a constraint set can never be satisfied."""

    def __init__(self, conflicts: list[Conflict]):
        self.conflicts = conflicts
        super().__init__(format_conflicts(conflicts))


def _bounds(c: RangeConstraint | LengthConstraint) -> tuple[float, float]:
    low = c.min if c.min is not None else (0 if isinstance(c, LengthConstraint) else -math.inf)
    high = c.max if c.max is not None else math.inf
    return low, high


def _disjoint(a: RangeConstraint | LengthConstraint, b: RangeConstraint | LengthConstraint) -> bool:
    min1, max1 = _bounds(a)
    min2, max2 = _bounds(b)
    return max1 < min2 or max2 < min1


def _pattern_matches(pattern: str, value: str) -> bool:
    return compile_pattern(pattern).search(value) is not None


def _single(c: Constraint) -> Conflict | None:
    if isinstance(c, (RangeConstraint, LengthConstraint)) and c.min is not None and c.max is not None:
        if c.min > c.max:
            return Conflict(
                f"{constraint_kind(c)} constraint on field '{c.field}' has min {c.min} > max {c.max}",
                (c,),
            )
    if isinstance(c, LengthConstraint) and c.max is not None and c.max < 0:
        return Conflict(f"length constraint on field '{c.field}' has a negative max", (c,))
    if isinstance(c, PatternConstraint):
        try:
            compile_pattern(c.pattern)
        except re.error as exc:
            return Conflict(f"pattern on field '{c.field}' is not a valid regular expression: {exc}", (c,))
    if isinstance(c, EnumConstraint) and not c.values:
        return Conflict(f"enum constraint on field '{c.field}' allows no values", (c,))
    return None


def _pair(a: Constraint, b: Constraint) -> str | None:
    if a.field != b.field:
        return None
    if isinstance(a, RangeConstraint) and isinstance(b, RangeConstraint) and _disjoint(a, b):
        return f"ranges on field '{a.field}' do not overlap: {_describe(a)} vs {_describe(b)}"
    if isinstance(a, LengthConstraint) and isinstance(b, LengthConstraint) and _disjoint(a, b):
        return f"lengths on field '{a.field}' do not overlap: {_describe(a)} vs {_describe(b)}"

    if isinstance(b, EnumConstraint) and not isinstance(a, EnumConstraint):
        a, b = b, a
    if isinstance(a, EnumConstraint):
        if isinstance(b, PatternConstraint):
            try:
                if not any(_pattern_matches(b.pattern, v) for v in a.values):
                    return f"no enum value of field '{a.field}' matches pattern {b.pattern!r}"
            except re.error:
                return None
        if isinstance(b, LengthConstraint):
            low, high = _bounds(b)
            if not any(low <= len(v) <= high for v in a.values):
                return f"no enum value of field '{a.field}' has a length in {_describe(b)}"
        if isinstance(b, EnumConstraint) and not set(a.values).intersection(b.values):
            return f"enum constraints on field '{a.field}' share no value"
    return None


def _describe(c: RangeConstraint | LengthConstraint) -> str:
    low = "-inf" if c.min is None and isinstance(c, RangeConstraint) else (c.min if c.min is not None else 0)
    high = "inf" if c.max is None else c.max
    return f"[{low}, {high}]"


def detect_conflicts(constraints: Iterable[Constraint]) -> list[Conflict]:
    """Report structural contradictions in a constraint set."""
    items = list(constraints)
    conflicts: list[Conflict] = []
    for c in items:
        single = _single(c)
        if single is not None:
            conflicts.append(single)
    for a, b in combinations(items, 2):
        reason = _pair(a, b)
        if reason is not None:
            conflicts.append(Conflict(reason, (a, b)))
    return conflicts


def format_conflicts(conflicts: Iterable[Conflict]) -> str:
    lines = []
    for index, conflict in enumerate(conflicts, start=1):
        involved = " and ".join(f"{constraint_kind(c)} on {c.field}" for c in conflict.constraints)
        lines.append(f"{index}. {involved}\n   Reason: {conflict.reason}")
    return "\n".join(lines)
