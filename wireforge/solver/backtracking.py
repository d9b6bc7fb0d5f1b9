"""Backtracking constraint solver.

Search is depth-first over the fields in the given order. Each field draws
from a small candidate pool derived from its constraints, so the solver is
deliberately incomplete outside those pools. Pools are pruned by each
field's own constraints before the search starts.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .conflicts import Conflict, ConstraintConflictError, detect_conflicts
from .constraints import (
    Constraint,
    CustomConstraint,
    EnumConstraint,
    LengthConstraint,
    PatternConstraint,
    RangeConstraint,
    all_constraints_satisfied,
    get_field_constraints,
)
from .propagation import Domains, propagate_constraints

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 1000
DEFAULT_MAX_CANDIDATES = 100

PATTERN_POOL: tuple[str, ...] = ("test", "value", "abc123", "example")
DEFAULT_POOL: tuple[Any, ...] = ("", "test", "value", 0, 1, 100, True, False)


class FailureReason(StrEnum):
    CONFLICT = "conflict"
    TIMEOUT = "timeout"
    EXHAUSTED = "exhausted"


class SolverError(RuntimeError):
    """Base class for solver failures."""


class SolverTimeoutError(SolverError):
    """The deadline passed before a solution was found."""


class SolverExhaustedError(SolverError):
    """No combination of generated candidates satisfies the constraints."""


@dataclass(frozen=True)
class SolverOptions:
    timeout_ms: float = DEFAULT_TIMEOUT_MS
    max_candidates: int = DEFAULT_MAX_CANDIDATES
    clock: Callable[[], float] = time.monotonic


@dataclass(frozen=True)
class SolverResult:
    success: bool
    solution: dict[str, Any] | None = None
    failure: FailureReason | None = None
    reason: str | None = None
    conflicts: list[Conflict] = field(default_factory=list)

    def raise_for_failure(self) -> dict[str, Any]:
        """Return the solution, or raise the error matching the failure reason."""
        if self.success and self.solution is not None:
            return self.solution
        if self.failure == FailureReason.CONFLICT:
            raise ConstraintConflictError(self.conflicts)
        if self.failure == FailureReason.TIMEOUT:
            raise SolverTimeoutError(self.reason or "Solver timeout")
        raise SolverExhaustedError(self.reason or "No solution found")


def _range_candidates(c: RangeConstraint) -> list[Any]:
    low = c.min if c.min is not None else 0
    high = c.max if c.max is not None else 100
    return [low, low + 1, math.floor((low + high) / 2), high - 1, high]


def _length_candidates(c: LengthConstraint) -> list[str]:
    low = c.min if c.min is not None else 0
    high = c.max if c.max is not None else 10
    return ["a" * n for n in range(low, min(high, low + 5) + 1)]


def generate_candidates(
    field_name: str, constraints: Iterable[Constraint], max_candidates: int = DEFAULT_MAX_CANDIDATES
) -> list[Any]:
    """Build the candidate pool of one field from its constraints."""
    own = get_field_constraints(field_name, constraints)
    if not own:
        return list(DEFAULT_POOL)[:max_candidates]

    candidates: list[Any] = []
    for c in own:
        if isinstance(c, EnumConstraint):
            candidates.extend(c.values)
        elif isinstance(c, RangeConstraint):
            candidates.extend(_range_candidates(c))
        elif isinstance(c, LengthConstraint):
            candidates.extend(_length_candidates(c))
        elif isinstance(c, PatternConstraint):
            candidates.extend(PATTERN_POOL)
        elif isinstance(c, CustomConstraint):
            candidates.extend(DEFAULT_POOL)

    unique: list[Any] = []
    seen: set[tuple[type, Any]] = set()
    for value in candidates:
        # True == 1 in Python, so the type is part of the key
        key = (type(value), value)
        if key not in seen:
            seen.add(key)
            unique.append(value)
    return unique[:max_candidates]


def initialize_domains(
    fields: Sequence[str], constraints: Iterable[Constraint], max_candidates: int = DEFAULT_MAX_CANDIDATES
) -> Domains:
    """Candidate pool of every field, before propagation."""
    items = list(constraints)
    return {name: generate_candidates(name, items, max_candidates) for name in fields}


@dataclass
class _Frame:
    index: int
    candidates: Iterator[Any]
    assignment: dict[str, Any]


_EXHAUSTED = object()


def _search(
    fields: Sequence[str], constraints: list[Constraint], options: SolverOptions, limit: int
) -> tuple[list[dict[str, Any]], bool]:
    """Collect up to `limit` solutions. Returns them and whether the deadline passed."""
    if limit <= 0:
        return [], False
    if not fields:
        return [{}], False

    deadline = options.clock() + options.timeout_ms / 1000
    propagated = propagate_constraints(initialize_domains(fields, constraints, options.max_candidates), constraints)
    if propagated.inconsistent:
        logger.debug("No candidate for %s satisfies its constraints", propagated.empty_field)
        return [], False
    pools = propagated.domains

    def candidates(index: int) -> Iterator[Any]:
        return iter(pools[fields[index]])

    solutions: list[dict[str, Any]] = []
    stack = [_Frame(0, candidates(0), {})]
    while stack:
        if options.clock() > deadline:
            return solutions, True

        frame = stack[-1]
        value = next(frame.candidates, _EXHAUSTED)
        if value is _EXHAUSTED:
            stack.pop()
            continue

        # Each frame owns its assignment; extending copies it
        assignment = {**frame.assignment, fields[frame.index]: value}
        if not all_constraints_satisfied(assignment, constraints):
            continue

        if frame.index + 1 == len(fields):
            solutions.append(assignment)
            if len(solutions) >= limit:
                return solutions, False
            continue

        stack.append(_Frame(frame.index + 1, candidates(frame.index + 1), assignment))

    return solutions, False


def solve_constraints(
    fields: Sequence[str], constraints: Iterable[Constraint], options: SolverOptions | None = None
) -> SolverResult:
    """Find one assignment of `fields` satisfying every constraint."""
    options = options or SolverOptions()
    items = list(constraints)

    conflicts = detect_conflicts(items)
    if conflicts:
        reasons = ", ".join(c.reason for c in conflicts)
        return SolverResult(
            success=False,
            failure=FailureReason.CONFLICT,
            reason=f"Conflicting constraints detected: {reasons}",
            conflicts=conflicts,
        )

    solutions, timed_out = _search(fields, items, options, 1)
    if solutions:
        return SolverResult(success=True, solution=solutions[0])
    if timed_out:
        logger.warning("Solver timed out after %sms on fields %s", options.timeout_ms, ", ".join(fields))
        return SolverResult(success=False, failure=FailureReason.TIMEOUT, reason="Solver timeout")
    return SolverResult(success=False, failure=FailureReason.EXHAUSTED, reason="No solution found")


def solve_field(field_name: str, constraints: Iterable[Constraint], options: SolverOptions | None = None) -> Any:
    """Return one value for a single field, or None when there is none."""
    result = solve_constraints([field_name], constraints, options)
    if result.success and result.solution is not None:
        return result.solution[field_name]
    return None


def find_all_solutions(
    fields: Sequence[str],
    constraints: Iterable[Constraint],
    max_solutions: int = 10,
    options: SolverOptions | None = None,
) -> list[dict[str, Any]]:
    """Collect up to `max_solutions` assignments under the same deadline."""
    options = options or SolverOptions()
    items = list(constraints)
    if detect_conflicts(items):
        return []
    solutions, timed_out = _search(fields, items, options, max_solutions)
    if timed_out:
        logger.debug("Solution search stopped at the deadline with %d solutions", len(solutions))
    return solutions
