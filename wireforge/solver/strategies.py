"""Hypothesis strategies drawing values that satisfy field constraints.

The backtracking solver picks one representative value; these strategies
explore the whole constrained space for property tests. Boundary values
(range ends, length limits) are mixed in alongside the regular draws.
"""

from __future__ import annotations

import math
import string
from collections.abc import Iterable, Sequence
from typing import Any

from hypothesis import strategies as st

from wireforge.generator.types import FieldKind, MessageType

from .backtracking import DEFAULT_POOL
from .conflicts import ConstraintConflictError, detect_conflicts
from .constraints import (
    Constraint,
    CustomConstraint,
    EnumConstraint,
    LengthConstraint,
    PatternConstraint,
    RangeConstraint,
    all_constraints_satisfied,
    get_field_constraints,
    satisfies_constraint,
)
from .extract import extract_constraints

# characters that never collide with delimiters or terminators on the wire
WIRE_ALPHABET = string.ascii_letters + string.digits

DEFAULT_MAX_SIZE = 20


def _first(constraints: Iterable[Constraint], kind: type) -> Any:
    return next((c for c in constraints if isinstance(c, kind)), None)


def _integral(value: float | None) -> bool:
    return value is None or float(value).is_integer()


def _range_strategy(c: RangeConstraint) -> st.SearchStrategy[Any]:
    if _integral(c.min) and _integral(c.max):
        return st.integers(
            min_value=None if c.min is None else math.ceil(c.min),
            max_value=None if c.max is None else math.floor(c.max),
        )
    return st.floats(min_value=c.min, max_value=c.max, allow_nan=False, allow_infinity=False)


def _base_strategy(own: list[Constraint], alphabet: str) -> st.SearchStrategy[Any]:
    enum = _first(own, EnumConstraint)
    if enum is not None:
        return st.sampled_from(enum.values)
    pattern = _first(own, PatternConstraint)
    if pattern is not None:
        return st.from_regex(pattern.pattern, fullmatch=True)
    length = _first(own, LengthConstraint)
    if length is not None:
        low = length.min or 0
        high = length.max if length.max is not None else low + DEFAULT_MAX_SIZE
        return st.text(alphabet=alphabet, min_size=low, max_size=high)
    ranged = _first(own, RangeConstraint)
    if ranged is not None:
        return _range_strategy(ranged)
    custom = _first(own, CustomConstraint)
    if custom is not None and custom.description == "boolean":
        return st.booleans()
    if custom is not None and custom.description == "number":
        return st.integers()
    return st.sampled_from(DEFAULT_POOL)


def field_strategy(
    field_name: str, constraints: Iterable[Constraint], alphabet: str = WIRE_ALPHABET
) -> st.SearchStrategy[Any]:
    """Values for one field that satisfy every constraint on it."""
    own = get_field_constraints(field_name, constraints)
    return _base_strategy(own, alphabet).filter(lambda v: all(satisfies_constraint(v, c) for c in own))


def boundary_values(field_name: str, constraints: Iterable[Constraint]) -> list[Any]:
    """Range ends and length limits of a field that satisfy all its constraints."""
    own = get_field_constraints(field_name, constraints)
    values: list[Any] = []
    for c in own:
        if isinstance(c, RangeConstraint):
            low = c.min if c.min is not None else 0
            high = c.max if c.max is not None else 100
            values.extend([low, low + 1, math.floor((low + high) / 2), high - 1, high])
        elif isinstance(c, LengthConstraint):
            low = c.min or 0
            high = c.max if c.max is not None else DEFAULT_MAX_SIZE
            values.extend("a" * n for n in (low, low + 1, high - 1, high) if n >= 0)

    unique: list[Any] = []
    for value in values:
        if value not in unique and all(satisfies_constraint(value, c) for c in own):
            unique.append(value)
    return unique


def record_strategy(
    fields: Sequence[str],
    constraints: Iterable[Constraint],
    *,
    include_boundaries: bool = True,
    alphabet: str = WIRE_ALPHABET,
) -> st.SearchStrategy[dict[str, Any]]:
    """Records over `fields` satisfying every constraint; raises on conflicting constraints."""
    items = list(constraints)
    conflicts = detect_conflicts(items)
    if conflicts:
        raise ConstraintConflictError(conflicts)

    per_field: dict[str, st.SearchStrategy[Any]] = {}
    for name in fields:
        regular = field_strategy(name, items, alphabet)
        edges = boundary_values(name, items) if include_boundaries else []
        per_field[name] = st.one_of(st.sampled_from(edges), regular) if edges else regular
    return st.fixed_dictionaries(per_field).filter(lambda record: all_constraints_satisfied(record, items))


def message_strategy(message: MessageType, alphabet: str = WIRE_ALPHABET) -> st.SearchStrategy[dict[str, Any]]:
    """Field values for a message keyed by protocol field name, bytes fields as bytes."""
    names = [f.name for f in message.fields]
    binary = {f.name for f in message.fields if f.type.kind == FieldKind.BYTES}

    def encode(record: dict[str, Any]) -> dict[str, Any]:
        return {k: v.encode("utf-8") if k in binary and isinstance(v, str) else v for k, v in record.items()}

    return record_strategy(names, extract_constraints(message), alphabet=alphabet).map(encode)
