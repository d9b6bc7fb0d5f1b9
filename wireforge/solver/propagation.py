"""Domain reduction ahead of the backtracking search.

Every constraint names a single field, so propagation is node consistency:
each field's candidate domain is filtered by that field's constraints,
and one pass reaches the fixed point. An emptied domain proves the
constraint set has no solution among the generated candidates before any
search happens.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .constraints import Constraint, satisfies_constraint

Domains = dict[str, list[Any]]


@dataclass(frozen=True)
class PropagationResult:
    domains: Domains
    changed: bool
    inconsistent: bool
    # first field whose domain emptied
    empty_field: str | None = None


def reduce_domain(domain: Iterable[Any], constraint: Constraint) -> list[Any]:
    return [value for value in domain if satisfies_constraint(value, constraint)]


def propagate_constraints(domains: Mapping[str, list[Any]], constraints: Iterable[Constraint]) -> PropagationResult:
    """Drop every candidate that violates a constraint on its own field."""
    reduced: Domains = {name: list(values) for name, values in domains.items()}
    changed = False
    for constraint in constraints:
        domain = reduced.get(constraint.field)
        if domain is None:
            continue
        kept = reduce_domain(domain, constraint)
        if len(kept) < len(domain):
            reduced[constraint.field] = kept
            changed = True
        if not kept:
            return PropagationResult(reduced, True, True, constraint.field)
    return PropagationResult(reduced, changed, False)


def domain_stats(domains: Mapping[str, list[Any]]) -> dict[str, float]:
    sizes = [len(values) for values in domains.values()]
    return {
        "fields": len(sizes),
        "values": sum(sizes),
        "average": sum(sizes) / len(sizes) if sizes else 0,
        "smallest": min(sizes, default=0),
        "largest": max(sizes, default=0),
    }
