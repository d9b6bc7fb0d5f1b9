"""Tests for the backtracking solver."""

import itertools

import pytest
from hypothesis import given
from hypothesis import strategies as st

from wireforge.solver.backtracking import (
    DEFAULT_POOL,
    FailureReason,
    SolverExhaustedError,
    SolverOptions,
    SolverTimeoutError,
    find_all_solutions,
    generate_candidates,
    solve_constraints,
    solve_field,
)
from wireforge.solver.conflicts import ConstraintConflictError
from wireforge.solver.constraints import (
    CustomConstraint,
    EnumConstraint,
    LengthConstraint,
    PatternConstraint,
    RangeConstraint,
    all_constraints_satisfied,
)


def describe_generate_candidates():
    def uses_the_default_pool_without_constraints(expect):
        expect(generate_candidates("x", [])) == list(DEFAULT_POOL)

    def derives_range_boundaries(expect):
        expect(generate_candidates("n", [RangeConstraint("n", 0, 10)])) == [0, 1, 5, 9, 10]

    def derives_lengths(expect):
        expect(generate_candidates("s", [LengthConstraint("s", 3, 5)])) == ["aaa", "aaaa", "aaaaa"]

    def keeps_booleans_and_integers_apart(expect):
        pool = generate_candidates("b", [CustomConstraint("b", lambda v: True), RangeConstraint("b", 0, 1)])
        expect(True in pool and 1 in pool) == True
        expect(len([v for v in pool if v is True])) == 1
        expect(len([v for v in pool if type(v) is int and v == 1])) == 1

    def caps_the_pool(expect):
        expect(len(generate_candidates("n", [RangeConstraint("n", 0, 10)], max_candidates=2))) == 2


def describe_solve_constraints():
    def combines_length_and_pattern(expect):
        constraints = [LengthConstraint("s", 3, 5), PatternConstraint("s", "^[a-z]+$")]
        result = solve_constraints(["s"], constraints)
        expect(result.success) == True
        expect(result.solution) == {"s": "aaa"}

    def solves_several_fields(expect):
        constraints = [
            EnumConstraint("method", ("GET", "POST")),
            RangeConstraint("code", 100, 599),
            LengthConstraint("path", 1, 8),
        ]
        result = solve_constraints(["method", "code", "path"], constraints)
        expect(result.solution) == {"method": "GET", "code": 100, "path": "a"}
        expect(all_constraints_satisfied(result.solution, constraints)) == True

    def backtracks_across_fields(expect):
        constraints = [
            RangeConstraint("a", 0, 10),
            RangeConstraint("b", 0, 10),
            CustomConstraint("b", lambda b: b == 9, "nine"),
        ]
        expect(solve_constraints(["a", "b"], constraints).solution) == {"a": 0, "b": 9}

    def reports_conflicts_before_searching(expect):
        result = solve_constraints(["n"], [RangeConstraint("n", 0, 10), RangeConstraint("n", 20, 30)])
        expect(result.success) == False
        expect(result.failure) == FailureReason.CONFLICT
        expect(result.reason.startswith("Conflicting constraints detected: ")) == True
        with pytest.raises(ConstraintConflictError):
            result.raise_for_failure()

    def reports_exhaustion(expect):
        result = solve_constraints(["s"], [PatternConstraint("s", "^[0-9]+$")])
        expect(result.failure) == FailureReason.EXHAUSTED
        expect(result.reason) == "No solution found"
        with pytest.raises(SolverExhaustedError):
            result.raise_for_failure()

    def reports_timeouts(expect):
        ticks = itertools.count(step=1.0)
        options = SolverOptions(timeout_ms=1, clock=lambda: next(ticks))
        result = solve_constraints(["n"], [RangeConstraint("n", 0, 10)], options)
        expect(result.failure) == FailureReason.TIMEOUT
        expect(result.reason) == "Solver timeout"
        with pytest.raises(SolverTimeoutError):
            result.raise_for_failure()

    def solves_empty_field_lists(expect):
        expect(solve_constraints([], []).raise_for_failure()) == {}


def describe_solve_field():
    def returns_one_value(expect):
        expect(solve_field("n", [RangeConstraint("n", 5, 6)])) == 5

    def returns_none_without_a_solution(expect):
        expect(solve_field("n", [RangeConstraint("n", 5, 1)])) == None


def describe_find_all_solutions():
    def enumerates_in_search_order(expect):
        solutions = find_all_solutions(["m"], [EnumConstraint("m", ("A", "B", "C"))], max_solutions=2)
        expect(solutions) == [{"m": "A"}, {"m": "B"}]

    def enumerates_combinations(expect):
        constraints = [EnumConstraint("a", ("x", "y")), EnumConstraint("b", ("1", "2"))]
        expect(find_all_solutions(["a", "b"], constraints)) == [
            {"a": "x", "b": "1"},
            {"a": "x", "b": "2"},
            {"a": "y", "b": "1"},
            {"a": "y", "b": "2"},
        ]

    def returns_nothing_for_conflicts(expect):
        expect(find_all_solutions(["n"], [RangeConstraint("n", 3, 1)])) == []


def describe_solver_properties():
    def solves_any_reachable_length_with_a_pattern(expect):
        @given(st.integers(min_value=0, max_value=20), st.integers(min_value=0, max_value=5))
        def check(low, span):
            constraints = [LengthConstraint("s", low, low + span), PatternConstraint("s", "^a*$")]
            result = solve_constraints(["s"], constraints)
            expect(result.success) == True
            expect(all_constraints_satisfied(result.solution, constraints)) == True

        check()

    def finds_a_value_in_any_integer_range(expect):
        @given(st.integers(min_value=-1000, max_value=1000), st.integers(min_value=0, max_value=1000))
        def check(low, span):
            value = solve_field("n", [RangeConstraint("n", low, low + span)])
            expect(low <= value <= low + span) == True

        check()
