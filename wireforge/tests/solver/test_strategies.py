"""Property tests for the constraint-driven hypothesis strategies."""

import re

import pytest
from hypothesis import HealthCheck, given, settings

from wireforge.generator.types import MessageType
from wireforge.solver.conflicts import ConstraintConflictError
from wireforge.solver.constraints import (
    CustomConstraint,
    EnumConstraint,
    LengthConstraint,
    PatternConstraint,
    RangeConstraint,
    all_constraints_satisfied,
)
from wireforge.solver.extract import extract_constraints
from wireforge.solver.strategies import (
    WIRE_ALPHABET,
    boundary_values,
    field_strategy,
    message_strategy,
    record_strategy,
)

STATUS = MessageType.from_dict(
    {
        "name": "Status",
        "direction": "response",
        "delimiter": " ",
        "fields": [
            {"name": "code", "type": {"kind": "number", "min": 100, "max": 599}},
            {"name": "reason", "type": {"kind": "string", "maxLength": 16}},
            {"name": "token", "type": {"kind": "bytes", "length": 4}},
        ],
    }
)


def describe_field_strategy():
    def draws_within_the_range(expect):
        @given(field_strategy("n", [RangeConstraint("n", 10, 20)]))
        def check(value):
            expect(isinstance(value, int)) == True
            expect(10 <= value <= 20) == True

        check()

    def draws_floats_for_fractional_bounds(expect):
        @given(field_strategy("n", [RangeConstraint("n", 0.5, 1.5)]))
        def check(value):
            expect(0.5 <= value <= 1.5) == True

        check()

    def draws_enum_members(expect):
        @given(field_strategy("m", [EnumConstraint("m", ("GET", "POST"))]))
        def check(value):
            expect(value in ("GET", "POST")) == True

        check()

    def satisfies_length_and_pattern_together(expect):
        constraints = [LengthConstraint("s", 3, 5), PatternConstraint("s", "^[a-z]+$")]

        @settings(suppress_health_check=[HealthCheck.filter_too_much], deadline=None)
        @given(field_strategy("s", constraints))
        def check(value):
            expect(3 <= len(value) <= 5) == True
            expect(bool(re.fullmatch("[a-z]+", value))) == True

        check()

    def keeps_lengths_inside_the_wire_alphabet(expect):
        @given(field_strategy("s", [LengthConstraint("s", 1, 8)]))
        def check(value):
            expect(1 <= len(value) <= 8) == True
            expect(set(value) <= set(WIRE_ALPHABET)) == True

        check()

    def draws_booleans_for_boolean_fields(expect):
        flag = CustomConstraint("f", lambda v: isinstance(v, bool), "boolean")

        @given(field_strategy("f", [flag]))
        def check(value):
            expect(isinstance(value, bool)) == True

        check()


def describe_boundary_values():
    def lists_range_ends(expect):
        expect(boundary_values("n", [RangeConstraint("n", 0, 10)])) == [0, 1, 5, 9, 10]

    def lists_length_limits(expect):
        expect(boundary_values("s", [LengthConstraint("s", 2, 4)])) == ["aa", "aaa", "aaaa"]

    def drops_values_other_constraints_reject(expect):
        constraints = [RangeConstraint("n", 0, 10), RangeConstraint("n", 5, 10)]
        expect(boundary_values("n", constraints)) == [5, 9, 10, 6, 7]

    def is_empty_without_bounds(expect):
        expect(boundary_values("m", [EnumConstraint("m", ("A",))])) == []


def describe_record_strategy():
    def satisfies_every_constraint(expect):
        constraints = [
            RangeConstraint("code", 100, 599),
            LengthConstraint("reason", 1, 16),
            EnumConstraint("method", ("GET", "HEAD")),
        ]

        @given(record_strategy(["code", "reason", "method"], constraints))
        def check(record):
            expect(sorted(record)) == ["code", "method", "reason"]
            expect(all_constraints_satisfied(record, constraints)) == True

        check()

    def refuses_conflicting_constraints(expect):
        with pytest.raises(ConstraintConflictError):
            record_strategy(["n"], [RangeConstraint("n", 10, 20), RangeConstraint("n", 30, 40)])

    def can_leave_out_boundaries(expect):
        constraints = [RangeConstraint("n", 0, 1000)]

        @given(record_strategy(["n"], constraints, include_boundaries=False))
        def check(record):
            expect(0 <= record["n"] <= 1000) == True

        check()


def describe_message_strategy():
    def draws_valid_message_fields(expect):
        constraints = extract_constraints(STATUS)

        @given(message_strategy(STATUS))
        def check(record):
            expect(sorted(record)) == ["code", "reason", "token"]
            expect(100 <= record["code"] <= 599) == True
            expect(1 <= len(record["reason"]) <= 16) == True
            expect(isinstance(record["token"], bytes)) == True
            expect(len(record["token"])) == 4
            expect(all_constraints_satisfied({k: v for k, v in record.items() if k != "token"}, constraints)) == True

        check()
