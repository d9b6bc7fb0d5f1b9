"""Tests for deriving constraints and violations from field definitions."""

from wireforge.generator.types import FieldDefinition, MessageType
from wireforge.solver.constraints import (
    CustomConstraint,
    EnumConstraint,
    LengthConstraint,
    PatternConstraint,
    RangeConstraint,
    satisfies_constraint,
)
from wireforge.solver.extract import boundary_violations, extract_constraints, field_constraints


def field(**kwargs):
    return FieldDefinition.from_dict(kwargs)


def describe_field_constraints():
    def requires_non_empty_strings(expect):
        constraints = field_constraints(field(name="user", type={"kind": "string", "maxLength": 8}))
        expect(constraints) == [LengthConstraint("user", 1, 8)]

    def allows_empty_optional_strings(expect):
        expect(field_constraints(field(name="note", type={"kind": "string"}, required=False))) == []

    def takes_the_tighter_bound(expect):
        fdef = field(
            name="code",
            type={"kind": "number", "min": 0, "max": 999},
            validation={"min": 100, "max": 599},
        )
        constraints = field_constraints(fdef)
        expect(isinstance(constraints[0], CustomConstraint)) == True
        expect(constraints[1]) == RangeConstraint("code", 100, 599)

    def combines_validation_rules(expect):
        fdef = field(
            name="path",
            type={"kind": "string", "maxLength": 255},
            validation={"minLength": 2, "maxLength": 16, "pattern": "^/"},
        )
        expect(field_constraints(fdef)) == [LengthConstraint("path", 2, 16), PatternConstraint("path", "^/")]

    def covers_enums_bytes_and_booleans(expect):
        expect(field_constraints(field(name="m", type={"kind": "enum", "values": ["A", "B"]}))) == [
            EnumConstraint("m", ("A", "B"))
        ]
        expect(field_constraints(field(name="id", type={"kind": "bytes", "length": 4}))) == [
            LengthConstraint("id", 4, 4)
        ]
        flag = field_constraints(field(name="f", type={"kind": "boolean"}))[0]
        expect(satisfies_constraint(True, flag)) == True
        expect(satisfies_constraint(1, flag)) == False


def describe_extract_constraints():
    def follows_field_order(expect):
        message = MessageType.from_dict(
            {
                "name": "Status",
                "direction": "response",
                "delimiter": " ",
                "fields": [
                    {"name": "code", "type": {"kind": "number", "min": 100, "max": 599}},
                    {"name": "reason", "type": {"kind": "string"}},
                ],
            }
        )
        expect([c.field for c in extract_constraints(message)]) == ["code", "code", "reason"]


def describe_boundary_violations():
    def steps_just_outside_string_bounds(expect):
        fdef = field(name="user", type={"kind": "string", "maxLength": 3}, validation={"minLength": 2})
        found = {v.label: v.value for v in boundary_violations(fdef)}
        expect(found["too long"]) == "aaaa"
        expect(found["too short"]) == "a"
        expect(found["wrong type"]) == 42

    def steps_just_outside_number_bounds(expect):
        fdef = field(name="code", type={"kind": "number", "min": 100, "max": 599})
        found = {v.label: v.value for v in boundary_violations(fdef)}
        expect(found["below min"]) == 99
        expect(found["above max"]) == 600

    def marks_type_errors(expect):
        fdef = field(name="f", type={"kind": "boolean"})
        expect([(v.label, v.type_error) for v in boundary_violations(fdef)]) == [("wrong type", True)]

    def picks_enum_values_outside_the_set(expect):
        fdef = field(name="m", type={"kind": "enum", "values": ["__invalid__"]})
        expect(boundary_violations(fdef)[0].value) == "__invalid___"

    def finds_strings_the_pattern_rejects(expect):
        fdef = field(name="path", type={"kind": "string"}, validation={"pattern": "^[a-z]+$"})
        miss = [v for v in boundary_violations(fdef) if v.label == "pattern mismatch"]
        expect(miss[0].value) == "!!"

    def skips_patterns_everything_matches(expect):
        fdef = field(name="any", type={"kind": "string"}, validation={"pattern": ".*"})
        expect([v.label for v in boundary_violations(fdef)]) == ["wrong type"]
