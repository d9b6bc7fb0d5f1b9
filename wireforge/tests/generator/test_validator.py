"""Tests for specification validation and structural guards."""

import copy
import json
import os

import pytest

from wireforge.generator import guards
from wireforge.generator.types import Encoding, ProtocolSpec
from wireforge.generator.validator import (
    IssueKind,
    StructuralError,
    coerce_spec,
    message_encoding,
    require_valid,
    validate,
)

FILE_DIR = os.path.dirname(os.path.realpath(__file__))


def load(name):
    with open(f"{FILE_DIR}/{name}") as f:
        return json.load(f)


@pytest.fixture
def spec():
    return load("http.json")


def kinds(result):
    return [issue.kind for issue in result.errors]


def describe_guards():
    def accepts_a_complete_specification(expect, spec):
        expect(guards.is_protocol_spec(spec)) == True
        expect(guards.is_protocol_spec(ProtocolSpec.from_dict(spec))) == True

    def rejects_unknown_field_kinds(expect):
        expect(guards.is_field_type({"kind": "float"})) == False
        expect(guards.is_field_type({"kind": "number", "min": "0"})) == False
        expect(guards.is_field_type({"kind": "enum", "values": ["A", 1]})) == False

    def treats_booleans_as_non_numbers(expect):
        expect(guards.is_protocol_metadata({"name": "X", "port": True, "description": "d"})) == False

    def checks_transports(expect):
        expect(guards.is_connection_spec({"type": "TCP"})) == True
        expect(guards.is_connection_spec({"type": "SCTP"})) == False

    def checks_type_definitions(expect):
        expect(guards.is_type_definition({"name": "Color", "kind": "enum", "values": [{"name": "Red", "value": 1}]})) == True
        expect(guards.is_type_definition({"name": "Empty", "kind": "union"})) == False


def describe_message_encoding():
    def prefers_the_format_template(expect, spec):
        typed = ProtocolSpec.from_dict(spec)
        expect(message_encoding(typed.message("Request"))) == Encoding.FORMAT_TEMPLATE
        expect(message_encoding(typed.message("Status"))) == Encoding.DELIMITED
        expect(message_encoding(typed.message("Header"))) == Encoding.STATE_MACHINE


def describe_validate():
    def accepts_the_fixtures(expect):
        for name in ("ping.json", "http.json"):
            result = validate(load(name))
            expect(result.errors) == []
            expect(result.valid) == True

    def never_raises_on_garbage(expect):
        for value in (None, 42, "spec", [], {}):
            result = validate(value)
            expect(result.valid) == False
            expect(len(result.errors) > 0) == True

    def reports_missing_sections(expect):
        result = validate({"protocol": {"name": "X", "port": 1, "description": "d"}})
        paths = [issue.field_path for issue in result.errors]
        expect("connection" in paths) == True
        expect("messageTypes" in paths) == True
        expect(set(kinds(result))) == {IssueKind.MISSING_REQUIRED_FIELD}

    def reports_out_of_range_port(expect, spec):
        spec["protocol"]["port"] = 70000
        result = validate(spec)
        expect(result.valid) == False
        expect(result.errors[0].field_path) == "protocol.port"
        expect(result.errors[0].actual) == "70000"

    def reports_undefined_placeholders(expect, spec):
        spec["messageTypes"][0]["format"] = "{method} {uri} HTTP/1.0\r\n"
        result = validate(spec)
        expect(IssueKind.INVALID_PLACEHOLDER in kinds(result)) == True
        expect(any('"{uri}"' in issue.message for issue in result.errors)) == True

    def reports_adjacent_placeholders(expect, spec):
        spec["messageTypes"][0]["format"] = "{method}{path}\r\n"
        result = validate(spec)
        expect(kinds(result)) == [IssueKind.INVALID_FORMAT]

    def reports_malformed_templates(expect, spec):
        spec["messageTypes"][0]["format"] = "{method {path}"
        result = validate(spec)
        expect(kinds(result)) == [IssueKind.INVALID_FORMAT]

    def reports_required_fields_missing_from_the_format(expect, spec):
        spec["messageTypes"][0]["format"] = "{method}\r\n"
        result = validate(spec)
        expect(kinds(result)) == [IssueKind.INVALID_PLACEHOLDER]

    def warns_about_unused_optional_fields(expect, spec):
        spec["messageTypes"][0]["format"] = "{method}\r\n"
        spec["messageTypes"][0]["fields"][1]["required"] = False
        result = validate(spec)
        expect(result.valid) == True
        expect(len(result.warnings)) == 1

    def reports_messages_without_an_encoding(expect, spec):
        del spec["messageTypes"][1]["delimiter"]
        del spec["messageTypes"][1]["terminator"]
        result = validate(spec)
        expect(result.errors[0].field_path) == "messageTypes[1].format"

    def reports_state_machine_fields_without_delimiters(expect, spec):
        del spec["messageTypes"][2]["fields"][0]["delimiter"]
        result = validate(spec)
        expect(result.valid) == False
        expect("needs a delimiter" in result.errors[0].message) == True

    def reports_duplicate_names(expect, spec):
        spec["messageTypes"].append(copy.deepcopy(spec["messageTypes"][0]))
        spec["messageTypes"][1]["fields"].append(copy.deepcopy(spec["messageTypes"][1]["fields"][0]))
        messages = [issue.message for issue in validate(spec).errors]
        expect(any("Duplicate message type name" in m for m in messages)) == True
        expect(any("Duplicate field name" in m for m in messages)) == True

    def reports_invalid_constraints(expect, spec):
        spec["messageTypes"][1]["fields"][0]["type"] = {"kind": "number", "min": 10, "max": 1}
        spec["messageTypes"][0]["fields"][1]["validation"] = {"pattern": "(unclosed"}
        result = validate(spec)
        expect(sorted(kinds(result))) == sorted([IssueKind.INVALID_CONSTRAINT, IssueKind.INVALID_FORMAT])

    def reports_bounds_contradicting_across_type_and_validation(expect, spec):
        spec["messageTypes"][0]["fields"][1]["validation"]["minLength"] = 300
        spec["messageTypes"][1]["fields"][0]["validation"] = {"min": 700}
        result = validate(spec)
        expect(result.valid) == False
        expect(kinds(result)) == [IssueKind.INVALID_CONSTRAINT, IssueKind.INVALID_CONSTRAINT]
        expect([e.field_path for e in result.errors]) == [
            "messageTypes[0].fields[1].validation.minLength",
            "messageTypes[1].fields[0].validation",
        ]
        expect("type max (599)" in result.errors[1].message) == True

    def accepts_validation_bounds_within_the_type(expect, spec):
        spec["messageTypes"][0]["fields"][1]["validation"]["minLength"] = 255
        spec["messageTypes"][1]["fields"][0]["validation"] = {"min": 200, "max": 299}
        expect(validate(spec).valid) == True

    def reports_empty_and_duplicate_enum_values(expect, spec):
        spec["messageTypes"][0]["fields"][0]["type"]["values"] = ["GET", "GET"]
        result = validate(spec)
        expect(kinds(result)) == [IssueKind.SCHEMA_VIOLATION]
        expect(result.errors[0].suggestion) == "Use unique values for enum fields"

    def reports_enum_values_missing_from_declared_type(expect, spec):
        spec["types"] = [
            {
                "name": "Method",
                "kind": "enum",
                "values": [{"name": "Get", "value": "GET"}, {"name": "Head", "value": "HEAD"}],
            }
        ]
        result = validate(spec)
        expect(kinds(result)) == [IssueKind.UNDEFINED_REFERENCE]
        expect(result.errors[0].field_path) == "messageTypes[0].fields[0].type.values[2]"

    def requires_retry_settings_when_retrying(expect, spec):
        spec["errorHandling"] = {"onNetworkError": "retry"}
        result = validate(spec)
        paths = [issue.field_path for issue in result.errors]
        expect(paths) == ["errorHandling.retryAttempts", "errorHandling.retryDelay"]

    def warns_when_nothing_is_invocable(expect, spec):
        for message in spec["messageTypes"]:
            message["direction"] = "response"
        result = validate(spec)
        expect(result.valid) == True
        expect(len(result.warnings)) == 1


def describe_coerce_spec():
    def decodes_camel_case_keys(expect, spec):
        typed, errors = coerce_spec(spec)
        expect(errors) == []
        expect(typed.protocol.rfc) == "1945"
        expect(typed.message("Request").fields[1].type.max_length) == 255
        expect(typed.message("Header").fields[2].required) == False

    def passes_typed_specifications_through(expect, spec):
        typed = ProtocolSpec.from_dict(spec)
        expect(coerce_spec(typed)) == (typed, [])


def describe_require_valid():
    def returns_the_typed_specification(expect, spec):
        expect(require_valid(spec).protocol.name) == "MiniHttp"

    def raises_with_the_full_report(expect, spec):
        spec["protocol"]["name"] = " "
        with pytest.raises(StructuralError) as exc:
            require_valid(spec)
        expect(exc.value.result.valid) == False
        expect("protocol.name" in str(exc.value)) == True
