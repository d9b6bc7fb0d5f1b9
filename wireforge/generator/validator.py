"""Protocol specification validation.

`validate` is the defensive re-check every downstream component relies on.
It never raises; all findings are returned as `ValidationIssue` records.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from . import guards
from .template import Placeholder, TemplateError, parse_template, placeholders
from .types import (
    Encoding,
    FieldDefinition,
    FieldKind,
    MessageType,
    ProtocolSpec,
    ValidationRule,
)


class IssueKind(StrEnum):
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_TYPE = "invalid_type"
    INVALID_FORMAT = "invalid_format"
    INVALID_PLACEHOLDER = "invalid_placeholder"
    UNDEFINED_REFERENCE = "undefined_reference"
    INVALID_CONSTRAINT = "invalid_constraint"
    SCHEMA_VIOLATION = "schema_violation"


@dataclass(frozen=True)
class ValidationIssue:
    kind: IssueKind
    message: str
    field_path: str | None = None
    expected: str | None = None
    actual: str | None = None
    suggestion: str | None = None

    def __str__(self) -> str:
        where = f"{self.field_path}: " if self.field_path else ""
        return f"{where}{self.message}"


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class StructuralError(RuntimeError):
    """Raised when a specification fails validation before generation."""

    def __init__(self, result: ValidationResult):
        self.result = result
        summary = "; ".join(str(e) for e in result.errors[:5])
        if len(result.errors) > 5:
            summary += f"; and {len(result.errors) - 5} more"
        super().__init__(f"Invalid protocol specification: {summary}")


def message_encoding(message: MessageType) -> Encoding | None:
    """Select the wire layout for a message, or None when it has none."""
    if message.format is not None:
        return Encoding.FORMAT_TEMPLATE
    if any(f.delimiter for f in message.fields):
        return Encoding.STATE_MACHINE
    if message.delimiter or message.terminator:
        return Encoding.DELIMITED
    return None


def _check_raw(raw: Mapping[str, Any], errors: list[ValidationIssue]) -> None:
    """Report structural problems of an undecoded specification."""

    def need(node: Any, key: str, path: str, check, expected: str) -> None:
        if not isinstance(node, Mapping):
            return
        if key not in node or node[key] is None:
            errors.append(
                ValidationIssue(
                    IssueKind.MISSING_REQUIRED_FIELD,
                    f'Missing required field "{key}"',
                    field_path=f"{path}.{key}" if path else key,
                    expected=expected,
                )
            )
        elif not check(node[key]):
            errors.append(
                ValidationIssue(
                    IssueKind.INVALID_TYPE,
                    f'Field "{key}" has the wrong shape',
                    field_path=f"{path}.{key}" if path else key,
                    expected=expected,
                    actual=type(node[key]).__name__,
                )
            )

    need(raw, "protocol", "", guards.is_protocol_metadata, "protocol metadata (name, port, description)")
    need(raw, "connection", "", guards.is_connection_spec, 'connection with type "TCP" or "UDP"')
    need(raw, "messageTypes", "", lambda v: isinstance(v, list), "list of message types")

    messages = raw.get("messageTypes")
    if isinstance(messages, list):
        for i, message in enumerate(messages):
            path = f"messageTypes[{i}]"
            if not isinstance(message, Mapping):
                errors.append(
                    ValidationIssue(IssueKind.INVALID_TYPE, "Message type must be an object", field_path=path)
                )
                continue
            need(message, "name", path, lambda v: isinstance(v, str), "string")
            need(
                message,
                "direction",
                path,
                lambda v: v in ("request", "response", "bidirectional"),
                "request, response or bidirectional",
            )
            for j, fdef in enumerate(message.get("fields") or []):
                if not guards.is_field_definition(fdef):
                    errors.append(
                        ValidationIssue(
                            IssueKind.INVALID_TYPE,
                            "Field definition must have a name and a type of kind "
                            "string, number, enum, bytes or boolean",
                            field_path=f"{path}.fields[{j}]",
                        )
                    )

    types = raw.get("types")
    if types is not None and not (isinstance(types, list) and all(guards.is_type_definition(t) for t in types)):
        errors.append(
            ValidationIssue(
                IssueKind.INVALID_TYPE,
                "Type definitions must be enums with values or structs with fields",
                field_path="types",
            )
        )


def _check_rule(rule: ValidationRule, name: str, path: str, errors: list[ValidationIssue]) -> None:
    if rule.pattern is not None:
        try:
            re.compile(rule.pattern)
        except re.error as exc:
            errors.append(
                ValidationIssue(
                    IssueKind.INVALID_FORMAT,
                    f'Field "{name}" has invalid regex pattern: {exc}',
                    field_path=f"{path}.validation.pattern",
                    suggestion="Provide a valid regular expression pattern",
                )
            )
    if rule.min_length is not None and rule.max_length is not None and rule.min_length > rule.max_length:
        errors.append(
            ValidationIssue(
                IssueKind.INVALID_CONSTRAINT,
                f'Field "{name}" has invalid length range: '
                f"minLength ({rule.min_length}) > maxLength ({rule.max_length})",
                field_path=f"{path}.validation",
                suggestion="Ensure minLength is less than or equal to maxLength",
            )
        )
    if rule.min is not None and rule.max is not None and rule.min > rule.max:
        errors.append(
            ValidationIssue(
                IssueKind.INVALID_CONSTRAINT,
                f'Field "{name}" has invalid value range: min ({rule.min}) > max ({rule.max})',
                field_path=f"{path}.validation",
                suggestion="Ensure min is less than or equal to max",
            )
        )


def _check_fields(
    fields: list[FieldDefinition],
    base: str,
    owner: str,
    spec: ProtocolSpec,
    errors: list[ValidationIssue],
) -> None:
    seen: set[str] = set()
    for i, fdef in enumerate(fields):
        path = f"{base}[{i}]"
        if fdef.name in seen:
            errors.append(
                ValidationIssue(
                    IssueKind.SCHEMA_VIOLATION,
                    f'Duplicate field name "{fdef.name}" in message type "{owner}"',
                    field_path=f"{path}.name",
                    suggestion="Use unique field names within each message type",
                )
            )
        seen.add(fdef.name)

        if not fdef.name.strip():
            errors.append(
                ValidationIssue(
                    IssueKind.MISSING_REQUIRED_FIELD,
                    f'Field {i} of "{owner}" has an empty name',
                    field_path=f"{path}.name",
                )
            )

        ftype = fdef.type
        if ftype.kind == FieldKind.STRING and ftype.max_length is not None and ftype.max_length < 0:
            errors.append(
                ValidationIssue(
                    IssueKind.INVALID_CONSTRAINT,
                    f'Field "{fdef.name}" has invalid maxLength: must be >= 0',
                    field_path=f"{path}.type.maxLength",
                    actual=str(ftype.max_length),
                    suggestion="Use a non-negative value for maxLength",
                )
            )
        if ftype.kind == FieldKind.NUMBER and ftype.min is not None and ftype.max is not None:
            if ftype.min > ftype.max:
                errors.append(
                    ValidationIssue(
                        IssueKind.INVALID_CONSTRAINT,
                        f'Field "{fdef.name}" has invalid range: min ({ftype.min}) > max ({ftype.max})',
                        field_path=f"{path}.type",
                        suggestion="Ensure min is less than or equal to max",
                    )
                )
        if ftype.kind == FieldKind.BYTES and ftype.length is not None and ftype.length < 0:
            errors.append(
                ValidationIssue(
                    IssueKind.INVALID_CONSTRAINT,
                    f'Field "{fdef.name}" has invalid length: must be >= 0',
                    field_path=f"{path}.type.length",
                )
            )
        if ftype.kind == FieldKind.ENUM:
            values = ftype.values or []
            if not values:
                errors.append(
                    ValidationIssue(
                        IssueKind.INVALID_CONSTRAINT,
                        f'Enum field "{fdef.name}" has no values',
                        field_path=f"{path}.type.values",
                        suggestion="Provide at least one enum value",
                    )
                )
            if len(set(values)) != len(values):
                dupes = sorted({v for v in values if values.count(v) > 1})
                errors.append(
                    ValidationIssue(
                        IssueKind.SCHEMA_VIOLATION,
                        f'Duplicate enum value "{dupes[0]}" in field "{fdef.name}"',
                        field_path=f"{path}.type.values",
                        suggestion="Use unique values for enum fields",
                    )
                )
            _check_enum_reference(fdef, path, spec, errors)

        if fdef.validation is not None:
            _check_rule(fdef.validation, fdef.name, path, errors)
            _check_combined_bounds(fdef, path, errors)


def _check_combined_bounds(fdef: FieldDefinition, path: str, errors: list[ValidationIssue]) -> None:
    """The type's bounds and the validation rule's bounds must leave some value."""
    ftype, rule = fdef.type, fdef.validation
    if ftype.kind == FieldKind.STRING and rule.min_length is not None and ftype.max_length is not None:
        if rule.min_length > ftype.max_length:
            errors.append(
                ValidationIssue(
                    IssueKind.INVALID_CONSTRAINT,
                    f'Field "{fdef.name}" has no valid length: validation minLength ({rule.min_length}) '
                    f"> type maxLength ({ftype.max_length})",
                    field_path=f"{path}.validation.minLength",
                    suggestion="Lower minLength or raise the type's maxLength",
                )
            )
    if ftype.kind == FieldKind.NUMBER:
        pairs = ((ftype.min, rule.max, "type min", "validation max"), (rule.min, ftype.max, "validation min", "type max"))
        for low, high, low_label, high_label in pairs:
            if low is not None and high is not None and low > high:
                errors.append(
                    ValidationIssue(
                        IssueKind.INVALID_CONSTRAINT,
                        f'Field "{fdef.name}" has no valid value: {low_label} ({low}) > {high_label} ({high})',
                        field_path=f"{path}.validation",
                        suggestion="Ensure min is less than or equal to max",
                    )
                )


def _check_enum_reference(
    fdef: FieldDefinition, path: str, spec: ProtocolSpec, errors: list[ValidationIssue]
) -> None:
    """An enum field drawing on a declared enum type must stay within it."""
    values = fdef.type.values or []
    best = None
    best_overlap = 0
    for tdef in spec.types:
        if tdef.kind != "enum" or not tdef.values:
            continue
        declared = {str(v.value) for v in tdef.values}
        overlap = len(declared.intersection(values))
        if overlap > best_overlap:
            best, best_overlap = tdef, overlap
    if best is None:
        return
    declared = [str(v.value) for v in best.values or []]
    for i, value in enumerate(values):
        if value not in declared:
            errors.append(
                ValidationIssue(
                    IssueKind.UNDEFINED_REFERENCE,
                    f'Enum value "{value}" in field "{fdef.name}" is not defined in type "{best.name}"',
                    field_path=f"{path}.type.values[{i}]",
                    suggestion=f"Use one of the defined values: {', '.join(declared)}",
                )
            )


def _check_encoding(message: MessageType, path: str, errors: list[ValidationIssue], warnings: list[str]) -> None:
    encoding = message_encoding(message)
    if encoding is None:
        errors.append(
            ValidationIssue(
                IssueKind.MISSING_REQUIRED_FIELD,
                f'Message type "{message.name}" has no encoding: '
                "declare a format, a delimiter/terminator, or per-field delimiters",
                field_path=f"{path}.format",
            )
        )
        return

    names = [f.name for f in message.fields]

    if encoding == Encoding.FORMAT_TEMPLATE:
        assert message.format is not None
        if not message.format.strip():
            errors.append(
                ValidationIssue(
                    IssueKind.MISSING_REQUIRED_FIELD,
                    f'Message type "{message.name}" has empty format string',
                    field_path=f"{path}.format",
                    suggestion="Provide a non-empty format string",
                )
            )
            return
        try:
            segments = parse_template(message.format)
        except TemplateError as exc:
            errors.append(
                ValidationIssue(
                    IssueKind.INVALID_FORMAT,
                    str(exc),
                    field_path=f"{path}.format",
                    suggestion="Use {field} placeholders and escape literal braces as \\{ and \\}",
                )
            )
            return
        used = placeholders(segments)
        for name in used:
            if name not in names:
                errors.append(
                    ValidationIssue(
                        IssueKind.INVALID_PLACEHOLDER,
                        f'Placeholder "{{{name}}}" in message "{message.name}" references '
                        f"undefined field. Available fields: {', '.join(names)}",
                        field_path=f"{path}.format",
                        suggestion="Ensure all placeholders in the format string reference defined fields",
                    )
                )
        for name in sorted({n for n in used if used.count(n) > 1}):
            errors.append(
                ValidationIssue(
                    IssueKind.INVALID_PLACEHOLDER,
                    f'Placeholder "{{{name}}}" appears more than once in message "{message.name}"',
                    field_path=f"{path}.format",
                )
            )
        for a, b in zip(segments, segments[1:]):
            if isinstance(a, Placeholder) and isinstance(b, Placeholder):
                errors.append(
                    ValidationIssue(
                        IssueKind.INVALID_FORMAT,
                        f'Placeholders "{{{a.name}}}" and "{{{b.name}}}" in message '
                        f'"{message.name}" have no separator between them',
                        field_path=f"{path}.format",
                        suggestion="Put a literal separator between adjacent placeholders",
                    )
                )
        for fdef in message.fields:
            if fdef.name not in used:
                if fdef.required:
                    errors.append(
                        ValidationIssue(
                            IssueKind.INVALID_PLACEHOLDER,
                            f'Required field "{fdef.name}" of message "{message.name}" '
                            "does not appear in its format",
                            field_path=f"{path}.format",
                            suggestion=f"Add {{{fdef.name}}} to the format or make the field optional",
                        )
                    )
                else:
                    warnings.append(
                        f'Field "{fdef.name}" of message "{message.name}" is not used by its format'
                    )
        return

    if encoding == Encoding.STATE_MACHINE:
        for fdef in message.fields[:-1]:
            if not fdef.delimiter:
                errors.append(
                    ValidationIssue(
                        IssueKind.INVALID_FORMAT,
                        f'Field "{fdef.name}" of message "{message.name}" needs a delimiter '
                        "to leave its state",
                        field_path=f"{path}.fields",
                    )
                )
        return

    if len(message.fields) > 1 and not message.delimiter:
        errors.append(
            ValidationIssue(
                IssueKind.MISSING_REQUIRED_FIELD,
                f'Message type "{message.name}" joins several fields but declares no delimiter',
                field_path=f"{path}.delimiter",
            )
        )
    if message.delimiter == "" or message.terminator == "":
        errors.append(
            ValidationIssue(
                IssueKind.INVALID_FORMAT,
                f'Message type "{message.name}" has an empty delimiter or terminator',
                field_path=path,
            )
        )


def _check_spec(spec: ProtocolSpec, errors: list[ValidationIssue], warnings: list[str]) -> None:
    meta = spec.protocol
    if meta.port < 1 or meta.port > 65535:
        errors.append(
            ValidationIssue(
                IssueKind.INVALID_CONSTRAINT,
                "Port must be between 1 and 65535",
                field_path="protocol.port",
                expected="1-65535",
                actual=str(meta.port),
                suggestion="Use a valid port number between 1 and 65535",
            )
        )
    if not meta.name.strip():
        errors.append(
            ValidationIssue(
                IssueKind.MISSING_REQUIRED_FIELD,
                "Protocol name cannot be empty",
                field_path="protocol.name",
                suggestion="Provide a non-empty protocol name",
            )
        )
    if not meta.description.strip():
        errors.append(
            ValidationIssue(
                IssueKind.MISSING_REQUIRED_FIELD,
                "Protocol description cannot be empty",
                field_path="protocol.description",
                suggestion="Provide a non-empty protocol description",
            )
        )

    if not spec.message_types:
        errors.append(
            ValidationIssue(
                IssueKind.MISSING_REQUIRED_FIELD,
                "At least one message type is required",
                field_path="messageTypes",
                suggestion="Add at least one message type definition",
            )
        )
    seen: set[str] = set()
    for i, message in enumerate(spec.message_types):
        path = f"messageTypes[{i}]"
        if message.name in seen:
            errors.append(
                ValidationIssue(
                    IssueKind.SCHEMA_VIOLATION,
                    f'Duplicate message type name: "{message.name}"',
                    field_path=f"{path}.name",
                    suggestion="Use a unique name for each message type",
                )
            )
        seen.add(message.name)
        if not message.name.strip():
            errors.append(
                ValidationIssue(
                    IssueKind.MISSING_REQUIRED_FIELD,
                    f"Message type {i} has an empty name",
                    field_path=f"{path}.name",
                )
            )
        _check_encoding(message, path, errors, warnings)
        _check_fields(message.fields, f"{path}.fields", message.name, spec, errors)

    if spec.message_types and not any(m.invocable for m in spec.message_types):
        warnings.append("No request or bidirectional message types: the client has no operations")

    type_names: set[str] = set()
    for i, tdef in enumerate(spec.types):
        path = f"types[{i}]"
        if tdef.name in type_names:
            errors.append(
                ValidationIssue(
                    IssueKind.SCHEMA_VIOLATION,
                    f'Duplicate type name: "{tdef.name}"',
                    field_path=f"{path}.name",
                    suggestion="Use unique names for each type definition",
                )
            )
        type_names.add(tdef.name)
        if tdef.kind == "enum":
            if not tdef.values:
                errors.append(
                    ValidationIssue(
                        IssueKind.INVALID_CONSTRAINT,
                        f'Enum type "{tdef.name}" has no values',
                        field_path=f"{path}.values",
                        suggestion="Provide at least one enum value",
                    )
                )
            else:
                values: set[str] = set()
                for j, enum_value in enumerate(tdef.values):
                    if str(enum_value.value) in values:
                        errors.append(
                            ValidationIssue(
                                IssueKind.SCHEMA_VIOLATION,
                                f'Duplicate enum value "{enum_value.value}" in type "{tdef.name}"',
                                field_path=f"{path}.values[{j}]",
                                suggestion="Use unique values for enum types",
                            )
                        )
                    values.add(str(enum_value.value))
        elif tdef.kind == "struct":
            if not tdef.fields:
                errors.append(
                    ValidationIssue(
                        IssueKind.INVALID_CONSTRAINT,
                        f'Struct type "{tdef.name}" has no fields',
                        field_path=f"{path}.fields",
                        suggestion="Provide at least one field for struct types",
                    )
                )
            else:
                _check_fields(tdef.fields, f"{path}.fields", tdef.name, spec, errors)
        else:
            errors.append(
                ValidationIssue(
                    IssueKind.INVALID_TYPE,
                    f'Type "{tdef.name}" has unknown kind "{tdef.kind}"',
                    field_path=f"{path}.kind",
                    expected="enum or struct",
                    actual=tdef.kind,
                )
            )

    handling = spec.error_handling
    if handling is not None and handling.on_network_error == "retry":
        if handling.retry_attempts is None or handling.retry_attempts < 1:
            errors.append(
                ValidationIssue(
                    IssueKind.INVALID_CONSTRAINT,
                    'When onNetworkError is "retry", retryAttempts must be specified and >= 1',
                    field_path="errorHandling.retryAttempts",
                    suggestion="Set retryAttempts to a positive number (e.g., 3)",
                )
            )
        if handling.retry_delay is None or handling.retry_delay < 0:
            errors.append(
                ValidationIssue(
                    IssueKind.INVALID_CONSTRAINT,
                    'When onNetworkError is "retry", retryDelay must be specified and >= 0',
                    field_path="errorHandling.retryDelay",
                    suggestion="Set retryDelay to a non-negative number in milliseconds (e.g., 1000)",
                )
            )


def coerce_spec(value: ProtocolSpec | Mapping[str, Any]) -> tuple[ProtocolSpec | None, list[ValidationIssue]]:
    """Return a typed specification and any structural problems found on the way."""
    if isinstance(value, ProtocolSpec):
        return value, []
    if not isinstance(value, Mapping):
        return None, [
            ValidationIssue(
                IssueKind.INVALID_TYPE,
                "Protocol specification must be an object",
                actual=type(value).__name__,
            )
        ]

    errors: list[ValidationIssue] = []
    _check_raw(value, errors)
    if errors or not guards.is_protocol_spec(value):
        if not errors:
            errors.append(
                ValidationIssue(IssueKind.SCHEMA_VIOLATION, "Specification does not match the protocol schema")
            )
        return None, errors
    try:
        return ProtocolSpec.from_dict(dict(value)), []
    except (KeyError, TypeError, ValueError) as exc:
        return None, [ValidationIssue(IssueKind.SCHEMA_VIOLATION, f"Specification could not be decoded: {exc}")]


def validate(value: ProtocolSpec | Mapping[str, Any]) -> ValidationResult:
    """Validate a protocol specification (typed or decoded JSON)."""
    spec, errors = coerce_spec(value)
    warnings: list[str] = []
    if spec is not None:
        _check_spec(spec, errors, warnings)
    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


def require_valid(value: ProtocolSpec | Mapping[str, Any]) -> ProtocolSpec:
    """Validate and return the typed specification, raising StructuralError on failure."""
    spec, errors = coerce_spec(value)
    warnings: list[str] = []
    if spec is not None:
        _check_spec(spec, errors, warnings)
    if spec is None or errors:
        raise StructuralError(ValidationResult(valid=False, errors=errors, warnings=warnings))
    return spec
