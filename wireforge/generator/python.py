"""Python code generator."""

from typing import Any

from .base import FieldPlan, LanguageGenerator, MessagePlan, comment, describe_literal, number_text
from .naming import Namer
from .profile import TargetLanguage
from .types import FieldKind

PY_TYPES = {
    FieldKind.STRING: "str",
    FieldKind.NUMBER: "float",
    FieldKind.ENUM: "str",
    FieldKind.BYTES: "bytes",
    FieldKind.BOOLEAN: "bool",
}

CONVERTERS = {
    FieldKind.STRING: "_as_string",
    FieldKind.NUMBER: "_as_number",
    FieldKind.ENUM: "_as_string",
    FieldKind.BYTES: "_as_bytes",
    FieldKind.BOOLEAN: "_as_boolean",
}

TYPE_CHECKS = {
    FieldKind.STRING: ("not isinstance(value, str)", "a string"),
    FieldKind.NUMBER: ("isinstance(value, bool) or not isinstance(value, (int, float))", "a number"),
    FieldKind.ENUM: ("not isinstance(value, str)", "a string"),
    FieldKind.BYTES: ("not isinstance(value, (bytes, bytearray))", "bytes"),
    FieldKind.BOOLEAN: ("not isinstance(value, bool)", "a boolean"),
}


def _py_literal(value: Any) -> str:
    return repr(value)


def _py_bytes(text: str | bytes) -> str:
    return repr(text.encode("utf-8") if isinstance(text, str) else text)


def _py_field_value(f: FieldPlan, value: Any) -> str:
    if f.kind == FieldKind.BYTES and isinstance(value, str):
        return _py_bytes(value)
    return _py_literal(value)


def _message_literal(message: MessagePlan, overrides: dict[str, Any] | None = None) -> str:
    """Constructor call for a message built from its example plus overrides."""
    values = dict(message.example or {})
    values.update(overrides or {})
    args = ", ".join(
        f"{f.ident}={_py_field_value(f, values[f.name])}" for f in message.fields if f.name in values
    )
    return f"{message.type_name}({args})"


def _gen_validate_field(f: FieldPlan) -> str:
    """Generate the checks for one field; `value` holds the field's value."""
    name = f.name
    check, expected = TYPE_CHECKS[f.kind]
    lines = ["if value is None:"]
    if f.required:
        lines.append(f"    errors.append(FieldError({name!r}, {f'{name} is required'!r}))")
    else:
        lines.append("    pass")
    lines.append(f"elif {check}:")
    lines.append(f"    errors.append(FieldError({name!r}, {f'{name} must be {expected}'!r}))")

    inner: list[str] = []
    if f.kind == FieldKind.STRING:
        if f.min_length is not None:
            inner.append(f"if len(value) < {f.min_length}:")
            inner.append(f"    errors.append(FieldError({name!r}, {f'{name} must be at least {f.min_length} characters'!r}))")
        if f.max_length is not None:
            inner.append(f"if len(value) > {f.max_length}:")
            inner.append(f"    errors.append(FieldError({name!r}, {f'{name} must be at most {f.max_length} characters'!r}))")
        if f.pattern:
            inner.append(f"if re.search({f.pattern!r}, value) is None:")
            inner.append(f"    errors.append(FieldError({name!r}, {f'{name} does not match pattern {f.pattern}'!r}))")
    elif f.kind == FieldKind.NUMBER:
        if f.min is not None:
            inner.append(f"if value < {f.min!r}:")
            inner.append(f"    errors.append(FieldError({name!r}, {f'{name} must be at least {number_text(f.min)}'!r}))")
        if f.max is not None:
            inner.append(f"if value > {f.max!r}:")
            inner.append(f"    errors.append(FieldError({name!r}, {f'{name} must be at most {number_text(f.max)}'!r}))")
    elif f.kind == FieldKind.ENUM:
        inner.append(f"if value not in {f.values_const}:")
        inner.append(f"    errors.append(FieldError({name!r}, {name!r} + ' must be one of ' + ', '.join({f.values_const})))")
    elif f.kind == FieldKind.BYTES and f.length is not None:
        inner.append(f"if len(value) != {f.length}:")
        inner.append(f"    errors.append(FieldError({name!r}, {f'{name} must be exactly {f.length} bytes'!r}))")

    if inner:
        lines.append("else:")
        lines.extend("    " + line for line in inner)
    return "\n".join(lines)


def _indent(text: str, prefix: str = "    ") -> str:
    return "\n".join(prefix + line if line else line for line in text.split("\n"))


class PythonGenerator(LanguageGenerator):
    language = TargetLanguage.PYTHON
    template_dir = "python"
    extensions = {name: "py" for name in ("types", "parser", "serializer", "client", "tests")}
    dynamic_types = True

    def file_names(self, module: str, namer: Namer) -> dict[str, str]:
        return {
            "types": f"{module}_types.py",
            "parser": f"{module}_parser.py",
            "serializer": f"{module}_serializer.py",
            "client": f"{module}_client.py",
            "tests": f"test_{module}.py",
        }

    def helpers(self) -> dict[str, Any]:
        return {
            "py_type": lambda f: PY_TYPES[f.kind],
            "py_literal": _py_literal,
            "py_bytes": _py_bytes,
            "py_field_value": _py_field_value,
            "converter": lambda f: CONVERTERS[f.kind],
            "message_literal": _message_literal,
            "gen_validate_field": lambda f, indent="": _indent(_gen_validate_field(f), indent),
            "describe_literal": describe_literal,
            "comment": comment,
            "BLANK_LINE": "",
        }
