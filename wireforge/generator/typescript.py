"""TypeScript code generator."""

from typing import Any

from .base import FieldPlan, LanguageGenerator, MessagePlan, comment, describe_literal, js_string, number_text
from .naming import Namer
from .profile import TargetLanguage
from .types import FieldKind

TS_TYPES = {
    FieldKind.STRING: "string",
    FieldKind.NUMBER: "number",
    FieldKind.BYTES: "Buffer",
    FieldKind.BOOLEAN: "boolean",
}

CONVERTERS = {
    FieldKind.STRING: "asString",
    FieldKind.NUMBER: "asNumber",
    FieldKind.ENUM: "asString",
    FieldKind.BYTES: "asBytes",
    FieldKind.BOOLEAN: "asBoolean",
}

TYPE_CHECKS = {
    FieldKind.STRING: ("typeof value !== 'string'", "a string"),
    FieldKind.NUMBER: ("typeof value !== 'number' || Number.isNaN(value)", "a number"),
    FieldKind.ENUM: ("typeof value !== 'string'", "a string"),
    FieldKind.BYTES: ("!(value instanceof Uint8Array)", "bytes"),
    FieldKind.BOOLEAN: ("typeof value !== 'boolean'", "a boolean"),
}


def _ts_type(f: FieldPlan) -> str:
    if f.kind == FieldKind.ENUM:
        return " | ".join(js_string(v) for v in f.values) or "string"
    return TS_TYPES[f.kind]


def _js_bytes(data: bytes | str) -> str:
    if isinstance(data, str):
        return f"Buffer.from({js_string(data)}, 'utf8')"
    try:
        return f"Buffer.from({js_string(data.decode('utf-8'))}, 'utf8')"
    except UnicodeDecodeError:
        return f"Buffer.from([{', '.join(str(b) for b in data)}])"


def _js_value(f: FieldPlan, value: Any) -> str:
    if f.kind == FieldKind.BYTES and isinstance(value, (str, bytes)):
        return _js_bytes(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return number_text(value)
    return js_string(str(value))


def _message_literal(message: MessagePlan, overrides: dict[str, Any] | None = None) -> str:
    values = dict(message.example or {})
    values.update(overrides or {})
    props = ", ".join(f"{f.ident}: {_js_value(f, values[f.name])}" for f in message.fields if f.name in values)
    return "{ " + props + " }" if props else "{}"


def _gen_validate_field(f: FieldPlan) -> str:
    name = f.name
    check, expected = TYPE_CHECKS[f.kind]
    lines = ["{", f"  const value: unknown = message.{f.ident};"]
    if f.required:
        lines.append("  if (value === undefined || value === null) {")
        lines.append(f"    errors.push({{ field: {js_string(name)}, message: {js_string(f'{name} is required')} }});")
        lines.append(f"  }} else if ({check}) {{")
    else:
        lines.append("  if (value === undefined || value === null) {")
        lines.append("    // optional")
        lines.append(f"  }} else if ({check}) {{")
    lines.append(f"    errors.push({{ field: {js_string(name)}, message: {js_string(f'{name} must be {expected}')} }});")

    inner: list[str] = []

    def push(condition: str, message: str) -> None:
        inner.append(f"if ({condition}) {{")
        inner.append(f"  errors.push({{ field: {js_string(name)}, message: {message} }});")
        inner.append("}")

    if f.kind == FieldKind.STRING:
        if f.min_length is not None:
            push(f"Array.from(value).length < {f.min_length}", js_string(f"{name} must be at least {f.min_length} characters"))
        if f.max_length is not None:
            push(f"Array.from(value).length > {f.max_length}", js_string(f"{name} must be at most {f.max_length} characters"))
        if f.pattern:
            push(f"!new RegExp({js_string(f.pattern)}).test(value)", js_string(f"{name} does not match pattern {f.pattern}"))
    elif f.kind == FieldKind.NUMBER:
        if f.min is not None:
            push(f"value < {number_text(f.min)}", js_string(f"{name} must be at least {number_text(f.min)}"))
        if f.max is not None:
            push(f"value > {number_text(f.max)}", js_string(f"{name} must be at most {number_text(f.max)}"))
    elif f.kind == FieldKind.ENUM:
        push(
            f"!({f.values_const} as readonly string[]).includes(value)",
            f"`{name} must be one of ${{{f.values_const}.join(', ')}}`",
        )
    elif f.kind == FieldKind.BYTES and f.length is not None:
        push(f"value.length !== {f.length}", js_string(f"{name} must be exactly {f.length} bytes"))

    if inner:
        lines.append("  } else {")
        lines.extend("    " + line for line in inner)
    lines.append("  }")
    lines.append("}")
    return "\n".join(lines)


def _indent(text: str, prefix: str) -> str:
    return "\n".join(prefix + line if line else line for line in text.split("\n"))


class TypeScriptGenerator(LanguageGenerator):
    language = TargetLanguage.TYPESCRIPT
    template_dir = "typescript"
    extensions = {name: "ts" for name in ("types", "parser", "serializer", "client", "tests")}
    dynamic_types = True

    def file_names(self, module: str, namer: Namer) -> dict[str, str]:
        return {
            "types": f"{module}-types.ts",
            "parser": f"{module}-parser.ts",
            "serializer": f"{module}-serializer.ts",
            "client": f"{module}-client.ts",
            "tests": f"{module}.test.ts",
        }

    def helpers(self) -> dict[str, Any]:
        return {
            "ts_type": _ts_type,
            "js_string": js_string,
            "js_bytes": _js_bytes,
            "js_value": _js_value,
            "converter": lambda f: CONVERTERS[f.kind],
            "message_literal": _message_literal,
            "gen_validate_field": lambda f, indent="": _indent(_gen_validate_field(f), indent),
            "describe_literal": describe_literal,
            "comment": comment,
        }
