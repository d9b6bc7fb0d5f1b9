"""Rust code generator."""

from typing import Any

from .base import (
    FieldPlan,
    LanguageGenerator,
    MessagePlan,
    comment,
    describe_literal,
    number_text,
    rust_bytes,
    rust_string,
)
from .naming import Namer, to_snake_case
from .profile import TargetLanguage
from .types import FieldKind

RUST_TYPES = {
    FieldKind.STRING: "Option<String>",
    FieldKind.NUMBER: "Option<f64>",
    FieldKind.ENUM: "Option<String>",
    FieldKind.BYTES: "Option<Vec<u8>>",
    FieldKind.BOOLEAN: "Option<bool>",
}

CONVERTERS = {
    FieldKind.STRING: "as_string",
    FieldKind.NUMBER: "as_number",
    FieldKind.ENUM: "as_string",
    FieldKind.BYTES: "as_bytes",
    FieldKind.BOOLEAN: "as_boolean",
}


def _rust_float(value: float) -> str:
    text = repr(float(value))
    return text if any(ch in text for ch in ".e") else text + ".0"


def _rust_slice(data: bytes | str) -> str:
    return f"{rust_bytes(data)} as &[u8]"


def _rust_value(f: FieldPlan, value: Any) -> str:
    if f.kind == FieldKind.BYTES:
        return f"Some({rust_bytes(value)}.to_vec())"
    if f.kind == FieldKind.NUMBER:
        return f"Some({_rust_float(value)})"
    if f.kind == FieldKind.BOOLEAN:
        return "Some(true)" if value else "Some(false)"
    return f"Some({rust_string(str(value))}.to_string())"


def _message_literal(message: MessagePlan, overrides: dict[str, Any] | None = None) -> str:
    values = dict(message.example or {})
    values.update(overrides or {})
    props = [f"{f.ident}: {_rust_value(f, values[f.name])}" for f in message.fields if f.name in values]
    if len(props) < len(message.fields):
        props.append("..Default::default()")
    return f"{message.type_name} {{ {', '.join(props)} }}" if props else f"{message.type_name} {{}}"


def _error(f: FieldPlan, message: str) -> str:
    return f"errs.push(FieldError {{ field: {rust_string(f.name)}.to_string(), message: {message} }});"


def _owned(text: str) -> str:
    return f"{rust_string(text)}.to_string()"


def _gen_validate_field(f: FieldPlan) -> str:
    name = f.name
    inner: list[str] = []

    def check(condition: str, message: str) -> None:
        inner.append(f"if {condition} {{")
        inner.append("    " + _error(f, message))
        inner.append("}")

    if f.kind == FieldKind.STRING:
        if f.min_length is not None:
            check(f"value.chars().count() < {f.min_length}", _owned(f"{name} must be at least {f.min_length} characters"))
        if f.max_length is not None:
            check(f"value.chars().count() > {f.max_length}", _owned(f"{name} must be at most {f.max_length} characters"))
        if f.pattern:
            check(
                f"!Regex::new({rust_string(f.pattern)}).map(|re| re.is_match(value)).unwrap_or(false)",
                _owned(f"{name} does not match pattern {f.pattern}"),
            )
    elif f.kind == FieldKind.NUMBER:
        if f.min is not None:
            check(f"*value < {_rust_float(f.min)}", _owned(f"{name} must be at least {number_text(f.min)}"))
        if f.max is not None:
            check(f"*value > {_rust_float(f.max)}", _owned(f"{name} must be at most {number_text(f.max)}"))
    elif f.kind == FieldKind.ENUM:
        check(
            f"!{f.values_const}.contains(&value.as_str())",
            f'format!("{{}} must be one of {{}}", {rust_string(name)}, {f.values_const}.join(", "))',
        )
    elif f.kind == FieldKind.BYTES and f.length is not None:
        check(f"value.len() != {f.length}", _owned(f"{name} must be exactly {f.length} bytes"))

    access = f"&msg.{f.ident}"
    lines: list[str] = []
    if f.required:
        lines.append(f"match {access} {{")
        lines.append("    None => { " + _error(f, _owned(f"{name} is required")) + " }")
        if inner:
            lines.append("    Some(value) => {")
            lines.extend("        " + line for line in inner)
            lines.append("    }")
        else:
            lines.append("    Some(_) => {}")
        lines.append("}")
    elif inner:
        lines.append(f"if let Some(value) = {access} {{")
        lines.extend("    " + line for line in inner)
        lines.append("}")
    return "\n".join(lines)


def _gen_append(f: FieldPlan) -> str:
    if f.kind == FieldKind.BYTES:
        body = "out.extend_from_slice(value);"
    elif f.kind == FieldKind.NUMBER:
        body = 'out.extend_from_slice(format!("{}", value).as_bytes());'
    elif f.kind == FieldKind.BOOLEAN:
        body = 'out.extend_from_slice(if *value { "true" } else { "false" }.as_bytes());'
    else:
        body = "out.extend_from_slice(value.as_bytes());"
    return f"if let Some(value) = &msg.{f.ident} {{\n    {body}\n}}"


def _indent(text: str, prefix: str) -> str:
    return "\n".join(prefix + line if line else line for line in text.split("\n"))


class RustGenerator(LanguageGenerator):
    language = TargetLanguage.RUST
    template_dir = "rust"
    extensions = {name: "rs" for name in ("types", "parser", "serializer", "client", "tests")}

    def file_names(self, module: str, namer: Namer) -> dict[str, str]:
        # sibling modules of one protocol module; they refer to each other through `super::`
        return {name: f"{name}.rs" for name in ("types", "parser", "serializer", "client", "tests")}

    def helpers(self) -> dict[str, Any]:
        return {
            "rust_type": lambda f: RUST_TYPES[f.kind],
            "rust_string": rust_string,
            "rust_bytes": rust_bytes,
            "rust_slice": _rust_slice,
            "rust_string_list": lambda values: ", ".join(rust_string(v) for v in values),
            "snake": to_snake_case,
            "converter": lambda f: CONVERTERS[f.kind],
            "message_literal": _message_literal,
            "gen_validate_field": lambda f, indent="": _indent(_gen_validate_field(f), indent),
            "gen_append": lambda f, indent="": _indent(_gen_append(f), indent),
            "describe_literal": describe_literal,
            "comment": comment,
        }
