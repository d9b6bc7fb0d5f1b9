"""Go code generator."""

from typing import Any

from .base import FieldPlan, LanguageGenerator, MessagePlan, ProtocolPlan, comment, describe_literal, go_string, number_text
from .naming import Namer, to_camel_case, to_pascal_case
from .profile import TargetLanguage
from .types import FieldKind

GO_TYPES = {
    FieldKind.STRING: "*string",
    FieldKind.NUMBER: "*float64",
    FieldKind.ENUM: "*string",
    FieldKind.BYTES: "[]byte",
    FieldKind.BOOLEAN: "*bool",
}

CONVERTERS = {
    FieldKind.STRING: "asString",
    FieldKind.NUMBER: "asNumber",
    FieldKind.ENUM: "asString",
    FieldKind.BYTES: "asBytes",
    FieldKind.BOOLEAN: "asBoolean",
}


def _go_bytes(data: bytes | str) -> str:
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError:
            return "[]byte{" + ", ".join(str(b) for b in data) + "}"
    return f"[]byte({go_string(data)})"


def _go_value(f: FieldPlan, value: Any) -> str:
    if f.kind == FieldKind.BYTES:
        return _go_bytes(value if isinstance(value, bytes) else str(value))
    if f.kind == FieldKind.NUMBER:
        return f"ptrTo(float64({number_text(value)}))"
    if f.kind == FieldKind.BOOLEAN:
        return f"ptrTo({'true' if value else 'false'})"
    return f"ptrTo({go_string(str(value))})"


def _message_literal(message: MessagePlan, overrides: dict[str, Any] | None = None) -> str:
    values = dict(message.example or {})
    values.update(overrides or {})
    props = ", ".join(f"{f.ident}: {_go_value(f, values[f.name])}" for f in message.fields if f.name in values)
    return f"&{message.type_name}{{{props}}}"


def _error(f: FieldPlan, message: str) -> str:
    return f"errs = append(errs, FieldError{{Field: {go_string(f.name)}, Message: {message}}})"


def _gen_validate_field(f: FieldPlan) -> str:
    name = f.name
    access = f"msg.{f.ident}"
    inner: list[str] = []

    def check(condition: str, message: str) -> None:
        inner.append(f"if {condition} {{")
        inner.append("\t" + _error(f, message))
        inner.append("}")

    if f.kind == FieldKind.STRING:
        if f.min_length is not None:
            check(f"utf8.RuneCountInString(value) < {f.min_length}", go_string(f"{name} must be at least {f.min_length} characters"))
        if f.max_length is not None:
            check(f"utf8.RuneCountInString(value) > {f.max_length}", go_string(f"{name} must be at most {f.max_length} characters"))
        if f.pattern:
            inner.append(f"if matched, err := regexp.MatchString({go_string(f.pattern)}, value); err != nil || !matched {{")
            inner.append("\t" + _error(f, go_string(f"{name} does not match pattern {f.pattern}")))
            inner.append("}")
    elif f.kind == FieldKind.NUMBER:
        if f.min is not None:
            check(f"value < {number_text(f.min)}", go_string(f"{name} must be at least {number_text(f.min)}"))
        if f.max is not None:
            check(f"value > {number_text(f.max)}", go_string(f"{name} must be at most {number_text(f.max)}"))
    elif f.kind == FieldKind.ENUM:
        check(
            f"!slices.Contains({f.values_const}, value)",
            f'{go_string(name + " must be one of ")} + strings.Join({f.values_const}, ", ")',
        )
    elif f.kind == FieldKind.BYTES and f.length is not None:
        check(f"len(value) != {f.length}", go_string(f"{name} must be exactly {f.length} bytes"))

    lines: list[str] = []
    if f.required:
        lines.append(f"if {access} == nil {{")
        lines.append("\t" + _error(f, go_string(f"{name} is required")))
        if inner:
            lines.append("} else {")
    elif inner:
        lines.append(f"if {access} != nil {{")
    if inner:
        deref = access if f.kind == FieldKind.BYTES else f"*{access}"
        lines.append(f"\tvalue := {deref}")
        lines.extend("\t" + line for line in inner)
    if f.required or inner:
        lines.append("}")
    return "\n".join(lines)


def _gen_append(f: FieldPlan) -> str:
    access = f"msg.{f.ident}"
    if f.kind == FieldKind.BYTES:
        return f"out = append(out, {access}...)"
    if f.kind == FieldKind.NUMBER:
        body = f"out = strconv.AppendFloat(out, *{access}, 'f', -1, 64)"
    elif f.kind == FieldKind.BOOLEAN:
        body = f"out = strconv.AppendBool(out, *{access})"
    else:
        body = f"out = append(out, *{access}...)"
    return f"if {access} != nil {{\n\t{body}\n}}"


def _serializer_imports(proto: ProtocolPlan) -> list[str]:
    fields = [f for m in proto.messages for f in m.fields]
    wire = [f for m in proto.messages for f in m.wire_fields]
    imports = {"strings"}
    if any(f.kind == FieldKind.ENUM for f in fields):
        imports.add("slices")
    if any(f.kind == FieldKind.STRING and f.pattern for f in fields):
        imports.add("regexp")
    if any(f.kind in (FieldKind.NUMBER, FieldKind.BOOLEAN) for f in wire):
        imports.add("strconv")
    if any(f.kind == FieldKind.STRING and (f.min_length is not None or f.max_length is not None) for f in fields):
        imports.add("unicode/utf8")
    return sorted(imports)


def _indent(text: str, prefix: str) -> str:
    return "\n".join(prefix + line if line else line for line in text.split("\n"))


class GoGenerator(LanguageGenerator):
    language = TargetLanguage.GO
    template_dir = "go"
    extensions = {name: "go" for name in ("types", "parser", "serializer", "client", "tests")}

    def field_ident(self, namer: Namer, name: str) -> str:
        # struct fields must be exported
        return namer.type_name(name)

    def file_names(self, module: str, namer: Namer) -> dict[str, str]:
        return {
            "types": f"{module}_types.go",
            "parser": f"{module}_parser.go",
            "serializer": f"{module}_serializer.go",
            "client": f"{module}_client.go",
            "tests": f"{module}_test.go",
        }

    def helpers(self) -> dict[str, Any]:
        return {
            "go_type": lambda f: GO_TYPES[f.kind],
            "go_string": go_string,
            "go_string_list": lambda values: ", ".join(go_string(v) for v in values),
            "go_bytes": _go_bytes,
            "go_private": lambda name: to_camel_case(name),
            "go_public": lambda name: to_pascal_case(name),
            "converter": lambda f: CONVERTERS[f.kind],
            "message_literal": _message_literal,
            "gen_validate_field": lambda f, indent="": _indent(_gen_validate_field(f), indent),
            "gen_append": lambda f, indent="": _indent(_gen_append(f), indent),
            "serializer_imports": _serializer_imports,
            "describe_literal": describe_literal,
            "comment": comment,
        }
