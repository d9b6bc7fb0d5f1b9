"""Shared generator contract and language-neutral message plans.

Every target turns the same `ProtocolPlan` into five artifacts (types,
parser, serializer, client, tests). All three encodings (format template,
delimiter-joined, per-field state machine) compile to one step list: a
literal step must match exactly, and a field step reads up to its `stop`
text, or to the end of input when it has none. Parsers walk the steps,
serializers concatenate them.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from jinja2 import Environment, PackageLoader

from wireforge.solver.backtracking import solve_constraints
from wireforge.solver.extract import Violation, boundary_violations, extract_constraints, number_bounds, string_bounds
from wireforge.steering.idioms import apply_idioms

from .naming import Namer, to_snake_case, tool_name
from .profile import LanguageProfile, TargetLanguage
from .template import Literal, parse_template
from .types import Encoding, FieldDefinition, FieldKind, MessageType, ProtocolSpec
from .validator import message_encoding, require_valid

logger = logging.getLogger(__name__)

ARTIFACTS = ("types", "parser", "serializer", "client", "tests")

env = Environment(
    loader=PackageLoader("wireforge.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)


class GenerationError(RuntimeError):
    """Raised when one target fails to generate; tagged with its language."""

    def __init__(self, language: str, cause: BaseException | str):
        self.language = str(language)
        self.cause = cause
        super().__init__(f"{self.language} generation failed: {cause}")


@dataclass(frozen=True)
class LanguageArtifacts:
    language: TargetLanguage
    parser: str
    serializer: str
    client: str
    types: str
    tests: str
    elapsed_ms: float
    warnings: tuple[str, ...] = ()
    file_names: dict[str, str] = field(default_factory=dict)

    def files(self) -> dict[str, str]:
        """Map suggested file names to artifact text."""
        return {self.file_names[name]: getattr(self, name) for name in ARTIFACTS}


@dataclass(frozen=True)
class FieldPlan:
    name: str
    ident: str
    kind: FieldKind
    required: bool
    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None
    values: tuple[str, ...] = ()
    length: int | None = None
    pattern: str | None = None
    description: str | None = None
    values_const: str | None = None


@dataclass(frozen=True)
class Step:
    kind: str
    text: str = ""
    field: FieldPlan | None = None
    stop: str | None = None
    state: str = ""

    @property
    def is_literal(self) -> bool:
        return self.kind == "literal"


@dataclass(frozen=True)
class MessagePlan:
    name: str
    type_name: str
    encoding: Encoding
    direction: str
    invocable: bool
    tool_name: str
    parse_fn: str
    serialize_fn: str
    validate_fn: str
    method_name: str
    fields: tuple[FieldPlan, ...]
    wire_fields: tuple[FieldPlan, ...]
    steps: tuple[Step, ...]
    example: dict[str, Any] | None
    expected: bytes | None
    violations: tuple[tuple[FieldPlan, Violation], ...]
    trailer: str | None
    description: str | None = None

    @property
    def required_fields(self) -> tuple[FieldPlan, ...]:
        return tuple(f for f in self.fields if f.required)

    @property
    def has_literal(self) -> bool:
        return any(s.is_literal and s.text for s in self.steps)

    @property
    def is_state_machine(self) -> bool:
        return self.encoding == Encoding.STATE_MACHINE


@dataclass(frozen=True)
class ProtocolPlan:
    name: str
    type_prefix: str
    module: str
    package: str
    description: str
    transport: str
    port: int
    timeout_ms: int
    messages: tuple[MessagePlan, ...]
    reply_terminator: str | None
    file_names: dict[str, str]

    @property
    def invocable(self) -> tuple[MessagePlan, ...]:
        return tuple(m for m in self.messages if m.invocable)

    @property
    def enum_fields(self) -> list[tuple[MessagePlan, FieldPlan]]:
        return [(m, f) for m in self.messages for f in m.fields if f.kind == FieldKind.ENUM]

    @property
    def has_patterns(self) -> bool:
        return any(f.pattern for m in self.messages for f in m.fields)


# Literal and comment helpers shared by the targets


def js_string(text: str) -> str:
    return json.dumps(text)


def escaped_string(text: str, unicode_escape: str) -> str:
    """Double-quoted literal for Go (`\\u%04x`) and Rust (`\\u{%x}`) sources."""
    out = ['"']
    for ch in text:
        code = ord(ch)
        if ch == '"':
            out.append('\\"')
        elif ch == "\\":
            out.append("\\\\")
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif 0x20 <= code < 0x7F:
            out.append(ch)
        elif unicode_escape == "go" and code > 0xFFFF:
            out.append(f"\\U{code:08x}")
        elif unicode_escape == "go":
            out.append(f"\\u{code:04x}")
        else:
            out.append(f"\\u{{{code:x}}}")
    out.append('"')
    return "".join(out)


def go_string(text: str) -> str:
    return escaped_string(text, "go")


def rust_string(text: str) -> str:
    return escaped_string(text, "rust")


def rust_bytes(data: bytes | str) -> str:
    raw = data.encode("utf-8") if isinstance(data, str) else data
    out = ['b"']
    for byte in raw:
        if byte in (0x22, 0x5C) or not 0x20 <= byte < 0x7F:
            out.append(f"\\x{byte:02x}")
        else:
            out.append(chr(byte))
    out.append('"')
    return "".join(out)


def comment(text: str | None) -> str:
    """Flatten free text so it is safe inside a line or block comment."""
    if not text:
        return ""
    return " ".join(text.replace("*/", "* /").split())


def number_text(value: float) -> str:
    """Render a number the way every generated serializer writes it."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


def wire_text(kind: FieldKind, value: Any) -> bytes:
    if value is None:
        return b""
    if kind == FieldKind.BOOLEAN:
        return b"true" if value else b"false"
    if kind == FieldKind.BYTES:
        return value if isinstance(value, bytes) else str(value).encode("utf-8")
    if kind == FieldKind.NUMBER:
        return number_text(value).encode("ascii")
    return str(value).encode("utf-8")


def describe_literal(text: str) -> str:
    return json.dumps(text)


# Plan construction


def _field_plan(fdef: FieldDefinition, message: MessageType, namer: Namer, ident: str) -> FieldPlan:
    kind = fdef.type.kind
    min_length = max_length = None
    low = high = None
    if kind == FieldKind.STRING:
        min_length, max_length = string_bounds(fdef)
    elif kind == FieldKind.NUMBER:
        low, high = number_bounds(fdef)
    return FieldPlan(
        name=fdef.name,
        ident=ident,
        kind=kind,
        required=fdef.required,
        min_length=min_length,
        max_length=max_length,
        min=low,
        max=high,
        values=tuple(fdef.type.values or ()),
        length=fdef.type.length if kind == FieldKind.BYTES else None,
        pattern=fdef.validation.pattern if fdef.validation else None,
        description=fdef.description,
        values_const=namer.constant_name(f"{message.name} {fdef.name} values") if kind == FieldKind.ENUM else None,
    )


def _state(name: str) -> str:
    return "READ_" + to_snake_case(name).upper()


def _raw_steps(message: MessageType, encoding: Encoding) -> list[tuple[str, str]]:
    """Ordered (kind, text-or-field-name) pairs before stops are resolved."""
    steps: list[tuple[str, str]] = []
    if encoding == Encoding.FORMAT_TEMPLATE:
        assert message.format is not None
        for segment in parse_template(message.format):
            if isinstance(segment, Literal):
                steps.append(("literal", segment.text))
            else:
                steps.append(("field", segment.name))
        if message.terminator and not message.format.endswith(message.terminator):
            steps.append(("literal", message.terminator))
    elif encoding == Encoding.DELIMITED:
        for index, fdef in enumerate(message.fields):
            if index and message.delimiter:
                steps.append(("literal", message.delimiter))
            steps.append(("field", fdef.name))
        if message.terminator:
            steps.append(("literal", message.terminator))
    else:
        for fdef in message.fields:
            steps.append(("field", fdef.name))
            if fdef.delimiter:
                steps.append(("literal", fdef.delimiter))
        last = message.fields[-1] if message.fields else None
        if message.terminator and not (last is not None and last.delimiter == message.terminator):
            steps.append(("literal", message.terminator))
    return steps


def _resolve_steps(raw: list[tuple[str, str]], fields: dict[str, FieldPlan]) -> tuple[Step, ...]:
    steps: list[Step] = []
    for index, (kind, value) in enumerate(raw):
        if kind == "literal":
            wordy = any(ch.isascii() and ch.isalnum() for ch in value)
            state = "EXPECT_" + to_snake_case(value).upper() if wordy else "EXPECT_SEPARATOR"
            steps.append(Step("literal", text=value, state=state))
            continue
        following = raw[index + 1] if index + 1 < len(raw) else None
        stop = following[1] if following is not None and following[0] == "literal" else None
        steps.append(Step("field", field=fields[value], stop=stop, state=_state(value)))
    return tuple(steps)


def _example(message: MessageType, wire: tuple[FieldPlan, ...]) -> dict[str, Any] | None:
    names = [f.name for f in wire]
    constraints = [c for c in extract_constraints(message) if c.field in names]
    result = solve_constraints(names, constraints)
    if not result.success or result.solution is None:
        logger.debug("No example for %s: %s", message.name, result.reason)
        return None
    example = dict(result.solution)
    for f in wire:
        if f.kind == FieldKind.BYTES:
            example[f.name] = str(example[f.name]).encode("utf-8")
    return example


def _round_trips(steps: tuple[Step, ...], example: dict[str, Any]) -> bool:
    """An example only round-trips if no value contains the text that ends it."""
    for step in steps:
        if step.field is None or step.stop is None:
            continue
        if step.stop.encode("utf-8") in wire_text(step.field.kind, example.get(step.field.name)):
            return False
    return True


def _encode(steps: tuple[Step, ...], example: dict[str, Any]) -> bytes:
    out = bytearray()
    for step in steps:
        if step.field is None:
            out += step.text.encode("utf-8")
        else:
            out += wire_text(step.field.kind, example.get(step.field.name))
    return bytes(out)


def _unique(idents: list[tuple[str, str]], what: str, owner: str) -> None:
    seen: dict[str, str] = {}
    for name, ident in idents:
        if ident in seen and seen[ident] != name:
            raise ValueError(f'{what} "{seen[ident]}" and "{name}" of {owner} both map to identifier "{ident}"')
        seen[ident] = name


def _trailer(steps: tuple[Step, ...]) -> str | None:
    if steps and steps[-1].is_literal and steps[-1].text:
        return steps[-1].text
    return None


def build_plan(spec: ProtocolSpec, generator: LanguageGenerator, namer: Namer) -> ProtocolPlan:
    """Lower a validated specification into a language-aware plan."""
    protocol = spec.protocol.name
    messages: list[MessagePlan] = []
    for message in spec.message_types:
        idents = [(f.name, generator.field_ident(namer, f.name)) for f in message.fields]
        _unique(idents, "fields", message.name)
        fields = {
            f.name: _field_plan(f, message, namer, ident) for f, (_, ident) in zip(message.fields, idents)
        }
        encoding = message_encoding(message)
        assert encoding is not None
        steps = _resolve_steps(_raw_steps(message, encoding), fields)
        wire = tuple(s.field for s in steps if s.field is not None)
        example = _example(message, wire)
        if example is not None and not _round_trips(steps, example):
            logger.debug("Example for %s contains its own delimiter; no round trip", message.name)
            example = None

        violations = tuple(
            (fields[fdef.name], violation)
            for fdef in message.fields
            for violation in boundary_violations(fdef)
            if generator.dynamic_types or not violation.type_error
        )
        if example is None:
            violations = ()

        messages.append(
            MessagePlan(
                name=message.name,
                type_name=namer.type_name(message.name),
                encoding=encoding,
                direction=str(message.direction),
                invocable=message.invocable,
                tool_name=tool_name(protocol, message.name),
                parse_fn=namer.function_name(f"parse {message.name}"),
                serialize_fn=namer.function_name(f"serialize {message.name}"),
                validate_fn=namer.function_name(f"validate {message.name}"),
                method_name=generator.method_ident(namer, message.name),
                fields=tuple(fields[f.name] for f in message.fields),
                wire_fields=wire,
                steps=steps,
                example=example,
                expected=_encode(steps, example) if example is not None else None,
                violations=violations,
                trailer=_trailer(steps),
                description=message.description,
            )
        )

    _unique([(m.name, m.type_name) for m in messages], "message types", protocol)

    replies = [m.trailer for m in messages if not m.invocable and m.trailer]
    requests = [m.trailer for m in messages if m.invocable and m.trailer]
    reply_terminator = (replies or requests or [None])[0]

    module = namer.file_name(protocol)
    return ProtocolPlan(
        name=protocol,
        type_prefix=namer.type_name(protocol),
        module=to_snake_case(protocol),
        package="".join(ch for ch in protocol.lower() if ch.isascii() and ch.isalnum()) or "protocol",
        description=spec.protocol.description,
        transport=str(spec.connection.type),
        port=spec.protocol.port,
        timeout_ms=spec.connection.timeout or 5000,
        messages=tuple(messages),
        reply_terminator=reply_terminator,
        file_names=generator.file_names(module, namer),
    )


class LanguageGenerator(ABC):
    """Base class for target generators.

    `generate` is a pure function of its inputs: it validates the
    specification, builds a plan, renders each artifact template and runs
    the profile's idioms over the result.
    """

    language: ClassVar[TargetLanguage]
    template_dir: ClassVar[str]
    extensions: ClassVar[dict[str, str]]
    # dynamically typed targets also check runtime types in validate()
    dynamic_types: ClassVar[bool] = False

    def field_ident(self, namer: Namer, name: str) -> str:
        return namer.variable_name(name)

    def method_ident(self, namer: Namer, name: str) -> str:
        return namer.function_name(name)

    @abstractmethod
    def file_names(self, module: str, namer: Namer) -> dict[str, str]:
        """Suggested file name for each artifact."""

    @abstractmethod
    def helpers(self) -> dict[str, Any]:
        """Functions and constants made available to this target's templates."""

    def render(self, plan: ProtocolPlan, artifact: str) -> str:
        template = env.get_template(f"{self.template_dir}/{artifact}.{self.extensions[artifact]}.j2")
        return template.render(proto=plan, FieldKind=FieldKind, Encoding=Encoding, **self.helpers())

    async def generate(self, spec: ProtocolSpec, profile: LanguageProfile) -> LanguageArtifacts:
        # rendering is CPU bound; a worker thread keeps timeouts effective
        return await asyncio.to_thread(self.generate_sync, spec, profile)

    def generate_sync(self, spec: ProtocolSpec, profile: LanguageProfile) -> LanguageArtifacts:
        start = time.perf_counter()
        checked = require_valid(spec)
        try:
            plan = build_plan(checked, self, Namer(profile))
            texts: dict[str, str] = {}
            warnings: list[str] = []
            for artifact in ARTIFACTS:
                context = {"language": str(self.language), "protocolName": plan.name, "artifact": artifact}
                applied = apply_idioms(self.render(plan, artifact), profile.idioms, context)
                texts[artifact] = applied.code
                warnings.extend(f"{artifact}: {w}" for w in applied.warnings)
        except Exception as exc:
            raise GenerationError(self.language, exc) from exc

        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("Generated %s artifacts for %s in %.1fms", self.language, plan.name, elapsed)
        return LanguageArtifacts(
            language=self.language,
            elapsed_ms=elapsed,
            warnings=tuple(warnings),
            file_names=dict(plan.file_names),
            **texts,
        )
