"""Format template parser using Lark."""

import os
from dataclasses import dataclass
from typing import Any

from lark import Lark, Token
from lark.exceptions import UnexpectedInput
from lark.visitors import Transformer

_g_parser: Lark | None = None


class TemplateError(ValueError):
    """Raised when a format template cannot be parsed."""

    def __init__(self, message: str, column: int | None = None):
        super().__init__(message)
        self.column = column


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class Placeholder:
    name: str


Segment = Literal | Placeholder


class TreeTransformer(Transformer):
    """Transform parse tree into template segments."""

    def placeholder(self, args: list[Any]) -> Placeholder:
        return Placeholder(name=str(args[0]))

    def escaped(self, args: list[Token]) -> Literal:
        return Literal(text=str(args[0])[1:])

    def text(self, args: list[Token]) -> Literal:
        return Literal(text=str(args[0]))

    def start(self, args: list[Segment]) -> list[Segment]:
        merged: list[Segment] = []
        for segment in args:
            if merged and isinstance(segment, Literal) and isinstance(merged[-1], Literal):
                merged[-1] = Literal(text=merged[-1].text + segment.text)
            else:
                merged.append(segment)
        return merged


def _parser() -> Lark:
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/template.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_parser = Lark(grammar, parser="lalr")
    return _g_parser


def parse_template(text: str) -> list[Segment]:
    """Parse a format template into literal and placeholder segments."""
    try:
        tree = _parser().parse(text)
    except UnexpectedInput as exc:
        column = exc.column if isinstance(exc.column, int) and exc.column > 0 else None
        where = f" at column {column}" if column else ""
        raise TemplateError(f"Malformed format template{where}: {text!r}", column) from exc
    return TreeTransformer().transform(tree)


def placeholders(segments: list[Segment]) -> list[str]:
    return [s.name for s in segments if isinstance(s, Placeholder)]


def has_adjacent_placeholders(segments: list[Segment]) -> bool:
    """Two placeholders with no literal between them cannot be split when parsing."""
    return any(
        isinstance(a, Placeholder) and isinstance(b, Placeholder)
        for a, b in zip(segments, segments[1:])
    )


def render_template(segments: list[Segment], values: dict[str, Any]) -> str:
    out = []
    for segment in segments:
        if isinstance(segment, Literal):
            out.append(segment.text)
        else:
            out.append(str(values[segment.name]))
    return "".join(out)
