"""Identifier casing, reserved-word escaping and tool names."""

from __future__ import annotations

import re
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .profile import LanguageProfile


class NamingConvention(StrEnum):
    PASCAL_CASE = "PascalCase"
    CAMEL_CASE = "camelCase"
    SNAKE_CASE = "snake_case"
    UPPER_SNAKE_CASE = "UPPER_SNAKE_CASE"
    KEBAB_CASE = "kebab-case"


_SEPARATORS = re.compile(r"[^A-Za-z0-9]+")
_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_NOT_TOOL_CHAR = re.compile(r"[^a-z0-9]")


def split_words(name: str) -> list[str]:
    """Split an identifier into words on separators and case boundaries."""
    words: list[str] = []
    for chunk in _SEPARATORS.split(name):
        if chunk:
            words.extend(w for w in _BOUNDARY.split(chunk) if w)
    if not words:
        return ["value"]
    if words[0][0].isdigit():
        words.insert(0, "n")
    return words


def to_pascal_case(name: str) -> str:
    return "".join(w[:1].upper() + w[1:].lower() for w in split_words(name))


def to_camel_case(name: str) -> str:
    pascal = to_pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


def to_snake_case(name: str) -> str:
    return "_".join(w.lower() for w in split_words(name))


def to_upper_snake_case(name: str) -> str:
    return "_".join(w.upper() for w in split_words(name))


def to_kebab_case(name: str) -> str:
    return "-".join(w.lower() for w in split_words(name))


CONVERTERS = {
    NamingConvention.PASCAL_CASE: to_pascal_case,
    NamingConvention.CAMEL_CASE: to_camel_case,
    NamingConvention.SNAKE_CASE: to_snake_case,
    NamingConvention.UPPER_SNAKE_CASE: to_upper_snake_case,
    NamingConvention.KEBAB_CASE: to_kebab_case,
}


def convert(name: str, convention: NamingConvention) -> str:
    return CONVERTERS[convention](name)


RESERVED_WORDS: dict[str, frozenset[str]] = {
    "typescript": frozenset(
        """
        break case catch class const continue debugger default delete do else enum
        export extends false finally for function if import in instanceof new null
        return super switch this throw true try typeof var void while with as
        implements interface let package private protected public static yield
        """.split()
    ),
    "python": frozenset(
        """
        False None True and as assert async await break class continue def del elif
        else except finally for from global if import in is lambda nonlocal not or
        pass raise return try while with yield
        """.split()
    ),
    "go": frozenset(
        """
        break case chan const continue default defer else fallthrough for func go
        goto if import interface map package range return select struct switch type
        var string int bool byte error nil true false
        """.split()
    ),
    "rust": frozenset(
        """
        as async await break const continue crate dyn else enum extern false fn for
        if impl in let loop match mod move mut pub ref return self Self static struct
        super trait true type unsafe use where while abstract become box do final
        macro override priv typeof unsized virtual yield try
        """.split()
    ),
}


def escape_reserved(name: str, language: str) -> str:
    if name in RESERVED_WORDS.get(language, frozenset()):
        return f"{name}_"
    return name


class Namer:
    """Apply a language profile's naming conventions to protocol names."""

    def __init__(self, profile: LanguageProfile):
        self.language = str(profile.language)
        self.naming = profile.naming

    def _name(self, name: str, convention: NamingConvention) -> str:
        return escape_reserved(convert(name, convention), self.language)

    def type_name(self, name: str) -> str:
        return self._name(name, self.naming.types)

    def function_name(self, name: str) -> str:
        return self._name(name, self.naming.functions)

    def variable_name(self, name: str) -> str:
        return self._name(name, self.naming.variables)

    def constant_name(self, name: str) -> str:
        return self._name(name, self.naming.constants)

    def file_name(self, name: str) -> str:
        return convert(name, self.naming.files)


def tool_name(protocol: str, operation: str) -> str:
    """Derive the externally addressable `{protocol}_{operation}` name."""
    protocol_part = _NOT_TOOL_CHAR.sub("", protocol.lower()) or "protocol"
    operation_part = _NOT_TOOL_CHAR.sub("", operation.lower()) or "operation"
    return f"{protocol_part}_{operation_part}"
