"""Idiom application engine.

Idioms are best-effort rewrites over generated source text. A pattern that
compiles as a regular expression is applied as one; anything else is
replaced as a literal substring. Replacement text uses `$1`, `$&` and `$$`
references so that steering documents stay language neutral.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from wireforge.generator.profile import Idiom

logger = logging.getLogger(__name__)

HIGH_PRIORITY_THRESHOLD = 5

_REFERENCE = re.compile(r"\$(\$|&|\d{1,2})")


@dataclass(frozen=True)
class RegexRewrite:
    regex: re.Pattern[str]
    replacement: str

    def apply(self, code: str) -> str:
        return self.regex.sub(_expander(self.replacement), code)


@dataclass(frozen=True)
class LiteralRewrite:
    text: str
    replacement: str

    def apply(self, code: str) -> str:
        if not self.text:
            return code
        return code.replace(self.text, self.replacement)


Rewrite = RegexRewrite | LiteralRewrite


@dataclass(frozen=True)
class IdiomResult:
    code: str
    applied: bool


@dataclass(frozen=True)
class IdiomApplication:
    code: str
    applied: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def applied_count(self) -> int:
        return len(self.applied)


def _expander(replacement: str) -> Callable[[re.Match[str]], str]:
    """Build a substitution function resolving `$n`, `$&` and `$$`."""

    def substitute(match: re.Match[str]) -> str:
        groups = match.re.groups

        def reference(ref: re.Match[str]) -> str:
            token = ref.group(1)
            if token == "$":
                return "$"
            if token == "&":
                return match.group(0)
            index = int(token)
            if 0 < index <= groups:
                return match.group(index) or ""
            # $12 with fewer than 12 groups reads as $1 followed by "2"
            if len(token) == 2 and 0 < int(token[0]) <= groups:
                return (match.group(int(token[0])) or "") + token[1]
            return ref.group(0)

        return _REFERENCE.sub(reference, replacement)

    return substitute


def compile_rewrite(idiom: Idiom) -> Rewrite:
    """Resolve an idiom's pattern to a regex rewrite, or a literal one if it does not compile."""
    try:
        regex = re.compile(idiom.pattern)
    except re.error:
        return LiteralRewrite(idiom.pattern, idiom.replacement)
    return RegexRewrite(regex, idiom.replacement)


def _resolve(token: str, context: Mapping[str, str]) -> str:
    return context.get(token) or token


def evaluate_condition(condition: str, context: Mapping[str, str] | None) -> bool:
    """Evaluate `has:<name>`, `a==b` and `a!=b`; anything else applies."""
    if context is None:
        return True
    if condition.startswith("has:"):
        return condition[4:].strip() in context
    if "==" in condition:
        left, _, right = condition.partition("==")
        return _resolve(left.strip(), context) == _resolve(right.strip(), context)
    if "!=" in condition:
        left, _, right = condition.partition("!=")
        return _resolve(left.strip(), context) != _resolve(right.strip(), context)
    return True


def apply_idiom(code: str, idiom: Idiom, context: Mapping[str, str] | None = None) -> IdiomResult:
    if idiom.condition and not evaluate_condition(idiom.condition, context):
        return IdiomResult(code, False)
    new_code = compile_rewrite(idiom).apply(code)
    return IdiomResult(new_code, new_code != code)


def sort_by_priority(idioms: Iterable[Idiom]) -> list[Idiom]:
    # sorted() is stable, so ties keep declaration order
    return sorted(idioms, key=lambda i: i.priority, reverse=True)


def apply_idioms(
    code: str,
    idioms: Iterable[Idiom],
    context: Mapping[str, str] | None = None,
    *,
    high_priority_only: bool = False,
) -> IdiomApplication:
    """Apply idioms in descending priority order against the running text."""
    selected = list(idioms)
    if high_priority_only:
        selected = [i for i in selected if i.priority > HIGH_PRIORITY_THRESHOLD]

    applied: list[str] = []
    warnings: list[str] = []
    for idiom in sort_by_priority(selected):
        try:
            result = apply_idiom(code, idiom, context)
        except Exception as exc:
            logger.warning("Skipping idiom %r: %s", idiom.name, exc)
            warnings.append(f'Failed to apply idiom "{idiom.name}": {exc}')
            continue
        if result.applied:
            code = result.code
            applied.append(idiom.name)

    if applied:
        logger.debug("Applied idioms: %s", ", ".join(applied))
    return IdiomApplication(code=code, applied=applied, warnings=warnings)


def create_idiom_applier(idioms: Iterable[Idiom]) -> Callable[..., str]:
    """Bind an idiom set into a `code -> code` function."""
    bound = list(idioms)

    def applier(code: str, context: Mapping[str, str] | None = None) -> str:
        return apply_idioms(code, bound, context).code

    return applier


def validate_idioms(idioms: Iterable[Idiom]) -> list[str]:
    """List idioms whose pattern is not a valid regular expression."""
    errors = []
    for idiom in idioms:
        try:
            re.compile(idiom.pattern)
        except re.error as exc:
            errors.append(f'Invalid pattern in idiom "{idiom.name}": {exc}')
    return errors


def idiom_stats(idioms: Iterable[Idiom]) -> dict[str, int]:
    items = list(idioms)
    return {
        "total": len(items),
        "high_priority": sum(1 for i in items if i.priority > HIGH_PRIORITY_THRESHOLD),
        "with_conditions": sum(1 for i in items if i.condition),
    }
