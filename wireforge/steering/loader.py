"""Steering document loading.

A steering document is a markdown file named `<language>-idioms.md` that
carries idioms for one target language. Two shapes are recognised:

Heading blocks, pairing a labelled pattern fence with a labelled
replacement fence::

    ### Prefer const
    Priority: 8
    Condition: artifact==parser
    ```pattern
    \\blet (\\w+) =
    ```
    ```replacement
    const $1 =
    ```

(`Pattern:` / `Replacement:` label lines before plain fences work too),
and single-line bullets::

    - **Pattern**: `var ` → **Replacement**: `let `

A leading `---` block of `key: value` lines becomes the document metadata.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from wireforge.generator.profile import (
    DEFAULT_STEERING_DIR,
    Idiom,
    LanguageProfile,
    TargetLanguage,
    create_language_profile,
    steering_file_name,
)

logger = logging.getLogger(__name__)

_HEADING = re.compile(r"^#{2,6}\s+(?P<name>.+?)\s*#*\s*$")
_FENCE = re.compile(r"^\s*```\s*(?P<info>[\w-]*)\s*$")
_LABEL = re.compile(r"^\s*(?:\*\*)?(?P<label>pattern|replacement)(?:\*\*)?\s*:\s*(?:\*\*)?\s*$", re.IGNORECASE)
_ATTRIBUTE = re.compile(r"^\s*(?:\*\*)?(?P<key>condition|priority)(?:\*\*)?\s*:\s*(?P<value>.+?)\s*$", re.IGNORECASE)
_BULLET = re.compile(
    r"^\s*[-*]\s+(?:\*\*)?Pattern(?:\*\*)?\s*:\s*`(?P<pattern>[^`]+)`"
    r"\s*(?:→|->)\s*(?:\*\*)?Replacement(?:\*\*)?\s*:\s*`(?P<replacement>[^`]*)`",
    re.IGNORECASE,
)


class SteeringParseError(ValueError):
    """Raised when a steering document is malformed."""

    def __init__(self, message: str, line: int | None = None):
        where = f"line {line}: " if line is not None else ""
        super().__init__(f"{where}{message}")
        self.line = line


@dataclass(frozen=True)
class SteeringDocument:
    language: TargetLanguage
    path: str
    content: str = ""
    idioms: tuple[Idiom, ...] = ()
    metadata: dict[str, str] = field(default_factory=dict)
    errors: tuple[str, ...] = ()

    @property
    def exists(self) -> bool:
        return bool(self.content)


class SteeringCache:
    """Parsed steering documents, kept until explicitly cleared."""

    def __init__(self) -> None:
        self._documents: dict[tuple[str, str], SteeringDocument] = {}

    def get(self, language: str, directory: str) -> SteeringDocument | None:
        return self._documents.get((str(language), directory))

    def put(self, document: SteeringDocument, directory: str) -> None:
        self._documents[(str(document.language), directory)] = document

    def clear(self) -> None:
        self._documents.clear()

    def __len__(self) -> int:
        return len(self._documents)


_default_cache = SteeringCache()


def default_cache() -> SteeringCache:
    return _default_cache


def clear_steering_cache() -> None:
    _default_cache.clear()


def parse_metadata(lines: list[str]) -> tuple[dict[str, str], int]:
    """Parse a leading `---` block. Returns the metadata and the first body line index."""
    if not lines or lines[0].strip() != "---":
        return {}, 0
    metadata: dict[str, str] = {}
    for index, line in enumerate(lines[1:], start=1):
        if line.strip() == "---":
            return metadata, index + 1
        key, sep, value = line.partition(":")
        if sep and key.strip():
            metadata[key.strip()] = value.strip()
    raise SteeringParseError("front matter is not terminated by '---'", 1)


@dataclass
class _Block:
    name: str
    line: int
    pattern: str | None = None
    replacement: str | None = None
    condition: str | None = None
    priority: int | None = None


@dataclass
class _Entry:
    name: str
    pattern: str
    replacement: str
    condition: str | None = None
    priority: int | None = None


def _finish(block: _Block | None, entries: list[_Entry]) -> None:
    if block is None or (block.pattern is None and block.replacement is None):
        return
    if block.pattern is None or block.replacement is None:
        missing = "replacement" if block.replacement is None else "pattern"
        raise SteeringParseError(f'idiom "{block.name}" has no {missing} block', block.line)
    entries.append(_Entry(block.name, block.pattern, block.replacement, block.condition, block.priority))


def parse_idioms(lines: list[str], start: int = 0) -> list[Idiom]:
    """Extract idioms in order of appearance; earlier entries get higher default priority."""
    entries: list[_Entry] = []
    block: _Block | None = None
    label: str | None = None
    inline_count = 0

    index = start
    while index < len(lines):
        line = lines[index]
        lineno = index + 1

        fence = _FENCE.match(line)
        if fence:
            body: list[str] = []
            index += 1
            while index < len(lines) and not _FENCE.match(lines[index]):
                body.append(lines[index])
                index += 1
            if index >= len(lines):
                raise SteeringParseError("code fence is not closed", lineno)
            info = fence.group("info").lower()
            kind = info if info in ("pattern", "replacement") else label
            if kind is not None and block is not None:
                setattr(block, kind, "\n".join(body))
            label = None
            index += 1
            continue

        heading = _HEADING.match(line)
        if heading:
            _finish(block, entries)
            block = _Block(heading.group("name"), lineno)
            label = None
        elif bullet := _BULLET.match(line):
            inline_count += 1
            entries.append(
                _Entry(f"Inline idiom {inline_count}", bullet.group("pattern"), bullet.group("replacement"))
            )
        elif labelled := _LABEL.match(line):
            label = labelled.group("label").lower()
        elif block is not None and (attribute := _ATTRIBUTE.match(line)):
            if attribute.group("key").lower() == "condition":
                block.condition = attribute.group("value").strip("`")
            else:
                try:
                    block.priority = int(attribute.group("value"))
                except ValueError as exc:
                    raise SteeringParseError(
                        f'priority of "{block.name}" is not an integer', lineno
                    ) from exc
        index += 1

    _finish(block, entries)

    total = len(entries)
    return [
        Idiom(
            name=entry.name,
            pattern=entry.pattern,
            replacement=entry.replacement,
            priority=entry.priority if entry.priority is not None else total - position,
            condition=entry.condition,
        )
        for position, entry in enumerate(entries)
    ]


def parse_steering_document(language: TargetLanguage, path: str, content: str) -> SteeringDocument:
    """Parse document text. Malformed sources yield no idioms and record the error."""
    lines = content.splitlines()
    try:
        metadata, body_start = parse_metadata(lines)
        idioms = parse_idioms(lines, body_start)
    except SteeringParseError as exc:
        logger.warning("Ignoring idioms in malformed steering document %s: %s", path, exc)
        return SteeringDocument(language=language, path=path, content=content, errors=(str(exc),))
    return SteeringDocument(language=language, path=path, content=content, idioms=tuple(idioms), metadata=metadata)


def _steering_path(language: TargetLanguage, directory: str | Path) -> Path:
    return Path(directory) / steering_file_name(language)


def load_steering_document(
    language: TargetLanguage | str,
    directory: str | Path = DEFAULT_STEERING_DIR,
    cache: SteeringCache | None = None,
) -> SteeringDocument:
    """Load and cache the steering document of a language.

    A missing file is not an error: an empty document is returned and cached.
    """
    target = TargetLanguage(language)
    cache = cache if cache is not None else _default_cache
    key = str(directory)

    cached = cache.get(target, key)
    if cached is not None:
        return cached

    path = _steering_path(target, directory)
    if not path.is_file():
        logger.debug("No steering document for %s at %s", target, path)
        document = SteeringDocument(language=target, path=str(path))
    else:
        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            logger.warning("Steering document %s is not valid UTF-8: %s", path, exc)
            document = SteeringDocument(language=target, path=str(path), errors=(str(exc),))
        else:
            document = parse_steering_document(target, str(path), content)
            logger.debug("Loaded %d idioms for %s from %s", len(document.idioms), target, path)

    cache.put(document, key)
    return document


def load_steering_documents(
    languages: Iterable[TargetLanguage | str],
    directory: str | Path = DEFAULT_STEERING_DIR,
    cache: SteeringCache | None = None,
) -> dict[TargetLanguage, SteeringDocument]:
    return {
        TargetLanguage(language): load_steering_document(language, directory, cache)
        for language in languages
    }


def has_steering_document(language: TargetLanguage | str, directory: str | Path = DEFAULT_STEERING_DIR) -> bool:
    return _steering_path(TargetLanguage(language), directory).is_file()


def create_language_profile_with_steering(
    language: TargetLanguage | str,
    directory: str | Path = DEFAULT_STEERING_DIR,
    cache: SteeringCache | None = None,
) -> LanguageProfile:
    """Build the base profile for a language and merge in its steering idioms."""
    profile = create_language_profile(language, directory)
    document = load_steering_document(language, directory, cache)
    return profile.with_idioms(document.idioms, document.path)
