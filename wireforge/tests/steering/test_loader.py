"""Tests for steering document loading."""

import pytest

from wireforge.generator.profile import TargetLanguage
from wireforge.steering.loader import (
    SteeringCache,
    SteeringParseError,
    clear_steering_cache,
    create_language_profile_with_steering,
    default_cache,
    has_steering_document,
    load_steering_document,
    load_steering_documents,
    parse_metadata,
    parse_steering_document,
)

DOCUMENT = """\
---
title: TypeScript idioms
version: 2
---

# TypeScript

## Prefer const
Priority: 8
Condition: artifact==parser
```pattern
\\blet (\\w+) =
```
```replacement
const $1 =
```

## Strict equality
Pattern:
```
(?<![=!])==(?!=)
```
Replacement:
```
===
```

## Quick rewrites

- **Pattern**: `var ` → **Replacement**: `let `
"""


def parse(content):
    return parse_steering_document(TargetLanguage.TYPESCRIPT, "typescript-idioms.md", content)


@pytest.fixture
def steering_dir(tmp_path):
    (tmp_path / "typescript-idioms.md").write_text(DOCUMENT, encoding="utf-8")
    return tmp_path


def describe_parse_metadata():
    def reads_front_matter(expect):
        metadata, start = parse_metadata(["---", "a: 1", "b:  two words ", "---", "body"])
        expect(metadata) == {"a": "1", "b": "two words"}
        expect(start) == 4

    def is_optional(expect):
        expect(parse_metadata(["# Title"])) == ({}, 0)

    def requires_a_closing_marker(expect):
        with pytest.raises(SteeringParseError) as exc:
            parse_metadata(["---", "a: 1"])
        expect(exc.value.line) == 1


def describe_parse_steering_document():
    def reads_heading_blocks_and_bullets(expect):
        document = parse(DOCUMENT)
        expect(document.errors) == ()
        expect([i.name for i in document.idioms]) == ["Prefer const", "Strict equality", "Inline idiom 1"]
        first, second, inline = document.idioms
        expect(first.pattern) == "\\blet (\\w+) ="
        expect(first.replacement) == "const $1 ="
        expect(first.condition) == "artifact==parser"
        expect(first.priority) == 8
        expect(second.pattern) == "(?<![=!])==(?!=)"
        expect(second.replacement) == "==="
        expect(inline.pattern) == "var "
        expect(inline.replacement) == "let "

    def ranks_earlier_idioms_higher_by_default(expect):
        document = parse(DOCUMENT)
        expect([i.priority for i in document.idioms]) == [8, 2, 1]

    def keeps_metadata(expect):
        expect(parse(DOCUMENT).metadata) == {"title": "TypeScript idioms", "version": "2"}

    def records_unclosed_fences(expect):
        document = parse("## Broken\n```pattern\nfoo\n")
        expect(document.idioms) == ()
        expect(document.errors) == ("line 2: code fence is not closed",)
        expect(document.exists) == True

    def records_blocks_missing_a_replacement(expect):
        document = parse("## Half\n```pattern\nfoo\n```\n")
        expect(document.errors) == ('line 1: idiom "Half" has no replacement block',)

    def records_non_integer_priorities(expect):
        document = parse("## Odd\nPriority: high\n")
        expect(document.errors) == ('line 2: priority of "Odd" is not an integer',)

    def ignores_headings_without_code(expect):
        expect(parse("## Notes\nJust prose.\n").idioms) == ()


def describe_load_steering_document():
    def loads_and_caches_documents(expect, steering_dir):
        cache = SteeringCache()
        document = load_steering_document("typescript", steering_dir, cache)
        expect(document.exists) == True
        expect(len(document.idioms)) == 3
        expect(document.path) == str(steering_dir / "typescript-idioms.md")

        (steering_dir / "typescript-idioms.md").write_text("", encoding="utf-8")
        expect(load_steering_document("typescript", steering_dir, cache)) == document
        cache.clear()
        expect(load_steering_document("typescript", steering_dir, cache).exists) == False

    def returns_empty_documents_for_missing_files(expect, tmp_path):
        cache = SteeringCache()
        document = load_steering_document(TargetLanguage.GO, tmp_path, cache)
        expect(document.exists) == False
        expect(document.idioms) == ()
        expect(len(cache)) == 1

    def keys_the_cache_by_directory(expect, steering_dir, tmp_path_factory):
        cache = SteeringCache()
        other = tmp_path_factory.mktemp("other")
        expect(load_steering_document("typescript", steering_dir, cache).exists) == True
        expect(load_steering_document("typescript", other, cache).exists) == False
        expect(len(cache)) == 2

    def records_undecodable_files(expect, tmp_path):
        (tmp_path / "rust-idioms.md").write_bytes(b"\xff\xfe## x")
        document = load_steering_document("rust", tmp_path, SteeringCache())
        expect(document.idioms) == ()
        expect(len(document.errors)) == 1

    def uses_the_shared_cache_by_default(expect, steering_dir):
        clear_steering_cache()
        load_steering_document("typescript", steering_dir)
        expect(len(default_cache())) == 1
        clear_steering_cache()
        expect(len(default_cache())) == 0

    def rejects_unknown_languages(expect, tmp_path):
        with pytest.raises(ValueError):
            load_steering_document("cobol", tmp_path, SteeringCache())


def describe_helpers():
    def loads_several_languages(expect, steering_dir):
        documents = load_steering_documents(["typescript", "python"], steering_dir, SteeringCache())
        expect(list(documents)) == [TargetLanguage.TYPESCRIPT, TargetLanguage.PYTHON]
        expect(documents[TargetLanguage.PYTHON].exists) == False

    def checks_for_files(expect, steering_dir):
        expect(has_steering_document("typescript", steering_dir)) == True
        expect(has_steering_document("go", steering_dir)) == False

    def merges_idioms_into_profiles(expect, steering_dir):
        profile = create_language_profile_with_steering("typescript", steering_dir, SteeringCache())
        expect(len(profile.idioms)) == 3
        expect(profile.steering_path) == str(steering_dir / "typescript-idioms.md")
