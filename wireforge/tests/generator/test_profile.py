"""Tests for language profiles."""

import pytest

from wireforge.generator.naming import NamingConvention
from wireforge.generator.profile import (
    ErrorStyle,
    Idiom,
    TargetLanguage,
    create_language_profile,
    is_supported_language,
    steering_file_name,
    supported_languages,
)


def describe_supported_languages():
    def lists_the_four_targets(expect):
        expect(supported_languages()) == [
            TargetLanguage.TYPESCRIPT,
            TargetLanguage.PYTHON,
            TargetLanguage.GO,
            TargetLanguage.RUST,
        ]

    def checks_names(expect):
        expect(is_supported_language("rust")) == True
        expect(is_supported_language("cobol")) == False


def describe_create_language_profile():
    def builds_a_profile_without_idioms(expect):
        profile = create_language_profile("go", "steer")
        expect(profile.language) == TargetLanguage.GO
        expect(profile.config.error_handling) == ErrorStyle.ERROR_RETURNS
        expect(profile.naming.functions) == NamingConvention.PASCAL_CASE
        expect(profile.idioms) == ()
        expect(profile.steering_path.endswith("go-idioms.md")) == True

    def rejects_unknown_languages(expect):
        with pytest.raises(ValueError):
            create_language_profile("cobol")

    def returns_copies_with_idioms(expect):
        profile = create_language_profile("python")
        idiom = Idiom(name="x", pattern="a", replacement="b")
        extended = profile.with_idioms([idiom], "custom.md")
        expect(extended.idioms) == (idiom,)
        expect(extended.steering_path) == "custom.md"
        expect(profile.idioms) == ()


def describe_steering_file_name():
    def uses_the_language_value(expect):
        expect(steering_file_name(TargetLanguage.TYPESCRIPT)) == "typescript-idioms.md"
