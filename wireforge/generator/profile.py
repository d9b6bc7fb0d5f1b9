"""Target language configurations and profiles."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from .naming import NamingConvention

DEFAULT_STEERING_DIR = ".steering"


class TargetLanguage(StrEnum):
    TYPESCRIPT = "typescript"
    PYTHON = "python"
    GO = "go"
    RUST = "rust"


class ErrorStyle(StrEnum):
    EXCEPTIONS = "exceptions"
    RESULT_TYPES = "result_types"
    ERROR_RETURNS = "error_returns"


class AsyncStyle(StrEnum):
    PROMISES = "promises"
    ASYNC_AWAIT = "async_await"
    GOROUTINES = "goroutines"


class TypeSystem(StrEnum):
    STRUCTURAL = "structural"
    NOMINAL = "nominal"
    GRADUAL = "gradual"


@dataclass(frozen=True)
class LanguageConfig:
    language: TargetLanguage
    display_name: str
    file_extension: str
    naming_convention: str
    error_handling: ErrorStyle
    async_pattern: AsyncStyle
    type_system: TypeSystem
    requires_type_annotations: bool
    supports_null: bool
    package_manager: str | None = None
    test_command: str | None = None
    format_command: str | None = None
    lint_command: str | None = None


@dataclass(frozen=True)
class NamingConventions:
    types: NamingConvention
    functions: NamingConvention
    variables: NamingConvention
    constants: NamingConvention
    private: NamingConvention
    files: NamingConvention


@dataclass(frozen=True)
class ErrorHandlingIdioms:
    throw_error: str
    catch_error: str
    define_error_type: str
    add_error_context: str
    use_result_types: bool


@dataclass(frozen=True)
class Idiom:
    """A named rewrite applied to generated source text.

    `pattern` is tried as a regular expression first and falls back to a
    literal substring when it does not compile. Higher priorities run first.
    """

    name: str
    pattern: str
    replacement: str
    priority: int = 0
    condition: str | None = None


@dataclass(frozen=True)
class LanguageProfile:
    config: LanguageConfig
    naming: NamingConventions
    error_handling: ErrorHandlingIdioms
    idioms: tuple[Idiom, ...] = ()
    steering_path: str | None = None

    @property
    def language(self) -> TargetLanguage:
        return self.config.language

    def with_idioms(self, idioms: list[Idiom] | tuple[Idiom, ...], steering_path: str | None) -> LanguageProfile:
        return dataclasses.replace(self, idioms=tuple(idioms), steering_path=steering_path)


_PASCAL = NamingConvention.PASCAL_CASE
_CAMEL = NamingConvention.CAMEL_CASE
_SNAKE = NamingConvention.SNAKE_CASE

LANGUAGE_CONFIGS: dict[TargetLanguage, LanguageConfig] = {
    TargetLanguage.TYPESCRIPT: LanguageConfig(
        language=TargetLanguage.TYPESCRIPT,
        display_name="TypeScript",
        file_extension=".ts",
        naming_convention="camelCase",
        error_handling=ErrorStyle.EXCEPTIONS,
        async_pattern=AsyncStyle.PROMISES,
        type_system=TypeSystem.STRUCTURAL,
        requires_type_annotations=True,
        supports_null=True,
        package_manager="npm",
        test_command="npm test",
        format_command="prettier --write",
        lint_command="eslint",
    ),
    TargetLanguage.PYTHON: LanguageConfig(
        language=TargetLanguage.PYTHON,
        display_name="Python",
        file_extension=".py",
        naming_convention="snake_case",
        error_handling=ErrorStyle.EXCEPTIONS,
        async_pattern=AsyncStyle.ASYNC_AWAIT,
        type_system=TypeSystem.GRADUAL,
        requires_type_annotations=False,
        supports_null=True,
        package_manager="pip",
        test_command="pytest",
        format_command="black",
        lint_command="mypy",
    ),
    TargetLanguage.GO: LanguageConfig(
        language=TargetLanguage.GO,
        display_name="Go",
        file_extension=".go",
        # PascalCase for exported names, camelCase otherwise
        naming_convention="mixed",
        error_handling=ErrorStyle.ERROR_RETURNS,
        async_pattern=AsyncStyle.GOROUTINES,
        type_system=TypeSystem.NOMINAL,
        requires_type_annotations=True,
        supports_null=False,
        package_manager="go mod",
        test_command="go test",
        format_command="gofmt",
        lint_command="go vet",
    ),
    TargetLanguage.RUST: LanguageConfig(
        language=TargetLanguage.RUST,
        display_name="Rust",
        file_extension=".rs",
        naming_convention="snake_case",
        error_handling=ErrorStyle.RESULT_TYPES,
        async_pattern=AsyncStyle.ASYNC_AWAIT,
        type_system=TypeSystem.NOMINAL,
        requires_type_annotations=True,
        supports_null=False,
        package_manager="cargo",
        test_command="cargo test",
        format_command="rustfmt",
        lint_command="cargo clippy",
    ),
}

NAMING_CONVENTIONS: dict[TargetLanguage, NamingConventions] = {
    TargetLanguage.TYPESCRIPT: NamingConventions(
        types=_PASCAL,
        functions=_CAMEL,
        variables=_CAMEL,
        constants=NamingConvention.UPPER_SNAKE_CASE,
        private=_CAMEL,
        files=NamingConvention.KEBAB_CASE,
    ),
    TargetLanguage.PYTHON: NamingConventions(
        types=_PASCAL,
        functions=_SNAKE,
        variables=_SNAKE,
        constants=NamingConvention.UPPER_SNAKE_CASE,
        private=_SNAKE,
        files=_SNAKE,
    ),
    TargetLanguage.GO: NamingConventions(
        types=_PASCAL,
        functions=_PASCAL,
        variables=_CAMEL,
        constants=_PASCAL,
        private=_CAMEL,
        files=_SNAKE,
    ),
    TargetLanguage.RUST: NamingConventions(
        types=_PASCAL,
        functions=_SNAKE,
        variables=_SNAKE,
        constants=NamingConvention.UPPER_SNAKE_CASE,
        private=_SNAKE,
        files=_SNAKE,
    ),
}

ERROR_HANDLING_PATTERNS: dict[TargetLanguage, ErrorHandlingIdioms] = {
    TargetLanguage.TYPESCRIPT: ErrorHandlingIdioms(
        throw_error="throw new Error(message)",
        catch_error="try { } catch (error) { }",
        define_error_type="class CustomError extends Error { }",
        add_error_context="error.context = { }",
        use_result_types=False,
    ),
    TargetLanguage.PYTHON: ErrorHandlingIdioms(
        throw_error="raise Exception(message)",
        catch_error="try: except Exception as e:",
        define_error_type="class CustomError(Exception): pass",
        add_error_context="raise CustomError(message) from error",
        use_result_types=False,
    ),
    TargetLanguage.GO: ErrorHandlingIdioms(
        throw_error="return nil, fmt.Errorf(message)",
        catch_error="if err != nil { }",
        define_error_type="type CustomError struct { }",
        add_error_context='fmt.Errorf("%w: %s", err, context)',
        use_result_types=False,
    ),
    TargetLanguage.RUST: ErrorHandlingIdioms(
        throw_error="return Err(Error::new(message))",
        catch_error="match result { Ok(v) => v, Err(e) => }",
        define_error_type="enum CustomError { }",
        add_error_context="error.context(context)",
        use_result_types=True,
    ),
}


def supported_languages() -> list[TargetLanguage]:
    return list(TargetLanguage)


def is_supported_language(language: str) -> bool:
    return language in {lang.value for lang in TargetLanguage}


def steering_file_name(language: TargetLanguage | str) -> str:
    return f"{language}-idioms.md"


def create_language_profile(
    language: TargetLanguage | str, steering_dir: str | Path = DEFAULT_STEERING_DIR
) -> LanguageProfile:
    """Build the base profile for a language, without any steering idioms."""
    target = TargetLanguage(language)
    return LanguageProfile(
        config=LANGUAGE_CONFIGS[target],
        naming=NAMING_CONVENTIONS[target],
        error_handling=ERROR_HANDLING_PATTERNS[target],
        steering_path=str(Path(steering_dir) / steering_file_name(target)),
    )
