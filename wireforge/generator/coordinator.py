"""Run several target generators over one specification."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from wireforge.steering.loader import SteeringCache, create_language_profile_with_steering

from .base import GenerationError, LanguageArtifacts, LanguageGenerator
from .go import GoGenerator
from .profile import DEFAULT_STEERING_DIR, LanguageProfile, TargetLanguage
from .python import PythonGenerator
from .rust import RustGenerator
from .types import ProtocolSpec
from .typescript import TypeScriptGenerator
from .validator import require_valid

logger = logging.getLogger(__name__)

DEFAULT_GENERATORS: tuple[type[LanguageGenerator], ...] = (
    TypeScriptGenerator,
    PythonGenerator,
    GoGenerator,
    RustGenerator,
)


class MissingGeneratorError(RuntimeError):
    """Raised when a requested language has no registered generator."""

    def __init__(self, languages: Iterable[str]):
        self.languages = [str(lang) for lang in languages]
        super().__init__(f"No generator registered for: {', '.join(self.languages)}")


@dataclass(frozen=True)
class GenerationOptions:
    languages: tuple[TargetLanguage, ...]
    parallel: bool = True
    continue_on_error: bool = True
    timeout_ms: float | None = None


@dataclass
class GenerationResult:
    artifacts: dict[TargetLanguage, LanguageArtifacts] = field(default_factory=dict)
    succeeded: list[TargetLanguage] = field(default_factory=list)
    failed: list[TargetLanguage] = field(default_factory=list)
    errors: dict[TargetLanguage, GenerationError] = field(default_factory=dict)
    timings: dict[TargetLanguage, float] = field(default_factory=dict)
    total_time_ms: float = 0.0

    @property
    def success(self) -> bool:
        return not self.failed

    def record(self, language: TargetLanguage, outcome: LanguageArtifacts | BaseException, elapsed: float) -> None:
        self.timings[language] = elapsed
        if isinstance(outcome, LanguageArtifacts):
            self.artifacts[language] = outcome
            self.succeeded.append(language)
            return
        error = outcome if isinstance(outcome, GenerationError) else GenerationError(language, outcome)
        self.errors[language] = error
        self.failed.append(language)


class LanguageCoordinator:
    """Registry of generators plus a per-language profile cache."""

    def __init__(self, steering_dir: str | Path = DEFAULT_STEERING_DIR, cache: SteeringCache | None = None):
        self.steering_dir = steering_dir
        self.cache = cache
        self._generators: dict[TargetLanguage, LanguageGenerator] = {}
        self._profiles: dict[TargetLanguage, LanguageProfile] = {}

    def register_generator(self, generator: LanguageGenerator) -> None:
        logger.debug("Registered %s generator", generator.language)
        self._generators[generator.language] = generator

    def has_generator(self, language: TargetLanguage | str) -> bool:
        return language in self._generators

    def registered_languages(self) -> list[TargetLanguage]:
        return list(self._generators)

    def clear_generators(self) -> None:
        self._generators.clear()

    def profile(self, language: TargetLanguage) -> LanguageProfile:
        if language not in self._profiles:
            self._profiles[language] = create_language_profile_with_steering(language, self.steering_dir, self.cache)
        return self._profiles[language]

    def clear_profiles(self) -> None:
        self._profiles.clear()

    async def _attempt(
        self, language: TargetLanguage, spec: ProtocolSpec, timeout_ms: float | None
    ) -> tuple[LanguageArtifacts | BaseException, float]:
        start = time.perf_counter()
        try:
            call = self._generators[language].generate(spec, self.profile(language))
            if timeout_ms is not None:
                outcome: LanguageArtifacts | BaseException = await asyncio.wait_for(call, timeout_ms / 1000)
            else:
                outcome = await call
        except asyncio.TimeoutError:
            outcome = GenerationError(language, f"timed out after {timeout_ms}ms")
        except Exception as exc:
            outcome = exc
        return outcome, (time.perf_counter() - start) * 1000

    async def _run_parallel(self, spec: ProtocolSpec, options: GenerationOptions, result: GenerationResult) -> None:
        tasks = {
            asyncio.create_task(self._attempt(lang, spec, options.timeout_ms), name=f"generate-{lang}"): lang
            for lang in options.languages
        }
        if options.continue_on_error:
            settled = await asyncio.gather(*tasks)
            for lang, (outcome, elapsed) in zip(tasks.values(), settled):
                result.record(lang, outcome, elapsed)
            return

        pending = set(tasks)
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            failed = False
            for task in done:
                outcome, elapsed = task.result()
                result.record(tasks[task], outcome, elapsed)
                failed = failed or not isinstance(outcome, LanguageArtifacts)
            if failed and pending:
                logger.info("Cancelling %d in-flight generators after a failure", len(pending))
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
                break

    async def _run_sequential(self, spec: ProtocolSpec, options: GenerationOptions, result: GenerationResult) -> None:
        for lang in options.languages:
            outcome, elapsed = await self._attempt(lang, spec, options.timeout_ms)
            result.record(lang, outcome, elapsed)
            if not isinstance(outcome, LanguageArtifacts) and not options.continue_on_error:
                break

    async def generate(self, spec: ProtocolSpec | Mapping[str, Any], options: GenerationOptions) -> GenerationResult:
        """Generate every requested language and report per-language outcomes."""
        missing = [lang for lang in options.languages if lang not in self._generators]
        if missing:
            raise MissingGeneratorError(missing)
        checked = require_valid(spec)

        start = time.perf_counter()
        result = GenerationResult()
        if options.parallel:
            await self._run_parallel(checked, options, result)
        else:
            await self._run_sequential(checked, options, result)
        result.total_time_ms = (time.perf_counter() - start) * 1000

        for lang, error in result.errors.items():
            logger.warning("%s", error)
        logger.info(
            "Generated %s: %d succeeded, %d failed in %.1fms",
            checked.protocol.name,
            len(result.succeeded),
            len(result.failed),
            result.total_time_ms,
        )
        return result


def create_language_coordinator(
    steering_dir: str | Path = DEFAULT_STEERING_DIR,
    register_defaults: bool = True,
    cache: SteeringCache | None = None,
) -> LanguageCoordinator:
    coordinator = LanguageCoordinator(steering_dir, cache)
    if register_defaults:
        for generator in DEFAULT_GENERATORS:
            coordinator.register_generator(generator())
    return coordinator
