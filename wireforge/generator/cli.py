"""Command-line interface for wireforge code generation."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from wireforge.generator.coordinator import GenerationOptions, GenerationResult, create_language_coordinator
from wireforge.generator.naming import tool_name
from wireforge.generator.profile import DEFAULT_STEERING_DIR, TargetLanguage, supported_languages
from wireforge.generator.types import ProtocolSpec
from wireforge.generator.validator import StructuralError, ValidationResult, coerce_spec, message_encoding, validate
from wireforge.solver import find_all_solutions
from wireforge.solver.extract import extract_constraints

LANGUAGES = [str(lang) for lang in supported_languages()]

err_console = Console(stderr=True)


def _fail(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {escape(message)}", soft_wrap=True)
    sys.exit(1)


def _load(input_file: str) -> Any:
    try:
        with open(input_file, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        _fail(f"{input_file} is not valid JSON: {exc}")
    except OSError as exc:
        _fail(f"cannot read {input_file}: {exc.strerror}")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr")
def cli(verbose: bool) -> None:
    """Wireforge protocol code generator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


@cli.command()
@click.option(
    "--language", "-l", "languages", multiple=True, required=True, type=click.Choice(LANGUAGES), help="Target language"
)
@click.option("--input", "-i", "input_file", required=True, help="Protocol specification (JSON)")
@click.option("--output", "-o", "output_dir", default=None, help="Write artifacts under this directory")
@click.option(
    "--steering-dir",
    envvar="WIREFORGE_STEERING_DIR",
    default=DEFAULT_STEERING_DIR,
    show_default=True,
    help="Directory holding <language>-idioms.md documents",
)
@click.option("--sequential", is_flag=True, help="Generate one language at a time")
@click.option("--fail-fast", is_flag=True, help="Stop at the first failing language")
@click.option("--timeout-ms", type=float, default=None, help="Per-language time limit")
def gen(
    languages: tuple[str, ...],
    input_file: str,
    output_dir: str | None,
    steering_dir: str,
    sequential: bool,
    fail_fast: bool,
    timeout_ms: float | None,
) -> None:
    """Generate protocol code for one or more languages."""
    raw = _load(input_file)
    coordinator = create_language_coordinator(steering_dir)
    options = GenerationOptions(
        languages=tuple(dict.fromkeys(TargetLanguage(lang) for lang in languages)),
        parallel=not sequential,
        continue_on_error=not fail_fast,
        timeout_ms=timeout_ms,
    )
    try:
        result = asyncio.run(coordinator.generate(raw, options))
    except StructuralError as exc:
        _print_issues(exc.result)
        _fail(str(exc))
        return

    if output_dir is not None:
        _write(result, Path(output_dir))
    _print_summary(result, output_dir)
    if not result.success:
        sys.exit(1)


def _write(result: GenerationResult, output_dir: Path) -> None:
    for language, artifacts in result.artifacts.items():
        target = output_dir / str(language)
        target.mkdir(parents=True, exist_ok=True)
        for name, text in artifacts.files().items():
            (target / name).write_text(text, encoding="utf-8")


def _print_summary(result: GenerationResult, output_dir: str | None) -> None:
    console = Console()
    console.print("[bold cyan]Generation[/bold cyan]")
    table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    table.add_column("Language", style="white")
    table.add_column("Status")
    table.add_column("Time", style="yellow", justify="right")
    table.add_column("Detail", style="dim")

    for language, elapsed in result.timings.items():
        if language in result.artifacts:
            artifacts = result.artifacts[language]
            detail = ", ".join(artifacts.file_names.values())
            if output_dir is not None:
                detail = f"{Path(output_dir) / str(language)}: {detail}"
            if artifacts.warnings:
                detail += f" ({len(artifacts.warnings)} idiom warnings)"
            table.add_row(str(language), "[green]ok[/green]", f"{elapsed:.1f}ms", detail)
        else:
            table.add_row(str(language), "[red]failed[/red]", f"{elapsed:.1f}ms", str(result.errors[language].cause))

    console.print(table)
    console.print()
    console.print(f"Total: {result.total_time_ms:.1f}ms")


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Protocol specification (JSON)")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display protocol messages, tool names and validation issues."""
    raw = _load(input_file)
    report = validate(raw)
    spec, _ = coerce_spec(raw)

    if output_json:
        _output_json(spec, report)
    else:
        _output_plain(spec, report)
    if not report.valid:
        sys.exit(1)


def _output_json(spec: ProtocolSpec | None, report: ValidationResult) -> None:
    data: dict[str, Any] = {
        "protocol": {},
        "messages": {},
        "valid": report.valid,
        "errors": [
            {"kind": str(e.kind), "message": e.message, "fieldPath": e.field_path, "suggestion": e.suggestion}
            for e in report.errors
        ],
        "warnings": list(report.warnings),
    }
    if spec is not None:
        data["protocol"] = {
            "name": spec.protocol.name,
            "port": spec.protocol.port,
            "transport": str(spec.connection.type),
            "description": spec.protocol.description,
        }
        for message in spec.message_types:
            encoding = message_encoding(message)
            data["messages"][message.name] = {
                "direction": str(message.direction),
                "encoding": str(encoding) if encoding else None,
                "fields": [f.name for f in message.fields],
                "toolName": tool_name(spec.protocol.name, message.name) if message.invocable else None,
            }
    print(json.dumps(data, indent=2))


def _output_plain(spec: ProtocolSpec | None, report: ValidationResult) -> None:
    console = Console()

    if spec is not None:
        console.print("[bold cyan]Protocol[/bold cyan]")
        proto_table = Table(show_header=False, box=None, padding=(0, 2, 0, 2))
        proto_table.add_column("Label", style="dim")
        proto_table.add_column("Value", style="white")
        proto_table.add_row("Name", spec.protocol.name)
        proto_table.add_row("Port", str(spec.protocol.port))
        proto_table.add_row("Transport", str(spec.connection.type))
        proto_table.add_row("Description", spec.protocol.description)
        console.print(proto_table)
        console.print()

        console.print("[bold cyan]Messages[/bold cyan]")
        msg_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
        msg_table.add_column("Name", style="white")
        msg_table.add_column("Direction", style="dim")
        msg_table.add_column("Encoding", style="yellow")
        msg_table.add_column("Fields", justify="right")
        msg_table.add_column("Tool", style="green")
        for message in spec.message_types:
            encoding = message_encoding(message)
            tool = tool_name(spec.protocol.name, message.name) if message.invocable else ""
            msg_table.add_row(
                message.name, str(message.direction), str(encoding or "-"), str(len(message.fields)), tool
            )
        console.print(msg_table)
        console.print()

    _print_issues(report, console)


def _print_issues(report: ValidationResult, console: Console | None = None) -> None:
    console = console or err_console
    if report.valid and not report.warnings:
        console.print("[green]Specification is valid[/green]")
        return
    if report.errors:
        console.print("[bold red]Errors[/bold red]")
        for issue in report.errors:
            console.print(f"  {issue}", markup=False)
    if report.warnings:
        console.print("[bold yellow]Warnings[/bold yellow]")
        for warning in report.warnings:
            console.print(f"  {warning}", markup=False)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Protocol specification (JSON)")
@click.option("--message", "-m", "message_name", required=True, help="Message type to solve for")
@click.option("--count", "-n", default=1, show_default=True, help="Number of examples")
def solve(input_file: str, message_name: str, count: int) -> None:
    """Print example field values satisfying a message's constraints."""
    spec, errors = coerce_spec(_load(input_file))
    if spec is None:
        _fail("; ".join(str(e) for e in errors))
        return
    try:
        message = spec.message(message_name)
    except KeyError:
        _fail(f"unknown message type: {message_name}")
        return

    names = [f.name for f in message.fields]
    solutions = find_all_solutions(names, extract_constraints(message), max_solutions=count)
    if not solutions:
        _fail(f"no values satisfy the constraints of {message_name}")
    print(json.dumps(solutions, indent=2))


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
