"""
CLI entry point for policygate.

This module provides the Typer-based command-line interface.

Commands:
    validate    Validate a metadata document against a policy directory
    controls    List the controls loaded from a policy directory
    schema      Print or write the JSON Schema of the policy grammar

Exit codes:
    0   Validation passed (or command succeeded)
    1   Validation failed (or policy sources were skipped, for `controls`)
    2   Input could not be loaded or output could not be written

Commands only parse options, pick exit codes and choose an output format.
Loading lives in policygate.policy and rendering in policygate.report.
"""

import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from policygate import __version__
from policygate.errors import (
    PolicyDirectoryError,
    PolicyGateError,
    PolicySourceError,
    ReportWriteError,
)
from policygate.policy import PolicySetBuilder, load_metadata
from policygate.report import generate_console_report, generate_json_report, write_json_report
from policygate.schema import generate_schema_json

EXIT_PASS = 0
EXIT_FAIL = 1
EXIT_ERROR = 2

DEFAULT_POLICY_DIR = Path("policies")
SCHEMA_FILENAME = "policy.schema.json"

app = typer.Typer(
    name="policygate",
    help="Validate metadata documents against compliance controls.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]policygate[/bold] version {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """
    Route policygate logs through Rich on stderr.

    Skipped sources are already reported by the commands, so library
    warnings are only shown with --verbose.
    """
    handler = RichHandler(console=err_console, show_time=False, show_path=False)
    root = logging.getLogger("policygate")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.ERROR)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    policygate - Compliance gating for metadata documents.

    Evaluate a metadata document against declarative controls and report
    which controls fail and why.
    """
    pass


PoliciesOption = Annotated[
    Path,
    typer.Option(
        "--policies",
        "-p",
        help="Directory of policy files (.json, .yaml, .yml).",
        envvar="POLICYGATE_POLICY_DIR",
    ),
]

VerboseOption = Annotated[
    bool,
    typer.Option(
        "--verbose",
        help="Enable verbose output for debugging.",
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Enable debug mode with full error tracebacks.",
    ),
]


@app.command()
def validate(
    metadata_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the metadata document (JSON or YAML).",
            exists=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
    ],
    policies: PoliciesOption = DEFAULT_POLICY_DIR,
    format: Annotated[
        str,
        typer.Option(
            "--format",
            "-f",
            help="Output format: console or json.",
            envvar="POLICYGATE_FORMAT",
        ),
    ] = "console",
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--out",
            "-o",
            help="Also write the JSON report to this file.",
            resolve_path=True,
        ),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option(
            "--strict",
            help="Fail with exit code 2 if any policy source cannot be loaded.",
        ),
    ] = False,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Validate a metadata document against every loaded control.

    Malformed policy files are reported and skipped unless --strict is set.

    Example:
        $ policygate validate release.json --policies policies/ --format json
    """
    _configure_logging(verbose)
    json_output = format == "json"

    if format not in ("console", "json"):
        console.print(f"[red]Unknown format: {format} (expected console or json)[/red]")
        raise typer.Exit(code=EXIT_ERROR)

    builder = PolicySetBuilder()
    try:
        builder.add_directory(policies)
    except PolicyDirectoryError as e:
        _report_error(e, json_output, debug)
        raise typer.Exit(code=EXIT_ERROR)

    _report_source_errors(builder.errors)
    if strict and builder.errors:
        if json_output:
            _output_json_error(builder.errors[0], debug)
        raise typer.Exit(code=EXIT_ERROR)

    if verbose and not json_output:
        console.print(f"[dim]Loaded {len(builder.controls)} controls from {len(builder.sources)} files in {policies}[/dim]")

    try:
        engine = builder.build()
        document = load_metadata(metadata_path)
    except PolicyGateError as e:
        _report_error(e, json_output, debug)
        raise typer.Exit(code=EXIT_ERROR)

    result = engine.validate(document)

    if json_output:
        print(generate_json_report(result))
    else:
        generate_console_report(
            result,
            console=console,
            document=metadata_path.name,
            control_count=len(engine),
        )

    if output is not None:
        try:
            write_json_report(
                result,
                output,
                include_meta=True,
                document=str(metadata_path),
                control_count=len(engine),
            )
        except ReportWriteError as e:
            _report_error(e, json_output, debug)
            raise typer.Exit(code=EXIT_ERROR)
        if verbose and not json_output:
            console.print(f"[dim]Report written to {output}[/dim]")

    raise typer.Exit(code=EXIT_PASS if result.valid else EXIT_FAIL)


@app.command()
def controls(
    policies: PoliciesOption = DEFAULT_POLICY_DIR,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
    verbose: VerboseOption = False,
) -> None:
    """
    List the controls loaded from a policy directory.

    Exits with code 1 if any policy source had to be skipped, which makes
    this command usable as a policy linter.

    Example:
        $ policygate controls --policies policies/
    """
    _configure_logging(verbose)

    builder = PolicySetBuilder()
    try:
        builder.add_directory(policies)
    except PolicyDirectoryError as e:
        _report_error(e, json_output, False)
        raise typer.Exit(code=EXIT_ERROR)

    if json_output:
        output = {
            "controls": [
                {
                    "id": control.id,
                    "description": control.description,
                    "op": control.check.op,
                }
                for control in builder.controls
            ],
            "errors": [error.to_dict() for error in builder.errors],
        }
        print(json.dumps(output, indent=2))
    else:
        table = Table(show_header=True, header_style="bold")
        table.add_column("#", style="dim", width=3, justify="right")
        table.add_column("Control", style="cyan", no_wrap=True)
        table.add_column("Check", style="magenta", no_wrap=True)
        table.add_column("Description", overflow="fold")

        for i, control in enumerate(builder.controls, start=1):
            table.add_row(str(i), escape(control.id), control.check.op, escape(control.description))

        console.print(table)
        console.print(f"[dim]Controls: {len(builder.controls)} | Files: {len(builder.sources)} | Skipped: {len(builder.errors)}[/dim]")
        _report_source_errors(builder.errors)

    raise typer.Exit(code=EXIT_FAIL if builder.errors else EXIT_PASS)


@app.command()
def schema(
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--out",
            "-o",
            help=f"Write the schema to this file (or to {SCHEMA_FILENAME} inside this directory).",
            resolve_path=True,
        ),
    ] = None,
) -> None:
    """
    Print or write the JSON Schema of the policy grammar.

    Example:
        $ policygate schema --out policy.schema.json
    """
    schema_json = generate_schema_json()

    if output is None:
        print(schema_json)
        return

    if output.is_dir():
        output = output / SCHEMA_FILENAME

    try:
        output.write_text(schema_json + "\n", encoding="utf-8")
    except OSError as e:
        _report_error(ReportWriteError(path=str(output), underlying_error=str(e)), False, False)
        raise typer.Exit(code=EXIT_ERROR)

    console.print(f"[green]✓[/green] Schema written to {output}")


def _report_source_errors(errors: tuple[PolicySourceError, ...]) -> None:
    """Print skipped policy sources to stderr."""
    for error in errors:
        err_console.print(f"[yellow]Skipped {escape(error.source)}: {escape(error.underlying_error)}[/yellow]", soft_wrap=True)


def _report_error(error: PolicyGateError, json_output: bool, debug: bool) -> None:
    """Print a loading or output error in the selected format."""
    if json_output:
        _output_json_error(error, debug)
        return

    err_console.print(f"[red]{escape(error.message)}[/red]", soft_wrap=True)
    if error.suggestion:
        err_console.print(f"[dim]Suggestion: {error.suggestion}[/dim]")
    if debug:
        err_console.print(f"[dim]{traceback.format_exc()}[/dim]")


def _output_json_error(error: PolicyGateError, include_traceback: bool = False) -> None:
    """Output an error in JSON format."""
    output = {"error": True, **error.to_dict()}
    if include_traceback:
        output["traceback"] = traceback.format_exc()
    print(json.dumps(output, indent=2, default=str))


if __name__ == "__main__":
    app()
