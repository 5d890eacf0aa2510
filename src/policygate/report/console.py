"""
Console report generator for policygate.

Renders a verdict with Rich: a status header, then a table of the failing
controls in declaration order.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from policygate.schema import Validation


# Status icons
ICON_PASS = "[green]✓[/green]"
ICON_FAIL = "[red]✗[/red]"


def generate_console_report(
    validation: Validation,
    console: Console | None = None,
    document: str | None = None,
    control_count: int | None = None,
) -> None:
    """
    Print a console report for a verdict.

    Args:
        validation: The verdict to report
        console: Rich Console instance (creates one if not provided)
        document: Name of the validated document, shown in the header
        control_count: Number of controls evaluated, shown in the summary
    """
    if console is None:
        console = Console()

    _print_header(console, validation, document)

    if not validation.valid:
        console.print()
        _print_requirements(console, validation)

    if control_count is not None:
        console.print()
        failed = len(validation.requirements)
        console.print(
            f"[dim]Controls: {control_count} | Passed: {control_count - failed} | Failed: {failed}[/dim]"
        )


def _print_header(console: Console, validation: Validation, document: str | None) -> None:
    """Print the verdict header."""
    header = Text()
    header.append(" Validation ", style="bold")
    if validation.valid:
        header.append("PASSED", style="bold green")
        icon = ICON_PASS
    else:
        count = len(validation.requirements)
        noun = "requirement" if count == 1 else "requirements"
        header.append("FAILED", style="bold red")
        header.append(f" with {count} {noun}")
        icon = ICON_FAIL
    header.append(" ")
    header.append_text(Text.from_markup(icon))

    if document:
        header.append(" │ ", style="dim")
        header.append(document, style="cyan")

    console.print(Panel(header, expand=False))


def _print_requirements(console: Console, validation: Validation) -> None:
    """Print the failing controls."""
    table = Table(show_header=True, header_style="bold", expand=True)
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("Control", style="cyan", no_wrap=True)
    table.add_column("Requirement", overflow="fold")

    for i, req in enumerate(validation.requirements, start=1):
        table.add_row(str(i), Text(req.control), Text(req.required))

    console.print(table)
