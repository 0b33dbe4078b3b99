"""Console output helpers shared by the command line tools."""
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .models import ValidationResult
from .semver import SemVer

error_console = Console(stderr=True)


def make_console(quiet: bool = False) -> Console:
    return Console(quiet=quiet)


def print_error(message: str, target: Optional[Console] = None) -> None:
    (target or error_console).print(f"[red]Error: {escape(message)}[/red]")


def print_validation_result(result: ValidationResult, target: Optional[Console] = None) -> None:
    target = target or error_console
    for warning in result.warnings:
        target.print(f"[yellow]Warning: {escape(warning)}[/yellow]")
    if not result.valid:
        target.print(f"[red]Commit message rejected ({result.rule}): {escape(result.reason)}[/red]")


def version_table(previous: SemVer, candidate: SemVer) -> Table:
    """Side-by-side view of the current and proposed version fields."""
    table = Table(title="Version")
    table.add_column("Field")
    table.add_column("Current")
    table.add_column("New")
    old_fields, new_fields = previous.fields(), candidate.fields()
    for name in old_fields:
        style = "green" if old_fields[name] != new_fields[name] else None
        table.add_row(name, old_fields[name], new_fields[name], style=style)
    return table
