"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

if TYPE_CHECKING:
    from qsysbridge.models.action import ActionDefinition
    from qsysbridge.models.diagnostic import Diagnostic

THEME = Theme(
    {
        "text": "#ffffff",
        "muted": "#b2bec3",
        "bold_header": "bold #69B9A1",
        "border": "#29526d",
        "success": "#03b971",
        "warning": "#f5b332",
        "error": "#f53263",
        "info": "#0ec1c8",
        "severity.error": "bold #f53263",
        "severity.warning": "#f5b332",
        "severity.info": "#0ec1c8",
    }
)


def _detect_color_system() -> str | None:
    """Use truecolor on interactive terminals, otherwise let Rich decide."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances
console = Console(theme=THEME, color_system=_detect_color_system())
err_console = Console(theme=THEME, stderr=True, color_system=_detect_color_system())


def create_diagnostic_table(title: str) -> Table:
    """Create a pre-configured table for compiler diagnostics.

    Args:
        title: Table title, usually the resource URI.

    Returns:
        Rich Table with line, severity, code and message columns.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("Line", style="muted", justify="right")
    table.add_column("Col", style="muted", justify="right")
    table.add_column("Severity", no_wrap=True)
    table.add_column("Code", style="info", no_wrap=True)
    table.add_column("Message", style="text", overflow="fold")
    return table


def format_diagnostic_row(diagnostic: Diagnostic) -> tuple[str, str, str, str, str]:
    """Format a diagnostic as a table row with severity markup."""
    severity = diagnostic.severity.value
    return (
        str(diagnostic.line),
        str(diagnostic.column),
        f"[severity.{severity}]{severity}[/] [muted]({diagnostic.level})[/]",
        diagnostic.code,
        diagnostic.message,
    )


def create_action_table(title: str = "Actions") -> Table:
    """Create a pre-configured table for configured actions."""
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Name", no_wrap=True)
    table.add_column("Types", style="muted")
    table.add_column("Extensions", style="info")
    table.add_column("Env", style="muted")
    table.add_column("Command", style="text", overflow="fold")
    return table


def format_action_row(action: ActionDefinition) -> tuple[str, str, str, str, str]:
    """Format an action as a table row; protected-capable actions are marked."""
    name = f"[bold]{action.name}[/]"
    if action.run_on_protected:
        name += " [warning]●[/]"
    return (
        name,
        ", ".join(kind.value for kind in action.types),
        ", ".join(action.extensions),
        action.environment,
        action.command,
    )


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
