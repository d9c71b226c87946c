"""Rich output formatting for the gate CLI.

All functions write to a :class:`rich.console.Console` instance (typically
bound to *stderr*) so that machine-readable output on *stdout* is never
polluted with human-readable decoration.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from codesonar_gate.config import ConfigValidation
from codesonar_gate.models.outcome import BuildOutcome

_STATUS_COLOURS: dict[str, str] = {
    "SUCCESS": "green",
    "UNSTABLE": "yellow",
    "FAILURE": "red",
}


def _coloured_status(status: str) -> str:
    """Return a Rich markup string with the status colour-coded."""
    colour = _STATUS_COLOURS.get(status, "white")
    return f"[{colour}]{status}[/{colour}]"


def display_outcome(console: Console, outcome: BuildOutcome) -> None:
    """Render a build outcome: header panel plus one row per condition."""
    data = outcome.data
    header_lines = [f"[bold]Build:[/bold]     {outcome.build_id or '(unnamed)'}"]
    if data is None:
        header_lines.append("[bold]Hub:[/bold]       (no data)")
    else:
        header_lines += [
            f"[bold]Hub:[/bold]       {data.hub_url}",
            f"[bold]Analysis:[/bold]  {data.active.analysis_url or data.analysis_id}",
            f"[bold]Warnings:[/bold]  {data.active.warning_count} active, {data.new.warning_count} new",
        ]
    header_lines.append(f"[bold]Result:[/bold]    {_coloured_status(outcome.result.value)}")
    console.print(Panel("\n".join(header_lines), title="CodeSonar Gate", border_style="blue"))

    if not outcome.verdicts:
        console.print("[dim]No conditions configured.[/dim]")
        return

    table = Table(title="Conditions", show_lines=False, pad_edge=True, expand=False)
    table.add_column("#", style="dim", width=4, justify="right")
    table.add_column("Condition", style="bold")
    table.add_column("Result", justify="center")
    table.add_column("Details")

    for idx, verdict in enumerate(outcome.verdicts, start=1):
        table.add_row(
            str(idx),
            verdict.condition,
            _coloured_status(verdict.result.value),
            escape(verdict.description),
        )

    console.print(table)


def display_validation(console: Console, validation: ConfigValidation) -> None:
    """Render field-level configuration errors, or a success line."""
    if validation.ok:
        console.print("[green]Configuration is valid.[/green]")
        return

    table = Table(title="Configuration Errors", show_lines=False, pad_edge=True, expand=False)
    table.add_column("Field", style="bold")
    table.add_column("Problem", style="red")
    for error in validation.errors:
        table.add_row(escape(error.field), escape(error.message))
    console.print(table)
