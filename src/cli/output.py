"""CLI output formatters for Rich tables and JSON.

Provides human-readable Rich output (default) and machine-parseable
JSON output (--json flag). All formatting goes through these functions
so the CLI commands stay clean.
"""

import json

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from src.api.schemas import JobResponse
from src.cli.config import StatusMigratorConfig
from src.clients.models import status_label, status_tone
from src.errors.formatter import MigratorError, format_error, group_failures
from src.orchestrator.job import Job
from src.utils.redaction import redact_for_logging

console = Console()

# Badge tone -> Rich color
TONE_COLORS = {
    "success": "green",
    "info": "blue",
    "warning": "yellow",
    "critical": "red",
}

# Job phase -> Rich color
PHASE_COLORS = {
    "idle": "dim",
    "searching": "blue",
    "searched": "cyan",
    "updating": "blue",
    "updated": "green",
    "failed": "red",
}


def format_status(value: str | None) -> str:
    """Colored status badge, e.g. '[green]Paid[/green]'.

    Values with no mapped tone, such as fulfillment states or EXPIRED,
    render in the info color.
    """
    if not value:
        return "—"
    color = TONE_COLORS.get(status_tone(value), "white")
    return f"[{color}]{status_label(value)}[/{color}]"


def _render(renderable) -> str:
    with console.capture() as capture:
        console.print(renderable)
    return capture.get()


def format_orders_table(job: Job, as_json: bool = False) -> str:
    """Format a job's matched orders as a Rich table or JSON.

    Args:
        job: A job that has finished searching.
        as_json: If True, return JSON string instead of Rich table.

    Returns:
        Formatted string output.
    """
    if as_json:
        return json.dumps(JobResponse.from_job(job).model_dump(mode="json"), indent=2)

    rows = job.display_rows()
    if not rows:
        return f"No {job.from_status.label} orders found."

    table = Table(title=f"{job.from_status.label} Orders", show_lines=False)
    table.add_column("Order", style="cyan", no_wrap=True)
    table.add_column("Date", no_wrap=True)
    table.add_column("Customer")
    table.add_column("Email")
    table.add_column("Total", justify="right", no_wrap=True)
    table.add_column("Payment", no_wrap=True)
    table.add_column("Fulfillment", no_wrap=True)

    for row in rows:
        table.add_row(
            row["name"],
            row["created_at"],
            row["customer"],
            row["email"] or "—",
            row["total"],
            format_status(row["financial_status"]),
            format_status(row["fulfillment_status"]),
        )

    return _render(table)


def format_job_panel(job: Job, as_json: bool = False) -> str:
    """Format a job's final state as a Rich panel or JSON.

    Args:
        job: Job to summarize.
        as_json: If True, return JSON string (without order rows).

    Returns:
        Formatted string output.
    """
    if as_json:
        return json.dumps(
            JobResponse.from_job(job, include_orders=False).model_dump(mode="json"),
            indent=2,
        )

    phase_color = PHASE_COLORS.get(job.phase.value, "white")
    lines = [
        f"[bold]Job ID:[/bold]    {job.id}",
        f"[bold]Phase:[/bold]     [{phase_color}]{job.phase.value}[/{phase_color}]",
        f"[bold]From:[/bold]      {format_status(job.from_status.value)}",
    ]
    if job.to_status is not None:
        lines.append(f"[bold]To:[/bold]        {format_status(job.to_status.value)}")
    lines.append(f"[bold]Orders:[/bold]    {job.item_count}")
    if job.outcome is not None:
        lines.append(f"[bold]Success:[/bold]   [green]{job.succeeded_count}[/green]")
        lines.append(f"[bold]Failed:[/bold]    [red]{job.failed_count}[/red]")
    lines.append("")
    lines.append(f"[bold]Summary:[/bold]   {job.summary}")

    if job.error is not None:
        lines.append("")
        error = MigratorError.from_exception(job.error)
        lines.append(f"[bold red]Error:[/bold red] {format_error(error)}")

    if job.outcome is not None and job.outcome.has_failures:
        names = {order.id: order.name for order in job.search_result.items} if job.search_result else {}
        lines.append("")
        lines.append("[bold yellow]Failures:[/bold yellow]")
        for error in group_failures(job.outcome, names):
            lines.append(format_error(error))

    border = "red" if job.error is not None or job.failed_count else "cyan"
    return _render(Panel("\n".join(lines), title="Status Migration", border_style=border))


def format_config(config: StatusMigratorConfig) -> str:
    """Format resolved configuration with secrets masked."""
    data = redact_for_logging(config.model_dump(mode="json"))
    table = Table(title="Configuration", show_header=False, box=None)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for section, values in data.items():
        table.add_row(f"[cyan]{section}[/cyan]", "")
        for key, value in values.items():
            table.add_row(f"  {key}", "—" if value is None else str(value))
    return _render(table)
