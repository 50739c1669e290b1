"""statusmigrator CLI: bulk order financial-status migration.

Usage:
    statusmigrator search --status pending          List matching orders
    statusmigrator migrate --from pending --to paid  Search, confirm, update
    statusmigrator config show                      Show resolved config
    statusmigrator serve                            Start the HTTP API

Exit codes:
    0  success
    1  bad input, missing config, or the search failed
    2  the update finished but some orders failed
"""

import asyncio
import json
import logging
import os
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from typing import Optional

import typer
from pydantic import ValidationError as ConfigValidationError
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn

from src.cli.config import LoggingConfig, StatusMigratorConfig, resolve_config
from src.cli.factory import get_client, get_orchestrator
from src.cli.output import format_config, format_job_panel, format_orders_table
from src.clients.models import FinancialStatus
from src.errors.domain import DomainError, UpdateRejected, ValidationError
from src.orchestrator.job import Job, JobPhase
from src.utils.redaction import redact_for_logging

_log = logging.getLogger(__name__)

EXIT_FAILED = 1
EXIT_PARTIAL = 2

app = typer.Typer(
    name="statusmigrator",
    help="Move every order in one financial status to another",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")

console = Console()

# --- Global state ---
_config_path: str | None = None
_verbose: bool = False


@app.callback()
def main(
    config: Optional[str] = typer.Option(
        None, "--config", help="Path to statusmigrator.yaml config file"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """statusmigrator: bulk financial-status migration for store orders."""
    global _config_path, _verbose
    _config_path = config
    _verbose = verbose


class JsonLogFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(cfg: LoggingConfig, verbose: bool = False) -> None:
    """Configure the root logger from the logging config section.

    Logs go to stderr so --json output on stdout stays parseable.
    """
    handler: logging.Handler
    if cfg.file:
        handler = logging.FileHandler(os.path.expanduser(cfg.file))
    else:
        handler = logging.StreamHandler(sys.stderr)
    if cfg.format == "json":
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if verbose else cfg.level.upper())
    # Keep httpx request lines out of INFO output
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load() -> StatusMigratorConfig:
    """Resolve config and configure logging, exiting 1 on bad config."""
    try:
        cfg = resolve_config(_config_path)
    except FileNotFoundError as e:
        console.print(f"[red]Config file not found:[/red] {e}")
        raise typer.Exit(EXIT_FAILED)
    except ConfigValidationError as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(EXIT_FAILED)
    setup_logging(cfg.logging, verbose=_verbose)
    return cfg


class _ProgressObserver:
    """Advances a Rich progress bar as orders finish updating."""

    def __init__(self, progress: Progress, task_id) -> None:
        self._progress = progress
        self._task_id = task_id

    async def on_phase_changed(self, job_id: str, old_phase: str, new_phase: str) -> None:
        _log.debug("Job %s phase %s -> %s", job_id, old_phase, new_phase)

    async def on_item_succeeded(self, job_id: str, order_id: str) -> None:
        self._progress.advance(self._task_id)

    async def on_item_failed(self, job_id: str, order_id: str, kind: str, message: str) -> None:
        self._progress.advance(self._task_id)


# --- Version ---


@app.command()
def version():
    """Show statusmigrator version."""
    try:
        v = pkg_version("order-status-migrator")
    except PackageNotFoundError:
        v = "unknown"
    console.print(f"[bold]statusmigrator[/bold] v{v}")


# --- Config commands ---


@config_app.command("show")
def config_show(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Display resolved configuration (secrets masked)."""
    cfg = _load()
    if json_output:
        typer.echo(json.dumps(redact_for_logging(cfg.model_dump(mode="json")), indent=2))
        return
    console.print(format_config(cfg))


# --- Migration commands ---


async def _search(cfg: StatusMigratorConfig, client, status: str, cap: int | None) -> tuple:
    orchestrator = get_orchestrator(cfg, client)
    job = await orchestrator.start_search(status, item_cap=cap)
    with console.status(f"Searching for {job.from_status.label} orders..."):
        await orchestrator.wait(job)
    return orchestrator, job


@app.command()
def search(
    status: str = typer.Option(..., "--status", "-s", help="Financial status to search for"),
    cap: Optional[int] = typer.Option(None, "--cap", help="Maximum orders to collect"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List orders in a financial status without changing them."""
    cfg = _load()

    async def _run() -> Job:
        async with get_client(cfg) as client:
            _, job = await _search(cfg, client, status, cap)
            return job

    try:
        job = asyncio.run(_run())
    except DomainError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(EXIT_FAILED)

    if json_output:
        typer.echo(format_orders_table(job, as_json=True))
    elif job.phase is JobPhase.failed:
        console.print(format_job_panel(job))
    else:
        console.print(format_orders_table(job))
        console.print(job.summary)

    if job.phase is JobPhase.failed:
        raise typer.Exit(EXIT_FAILED)


@app.command()
def migrate(
    from_status: str = typer.Option(..., "--from", help="Current financial status"),
    to_status: str = typer.Option(..., "--to", help="Financial status to set"),
    cap: Optional[int] = typer.Option(None, "--cap", help="Maximum orders to update"),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", help="Maximum simultaneous updates"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON (requires --yes)"),
):
    """Search for orders in one status and move them all to another."""
    if json_output and not yes:
        console.print("[red]Error:[/red] --json cannot prompt for confirmation; pass --yes")
        raise typer.Exit(EXIT_FAILED)
    cfg = _load()
    try:
        target = FinancialStatus.parse(to_status)
    except ValidationError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(EXIT_FAILED)
    declined = False

    async def _run() -> Job:
        nonlocal declined
        async with get_client(cfg) as client:
            orchestrator, job = await _search(cfg, client, from_status, cap)
            if job.phase is JobPhase.failed or job.item_count == 0:
                return job

            if not json_output:
                console.print(format_orders_table(job))
                console.print(job.summary)
            if not yes and not typer.confirm(
                f"Change {job.item_count} order(s) to {target.label}?", default=False
            ):
                declined = True
                await orchestrator.cancel(job)
                return job

            with Progress(
                TextColumn("[bold]Updating[/bold]"),
                BarColumn(),
                MofNCompleteColumn(),
                console=console,
                disable=json_output,
            ) as progress:
                task_id = progress.add_task("update", total=job.item_count)
                orchestrator.emitter.add_observer(_ProgressObserver(progress, task_id))
                await orchestrator.start_update(job, target, concurrency=concurrency)
                await orchestrator.wait(job)
            return job

    try:
        job = asyncio.run(_run())
    except UpdateRejected as e:
        console.print(f"[red]Update rejected:[/red] {e.message}")
        raise typer.Exit(EXIT_FAILED)
    except DomainError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(EXIT_FAILED)

    if declined:
        console.print("No orders were changed.")
        return

    if json_output:
        typer.echo(format_job_panel(job, as_json=True))
    elif job.phase is JobPhase.searched:
        console.print(job.summary)
    else:
        console.print(format_job_panel(job))

    if job.phase is JobPhase.failed:
        raise typer.Exit(EXIT_FAILED)
    if job.failed_count:
        raise typer.Exit(EXIT_PARTIAL)


# --- Server ---


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
):
    """Start the HTTP API with uvicorn."""
    import uvicorn

    cfg = _load()
    final_host = host or cfg.server.host
    final_port = port or cfg.server.port

    # Propagate config path so the API lifespan loads the same config
    if _config_path:
        os.environ["STATUSMIGRATOR_CONFIG_PATH"] = str(_config_path)

    console.print(f"[bold]Starting statusmigrator API on {final_host}:{final_port}[/bold]")
    uvicorn.run(
        "src.api.main:app",
        host=final_host,
        port=final_port,
        workers=1,
        log_level=cfg.logging.level,
        lifespan="on",
    )


if __name__ == "__main__":
    app()
