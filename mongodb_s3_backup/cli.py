"""CLI for the MongoDB S3 backup service (Typer + Rich)."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Annotated, Optional

import typer
from dotenv import find_dotenv, load_dotenv
from rich.console import Console
from rich.panel import Panel

from mongodb_s3_backup import APP_NAME, __version__
from mongodb_s3_backup.config import BackupSettings, load_settings
from mongodb_s3_backup.config.logging_config import init_logging
from mongodb_s3_backup.cron import ScheduleSpec, resolve_schedule
from mongodb_s3_backup.exceptions import ConfigurationError
from mongodb_s3_backup.models import RunOutcome
from mongodb_s3_backup.pipeline import BackupPipeline
from mongodb_s3_backup.scheduler import Scheduler
from mongodb_s3_backup.utils import friendly_size

app = typer.Typer(
    name="mongodb-s3-backup",
    help="Dump a MongoDB database, compress it and upload it to S3.",
    add_completion=False,
)
console = Console()

logger = logging.getLogger(APP_NAME)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"{APP_NAME} {__version__}")
        raise typer.Exit(0)


def _print_outcome(outcome: RunOutcome) -> None:
    """Summary panel for an immediate run."""
    lines = [f"[bold]Database:[/] {outcome.database}", f"[bold]Archive:[/]  {outcome.archive_name}"]
    if outcome.archive_size is not None:
        lines.append(f"[bold]Size:[/]     {friendly_size(outcome.archive_size)}")
    if outcome.key:
        lines.append(f"[bold]Key:[/]      {outcome.key}")
    lines.append(f"[bold]Duration:[/] {outcome.duration_ms / 1000:.1f}s")

    if outcome.success:
        console.print(Panel("\n".join(lines), title="[green]Backup Complete[/]"))
    else:
        lines.append(f"[red]FAIL[/] {outcome.failed_step}: {outcome.error}")
        console.print(Panel("\n".join(lines), title="[red]Backup Failed[/]"))


async def _run_once(settings: BackupSettings) -> RunOutcome:
    return await BackupPipeline.from_settings(settings).run()


async def _serve(settings: BackupSettings, schedule: ScheduleSpec) -> None:
    """Schedule recurring backups until SIGINT/SIGTERM."""
    pipeline = BackupPipeline.from_settings(settings)
    scheduler = Scheduler(pipeline.run, schedule, name=settings.mongodb.db)

    await scheduler.start()
    logger.info(f"MongoDB S3 Backup successfully scheduled ({schedule.expression})")

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    await stop_event.wait()
    await scheduler.stop()


@app.command()
def main(
    ctx: typer.Context,
    config: Annotated[
        Optional[str], typer.Argument(help="Path to the YAML or JSON config file", show_default=False)
    ] = None,
    now: Annotated[bool, typer.Option("--now", "-n", help="Run sync on start")] = False,
    version: Annotated[
        Optional[bool],
        typer.Option("--version", "-v", callback=_version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """Back up a MongoDB database to S3, once (--now) or on a cron schedule."""
    if config is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(1)

    load_dotenv(find_dotenv(usecwd=True))
    # LOG_LEVEL may come from .env
    init_logging(force=True)

    try:
        settings = load_settings(config)
        schedule = None if now else resolve_schedule(settings.cron)
    except (ConfigurationError, ValueError) as e:
        logger.error(str(e))
        raise typer.Exit(1)

    if now:
        outcome = asyncio.run(_run_once(settings))
        _print_outcome(outcome)
        raise typer.Exit(0 if outcome.success else 1)

    asyncio.run(_serve(settings, schedule))
