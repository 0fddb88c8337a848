"""Main CLI application for ab-recovery."""

import asyncio
from typing import Annotated

import typer

from abrecovery.cli.commands.jobs import run_job
from abrecovery.cli.commands.status import run_can_backup, run_can_restore, run_status
from abrecovery.config.loader import get_env_options
from abrecovery.config.models import ServiceOptions
from abrecovery.core.errors import RecoveryError
from abrecovery.core.events import JobKind
from abrecovery.core.logging import setup_logging
from abrecovery.system.command import CommandError

app = typer.Typer(
    name="ab-recovery",
    help="Back up and restore the root filesystem between an A/B partition pair",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
    config: Annotated[
        str,
        typer.Option("--config", "-c", help="Path to the partition configuration file"),
    ] = "",
    no_grub_mkconfig: Annotated[
        bool,
        typer.Option("--no-grub-mkconfig", help="Bootloader regeneration is disabled on this host"),
    ] = False,
) -> None:
    """ab-recovery - A/B root partition backup and restore."""
    setup_logging(verbose=verbose)

    options = get_env_options()
    updates: dict[str, object] = {}
    if config:
        updates["config_file"] = config
    if no_grub_mkconfig:
        updates["no_grub_mkconfig"] = True
    ctx.obj = ServiceOptions.model_validate({**options.model_dump(), **updates})


def _fail(message: str) -> typer.Exit:
    typer.secho(f"Error: {message}", err=True, fg=typer.colors.RED)
    return typer.Exit(code=1)


@app.command()
def status(ctx: typer.Context) -> None:
    """Show the backup status."""
    asyncio.run(run_status(ctx.obj))


@app.command("can-backup")
def can_backup(ctx: typer.Context) -> None:
    """Check whether a backup is permitted from the partition booted."""
    try:
        can = asyncio.run(run_can_backup(ctx.obj))
    except RecoveryError as e:
        raise _fail(str(e)) from e
    if not can:
        raise typer.Exit(code=1)


@app.command("can-restore")
def can_restore(ctx: typer.Context) -> None:
    """Check whether a restore is permitted from the partition booted."""
    try:
        can = asyncio.run(run_can_restore(ctx.obj))
    except RecoveryError as e:
        raise _fail(str(e)) from e
    if not can:
        raise typer.Exit(code=1)


def _run(options: ServiceOptions, kind: JobKind) -> None:
    try:
        end = asyncio.run(run_job(options, kind))
    except (RecoveryError, CommandError, OSError) as e:
        raise _fail(str(e)) from e
    if end is None or not end.success:
        raise typer.Exit(code=1)


@app.command()
def backup(ctx: typer.Context) -> None:
    """Back up the current partition onto the backup partition."""
    _run(ctx.obj, JobKind.BACKUP)


@app.command()
def restore(ctx: typer.Context) -> None:
    """Restore the current partition from the backup partition."""
    _run(ctx.obj, JobKind.RESTORE)


if __name__ == "__main__":
    app()
