"""Backup and restore command implementation."""

import os

import typer

from abrecovery.clone.rsync import RsyncOperation
from abrecovery.config.models import ServiceOptions
from abrecovery.core.events import Event, EventBus, JobEnd, JobKind, PropertyChanged
from abrecovery.core.logging import get_logger
from abrecovery.core.manager import Manager
from abrecovery.system.runner import System

logger = get_logger(__name__)


async def run_job(options: ServiceOptions, kind: JobKind) -> JobEnd | None:
    """Start a job, wait for it and report its outcome.

    Args:
        options: Service options
        kind: Job to run

    Returns:
        The JobEnd event, or None if the job never ended in this process

    Raises:
        RecoveryError: If the job cannot be started
    """
    system = System()
    bus = EventBus()
    manager = Manager.create(options, system, RsyncOperation(system, options), bus=bus)

    outcome: list[JobEnd] = []

    def on_event(event: Event) -> None:
        if isinstance(event, JobEnd):
            outcome.append(event)
        elif isinstance(event, PropertyChanged):
            logger.debug("Property changed", name=event.name, value=event.value)

    bus.subscribe(on_event)

    if kind is JobKind.BACKUP:
        await manager.start_backup(os.getpid())
    else:
        await manager.start_restore(os.getpid())

    typer.echo(f"Started {kind.value}, waiting for it to finish...")
    await manager.wait()

    if not outcome:
        return None

    end = outcome[0]
    if end.success:
        typer.echo(f"{kind.value.capitalize()} finished successfully")
    else:
        typer.echo(f"{kind.value.capitalize()} failed: {end.error_message}", err=True)
    return end
