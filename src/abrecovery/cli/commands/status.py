"""Status command implementation."""

from datetime import UTC, datetime

import typer

from abrecovery.clone.rsync import RsyncOperation
from abrecovery.config.models import ServiceOptions
from abrecovery.core.manager import (
    PROP_BACKING_UP,
    PROP_BACKUP_TIME,
    PROP_BACKUP_VERSION,
    PROP_CONFIG_VALID,
    PROP_HAS_BACKED_UP,
    PROP_RESTORING,
    Manager,
)
from abrecovery.system.runner import System


def _build_manager(options: ServiceOptions) -> Manager:
    system = System()
    return Manager.create(options, system, RsyncOperation(system, options))


async def run_status(options: ServiceOptions) -> None:
    """Print the published properties."""
    manager = _build_manager(options)
    status = await manager.status()

    backup_time = "never"
    if status.backup_time:
        backup_time = datetime.fromtimestamp(status.backup_time, UTC).isoformat()

    rows = [
        (PROP_CONFIG_VALID, status.config_valid),
        (PROP_HAS_BACKED_UP, status.has_backed_up),
        (PROP_BACKUP_VERSION, status.backup_version or "-"),
        (PROP_BACKUP_TIME, backup_time),
        (PROP_BACKING_UP, status.backing_up),
        (PROP_RESTORING, status.restoring),
    ]
    for name, value in rows:
        typer.echo(f"{name}: {value}")


async def run_can_backup(options: ServiceOptions) -> bool:
    """Print and return whether a backup may start."""
    can = await _build_manager(options).can_backup()
    typer.echo(str(can).lower())
    return can


async def run_can_restore(options: ServiceOptions) -> bool:
    """Print and return whether a restore may start."""
    can = await _build_manager(options).can_restore()
    typer.echo(str(can).lower())
    return can
