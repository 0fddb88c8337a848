"""Run backup and restore operations under the shutdown inhibitor."""

from abrecovery.config.models import RecoveryConfig
from abrecovery.core.inhibitor import ShutdownInhibitor
from abrecovery.core.operation import Operation

BACKUP_REASON = "Backing up the system"
RESTORE_REASON = "Restoring the system"


class JobRunner:
    """Binds an Operation to the shutdown inhibitor."""

    def __init__(
        self, config: RecoveryConfig, operation: Operation, inhibitor: ShutdownInhibitor
    ) -> None:
        self.config = config
        self.operation = operation
        self.inhibitor = inhibitor

    async def backup(self, env: dict[str, str]) -> None:
        await self.inhibitor.inhibit_shutdown_do(
            BACKUP_REASON, lambda: self.operation.backup(self.config, env)
        )

    async def restore(self, env: dict[str, str]) -> None:
        await self.inhibitor.inhibit_shutdown_do(
            RESTORE_REASON, lambda: self.operation.restore(self.config, env)
        )
