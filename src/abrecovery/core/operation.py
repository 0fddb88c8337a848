"""Operation protocol for the data-copy step of a job.

This module defines the Operation protocol that backs the backup and
restore jobs. The supervisor never copies data itself.
"""

from typing import Protocol, runtime_checkable

from abrecovery.config.models import RecoveryConfig


@runtime_checkable
class Operation(Protocol):
    """Protocol for components that copy a root filesystem between partitions."""

    async def backup(self, config: RecoveryConfig, env: dict[str, str]) -> None:
        """Copy the current partition onto the backup partition.

        On success implementations update ``config.version`` and
        ``config.time``.

        Args:
            config: Partition configuration
            env: Caller locale environment for spawned commands

        Raises:
            Exception: If the backup fails
        """
        ...

    async def restore(self, config: RecoveryConfig, env: dict[str, str]) -> None:
        """Copy the backup partition back onto the current partition.

        Args:
            config: Partition configuration
            env: Caller locale environment for spawned commands

        Raises:
            Exception: If the restore fails
        """
        ...
