"""Decide whether a backup or restore may start from the partition booted."""

from abrecovery.config.models import RecoveryConfig
from abrecovery.core.errors import RootQueryError
from abrecovery.core.logging import StructuredLoggerAdapter, get_logger
from abrecovery.system import probe
from abrecovery.system.command import CommandError
from abrecovery.system.worker import Worker


class EligibilityChecker:
    """Compares the live root filesystem against the persisted configuration.

    Backup is allowed only while booted from the ``Current`` partition,
    restore only while booted from the ``Backup`` partition.
    """

    def __init__(
        self,
        config: RecoveryConfig,
        config_valid: bool,
        system: Worker,
        no_grub_mkconfig: bool = False,
        logger: StructuredLoggerAdapter | None = None,
    ) -> None:
        """Initialize the checker.

        Args:
            config: Partition configuration
            config_valid: Result of the startup config check
            system: System worker
            no_grub_mkconfig: Bootloader regeneration is disabled on this host
            logger: Logger to report query failures on
        """
        self.config = config
        self.config_valid = config_valid
        self.system = system
        self.no_grub_mkconfig = no_grub_mkconfig
        self.logger = logger or get_logger(__name__)

    def _bootloader_blocks(self) -> bool:
        # MIPS and Sunway hosts boot without a generated grub.cfg.
        if not self.no_grub_mkconfig:
            return False
        return not (probe.is_arch_mips() or probe.is_arch_sw())

    async def _root_matches(self, expected: str) -> bool:
        if self._bootloader_blocks():
            return False

        if not self.config_valid:
            return False

        try:
            uuid = await probe.root_uuid(self.system)
        except (CommandError, ValueError, OSError) as e:
            self.logger.warning("Failed to get root filesystem UUID", error=str(e))
            raise RootQueryError(f"get root uuid: {e}") from e

        return uuid == expected

    async def can_backup(self) -> bool:
        """Check whether a backup may start.

        Returns:
            True if booted from the configured current partition

        Raises:
            RootQueryError: If the root filesystem UUID cannot be read
        """
        return await self._root_matches(self.config.current)

    async def can_restore(self) -> bool:
        """Check whether a restore may start.

        Returns:
            True if booted from the configured backup partition

        Raises:
            RootQueryError: If the root filesystem UUID cannot be read
        """
        return await self._root_matches(self.config.backup)
