"""Partition copy operation built on rsync."""

from datetime import UTC, datetime
from pathlib import Path

from abrecovery.config.loader import save_config
from abrecovery.config.models import RecoveryConfig, ServiceOptions
from abrecovery.core.logging import get_logger
from abrecovery.system import probe
from abrecovery.system.command import Command, CommandError
from abrecovery.system.worker import Worker

logger = get_logger(__name__)

# rsync: "some files vanished before they could be transferred"
RSYNC_PARTIAL_VANISHED = 24

UNMOUNT_RETRY_MS = 30_000


class RsyncOperation:
    """Copies the running root filesystem onto the other partition of the pair.

    Backup runs while booted from the current partition and writes to the
    backup partition; restore runs while booted from the backup partition
    and writes back onto the current one.
    """

    def __init__(self, system: Worker, options: ServiceOptions) -> None:
        """Initialize the RsyncOperation.

        Args:
            system: System worker for executing commands
            options: Service options (mount dir, excludes, config path)
        """
        self.system = system
        self.options = options

    async def backup(self, config: RecoveryConfig, env: dict[str, str]) -> None:
        """Copy / onto the backup partition and stamp the configuration.

        Raises:
            CommandError: If mounting or copying fails
            OSError: If the configuration cannot be saved
        """
        await self._copy_root_to(config.backup, env)

        stamped = config.model_copy(
            update={"version": await probe.os_version(self.system), "time": datetime.now(UTC)}
        )
        save_config(stamped, self.options.config_file)
        config.version = stamped.version
        config.time = stamped.time

        logger.info("Backup complete", partition=config.backup, version=config.version)

    async def restore(self, config: RecoveryConfig, env: dict[str, str]) -> None:
        """Copy / back onto the current partition.

        Raises:
            CommandError: If mounting or copying fails
        """
        await self._copy_root_to(config.current, env)

        logger.info("Restore complete", partition=config.current)

    async def _copy_root_to(self, uuid: str, env: dict[str, str]) -> None:
        target = self.options.backup_mount_dir
        target.mkdir(parents=True, exist_ok=True)

        await self.system.run(
            Command(executable="mount", args=[f"UUID={uuid}", str(target)], env=env)
        )
        logger.debug("Mounted partition", uuid=uuid, path=str(target))

        try:
            await self._rsync(target, env)
        except BaseException:
            try:
                await self._unmount(target, env)
            except CommandError as e:
                logger.warning("Failed to unmount partition", path=str(target), error=str(e))
            raise
        await self._unmount(target, env)

    async def _unmount(self, target: Path, env: dict[str, str]) -> None:
        await self.system.run_with_retries(
            Command(executable="umount", args=[str(target)], env=env), UNMOUNT_RETRY_MS
        )
        logger.debug("Unmounted partition", path=str(target))

    async def _rsync(self, target: Path, env: dict[str, str]) -> None:
        args = ["-aAXH", "--delete", "--numeric-ids", "--one-file-system"]
        for pattern in [*self.options.rsync_excludes, str(target)]:
            args.append(f"--exclude={pattern}")
        args.extend(["/", f"{target}/"])

        try:
            await self.system.run(Command(executable="rsync", args=args, env=env))
        except CommandError as e:
            # Files removed on the live system while copying are expected.
            if e.returncode != RSYNC_PARTIAL_VANISHED:
                raise
            logger.warning("Some files vanished during copy", path=str(target))
