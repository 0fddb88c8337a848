"""Manager supervising the backup and restore jobs."""

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path

from abrecovery.config.loader import load_config
from abrecovery.config.models import RecoveryConfig, ServiceOptions
from abrecovery.core.eligibility import EligibilityChecker
from abrecovery.core.errors import NotPermittedError
from abrecovery.core.events import SERVICE_NAME, EventBus, JobEnd, JobKind, PropertyChanged
from abrecovery.core.inhibitor import ShutdownInhibitor
from abrecovery.core.logging import StructuredLoggerAdapter, get_logger
from abrecovery.core.operation import Operation
from abrecovery.core.runner import JobRunner
from abrecovery.system import probe
from abrecovery.system.worker import Worker

OBJECT_PATH = "/com/deepin/ABRecovery"

PROP_BACKING_UP = "BackingUp"
PROP_RESTORING = "Restoring"
PROP_CONFIG_VALID = "ConfigValid"
PROP_BACKUP_VERSION = "BackupVersion"
PROP_BACKUP_TIME = "BackupTime"
PROP_HAS_BACKED_UP = "HasBackedUp"


def backup_finished_file_exists(path: Path) -> bool:
    """Check for the completion marker.

    Args:
        path: Marker file path

    Returns:
        True only if the file exists and is owned by root:root
    """
    try:
        info = os.stat(path)
    except OSError:
        return False
    return info.st_uid == 0 and info.st_gid == 0


def create_marker_file(path: Path, logger: StructuredLoggerAdapter) -> None:
    """Create the completion marker, logging rather than raising on failure.

    Args:
        path: Marker file path
        logger: Logger for the failure
    """
    try:
        path.touch()
    except OSError as e:
        logger.warning("Failed to create marker file", path=str(path), error=str(e))


@dataclass(frozen=True)
class ManagerStatus:
    """Snapshot of the published properties."""

    backing_up: bool
    restoring: bool
    config_valid: bool
    backup_version: str
    backup_time: int
    has_backed_up: bool


class Manager:
    """Manager owns the job status and starts jobs in the background.

    At most one job of each kind runs at a time; a start request while a
    job of that kind is running is accepted and ignored. Outcomes are
    reported only through JobEnd events on the bus.
    """

    def __init__(
        self,
        config: RecoveryConfig,
        options: ServiceOptions,
        system: Worker,
        operation: Operation,
        bus: EventBus | None = None,
        logger: StructuredLoggerAdapter | None = None,
    ) -> None:
        """Initialize the Manager.

        Args:
            config: Partition configuration
            options: Service options
            system: System worker
            operation: Data-copy operation run by the jobs
            bus: Event bus to publish on (a private one if omitted)
            logger: Logger (the module logger if omitted)
        """
        self.config = config
        self.options = options
        self.system = system
        self.bus = bus or EventBus()
        self.logger = logger or get_logger(__name__)

        self._lock = asyncio.Lock()
        self._jobs: dict[JobKind, asyncio.Task[None]] = {}

        self.backing_up = False
        self.restoring = False
        self.backup_version = ""
        self.backup_time = 0
        self.has_backed_up = backup_finished_file_exists(options.marker_file)

        self.logger.debug("Loaded partitions", current=config.current, backup=config.backup)
        try:
            config.check()
        except ValueError as e:
            self.logger.warning("Configuration is not valid", error=str(e))
            self.config_valid = False
        else:
            self.config_valid = True

        if self.config_valid:
            if config.time is not None:
                self.backup_time = int(config.time.timestamp())
            self.backup_version = config.version

        self.checker = EligibilityChecker(
            config,
            self.config_valid,
            system,
            no_grub_mkconfig=options.no_grub_mkconfig,
            logger=self.logger,
        )
        inhibitor = ShutdownInhibitor(
            system, boot_dir=options.boot_dir, who=SERVICE_NAME, logger=self.logger
        )
        self.runner = JobRunner(config, operation, inhibitor)

    @classmethod
    def create(
        cls,
        options: ServiceOptions,
        system: Worker,
        operation: Operation,
        bus: EventBus | None = None,
        logger: StructuredLoggerAdapter | None = None,
    ) -> "Manager":
        """Build a Manager from the configuration file named in the options.

        A missing or unreadable file leaves the configuration empty, which
        disables both jobs.

        Returns:
            Manager instance
        """
        log = logger or get_logger(__name__)
        try:
            config = load_config(options.config_file)
        except (FileNotFoundError, ValueError) as e:
            log.warning("Failed to load config", error=str(e))
            config = RecoveryConfig()
        return cls(config, options, system, operation, bus=bus, logger=log)

    async def status(self) -> ManagerStatus:
        """Get a consistent snapshot of the published properties."""
        async with self._lock:
            return ManagerStatus(
                backing_up=self.backing_up,
                restoring=self.restoring,
                config_valid=self.config_valid,
                backup_version=self.backup_version,
                backup_time=self.backup_time,
                has_backed_up=self.has_backed_up,
            )

    async def can_backup(self) -> bool:
        return await self.checker.can_backup()

    async def can_restore(self) -> bool:
        return await self.checker.can_restore()

    async def can_quit(self) -> bool:
        """Check whether the hosting process may exit.

        Returns:
            True if no job is running
        """
        async with self._lock:
            return not self.backing_up and not self.restoring

    async def start_backup(self, caller_pid: int) -> None:
        """Start a backup in the background.

        Args:
            caller_pid: Process ID of the caller, whose locale is used for the job

        Raises:
            NotPermittedError: If not booted from the current partition
            RootQueryError: If the root filesystem cannot be identified
            OSError: If the caller's environment cannot be read
        """
        env = await probe.locale_env_for_pid(self.system, caller_pid)
        await self._start(JobKind.BACKUP, env)

    async def start_restore(self, caller_pid: int) -> None:
        """Start a restore in the background.

        Args:
            caller_pid: Process ID of the caller, whose locale is used for the job

        Raises:
            NotPermittedError: If not booted from the backup partition
            RootQueryError: If the root filesystem cannot be identified
            OSError: If the caller's environment cannot be read
        """
        env = await probe.locale_env_for_pid(self.system, caller_pid)
        await self._start(JobKind.RESTORE, env)

    def job(self, kind: JobKind) -> asyncio.Task[None] | None:
        """Get the task of the most recent job of a kind, if any."""
        return self._jobs.get(kind)

    async def wait(self) -> None:
        """Wait for every started job to finish."""
        await asyncio.gather(*self._jobs.values())

    async def _start(self, kind: JobKind, env: dict[str, str]) -> None:
        if kind is JobKind.BACKUP:
            can = await self.checker.can_backup()
        else:
            can = await self.checker.can_restore()

        if not can:
            raise NotPermittedError(f"{kind.value} cannot be performed")

        async with self._lock:
            if self._running(kind):
                self.logger.debug("Job already running", kind=kind.value)
                return
            self._set_running(kind, True)

        await self.bus.publish(PropertyChanged(self._flag_name(kind), True))

        self.logger.info("Starting job", kind=kind.value)
        self._jobs[kind] = asyncio.create_task(self._run_job(kind, env), name=f"{kind.value}-job")

    async def _run_job(self, kind: JobKind, env: dict[str, str]) -> None:
        error: Exception | None = None
        try:
            if kind is JobKind.BACKUP:
                await self.runner.backup(env)
            else:
                await self.runner.restore(env)
        except Exception as e:
            error = e
            self.logger.warning(f"Failed to {kind.value}", error=str(e))

        await self.bus.publish(JobEnd.from_outcome(kind, error))

        changed: list[PropertyChanged] = []
        async with self._lock:
            self._set_running(kind, False)
            changed.append(PropertyChanged(self._flag_name(kind), False))

            if kind is JobKind.BACKUP and error is None:
                if self.config.time is not None:
                    self.backup_time = int(self.config.time.timestamp())
                self.backup_version = self.config.version
                create_marker_file(self.options.marker_file, self.logger)
                self.has_backed_up = True
                changed.extend(
                    [
                        PropertyChanged(PROP_BACKUP_TIME, self.backup_time),
                        PropertyChanged(PROP_BACKUP_VERSION, self.backup_version),
                        PropertyChanged(PROP_HAS_BACKED_UP, True),
                    ]
                )

        for event in changed:
            await self.bus.publish(event)

        self.logger.info("Job finished", kind=kind.value, success=error is None)

    def _running(self, kind: JobKind) -> bool:
        return self.backing_up if kind is JobKind.BACKUP else self.restoring

    def _set_running(self, kind: JobKind, value: bool) -> None:
        if kind is JobKind.BACKUP:
            self.backing_up = value
        else:
            self.restoring = value

    @staticmethod
    def _flag_name(kind: JobKind) -> str:
        return PROP_BACKING_UP if kind is JobKind.BACKUP else PROP_RESTORING
