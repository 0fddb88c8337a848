"""Block system shutdown and keep the boot area writable around a job."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

from abrecovery.core.errors import BootAreaError
from abrecovery.core.events import SERVICE_NAME
from abrecovery.core.logging import StructuredLoggerAdapter, get_logger
from abrecovery.system import probe
from abrecovery.system.command import Command, CommandError
from abrecovery.system.worker import Worker

T = TypeVar("T")


class ShutdownInhibitor:
    """Runs operations under a logind shutdown block with /boot writable.

    The inhibition is held by a ``systemd-inhibit`` child process for the
    duration of the operation. Calls are serialised: the boot area mount
    state is host-wide, so two jobs must not toggle it concurrently.
    """

    def __init__(
        self,
        system: Worker,
        boot_dir: Path = Path("/boot"),
        who: str = SERVICE_NAME,
        logger: StructuredLoggerAdapter | None = None,
    ) -> None:
        """Initialize the inhibitor.

        Args:
            system: System worker
            boot_dir: Mount point of the boot area
            who: Application name recorded with the inhibition
            logger: Logger for best-effort failures
        """
        self.system = system
        self.boot_dir = boot_dir
        self.who = who
        self.logger = logger or get_logger(__name__)
        self._lock = asyncio.Lock()

    async def inhibit_shutdown_do(self, reason: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Run an operation while shutdown is blocked and the boot area is writable.

        Args:
            reason: Human readable reason shown by logind
            operation: Coroutine function to run

        Returns:
            The operation's result

        Raises:
            BootAreaError: If the boot area state cannot be read or made writable
            Exception: Whatever the operation raises
        """
        async with self._lock:
            try:
                boot_ro = await probe.is_mounted_ro(self.system, self.boot_dir)
            except (OSError, ValueError) as e:
                raise BootAreaError(f"isMountedRo: {e}") from e

            if boot_ro:
                try:
                    await self._remount(writable=True)
                except CommandError as e:
                    raise BootAreaError(f"remount {self.boot_dir} rw: {e}") from e

            try:
                inhibition = await self._inhibit(reason)
                try:
                    return await operation()
                finally:
                    if inhibition is not None:
                        await self._release(inhibition)
            finally:
                if boot_ro:
                    try:
                        await self._remount(writable=False)
                    except CommandError as e:
                        self.logger.warning(
                            "Failed to remount boot area read-only",
                            path=str(self.boot_dir),
                            error=str(e),
                        )

    async def _remount(self, writable: bool) -> None:
        mode = "rw" if writable else "ro"
        cmd = Command(executable="mount", args=[str(self.boot_dir), "-o", f"{mode},remount"])
        await self.system.run(cmd)
        self.logger.debug("Remounted boot area", path=str(self.boot_dir), mode=mode)

    async def _inhibit(self, reason: str) -> asyncio.subprocess.Process | None:
        cmd = Command(
            executable="systemd-inhibit",
            args=[
                "--what=shutdown",
                "--mode=block",
                f"--who={self.who}",
                f"--why={reason}",
                "sleep",
                "infinity",
            ],
        )
        try:
            return await self.system.spawn(cmd)
        except OSError as e:
            self.logger.warning("Failed to inhibit shutdown", error=str(e))
            return None

    async def _release(self, inhibition: asyncio.subprocess.Process) -> None:
        if inhibition.returncode is not None:
            self.logger.warning(
                "Shutdown inhibitor exited early", returncode=inhibition.returncode
            )
            return
        try:
            inhibition.terminate()
        except ProcessLookupError:
            pass
        await inhibition.wait()
