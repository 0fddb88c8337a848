"""System command runner implementation."""

import asyncio
import os
from pathlib import Path

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_delay,
    wait_exponential,
)

from abrecovery.core.logging import get_logger
from abrecovery.system.command import Command, CommandError

logger = get_logger(__name__)


class System:
    """System implementation that executes commands on the local machine.

    This class implements the Worker protocol.
    """

    def _environment(self, cmd: Command) -> dict[str, str] | None:
        """Build the child environment for a command.

        Args:
            cmd: Command being started

        Returns:
            Merged environment, or None to inherit the service environment
        """
        if not cmd.env:
            return None
        env = dict(os.environ)
        env.update(cmd.env)
        return env

    async def run(self, cmd: Command) -> bytes:
        """Execute a command and return its output.

        Args:
            cmd: Command to execute

        Returns:
            Combined stdout/stderr output as bytes

        Raises:
            CommandError: If the command fails
        """
        command_string = cmd.command_string
        logger.debug("Starting command", command=command_string)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd.full_command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                env=self._environment(cmd),
            )
        except OSError as e:
            raise CommandError(command_string, 127, str(e)) from e

        stdout, _ = await process.communicate()

        if process.returncode != 0:
            output_str = stdout.decode("utf-8", errors="replace")
            # After communicate(), returncode should always be set
            returncode = process.returncode if process.returncode is not None else 1
            raise CommandError(command_string, returncode, output_str)

        logger.debug("Finished command", command=command_string)

        return stdout

    async def run_with_retries(self, cmd: Command, max_duration_ms: int) -> bytes:
        """Execute a command with exponential backoff retries.

        Args:
            cmd: Command to execute
            max_duration_ms: Maximum duration for retries in milliseconds

        Returns:
            Combined stdout/stderr output as bytes

        Raises:
            CommandError: If all retries fail
        """
        max_duration_sec = max_duration_ms / 1000.0

        try:
            async for attempt in AsyncRetrying(
                wait=wait_exponential(multiplier=1, min=1, max=10),
                stop=stop_after_delay(max_duration_sec),
                reraise=True,
                retry=retry_if_exception_type(CommandError),
            ):
                with attempt:
                    return await self.run(cmd)
        except RetryError as e:
            exc = e.last_attempt.exception()
            if exc is not None:
                raise exc from e
            raise

        # This should never be reached due to reraise=True
        raise RuntimeError("Unexpected retry error")

    async def spawn(self, cmd: Command) -> asyncio.subprocess.Process:
        """Start a long-lived command without waiting for it.

        Args:
            cmd: Command to start

        Returns:
            The running process

        Raises:
            OSError: If the process cannot be started
        """
        process = await asyncio.create_subprocess_exec(
            *cmd.full_command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
            env=self._environment(cmd),
        )
        logger.debug("Spawned command", command=cmd.command_string, pid=process.pid)
        return process

    async def read_file(self, filepath: Path) -> bytes:
        """Read a file from anywhere on the filesystem.

        Args:
            filepath: Absolute path to file

        Returns:
            File contents as bytes

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        if not filepath.exists():
            raise FileNotFoundError(f"File '{filepath}' does not exist")

        return filepath.read_bytes()
