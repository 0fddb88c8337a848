"""Worker protocol for system operations."""

import asyncio
from pathlib import Path
from typing import Protocol, runtime_checkable

from abrecovery.system.command import Command


@runtime_checkable
class Worker(Protocol):
    """Protocol for a system that can execute commands and read host state.

    This protocol defines the interface that all system implementations must follow,
    allowing for both real system operations and fakes for testing.
    """

    async def run(self, cmd: Command) -> bytes:
        """Execute a command and return its output.

        Args:
            cmd: Command to execute

        Returns:
            Combined stdout/stderr output as bytes

        Raises:
            CommandError: If the command fails
        """
        ...

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
        ...

    async def spawn(self, cmd: Command) -> asyncio.subprocess.Process:
        """Start a long-lived command without waiting for it.

        Args:
            cmd: Command to start

        Returns:
            The running process

        Raises:
            OSError: If the process cannot be started
        """
        ...

    async def read_file(self, filepath: Path) -> bytes:
        """Read a file from anywhere on the filesystem.

        Args:
            filepath: Absolute path to file

        Returns:
            File contents as bytes

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        ...
