"""Command models for system execution."""

import shlex
from dataclasses import dataclass, field
from shutil import which


@dataclass
class Command:
    """Represents a command to be executed on the host.

    Attributes:
        executable: The command to execute
        args: Arguments to pass to the executable
        env: Extra environment variables layered over the service environment
    """

    executable: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)

    @property
    def full_command(self) -> list[str]:
        """Build the full argument vector.

        Returns:
            List of command components
        """
        executable_path = which(self.executable)
        if executable_path is None:
            executable_path = self.executable

        return [executable_path, *self.args]

    @property
    def command_string(self) -> str:
        """Build the command as a properly escaped shell string.

        Returns:
            Shell-escaped command string
        """
        return shlex.join(self.full_command)


class CommandError(Exception):
    """Raised when a command execution fails.

    Attributes:
        command: The command that failed
        returncode: Exit code from the command
        output: Combined stdout/stderr output
    """

    def __init__(self, command: str, returncode: int, output: str) -> None:
        """Initialize CommandError.

        Args:
            command: The command that failed
            returncode: Exit code from the command
            output: Combined stdout/stderr output
        """
        self.command = command
        self.returncode = returncode
        self.output = output
        super().__init__(f"Command failed with exit code {returncode}: {command}")
