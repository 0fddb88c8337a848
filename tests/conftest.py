"""Shared fakes for unit tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

from abrecovery.system.command import Command
from abrecovery.system.probe import MOUNT_TABLE

CommandResult = bytes | Exception | Callable[[Command], bytes]


class FakeProcess:
    """Stand-in for a long-lived asyncio subprocess."""

    def __init__(self, returncode: int | None = None) -> None:
        self.returncode = returncode
        self.terminated = False

    def terminate(self) -> None:
        self.terminated = True
        self.returncode = -15

    async def wait(self) -> int | None:
        return self.returncode


class FakeSystem:
    """In-memory implementation of the Worker protocol.

    Command results are keyed by executable name; a result may be bytes,
    an exception to raise, or a callable receiving the Command.
    """

    def __init__(self) -> None:
        self.files: dict[Path, bytes] = {}
        self.results: dict[str, CommandResult] = {}
        self.commands: list[Command] = []
        self.spawned: list[Command] = []
        self.processes: list[FakeProcess] = []
        self.spawn_error: OSError | None = None
        self.spawn_returncode: int | None = None

    def set_root_uuid(self, uuid: str) -> None:
        self.results["findmnt"] = f"{uuid}\n".encode()

    def set_boot_mount(self, read_only: bool, path: str = "/boot") -> None:
        mode = "ro" if read_only else "rw"
        self.files[MOUNT_TABLE] = (
            "/dev/sda2 / ext4 rw,relatime 0 0\n"
            f"/dev/sda1 {path} vfat {mode},relatime 0 0\n"
        ).encode()

    def set_caller_env(self, pid: int, env: dict[str, str]) -> None:
        data = b"\0".join(f"{k}={v}".encode() for k, v in env.items()) + b"\0"
        self.files[Path(f"/proc/{pid}/environ")] = data

    def executed(self, executable: str) -> list[Command]:
        return [cmd for cmd in self.commands if cmd.executable == executable]

    async def run(self, cmd: Command) -> bytes:
        self.commands.append(cmd)
        result = self.results.get(cmd.executable, b"")
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(cmd)
        return result

    async def run_with_retries(self, cmd: Command, max_duration_ms: int) -> bytes:
        return await self.run(cmd)

    async def spawn(self, cmd: Command) -> FakeProcess:
        self.spawned.append(cmd)
        if self.spawn_error is not None:
            raise self.spawn_error
        process = FakeProcess(self.spawn_returncode)
        self.processes.append(process)
        return process

    async def read_file(self, filepath: Path) -> bytes:
        if filepath not in self.files:
            raise FileNotFoundError(f"File '{filepath}' does not exist")
        return self.files[filepath]


@pytest.fixture
def system() -> FakeSystem:
    """A FakeSystem with a writable /boot and no other state."""
    fake = FakeSystem()
    fake.set_boot_mount(read_only=False)
    return fake
