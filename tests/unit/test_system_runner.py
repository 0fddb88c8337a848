"""Unit tests for the local command runner."""

from pathlib import Path

import pytest

from abrecovery.system.command import Command, CommandError
from abrecovery.system.runner import System
from abrecovery.system.worker import Worker


class TestSystem:
    """Tests for System against real subprocesses."""

    def test_implements_worker(self) -> None:
        assert isinstance(System(), Worker)

    @pytest.mark.asyncio
    async def test_run_returns_output(self) -> None:
        output = await System().run(Command(executable="echo", args=["hello"]))
        assert output == b"hello\n"

    @pytest.mark.asyncio
    async def test_run_failure(self) -> None:
        cmd = Command(executable="sh", args=["-c", "echo oops; exit 3"])
        with pytest.raises(CommandError) as exc_info:
            await System().run(cmd)

        assert exc_info.value.returncode == 3
        assert exc_info.value.output == "oops\n"

    @pytest.mark.asyncio
    async def test_run_missing_executable(self) -> None:
        with pytest.raises(CommandError) as exc_info:
            await System().run(Command(executable="/nonexistent/ab-recovery-tool"))
        assert exc_info.value.returncode == 127

    @pytest.mark.asyncio
    async def test_run_with_env(self) -> None:
        """Test that command env is layered over the service environment."""
        cmd = Command(executable="sh", args=["-c", 'echo "$LANG:${PATH:+set}"'], env={"LANG": "C.UTF-8"})
        output = await System().run(cmd)
        assert output == b"C.UTF-8:set\n"

    @pytest.mark.asyncio
    async def test_run_with_retries_gives_up(self) -> None:
        cmd = Command(executable="false")
        with pytest.raises(CommandError):
            await System().run_with_retries(cmd, max_duration_ms=0)

    @pytest.mark.asyncio
    async def test_spawn(self) -> None:
        process = await System().spawn(Command(executable="sleep", args=["30"]))
        assert process.returncode is None
        process.terminate()
        assert await process.wait() != 0

    @pytest.mark.asyncio
    async def test_read_file(self, tmp_path: Path) -> None:
        path = tmp_path / "environ"
        path.write_bytes(b"LANG=C\0")
        assert await System().read_file(path) == b"LANG=C\0"

    @pytest.mark.asyncio
    async def test_read_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            await System().read_file(tmp_path / "missing")
