"""Unit tests for the rsync partition copy."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from abrecovery.clone.rsync import RsyncOperation
from abrecovery.config.models import RecoveryConfig, ServiceOptions
from abrecovery.system.command import CommandError
from abrecovery.system.probe import OS_RELEASE


@pytest.fixture
def options(tmp_path: Path) -> ServiceOptions:
    return ServiceOptions(
        config_file=tmp_path / "ab-recovery.json",
        backup_mount_dir=tmp_path / "target",
        rsync_excludes=["/proc/*", "/boot/*"],
    )


@pytest.fixture
def config() -> RecoveryConfig:
    return RecoveryConfig(current="uuid-a", backup="uuid-b", version="22")


class TestRsyncBackup:
    """Tests for RsyncOperation.backup."""

    @pytest.mark.asyncio
    async def test_mount_copy_unmount(self, system, options, config) -> None:
        """Test the command sequence of a backup."""
        system.files[OS_RELEASE] = b"VERSION_ID=23\n"
        operation = RsyncOperation(system, options)
        target = str(options.backup_mount_dir)

        await operation.backup(config, {"LANG": "C"})

        assert [cmd.executable for cmd in system.commands] == ["mount", "rsync", "umount"]
        mount, rsync, umount = system.commands
        assert mount.args == ["UUID=uuid-b", target]
        assert umount.args == [target]
        assert rsync.args[-2:] == ["/", f"{target}/"]
        assert "--delete" in rsync.args
        assert "--exclude=/proc/*" in rsync.args
        assert "--exclude=/boot/*" in rsync.args
        assert f"--exclude={target}" in rsync.args
        assert all(cmd.env == {"LANG": "C"} for cmd in system.commands)
        assert options.backup_mount_dir.is_dir()

    @pytest.mark.asyncio
    async def test_stamps_and_saves_config(self, system, options, config) -> None:
        system.files[OS_RELEASE] = b'VERSION_ID="23"\n'
        operation = RsyncOperation(system, options)

        await operation.backup(config, {})

        assert config.version == "23"
        assert config.time is not None
        saved = json.loads(options.config_file.read_text())
        assert saved["Version"] == "23"
        assert saved["Current"] == "uuid-a"

    @pytest.mark.asyncio
    async def test_vanished_files_are_tolerated(self, system, options, config) -> None:
        """Test that rsync exit code 24 still counts as success."""
        system.results["rsync"] = CommandError("rsync", 24, "file has vanished")
        operation = RsyncOperation(system, options)

        await operation.backup(config, {})

        assert config.version == "unknown"
        assert options.config_file.exists()

    @pytest.mark.asyncio
    async def test_copy_failure_unmounts(self, system, options, config) -> None:
        """Test that a failed copy still unmounts and leaves config untouched."""
        system.results["rsync"] = CommandError("rsync", 23, "partial transfer")
        operation = RsyncOperation(system, options)

        with pytest.raises(CommandError):
            await operation.backup(config, {})

        assert [cmd.executable for cmd in system.commands] == ["mount", "rsync", "umount"]
        assert config.version == "22"
        assert config.time is None
        assert not options.config_file.exists()

    @pytest.mark.asyncio
    async def test_copy_failure_survives_unmount_failure(self, system, options, config) -> None:
        """Test that a busy mount does not hide the rsync error."""
        system.results["rsync"] = CommandError("rsync", 11, "No space left on device")
        system.results["umount"] = CommandError("umount", 32, "target is busy")
        operation = RsyncOperation(system, options)

        with pytest.raises(CommandError) as exc_info:
            await operation.backup(config, {})

        assert exc_info.value.returncode == 11
        assert len(system.executed("umount")) == 1

    @pytest.mark.asyncio
    async def test_unmount_failure_after_copy(self, system, options, config) -> None:
        system.results["umount"] = CommandError("umount", 32, "target is busy")
        operation = RsyncOperation(system, options)

        with pytest.raises(CommandError) as exc_info:
            await operation.backup(config, {})

        assert exc_info.value.returncode == 32
        assert not options.config_file.exists()

    @pytest.mark.asyncio
    async def test_save_failure_leaves_config_unstamped(self, system, options, config) -> None:
        system.files[OS_RELEASE] = b"VERSION_ID=23\n"
        operation = RsyncOperation(system, options)

        with patch("abrecovery.clone.rsync.save_config", side_effect=OSError("read-only")):
            with pytest.raises(OSError, match="read-only"):
                await operation.backup(config, {})

        assert config.version == "22"
        assert config.time is None

    @pytest.mark.asyncio
    async def test_mount_failure(self, system, options, config) -> None:
        system.results["mount"] = CommandError("mount", 32, "unknown filesystem")
        operation = RsyncOperation(system, options)

        with pytest.raises(CommandError):
            await operation.backup(config, {})

        assert system.executed("rsync") == []
        assert system.executed("umount") == []


class TestRsyncRestore:
    """Tests for RsyncOperation.restore."""

    @pytest.mark.asyncio
    async def test_restore_targets_current(self, system, options, config) -> None:
        operation = RsyncOperation(system, options)

        await operation.restore(config, {})

        mount = system.executed("mount")[0]
        assert mount.args[0] == "UUID=uuid-a"
        assert len(system.executed("umount")) == 1
        assert config.version == "22"
        assert not options.config_file.exists()
