"""Unit tests for the job runner."""

from unittest.mock import AsyncMock, Mock

import pytest

from abrecovery.config.models import RecoveryConfig
from abrecovery.core.operation import Operation
from abrecovery.core.runner import BACKUP_REASON, RESTORE_REASON, JobRunner


class MockInhibitor:
    """Inhibitor that records the reason and runs the operation directly."""

    def __init__(self) -> None:
        self.reasons: list[str] = []

    async def inhibit_shutdown_do(self, reason, operation):
        self.reasons.append(reason)
        return await operation()


class TestJobRunner:
    """Tests for JobRunner."""

    @pytest.mark.asyncio
    async def test_backup(self) -> None:
        config = RecoveryConfig(current="a", backup="b")
        operation = Mock(backup=AsyncMock(), restore=AsyncMock())
        inhibitor = MockInhibitor()
        runner = JobRunner(config, operation, inhibitor)

        await runner.backup({"LANG": "C"})

        assert inhibitor.reasons == [BACKUP_REASON]
        operation.backup.assert_awaited_once_with(config, {"LANG": "C"})
        operation.restore.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_restore(self) -> None:
        config = RecoveryConfig(current="a", backup="b")
        operation = Mock(backup=AsyncMock(), restore=AsyncMock())
        inhibitor = MockInhibitor()
        runner = JobRunner(config, operation, inhibitor)

        await runner.restore({})

        assert inhibitor.reasons == [RESTORE_REASON]
        operation.restore.assert_awaited_once_with(config, {})

    @pytest.mark.asyncio
    async def test_operation_error_propagates(self) -> None:
        operation = Mock(backup=AsyncMock(side_effect=RuntimeError("rsync died")))
        runner = JobRunner(RecoveryConfig(), operation, MockInhibitor())

        with pytest.raises(RuntimeError, match="rsync died"):
            await runner.backup({})


class TestOperationProtocol:
    """Tests for the Operation protocol."""

    def test_valid_implementation(self) -> None:
        class Valid:
            async def backup(self, config, env) -> None: ...

            async def restore(self, config, env) -> None: ...

        assert isinstance(Valid(), Operation)

    def test_invalid_implementation(self) -> None:
        class BackupOnly:
            async def backup(self, config, env) -> None: ...

        assert not isinstance(BackupOnly(), Operation)
