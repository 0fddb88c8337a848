"""Configuration models for ab-recovery using Pydantic."""

from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_RSYNC_EXCLUDES = [
    "/dev/*",
    "/proc/*",
    "/sys/*",
    "/tmp/*",
    "/run/*",
    "/mnt/*",
    "/media/*",
    "/boot/*",
    "/lost+found",
]


class RecoveryConfig(BaseModel):
    """Persisted A/B partition configuration.

    Keys in the document are capitalised (``Current``, ``Backup``,
    ``Version``, ``Time``); snake_case names are accepted as well.
    """

    model_config = {"populate_by_name": True}

    current: str = Field("", alias="Current")
    backup: str = Field("", alias="Backup")
    version: str = Field("", alias="Version")
    time: datetime | None = Field(None, alias="Time")

    @field_validator("version", mode="before")
    @classmethod
    def version_as_text(cls, value: Any) -> Any:
        # Unquoted YAML versions (Version: 20) load as numbers
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value

    def check(self) -> None:
        """Validate the partition pair.

        Raises:
            ValueError: If either UUID is missing or both name the same partition
        """
        if not self.current:
            raise ValueError("config: current partition is not set")
        if not self.backup:
            raise ValueError("config: backup partition is not set")
        if self.current == self.backup:
            raise ValueError("config: current and backup partitions are the same")


class ServiceOptions(BaseModel):
    """Runtime settings from CLI flags and ABRECOVERY_* environment variables."""

    config_file: Path = Path("/etc/deepin/ab-recovery.json")
    marker_file: Path = Path("/tmp/ab-backup-finished")
    boot_dir: Path = Path("/boot")
    backup_mount_dir: Path = Path("/run/ab-recovery/target")
    no_grub_mkconfig: bool = False
    rsync_excludes: list[str] = Field(default_factory=lambda: list(DEFAULT_RSYNC_EXCLUDES))
