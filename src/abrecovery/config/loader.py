"""Configuration loading and persistence for ab-recovery."""

import os
import stat
import tempfile
from pathlib import Path

import yaml

from abrecovery.config.models import RecoveryConfig, ServiceOptions
from abrecovery.core.logging import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "ABRECOVERY_"

CONFIG_FILE_MODE = 0o644


def load_config(path: Path) -> RecoveryConfig:
    """Load the partition configuration from a JSON or YAML file.

    Args:
        path: Path to configuration file

    Returns:
        Parsed configuration (not yet checked, see RecoveryConfig.check)

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file is invalid or doesn't match schema
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.debug("Loading configuration file", path=str(path))

    try:
        with path.open("r") as f:
            data = yaml.safe_load(f)

        # Treat empty files as empty configuration
        if data is None:
            data = {}

        if not isinstance(data, dict):
            raise ValueError("Configuration file must contain a mapping")

        return RecoveryConfig.model_validate(data)

    except yaml.YAMLError as e:
        raise ValueError(f"Invalid configuration file: {e}") from e
    except Exception as e:
        raise ValueError(f"Failed to parse configuration: {e}") from e


def save_config(config: RecoveryConfig, path: Path) -> None:
    """Persist the configuration as JSON, replacing the file atomically.

    Args:
        config: Configuration to write
        path: Destination path

    Raises:
        OSError: If the file cannot be written
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = config.model_dump_json(by_alias=True, indent=2) + "\n"

    # mkstemp creates 0600; carry over the existing mode
    mode = stat.S_IMODE(path.stat().st_mode) if path.exists() else CONFIG_FILE_MODE

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        os.fchmod(fd, mode)
        with os.fdopen(fd, "w") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except Exception:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.debug("Saved configuration", path=str(path))


def get_env_options() -> ServiceOptions:
    """Get service options from environment variables.

    Environment variables are prefixed with ABRECOVERY_ (e.g.
    ABRECOVERY_CONFIG_FILE, ABRECOVERY_NO_GRUB_MKCONFIG). Unset variables
    keep their defaults.

    Returns:
        ServiceOptions populated from the environment
    """

    def get_str(key: str) -> str:
        return os.getenv(f"{ENV_PREFIX}{key.upper()}", "")

    values: dict[str, object] = {}
    for key in ("config_file", "marker_file", "boot_dir", "backup_mount_dir"):
        val = get_str(key)
        if val:
            values[key] = Path(val)

    no_grub = get_str("no_grub_mkconfig")
    if no_grub:
        values["no_grub_mkconfig"] = no_grub.lower() in ("1", "true", "yes")

    excludes = get_str("rsync_excludes")
    if excludes:
        values["rsync_excludes"] = [item.strip() for item in excludes.split(",") if item.strip()]

    return ServiceOptions.model_validate(values)
