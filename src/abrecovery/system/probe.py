"""Queries against host state: root filesystem identity, mounts, architecture."""

import platform
from pathlib import Path

from abrecovery.system.command import Command
from abrecovery.system.models import parse_mount_table, parse_os_release
from abrecovery.system.worker import Worker

MOUNT_TABLE = Path("/proc/self/mounts")
OS_RELEASE = Path("/etc/os-release")

# Environment variables forwarded from a caller to job commands.
LOCALE_ENV_VARS = ("LANG", "LANGUAGE")
LOCALE_ENV_PREFIX = "LC_"


async def root_uuid(system: Worker) -> str:
    """Get the UUID of the filesystem mounted at /.

    Args:
        system: System worker

    Returns:
        Filesystem UUID

    Raises:
        CommandError: If findmnt fails
        ValueError: If the root filesystem reports no UUID
    """
    output = await system.run(Command(executable="findmnt", args=["-n", "-o", "UUID", "/"]))
    uuid = output.decode("utf-8", errors="replace").strip()
    if not uuid:
        raise ValueError("Root filesystem has no UUID")
    return uuid


async def is_mounted_ro(system: Worker, mount_point: Path) -> bool:
    """Check whether a mount point is currently mounted read-only.

    A path that is not a mount point is reported as writable.

    Args:
        system: System worker
        mount_point: Mount point to look up

    Returns:
        True if the last mount over the path is read-only

    Raises:
        OSError: If the mount table cannot be read
        ValueError: If the mount table is malformed
    """
    contents = await system.read_file(MOUNT_TABLE)
    entries = parse_mount_table(contents.decode("utf-8", errors="replace"))

    target = str(mount_point).rstrip("/") or "/"
    read_only = False
    # Later entries shadow earlier ones mounted on the same path.
    for entry in entries:
        if entry.mount_point == target:
            read_only = entry.read_only
    return read_only


def machine_arch() -> str:
    """Get the CPU architecture name reported by the kernel."""
    return platform.machine().lower()


def is_arch_mips() -> bool:
    return machine_arch().startswith("mips")


def is_arch_sw() -> bool:
    return machine_arch().startswith("sw_64")


async def locale_env_for_pid(system: Worker, pid: int) -> dict[str, str]:
    """Collect the locale environment of another process.

    Args:
        system: System worker
        pid: Process ID of the caller

    Returns:
        Locale variables (LANG, LANGUAGE, LC_*) set in the caller's environment

    Raises:
        FileNotFoundError: If the process does not exist
        PermissionError: If the environment cannot be read
    """
    contents = await system.read_file(Path(f"/proc/{pid}/environ"))

    env: dict[str, str] = {}
    for item in contents.split(b"\0"):
        if b"=" not in item:
            continue
        key, value = item.decode("utf-8", errors="replace").split("=", 1)
        if key in LOCALE_ENV_VARS or key.startswith(LOCALE_ENV_PREFIX):
            env[key] = value
    return env


async def os_version(system: Worker) -> str:
    """Get the operating system version from os-release.

    Args:
        system: System worker

    Returns:
        VERSION_ID, falling back to VERSION, or "unknown"
    """
    try:
        contents = await system.read_file(OS_RELEASE)
    except FileNotFoundError:
        return "unknown"

    fields = parse_os_release(contents.decode("utf-8", errors="replace"))
    return fields.get("VERSION_ID") or fields.get("VERSION") or "unknown"
