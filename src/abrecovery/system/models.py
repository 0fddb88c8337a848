"""Data models for system operations.

This module provides dataclasses for working with the kernel mount table
and the os-release file.
"""

import re
from dataclasses import dataclass, field

_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")


def _unescape(value: str) -> str:
    """Decode the octal escapes the kernel uses in /proc/mounts (e.g. \\040)."""
    return _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), value)


@dataclass
class MountEntry:
    """A single line of /proc/self/mounts.

    Attributes:
        device: Mounted device or pseudo filesystem name
        mount_point: Where the filesystem is mounted
        fs_type: Filesystem type
        options: Mount options in order
    """

    device: str
    mount_point: str
    fs_type: str
    options: list[str] = field(default_factory=list)

    @property
    def read_only(self) -> bool:
        """Whether the filesystem is mounted read-only."""
        return "ro" in self.options

    @staticmethod
    def from_line(line: str) -> "MountEntry":
        """Parse one mount table line.

        Args:
            line: Line in fstab format

        Returns:
            MountEntry instance

        Raises:
            ValueError: If the line has fewer than four fields
        """
        parts = line.split()
        if len(parts) < 4:
            raise ValueError(f"Malformed mount table line: {line!r}")

        return MountEntry(
            device=_unescape(parts[0]),
            mount_point=_unescape(parts[1]),
            fs_type=parts[2],
            options=parts[3].split(","),
        )


def parse_mount_table(contents: str) -> list[MountEntry]:
    """Parse the contents of /proc/self/mounts.

    Blank lines are skipped.

    Args:
        contents: Mount table text

    Returns:
        Entries in table order
    """
    return [MountEntry.from_line(line) for line in contents.splitlines() if line.strip()]


def parse_os_release(contents: str) -> dict[str, str]:
    """Parse an os-release file into a mapping.

    Args:
        contents: File contents

    Returns:
        Key/value pairs with surrounding quotes removed
    """
    result: dict[str, str] = {}
    for line in contents.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        result[key.strip()] = value.strip().strip("\"'")
    return result
