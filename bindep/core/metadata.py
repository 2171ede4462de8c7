"""
Installed-binary metadata sidecars.

Every installed binary has a sidecar ``<install-path>_meta.json`` recording
the name and version that produced it:

    {
      "name": "task",
      "version": "v3.44.1"
    }

The sidecar is written after the binary has been placed, so its presence
marks a completed install. It is what makes a second ``ensure`` skip work
and what status/upgrade compare against the configured version.
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from bindep.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

META_SUFFIX = "_meta.json"


@dataclass(frozen=True)
class InstalledMeta:
    """Name and version of an installed binary."""

    name: str
    version: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


def meta_path(install_path: Path) -> Path:
    """
    Get the sidecar path for an install path.

    Example:
        >>> meta_path(Path(".dep/task"))
        PosixPath('.dep/task_meta.json')
    """
    install_path = Path(install_path)
    return install_path.with_name(install_path.name + META_SUFFIX)


def read_meta(install_path: Path) -> Optional[InstalledMeta]:
    """
    Read the metadata sidecar of an installed binary.

    Args:
        install_path: Path of the installed binary (not of the sidecar)

    Returns:
        InstalledMeta, or None when the sidecar is missing or unreadable
    """
    path = meta_path(install_path)
    if not path.exists():
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return InstalledMeta(name=str(data["name"]), version=str(data["version"]))
    except (OSError, json.JSONDecodeError, TypeError, KeyError) as e:
        logger.warning(f"Ignoring corrupt metadata file {path}: {e}")
        return None


def write_meta(install_path: Path, meta: InstalledMeta) -> Path:
    """
    Write the metadata sidecar atomically.

    Args:
        install_path: Path of the installed binary
        meta: Metadata to record

    Returns:
        Path to the sidecar file
    """
    path = meta_path(install_path)
    atomic_write(path, json.dumps(meta.to_dict(), indent=2))
    logger.debug(f"Wrote metadata {path} ({meta.version})")
    return path


def remove_meta(install_path: Path) -> bool:
    """
    Delete the metadata sidecar if present.

    Returns:
        True if a sidecar was removed
    """
    path = meta_path(install_path)
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False


__all__ = ["META_SUFFIX", "InstalledMeta", "meta_path", "read_meta", "write_meta", "remove_meta"]
