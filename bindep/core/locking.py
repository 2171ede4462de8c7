"""
Concurrent access control for bindep.

This module provides file-based locking so that several processes sharing
one install root never install the same binary at the same time.

Features:
- Cross-platform, cross-process file locking via `filelock`
- One lock per binary name, stored under ``<install-root>/.locks``
- Timeout support to prevent hanging
- Stale lock file cleanup

Usage:
    from bindep.core.locking import LockManager

    lock_manager = LockManager(install_root / ".locks")
    with lock_manager.binary_lock("task", timeout=300):
        # check metadata, install, write metadata
        pass
"""

import logging
import re
import time
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout as LockTimeout

logger = logging.getLogger(__name__)

LOCK_DIR_NAME = ".locks"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class LockManager:
    """
    Manages per-binary install locks.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Path):
        """
        Initialize lock manager.

        Args:
            lock_dir: Directory for lock files (created on demand)
        """
        self.lock_dir = Path(lock_dir)

    def lock_path(self, name: str) -> Path:
        """Lock file path for a binary name."""
        safe_name = _UNSAFE_CHARS.sub("-", name)
        return self.lock_dir / f"{safe_name}.lock"

    @contextmanager
    def binary_lock(self, name: str, timeout: float = 300):
        """
        Acquire the install lock for one binary.

        Args:
            name: Binary name
            timeout: Maximum wait time in seconds (default: 300 for long builds)

        Yields:
            None

        Raises:
            LockTimeout: If lock can't be acquired within timeout

        Example:
            >>> lock_manager = LockManager(Path(".dep/.locks"))
            >>> with lock_manager.binary_lock("task", timeout=300):
            ...     install_task()
        """
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        lock_path = self.lock_path(name)
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired binary lock: {lock_path}")
                yield
                logger.debug(f"Released binary lock: {lock_path}")
        except LockTimeout as e:
            logger.error(
                f"Could not acquire lock for {name} after {timeout}s. "
                "Another process may be installing this binary."
            )
            raise LockTimeout(str(lock_path)) from e

    def cleanup_stale_locks(self, max_age_hours: int = 24) -> int:
        """
        Remove lock files older than max_age_hours.

        Args:
            max_age_hours: Maximum age in hours before lock is considered stale

        Returns:
            Number of stale locks removed
        """
        if not self.lock_dir.exists():
            return 0

        current_time = time.time()
        removed_count = 0

        for lock_file in self.lock_dir.glob("*.lock"):
            try:
                age_hours = (current_time - lock_file.stat().st_mtime) / 3600

                if age_hours > max_age_hours:
                    lock_file.unlink()
                    logger.info(f"Removed stale lock file: {lock_file}")
                    removed_count += 1
            except OSError as e:
                # Lock may be in use or already deleted
                logger.debug(f"Could not remove lock {lock_file}: {e}")

        return removed_count


__all__ = ["LOCK_DIR_NAME", "LockManager", "LockTimeout"]
