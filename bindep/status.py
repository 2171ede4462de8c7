"""
Status reporting, upstream release checks and upgrades.

Status compares what the registry configures with what the install root
holds, per binary, without ever failing as a whole. Checks compare the
configured version with the latest upstream GitHub release. Upgrades
reinstall every binary whose recorded version differs from the configured
one and keep going past individual failures.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Sequence, Union

from bindep.config.registry import LATEST, AcquisitionType, BinaryEntry
from bindep.core.exceptions import BinDepError
from bindep.core.metadata import read_meta
from bindep.manager import BinaryManager

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "unknown"


@dataclass
class BinaryStatus:
    """Installation state of one configured binary."""

    name: str
    """Binary name"""

    configured: bool = True
    """Whether the binary is in the registry"""

    installed: bool = False
    """Whether the binary exists at its install path"""

    configured_version: str = ""
    """Version pinned in the registry"""

    installed_version: str = ""
    """Version recorded in metadata ('unknown' if the binary lacks metadata)"""

    up_to_date: bool = False
    """Whether the installed version satisfies the configured one"""

    path: str = ""
    """Install path"""

    size: int = 0
    """Size of the installed binary in bytes"""

    mod_time: Optional[datetime] = None
    """Modification time of the installed binary"""

    source: str = ""
    """Acquisition type"""

    error: Optional[str] = None
    """Failure while computing this status"""


@dataclass
class UpgradeSummary:
    """Outcome of upgrade_all()."""

    upgraded: int = 0
    skipped: int = 0
    failed: int = 0
    failures: Dict[str, str] = field(default_factory=dict)

    def __iter__(self) -> Iterator[int]:
        return iter((self.upgraded, self.skipped, self.failed))

    @property
    def ok(self) -> bool:
        return self.failed == 0


@dataclass
class ReleaseCheck:
    """Configured version of a binary next to its latest upstream release."""

    name: str
    repo: str = ""
    configured_version: str = ""
    latest_version: str = ""
    skipped: bool = False
    error: Optional[str] = None

    @property
    def update_available(self) -> bool:
        if self.skipped or self.error or not self.latest_version:
            return False
        return self.configured_version not in (LATEST, self.latest_version)


def binary_status(manager: BinaryManager, entry: BinaryEntry) -> BinaryStatus:
    """
    Compute the status of one entry.

    Never raises: problems are recorded in the returned status' error field.
    """
    result = BinaryStatus(
        name=entry.name,
        configured_version=entry.version,
        source=entry.source.value,
    )

    try:
        install_path = manager.get(entry.name)
        result.path = str(install_path)

        if not install_path.exists():
            return result

        stat = install_path.stat()
        result.installed = True
        result.size = stat.st_size
        result.mod_time = datetime.fromtimestamp(stat.st_mtime)

        meta = read_meta(install_path)
        if meta is None:
            result.installed_version = UNKNOWN_VERSION
            return result

        result.installed_version = meta.version
        result.up_to_date = manager.is_current(entry, meta)
    except (BinDepError, OSError) as e:
        result.error = str(e)

    return result


def status(
    manager: BinaryManager, name: Optional[str] = None
) -> Union[BinaryStatus, List[BinaryStatus]]:
    """
    Get status for one binary or for all of them.

    Args:
        manager: Binary manager
        name: Binary name, or None for every configured binary

    Returns:
        A single BinaryStatus when name is given, otherwise a list in
        registry order

    Raises:
        InvalidInputError: If name is blank
        BinaryNotFoundError: If name is not configured
    """
    if name is not None:
        return binary_status(manager, manager.entry(name))
    return [binary_status(manager, entry) for entry in manager.list()]


def has_github_releases(entry: BinaryEntry) -> bool:
    """Whether an entry's upstream publishes versions as GitHub releases."""
    if not entry.repo or entry.source == AcquisitionType.VENDOR_API:
        return False
    if not entry.release_url:
        return True
    return entry.release_url.rstrip("/") == f"{entry.repo_url}/releases"


def check_release(manager: BinaryManager, entry: BinaryEntry) -> ReleaseCheck:
    """
    Look up the latest upstream release of one entry.

    Never raises: lookup failures are recorded in the result's error field,
    and entries distributed outside GitHub releases are marked skipped.
    """
    result = ReleaseCheck(
        name=entry.name, repo=entry.repo, configured_version=entry.version
    )
    if not has_github_releases(entry):
        logger.debug(f"Skipping {entry.name}: not distributed as GitHub releases")
        result.skipped = True
        return result

    try:
        result.latest_version = manager.github.get_release(entry.repo, LATEST).tag
    except BinDepError as e:
        logger.error(f"Failed to check release of {entry.name}: {e}")
        result.error = str(e)
        return result

    if result.update_available:
        logger.info(
            f"{entry.name}: {entry.version} pinned, {result.latest_version} available"
        )
    return result


def check(
    manager: BinaryManager, name: Optional[str] = None
) -> Union[ReleaseCheck, List[ReleaseCheck]]:
    """
    Compare configured versions with the latest upstream releases.

    Args:
        manager: Binary manager (its GitHub client is used for lookups)
        name: Binary name, or None for every configured binary

    Returns:
        A single ReleaseCheck when name is given, otherwise a list in
        registry order

    Raises:
        InvalidInputError: If name is blank
        BinaryNotFoundError: If name is not configured
    """
    if name is not None:
        return check_release(manager, manager.entry(name))
    return [check_release(manager, entry) for entry in manager.list()]


def upgrade_all(manager: BinaryManager, verbose: bool = False) -> UpgradeSummary:
    """
    Reinstall every binary that is missing or out of date.

    Failures are logged and counted; the loop always visits every entry.

    Returns:
        UpgradeSummary (unpackable as upgraded, skipped, failed)
    """
    summary = UpgradeSummary()

    for entry in manager.list():
        current = binary_status(manager, entry)
        if current.up_to_date:
            logger.debug(f"{entry.name} is up to date")
            summary.skipped += 1
            continue

        try:
            manager.install(entry.name, verbose=verbose, force=True)
            summary.upgraded += 1
        except BinDepError as e:
            logger.error(f"Failed to upgrade {entry.name}: {e}")
            summary.failed += 1
            summary.failures[entry.name] = str(e)

    logger.info(
        f"Upgrade complete: {summary.upgraded} upgraded, "
        f"{summary.skipped} up to date, {summary.failed} failed"
    )
    return summary


def upgrade(manager: BinaryManager, name: str, verbose: bool = False) -> bool:
    """
    Upgrade a single binary if it is not up to date.

    Returns:
        True if an install ran, False if it was already up to date

    Raises:
        BinDepError: If the name is invalid or the install fails
    """
    entry = manager.entry(name)
    if binary_status(manager, entry).up_to_date:
        logger.info(f"{name} is already up to date")
        return False
    return manager.install(name, verbose=verbose, force=True)


def format_bytes(size: int) -> str:
    """
    Format a byte count for humans.

    Example:
        >>> format_bytes(1536)
        '1.5 KB'
    """
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{int(value)} B" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def _state(s: BinaryStatus) -> str:
    if s.error:
        return "error"
    if not s.installed:
        return "missing"
    if s.up_to_date:
        return "ok"
    return "outdated"


def format_status_table(statuses: Sequence[BinaryStatus]) -> str:
    """Render statuses as a fixed-width table."""
    headers = ("NAME", "CONFIGURED", "INSTALLED", "STATUS", "SIZE", "SOURCE")
    rows = [
        (
            s.name,
            s.configured_version,
            s.installed_version or "-",
            _state(s),
            format_bytes(s.size) if s.installed else "-",
            s.source,
        )
        for s in statuses
    ]

    return _render_table(headers, rows)


def _check_state(c: ReleaseCheck) -> str:
    if c.error:
        return "error"
    if c.skipped:
        return "skipped"
    if c.update_available:
        return "update"
    return "ok"


def format_check_table(checks: Sequence[ReleaseCheck]) -> str:
    """Render release checks as a fixed-width table."""
    headers = ("NAME", "CONFIGURED", "LATEST", "STATUS", "REPO")
    rows = [
        (
            c.name,
            c.configured_version,
            c.latest_version or "-",
            _check_state(c),
            c.repo or "-",
        )
        for c in checks
    ]
    return _render_table(headers, rows)


def _render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = [
        max(len(str(row[i])) for row in [headers] + list(rows))
        for i in range(len(headers))
    ]
    lines = [
        "  ".join(str(cell).ljust(widths[i]) for i, cell in enumerate(row)).rstrip()
        for row in [headers] + list(rows)
    ]
    return "\n".join(lines)


__all__ = [
    "BinaryStatus",
    "ReleaseCheck",
    "UpgradeSummary",
    "binary_status",
    "status",
    "has_github_releases",
    "check_release",
    "check",
    "upgrade_all",
    "upgrade",
    "format_bytes",
    "format_status_table",
    "format_check_table",
]
