"""
File system utilities for bindep.

This module provides the platform-aware file operations the installers
are built from:
- Archive extraction (zip, tar.gz/tgz, tar.bz2) with mode preservation
- Scratch directory management with guaranteed cleanup
- Safe file operations (atomic writes, guarded deletion)
- Locating an executable inside fetched/built output and placing it at
  its install path without ever exposing a half-written binary
"""

import logging
import os
import shutil
import tarfile
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from bindep.core.cancellation import CancellationToken, check_cancelled
from bindep.core.exceptions import (
    ArchiveExtractionError,
    BinaryNotLocatedError,
    InsecureArchiveError,
    InstallationFailedError,
    InstallPhase,
    UnsupportedArchiveFormat,
)
from bindep.core.platform import PlatformInfo

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"


class FilesystemError(Exception):
    """Base exception for filesystem housekeeping operations."""

    pass


# ============================================================================
# Archive Extraction
# ============================================================================

ZIP = "zip"
GZIP_TAR = "gztar"
BZIP2_TAR = "bztar"

_SUFFIXES = (
    (".zip", ZIP),
    (".tar.gz", GZIP_TAR),
    (".tgz", GZIP_TAR),
    (".tar.bz2", BZIP2_TAR),
    (".tbz2", BZIP2_TAR),
)


def archive_format(filename: Union[str, Path]) -> str:
    """
    Determine the archive format from a filename suffix.

    Args:
        filename: Archive filename or path

    Returns:
        One of ZIP, GZIP_TAR, BZIP2_TAR

    Raises:
        UnsupportedArchiveFormat: For any other suffix (including .tar.xz)

    Example:
        >>> archive_format("task_linux_amd64.tgz")
        'gztar'
    """
    name = Path(filename).name.lower()
    for suffix, fmt in _SUFFIXES:
        if name.endswith(suffix):
            return fmt
    raise UnsupportedArchiveFormat(
        f"unsupported archive format: {Path(filename).name} "
        "(supported: .zip, .tar.gz, .tgz, .tar.bz2)"
    )


_ARCHIVE_LIKE_SUFFIXES = (
    ".zip",
    ".tar",
    ".tgz",
    ".tbz",
    ".tbz2",
    ".txz",
    ".tzst",
    ".gz",
    ".bz2",
    ".xz",
    ".zst",
    ".lz",
    ".lzma",
    ".7z",
    ".rar",
)


def looks_like_archive(filename: Union[str, Path]) -> bool:
    """
    Check whether a filename carries an archive or compression suffix.

    True for unsupported formats too (.tar.xz, .7z), so callers route them
    to archive_format() and get UnsupportedArchiveFormat instead of
    treating the file as a raw executable.
    """
    return Path(filename).name.lower().endswith(_ARCHIVE_LIKE_SUFFIXES)


def _member_target(member_name: str, destination: Path) -> Path:
    """
    Resolve an archive member path and ensure it stays under destination.

    Raises:
        InsecureArchiveError: If the member attempts directory traversal
    """
    target = (destination / member_name).resolve()
    if not target.is_relative_to(destination.resolve()):
        raise InsecureArchiveError(
            f"archive member '{member_name}' attempts directory traversal"
        )
    return target


def extract_archive(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
    cancel_token: Optional[CancellationToken] = None,
) -> None:
    """
    Extract an archive to a destination directory.

    The format is chosen purely from the filename suffix. Relative paths and
    the mode bits of regular files are preserved; directory entries are
    created eagerly. Extraction is not transactional: on failure the
    destination may hold a partial tree, so callers extract into a scratch
    directory.

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to
        cancel_token: Optional token checked between members

    Raises:
        UnsupportedArchiveFormat: If archive format is not recognized
        InsecureArchiveError: If archive contains paths escaping destination
        ArchiveExtractionError: If extraction fails
        InstallCancelledError: If cancelled between members

    Example:
        >>> extract_archive('task_linux_amd64.tar.gz', '/tmp/scratch/extracted')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    fmt = archive_format(archive_path)

    if not archive_path.exists():
        raise ArchiveExtractionError(f"archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)

    try:
        if fmt == ZIP:
            _extract_zip(archive_path, destination, cancel_token)
        elif fmt == GZIP_TAR:
            _extract_tar(archive_path, destination, "r:gz", cancel_token)
        else:
            _extract_tar(archive_path, destination, "r:bz2", cancel_token)
    except ArchiveExtractionError:
        raise
    except (OSError, zipfile.BadZipFile, tarfile.TarError, EOFError) as e:
        raise ArchiveExtractionError(
            f"failed to extract {archive_path.name}: {e}"
        ) from e

    logger.debug(f"Extracted {archive_path.name} to {destination}")


def _extract_zip(
    archive_path: Path,
    destination: Path,
    cancel_token: Optional[CancellationToken],
) -> None:
    """Extract a ZIP archive, restoring unix mode bits when recorded."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        members = zf.infolist()

        # Validate all paths first
        targets = [_member_target(info.filename, destination) for info in members]

        for info, target in zip(members, targets):
            check_cancelled(cancel_token, InstallPhase.EXTRACTION)

            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue

            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)

            mode = (info.external_attr >> 16) & 0o777
            if mode:
                os.chmod(target, mode)


def _extract_tar(
    archive_path: Path,
    destination: Path,
    mode: str,
    cancel_token: Optional[CancellationToken],
) -> None:
    """Extract a tar archive with specified compression."""
    with tarfile.open(archive_path, mode) as tar:
        members = tar.getmembers()

        # Validate all paths first
        targets = [_member_target(member.name, destination) for member in members]

        for member, target in zip(members, targets):
            check_cancelled(cancel_token, InstallPhase.EXTRACTION)

            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
            elif member.isreg():
                target.parent.mkdir(parents=True, exist_ok=True)
                src = tar.extractfile(member)
                if src is None:
                    continue
                with src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                os.chmod(target, member.mode & 0o777)
            else:
                logger.debug(f"Skipping unsupported tar entry: {member.name}")


# ============================================================================
# Locating and Placing Binaries
# ============================================================================


def _is_executable_file(path: Path, platform: PlatformInfo) -> bool:
    if not path.is_file():
        return False
    if platform.is_windows or IS_WINDOWS:
        return True
    return bool(path.stat().st_mode & 0o111)


def find_binary(search_dir: Path, name: str, platform: PlatformInfo) -> Path:
    """
    Locate an executable named after a binary inside a directory tree.

    Well-known layouts are tried first (``name``, ``bin/name``,
    ``name/bin/name``, each with the platform executable suffix as an
    alternative), then the whole tree is walked for a file with a matching
    name. Walk results must carry an executable bit on non-windows targets.

    Args:
        search_dir: Root of the extracted or built output
        name: Binary name without platform suffix
        platform: Target platform

    Returns:
        Path to the located file

    Raises:
        BinaryNotLocatedError: If no candidate exists
    """
    filenames = [name]
    if platform.exe_suffix and not name.endswith(platform.exe_suffix):
        filenames.insert(0, platform.executable_name(name))

    for filename in filenames:
        for candidate in (
            search_dir / filename,
            search_dir / "bin" / filename,
            search_dir / name / "bin" / filename,
        ):
            if candidate.is_file():
                return candidate

    for path in sorted(search_dir.rglob("*")):
        if path.name in filenames and _is_executable_file(path, platform):
            return path

    raise BinaryNotLocatedError(f"binary '{name}' not found under {search_dir}")


def place_binary(source: Path, install_path: Path, platform: PlatformInfo) -> Path:
    """
    Move a located binary into its install path.

    The file is first copied next to the destination, made executable on
    platforms that need it, and then renamed over the install path, so the
    install path only ever holds a complete binary.

    Args:
        source: Located binary (usually inside a scratch directory)
        install_path: Final install path
        platform: Target platform

    Returns:
        install_path

    Raises:
        InstallationFailedError: With phase MOVE or PERMISSION
    """
    install_path = Path(install_path)
    try:
        install_path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            dir=install_path.parent, prefix=f".{install_path.name}.", suffix=".tmp"
        )
        os.close(fd)
    except OSError as e:
        raise InstallationFailedError(
            f"cannot stage binary in {install_path.parent}: {e}"
        ) from e

    temp_path = Path(temp_name)
    try:
        try:
            shutil.copyfile(source, temp_path)
        except OSError as e:
            raise InstallationFailedError(
                f"failed to copy {source} into place: {e}"
            ) from e

        if not platform.is_windows and not IS_WINDOWS:
            try:
                os.chmod(temp_path, 0o755)
            except OSError as e:
                raise InstallationFailedError(
                    f"failed to make {install_path.name} executable: {e}",
                    phase=InstallPhase.PERMISSION,
                ) from e

        try:
            os.replace(temp_path, install_path)
        except OSError as e:
            raise InstallationFailedError(
                f"failed to move binary to {install_path}: {e}"
            ) from e
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    logger.debug(f"Placed {source.name} at {install_path}")
    return install_path


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    This ensures the file is never in a partially-written state.
    If the write fails, the original file (if any) remains unchanged.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Create temp file in same directory (ensures same filesystem)
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('/tmp/build', require_prefix='/tmp')
        >>> safe_rmtree('/usr/bin', require_prefix='/home')  # ValueError
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not path.is_relative_to(require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, failed_path, exc):
                """Error handler for Windows read-only files."""
                if not os.access(failed_path, os.W_OK):
                    os.chmod(failed_path, 0o777)
                    func(failed_path)
                else:
                    raise exc

            shutil.rmtree(path, onexc=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except Exception as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


@contextmanager
def scratch_directory(
    prefix: str = "bindep-", parent: Optional[Path] = None, cleanup: bool = True
) -> Iterator[Path]:
    """
    Context manager for a disposable working directory.

    The directory is removed when the context exits, on success and on
    failure alike.

    Args:
        prefix: Prefix for the directory name
        parent: Directory to create it in (system temp dir by default)
        cleanup: If False, keep the directory (useful when debugging)

    Yields:
        Path to the scratch directory

    Example:
        >>> with scratch_directory("bindep-task-") as scratch:
        ...     download_file(url, scratch / "task.tar.gz")
    """
    if parent is not None:
        Path(parent).mkdir(parents=True, exist_ok=True)
    scratch = Path(tempfile.mkdtemp(prefix=prefix, dir=parent))

    try:
        yield scratch
    finally:
        if cleanup:
            try:
                safe_rmtree(scratch)
            except FilesystemError as e:
                logger.warning(f"Failed to remove scratch directory: {e}")
        else:
            logger.debug(f"Keeping scratch directory {scratch}")


__all__ = [
    "FilesystemError",
    "ZIP",
    "GZIP_TAR",
    "BZIP2_TAR",
    "archive_format",
    "looks_like_archive",
    "extract_archive",
    "find_binary",
    "place_binary",
    "atomic_write",
    "safe_rmtree",
    "scratch_directory",
]
