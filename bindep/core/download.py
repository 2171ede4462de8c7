"""
Network download client with progress tracking and retry logic.

This module provides streaming downloads with:
- HTTP/HTTPS downloads streamed straight to disk (no in-memory buffering)
- Progress reporting (bytes, percentage, speed, ETA) as a side channel
- Retry with exponential backoff for connection errors and timeouts
- Typed failures: non-2xx responses raise DownloadFailedError with the status
- Cooperative cancellation between chunks
"""

import hashlib
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import ConnectionError, RequestException, Timeout

from bindep.core.cancellation import CancellationToken, check_cancelled
from bindep.core.exceptions import DownloadFailedError, InstallPhase

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second
    eta_seconds: float  # estimated time remaining

    def __str__(self) -> str:
        """Format progress for display."""
        return format_progress(self)


ProgressCallback = Callable[[DownloadProgress], None]


def download_file(
    url: str,
    destination: Path,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancellationToken] = None,
    session: Optional[requests.Session] = None,
    timeout: int = 30,
    max_retries: int = 3,
) -> Path:
    """
    Download file from URL to destination with retry logic.

    Args:
        url: URL to download from
        destination: Local path to save file
        progress_callback: Optional callback for progress updates
        cancel_token: Optional token checked between chunks
        session: Optional requests session (headers, auth, connection reuse)
        timeout: Request timeout in seconds
        max_retries: Maximum number of attempts for network errors

    Returns:
        Path to downloaded file

    Raises:
        DownloadFailedError: On non-2xx status or after exhausting retries
        InstallCancelledError: If the token is cancelled mid-download
        ValueError: If URL or destination is invalid

    Example:
        >>> from bindep.core.download import download_file
        >>> download_file(
        ...     "https://example.com/task_linux_amd64.tar.gz",
        ...     Path("/tmp/scratch/task_linux_amd64.tar.gz"),
        ...     progress_callback=lambda p: print(p),
        ... )
    """
    if not url:
        raise ValueError("URL cannot be empty")

    if not destination:
        raise ValueError("Destination path cannot be empty")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    for attempt in range(max_retries):
        check_cancelled(cancel_token, InstallPhase.DOWNLOAD)
        try:
            return _download_with_progress(
                url=url,
                destination=destination,
                progress_callback=progress_callback,
                cancel_token=cancel_token,
                session=session,
                timeout=timeout,
            )
        except (Timeout, ConnectionError) as e:
            _discard_partial(destination)
            if attempt == max_retries - 1:
                raise DownloadFailedError(
                    f"download of {url} failed after {max_retries} attempts: {e}",
                    url=url,
                ) from e

            backoff_seconds = 2**attempt
            logger.warning(
                f"Download attempt {attempt + 1} failed: {e}. "
                f"Retrying in {backoff_seconds}s..."
            )
            time.sleep(backoff_seconds)
        except RequestException as e:
            _discard_partial(destination)
            raise DownloadFailedError(
                f"download of {url} failed: {e}", url=url
            ) from e
        except Exception:
            _discard_partial(destination)
            raise

    raise DownloadFailedError(f"download of {url} failed", url=url)


def _download_with_progress(
    url: str,
    destination: Path,
    progress_callback: Optional[ProgressCallback],
    cancel_token: Optional[CancellationToken],
    session: Optional[requests.Session],
    timeout: int,
) -> Path:
    """
    Perform a single streamed download attempt.

    This is an internal function called by download_file().
    """
    logger.info(f"Downloading from {url}")

    getter = session.get if session is not None else requests.get
    response = getter(url, stream=True, timeout=timeout, allow_redirects=True)

    try:
        if not 200 <= response.status_code < 300:
            raise DownloadFailedError(
                f"HTTP {response.status_code} for {url}",
                url=url,
                status=response.status_code,
            )

        content_length = response.headers.get("content-length")
        total_size = int(content_length) if content_length else 0

        downloaded = 0
        start_time = time.time()
        last_progress_time = start_time

        with open(destination, "wb") as f:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                check_cancelled(cancel_token, InstallPhase.DOWNLOAD)
                if not chunk:
                    continue

                f.write(chunk)
                downloaded += len(chunk)

                # Report progress (max once per 0.5 seconds to avoid spam)
                current_time = time.time()
                if progress_callback and (
                    current_time - last_progress_time >= 0.5
                    or downloaded == total_size
                ):
                    _report(
                        progress_callback,
                        downloaded,
                        total_size,
                        current_time - start_time,
                    )
                    last_progress_time = current_time
    finally:
        response.close()

    logger.debug(f"Download complete: {destination} ({downloaded} bytes)")
    return destination


def _report(
    callback: ProgressCallback, downloaded: int, total_size: int, elapsed: float
) -> None:
    speed = downloaded / elapsed if elapsed > 0 else 0
    remaining = total_size - downloaded if total_size > 0 else 0
    eta = remaining / speed if speed > 0 else 0

    progress = DownloadProgress(
        bytes_downloaded=downloaded,
        total_bytes=total_size if total_size > 0 else downloaded,
        percentage=(downloaded / total_size * 100) if total_size > 0 else 0,
        speed_bps=speed,
        eta_seconds=eta,
    )
    try:
        callback(progress)
    except Exception as e:
        # Progress is a side channel and must not fail the download
        logger.debug(f"Progress callback raised: {e}")


def _discard_partial(destination: Path) -> None:
    try:
        destination.unlink(missing_ok=True)
    except OSError as e:
        logger.debug(f"Could not remove partial download {destination}: {e}")


def download_temp(
    url: str,
    prefix: str,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancellationToken] = None,
    session: Optional[requests.Session] = None,
    timeout: int = 30,
) -> Path:
    """
    Download a URL into a fresh temporary file.

    The caller owns the returned file and must remove it. On failure the
    temporary file is removed before the error propagates.

    Args:
        url: URL to download
        prefix: Filename prefix for the temporary file

    Returns:
        Path to the temporary file
    """
    fd, temp_name = tempfile.mkstemp(prefix=prefix)
    os.close(fd)
    temp_path = Path(temp_name)

    try:
        return download_file(
            url,
            temp_path,
            progress_callback=progress_callback,
            cancel_token=cancel_token,
            session=session,
            timeout=timeout,
        )
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def file_sha256(file_path: Path) -> str:
    """
    Compute the SHA256 hex digest of a file.

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        while chunk := f.read(CHUNK_SIZE):
            hasher.update(chunk)
    return hasher.hexdigest()


def verify_checksum(file_path: Path, expected_sha256: str) -> bool:
    """
    Verify file SHA256 checksum.

    Args:
        file_path: Path to file to verify
        expected_sha256: Expected SHA256 hash (hex string)

    Returns:
        True if checksum matches, False otherwise

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    if not Path(file_path).exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    return file_sha256(file_path).lower() == expected_sha256.strip().lower()


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.percentage > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s "
            f"ETA: {progress.eta_seconds:.0f}s"
        )
    else:
        # Unknown total size
        return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"


class LoggingProgress:
    """Progress callback that logs download progress for one file."""

    def __init__(self, label: str, level: int = logging.INFO):
        self.label = label
        self.level = level

    def __call__(self, progress: DownloadProgress) -> None:
        logger.log(self.level, f"{self.label}: {format_progress(progress)}")


__all__ = [
    "DownloadProgress",
    "ProgressCallback",
    "download_file",
    "download_temp",
    "file_sha256",
    "verify_checksum",
    "format_progress",
    "LoggingProgress",
]
