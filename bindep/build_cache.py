"""
Remote build cache backed by GitHub releases.

Binaries built from source are published to a cache repository so later
installs (on other machines or CI runners) can download them instead of
rebuilding. Layout inside the cache repository:

    tag:   <name>-<version>
    asset: <name>-<version>-<os>-<arch>[.exe]

Lookups use the public download URL and need no credentials; publishing
needs a token. Without a configured cache repository the cache is disabled.
"""

import logging
from pathlib import Path
from typing import Optional

from bindep.config.registry import BinaryEntry
from bindep.core.cancellation import CancellationToken
from bindep.core.download import download_file
from bindep.core.exceptions import DownloadFailedError
from bindep.core.platform import PlatformInfo
from bindep.github import GitHubClient

logger = logging.getLogger(__name__)

PUBLIC_DOWNLOAD_BASE = "https://github.com"


def cache_tag(entry: BinaryEntry) -> str:
    """Release tag holding cached builds of an entry's version."""
    return f"{entry.name}-{entry.version}"


def cache_asset_name(entry: BinaryEntry, platform: PlatformInfo) -> str:
    """
    Asset name of a cached build.

    Example:
        >>> cache_asset_name(garble, PlatformInfo("windows", "amd64"))
        'garble-v0.14.2-windows-amd64.exe'
    """
    return (
        f"{entry.name}-{entry.version}-{platform.os}-{platform.arch}"
        f"{platform.exe_suffix}"
    )


class RemoteBuildCache:
    """
    Fetch and publish prebuilt binaries.

    Attributes:
        repo: Cache repository ('owner/repo'), or None when disabled
        github: Client used for publishing
    """

    def __init__(
        self,
        repo: Optional[str],
        github: GitHubClient,
        download_base: str = PUBLIC_DOWNLOAD_BASE,
        timeout: int = 30,
    ):
        self.repo = repo
        self.github = github
        self.download_base = download_base.rstrip("/")
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.repo)

    @property
    def can_publish(self) -> bool:
        return self.enabled and self.github.authenticated

    def asset_url(self, entry: BinaryEntry, platform: PlatformInfo) -> str:
        return (
            f"{self.download_base}/{self.repo}/releases/download/"
            f"{cache_tag(entry)}/{cache_asset_name(entry, platform)}"
        )

    def fetch(
        self,
        entry: BinaryEntry,
        platform: PlatformInfo,
        dest_dir: Path,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Optional[Path]:
        """
        Download a cached build if one exists.

        Args:
            entry: Binary entry
            platform: Target platform
            dest_dir: Directory to download into
            cancel_token: Optional cancellation token

        Returns:
            Path to the downloaded binary, or None on a cache miss

        Raises:
            DownloadFailedError: On failures other than a missing asset
        """
        if not self.enabled:
            return None

        if entry.is_latest:
            # builds of 'latest' are never cached
            return None

        url = self.asset_url(entry, platform)
        destination = Path(dest_dir) / cache_asset_name(entry, platform)
        try:
            download_file(
                url,
                destination,
                cancel_token=cancel_token,
                session=self.github.session,
                timeout=self.timeout,
            )
        except DownloadFailedError as e:
            if e.status == 404:
                logger.debug(f"Build cache miss for {entry.name} {entry.version} ({platform})")
                return None
            raise

        logger.info(f"Build cache hit for {entry.name} {entry.version} ({platform})")
        return destination

    def publish(
        self, entry: BinaryEntry, platform: PlatformInfo, binary_path: Path
    ) -> bool:
        """
        Upload a freshly built binary to the cache.

        Creates the release when it does not exist and replaces an existing
        asset of the same name.

        Returns:
            True when uploaded, False when publishing is not possible

        Raises:
            ReleaseLookupError: If the release cannot be read or created
            DownloadFailedError: If the upload fails
        """
        if not self.enabled:
            return False

        if entry.is_latest:
            return False

        if not self.github.authenticated:
            logger.debug("Skipping build cache upload: no GitHub token configured")
            return False

        tag = cache_tag(entry)
        release = self.github.find_release(self.repo, tag)
        if release is None:
            release = self.github.create_release(
                self.repo, tag, body=f"Cached builds of {entry.repo} {entry.version}"
            )

        self.github.upload_asset(
            self.repo, release, binary_path, cache_asset_name(entry, platform)
        )
        return True


__all__ = ["RemoteBuildCache", "cache_tag", "cache_asset_name"]
