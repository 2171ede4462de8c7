"""
Release-archive strategy: install a prebuilt binary from a GitHub release.

Flow: release metadata -> asset selection -> download -> extract (or use
the raw asset) -> locate the executable -> place it.
"""

import logging

from bindep.config.registry import AcquisitionType, BinaryEntry
from bindep.core.download import LoggingProgress, download_file
from bindep.core.exceptions import UnsupportedPlatformError
from bindep.core.filesystem import (
    archive_format,
    extract_archive,
    find_binary,
    looks_like_archive,
    place_binary,
    scratch_directory,
)
from bindep.installers.base import InstallContext, Installer, register_installer
from bindep.selection import rules_for_platform, select_asset

logger = logging.getLogger(__name__)


@register_installer(AcquisitionType.RELEASE_ARCHIVE)
class ReleaseArchiveInstaller(Installer):
    """Download, extract and place a release asset."""

    def install(self, entry: BinaryEntry, context: InstallContext) -> None:
        platform = context.platform
        if not rules_for_platform(entry.assets, platform.os, platform.arch):
            raise UnsupportedPlatformError(f"no asset rule for {platform}")

        release = context.github.get_release(entry.repo, entry.version)
        asset_name = select_asset(
            release.asset_names, entry.assets, platform.os, platform.arch
        )
        asset = release.asset(asset_name)
        logger.info(f"Selected {asset_name} for {entry.name} ({platform})")

        # Only suffix-free assets are raw executables; unsupported archive
        # formats fail here, before anything is downloaded
        archived = looks_like_archive(asset_name)
        if archived:
            archive_format(asset_name)

        with scratch_directory(prefix=self.scratch_prefix(entry)) as scratch:
            download_path = scratch / asset_name
            download_file(
                asset.download_url,
                download_path,
                progress_callback=LoggingProgress(asset_name) if context.verbose else None,
                cancel_token=context.cancel_token,
                session=context.github.session,
                timeout=context.settings.timeout,
            )

            if archived:
                extracted = scratch / "extracted"
                extract_archive(download_path, extracted, context.cancel_token)
                binary = find_binary(extracted, entry.name, platform)
            else:
                # Asset is the executable itself
                binary = download_path

            place_binary(binary, context.install_path, platform)

        logger.info(f"Installed {entry.name} {entry.version} to {context.install_path}")
