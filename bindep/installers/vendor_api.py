"""
Vendor-api strategy: install from a vendor distribution endpoint.

The vendor publishes, under a base URL:

    {base_url}/stable                         current stable version (text)
    {base_url}/{version}/manifest.json        {"platforms": {plat: {"checksum": sha256}}}
    {base_url}/{version}/{plat}/{name}[.exe]  the binary

Downloads are verified against the manifest checksum before placement.
"""

import logging
from typing import Dict, List, Optional

import requests

from bindep.config.registry import AcquisitionType, BinaryEntry
from bindep.core.download import (
    LoggingProgress,
    download_file,
    file_sha256,
    verify_checksum,
)
from bindep.core.exceptions import (
    ChecksumMismatchError,
    ReleaseLookupError,
    UnsupportedPlatformError,
)
from bindep.core.filesystem import place_binary, scratch_directory
from bindep.core.platform import PlatformInfo, detect_platform, is_musl_libc
from bindep.installers.base import InstallContext, Installer, register_installer

logger = logging.getLogger(__name__)

_VENDOR_OS = {"darwin": "darwin", "linux": "linux", "windows": "win32"}
_VENDOR_ARCH = {"amd64": "x64", "arm64": "arm64"}

_WINDOWS_ALTERNATIVES = {
    "amd64": ("win32-x64", "win-x64", "windows-amd64"),
    "arm64": ("win32-arm64", "win-arm64", "windows-arm64"),
}


def vendor_platform(platform: PlatformInfo, musl: Optional[bool] = None) -> str:
    """
    Translate a platform into the vendor's naming.

    Args:
        platform: Target platform
        musl: Whether the Linux target uses musl libc (when None, detected
            for a target that is the host and assumed False otherwise)

    Raises:
        UnsupportedPlatformError: For OS/arch pairs the vendor does not name

    Example:
        >>> vendor_platform(PlatformInfo("darwin", "arm64"))
        'darwin-arm64'
        >>> vendor_platform(PlatformInfo("linux", "amd64"), musl=True)
        'linux-x64-musl'
    """
    os_name = _VENDOR_OS.get(platform.os)
    arch = _VENDOR_ARCH.get(platform.arch)
    if os_name is None or arch is None:
        raise UnsupportedPlatformError(f"no vendor build for {platform}")

    name = f"{os_name}-{arch}"
    if platform.os == "linux":
        if musl is None:
            musl = platform == detect_platform() and is_musl_libc()
        if musl:
            name += "-musl"
    return name


def platform_candidates(platform: PlatformInfo, musl: Optional[bool] = None) -> List[str]:
    """Manifest keys to try for a platform, primary name first."""
    primary = vendor_platform(platform, musl)
    candidates = [primary]
    if platform.is_windows:
        candidates += [
            alt for alt in _WINDOWS_ALTERNATIVES.get(platform.arch, ()) if alt != primary
        ]
    return candidates


@register_installer(AcquisitionType.VENDOR_API)
class VendorApiInstaller(Installer):
    """Download a checksummed binary from a vendor distribution endpoint."""

    def install(self, entry: BinaryEntry, context: InstallContext) -> None:
        session = context.github.session
        timeout = context.settings.timeout

        version = entry.version
        if entry.is_latest:
            version = self._fetch_text(session, f"{entry.base_url}/stable", timeout)
            logger.info(f"Using stable version {version} of {entry.name}")

        manifest = self._fetch_manifest(session, entry.base_url, version, timeout)
        platforms: Dict[str, dict] = manifest.get("platforms") or {}

        plat_key = None
        for candidate in platform_candidates(context.platform):
            if candidate in platforms:
                plat_key = candidate
                break
        if plat_key is None:
            available = ", ".join(sorted(platforms)) or "(none)"
            raise UnsupportedPlatformError(
                f"platform {vendor_platform(context.platform)} not supported; "
                f"available platforms: {available}"
            )

        expected = str(platforms[plat_key].get("checksum") or "")
        if not expected:
            raise ReleaseLookupError(f"manifest has no checksum for {plat_key}")

        filename = context.platform.executable_name(entry.name)
        url = f"{entry.base_url}/{version}/{plat_key}/{filename}"

        with scratch_directory(prefix=self.scratch_prefix(entry)) as scratch:
            download_path = scratch / filename
            download_file(
                url,
                download_path,
                progress_callback=LoggingProgress(filename) if context.verbose else None,
                cancel_token=context.cancel_token,
                session=session,
                timeout=timeout,
            )

            if not verify_checksum(download_path, expected):
                raise ChecksumMismatchError(expected, file_sha256(download_path))
            logger.debug(f"Checksum verified for {filename}")

            place_binary(download_path, context.install_path, context.platform)

        logger.info(f"Installed {entry.name} {version} to {context.install_path}")

    def _fetch_text(self, session: requests.Session, url: str, timeout: int) -> str:
        try:
            response = session.get(url, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ReleaseLookupError(f"failed to fetch {url}: {e}") from e

        text = response.text.strip()
        if not text:
            raise ReleaseLookupError(f"empty response from {url}")
        return text

    def _fetch_manifest(
        self, session: requests.Session, base_url: str, version: str, timeout: int
    ) -> dict:
        url = f"{base_url}/{version}/manifest.json"
        try:
            response = session.get(url, timeout=timeout)
            response.raise_for_status()
            manifest = response.json()
        except ValueError as e:
            # requests' JSONDecodeError is also a RequestException
            raise ReleaseLookupError(f"invalid manifest {url}: {e}") from e
        except requests.RequestException as e:
            raise ReleaseLookupError(f"failed to fetch manifest {url}: {e}") from e

        if not isinstance(manifest, dict):
            raise ReleaseLookupError(f"invalid manifest {url}: expected an object")
        return manifest
