"""
Centralized exception hierarchy for bindep.

This module defines all custom exceptions used across the codebase.
Install-time failures carry the name of the binary being installed and
the phase that failed, so batch operations can report exactly which
binary broke and where.
"""

from enum import Enum
from typing import Optional


# ============================================================================
# Install Phases
# ============================================================================


class InstallPhase(str, Enum):
    """Phase of an installation in which a failure occurred."""

    METADATA_FETCH = "metadata-fetch"
    ASSET_SELECTION = "asset-selection"
    DOWNLOAD = "download"
    EXTRACTION = "extraction"
    BUILD = "build"
    LOCATE_BINARY = "locate-binary"
    MOVE = "move"
    PERMISSION = "permission"
    BOOTSTRAP = "bootstrap"
    VERIFICATION = "verification"
    LOCK = "lock"
    INSTALL = "install"


# ============================================================================
# Base Exceptions
# ============================================================================


class BinDepError(Exception):
    """Base exception for all bindep errors."""

    pass


class ConfigError(BinDepError):
    """Registry or settings configuration is invalid."""

    pass


class InvalidInputError(BinDepError):
    """A caller supplied an empty or malformed binary name."""

    pass


class BinaryNotFoundError(BinDepError):
    """Requested binary is not present in the registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"binary '{name}' is not configured")


# ============================================================================
# Install Exceptions
# ============================================================================


class InstallError(BinDepError):
    """
    Base exception for failures while acquiring or installing a binary.

    Low-level helpers (download, extraction, selection) raise these without
    knowing which binary they are working for; strategies and the manager
    attach the name with with_binary() before propagating.

    Attributes:
        message: Human readable description of the failure
        binary: Name of the binary being installed (may be None)
        phase: InstallPhase in which the failure occurred
    """

    phase: InstallPhase = InstallPhase.INSTALL

    def __init__(
        self,
        message: str,
        binary: Optional[str] = None,
        phase: Optional[InstallPhase] = None,
    ):
        self.message = message
        self.binary = binary
        if phase is not None:
            self.phase = phase
        super().__init__(self._render())

    def _render(self) -> str:
        prefix = f"{self.binary}: " if self.binary else ""
        return f"{prefix}{self.phase.value} failed: {self.message}"

    def with_binary(self, binary: str) -> "InstallError":
        """
        Attach the binary name if it is not already set.

        Returns:
            self, so callers can write ``raise err.with_binary(name)``
        """
        if self.binary is None:
            self.binary = binary
            self.args = (self._render(),)
        return self

    def __str__(self) -> str:
        return self._render()


class ReleaseLookupError(InstallError):
    """Release metadata could not be fetched from the releases host."""

    phase = InstallPhase.METADATA_FETCH


class UnsupportedPlatformError(InstallError):
    """No asset rule or vendor platform exists for the target OS/arch."""

    phase = InstallPhase.ASSET_SELECTION


class NoMatchingAssetError(InstallError):
    """No release asset matched any applicable asset rule."""

    phase = InstallPhase.ASSET_SELECTION


class DownloadFailedError(InstallError):
    """HTTP download failed (non-2xx status or network error)."""

    phase = InstallPhase.DOWNLOAD

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status: Optional[int] = None,
        binary: Optional[str] = None,
    ):
        self.url = url
        self.status = status
        super().__init__(message, binary=binary)


class ArchiveExtractionError(InstallError):
    """Failed to extract an archive."""

    phase = InstallPhase.EXTRACTION


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


class ChecksumMismatchError(InstallError):
    """Downloaded artifact does not match its published checksum."""

    phase = InstallPhase.VERIFICATION

    def __init__(
        self,
        expected: str,
        actual: str,
        binary: Optional[str] = None,
    ):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"checksum mismatch: expected {expected}, got {actual}", binary=binary
        )


class CrossCompileUnsupportedError(InstallError):
    """The build cannot target the requested (non-host) platform."""

    phase = InstallPhase.BUILD


class BuildFailedError(InstallError):
    """Source build or package-manager invocation failed."""

    phase = InstallPhase.BUILD


class BinaryNotLocatedError(InstallError):
    """The produced executable could not be found after fetch/build."""

    phase = InstallPhase.LOCATE_BINARY


class InstallationFailedError(InstallError):
    """Generic wrapper for move, permission and locking failures."""

    phase = InstallPhase.MOVE


class PackageManagerUnavailableError(InstallationFailedError):
    """The package manager required by an entry cannot be bootstrapped."""

    phase = InstallPhase.BOOTSTRAP


class InstallCancelledError(InstallError):
    """Installation was cancelled by the caller or its deadline passed."""

    pass


__all__ = [
    "InstallPhase",
    "BinDepError",
    "ConfigError",
    "InvalidInputError",
    "BinaryNotFoundError",
    "InstallError",
    "ReleaseLookupError",
    "UnsupportedPlatformError",
    "NoMatchingAssetError",
    "DownloadFailedError",
    "ArchiveExtractionError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "ChecksumMismatchError",
    "CrossCompileUnsupportedError",
    "BuildFailedError",
    "BinaryNotLocatedError",
    "InstallationFailedError",
    "PackageManagerUnavailableError",
    "InstallCancelledError",
]
