"""
Core functionality for bindep.

This package contains the foundational modules that the installers, the
manager and the CLI depend on.
"""

from .cancellation import (
    CancellationToken,
    check_cancelled,
    subprocess_timeout,
)

from .exceptions import (
    InstallPhase,
    BinDepError,
    ConfigError,
    InvalidInputError,
    BinaryNotFoundError,
    InstallError,
    ReleaseLookupError,
    UnsupportedPlatformError,
    NoMatchingAssetError,
    DownloadFailedError,
    ArchiveExtractionError,
    UnsupportedArchiveFormat,
    InsecureArchiveError,
    ChecksumMismatchError,
    CrossCompileUnsupportedError,
    BuildFailedError,
    BinaryNotLocatedError,
    InstallationFailedError,
    PackageManagerUnavailableError,
    InstallCancelledError,
)

from .locking import (
    LockManager,
    LockTimeout,
)

from .metadata import (
    InstalledMeta,
    meta_path,
    read_meta,
    write_meta,
    remove_meta,
)

from .platform import (
    PlatformInfo,
    detect_platform,
    current_platform,
    platform_override,
    clear_platform_cache,
)

__all__ = [
    # Cancellation
    "CancellationToken",
    "check_cancelled",
    "subprocess_timeout",
    # Exceptions
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
    # Locking
    "LockManager",
    "LockTimeout",
    # Metadata
    "InstalledMeta",
    "meta_path",
    "read_meta",
    "write_meta",
    "remove_meta",
    # Platform
    "PlatformInfo",
    "detect_platform",
    "current_platform",
    "platform_override",
    "clear_platform_cache",
]
