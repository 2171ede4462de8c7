"""
Acquisition strategies.

Importing this package registers every built-in strategy with the
installer registry.
"""

from bindep.installers.base import (
    InstallContext,
    Installer,
    get_installer,
    register_installer,
    registered_types,
    run_command,
)
from bindep.installers.release_archive import ReleaseArchiveInstaller
from bindep.installers.source_build import SourceBuildInstaller
from bindep.installers.package_manager import PackageManagerInstaller
from bindep.installers.vendor_api import VendorApiInstaller

__all__ = [
    "InstallContext",
    "Installer",
    "get_installer",
    "register_installer",
    "registered_types",
    "run_command",
    "ReleaseArchiveInstaller",
    "SourceBuildInstaller",
    "PackageManagerInstaller",
    "VendorApiInstaller",
]
