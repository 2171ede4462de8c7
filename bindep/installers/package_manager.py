"""
Package-manager strategy: install a binary with `go install` or `cargo install`.

The package manager itself is a registry entry and is bootstrapped through
the manager's dependency resolver; there is no fallback to whatever happens
to be on PATH. The install runs into an isolated prefix inside a scratch
directory and only the resulting executable is placed.
"""

import logging
import os
from pathlib import Path

from bindep.config.registry import AcquisitionType, BinaryEntry
from bindep.core.exceptions import (
    BinaryNotLocatedError,
    BinDepError,
    ConfigError,
    CrossCompileUnsupportedError,
    InstallCancelledError,
    PackageManagerUnavailableError,
)
from bindep.core.filesystem import find_binary, place_binary, scratch_directory
from bindep.core.platform import PlatformInfo, detect_platform
from bindep.installers.base import (
    InstallContext,
    Installer,
    register_installer,
    run_command,
)

logger = logging.getLogger(__name__)


def go_install_command(manager: Path, entry: BinaryEntry) -> list:
    return [str(manager), "install", f"{entry.package}@{entry.version}"]


def cargo_install_command(manager: Path, entry: BinaryEntry, prefix: Path) -> list:
    cmd = [str(manager), "install", entry.package]
    if not entry.is_latest:
        cmd += ["--version", entry.version.lstrip("v")]
    cmd += ["--root", str(prefix)]
    return cmd


def locate_installed(bin_dir: Path, entry: BinaryEntry, platform: PlatformInfo) -> Path:
    """
    Find the executable a package manager installed into bin_dir.

    Tries the entry name, then the last segment of the package path, then
    the only file in bin_dir.

    Raises:
        BinaryNotLocatedError: If nothing suitable was installed
    """
    for name in (entry.name, entry.package.rstrip("/").rsplit("/", 1)[-1]):
        try:
            return find_binary(bin_dir, name, platform)
        except BinaryNotLocatedError:
            continue

    files = [p for p in bin_dir.iterdir() if p.is_file()] if bin_dir.is_dir() else []
    if len(files) == 1:
        return files[0]

    raise BinaryNotLocatedError(
        f"{entry.manager} did not install '{entry.name}' into {bin_dir}"
    )


@register_installer(AcquisitionType.PACKAGE_MANAGER)
class PackageManagerInstaller(Installer):
    """Install through go or cargo into an isolated prefix."""

    def install(self, entry: BinaryEntry, context: InstallContext) -> None:
        platform = context.platform
        host = detect_platform()
        if platform != host:
            raise CrossCompileUnsupportedError(
                f"{entry.manager} install builds for the host ({host}) only, "
                f"not {platform}"
            )

        manager = self._resolve_manager(entry, context)

        with scratch_directory(prefix=self.scratch_prefix(entry)) as scratch:
            prefix = scratch / "prefix"
            bin_dir = prefix / "bin"
            bin_dir.mkdir(parents=True)

            env = os.environ.copy()
            if entry.manager == "go":
                env["GOBIN"] = str(bin_dir)
                cmd = go_install_command(manager, entry)
            else:
                cmd = cargo_install_command(manager, entry, prefix)

            logger.info(f"Installing {entry.package}@{entry.version} with {entry.manager}")
            run_command(
                cmd,
                cwd=scratch,
                env=env,
                verbose=context.verbose,
                cancel_token=context.cancel_token,
                timeout=context.settings.build_timeout,
            )

            binary = locate_installed(bin_dir, entry, platform)
            place_binary(binary, context.install_path, platform)

        logger.info(f"Installed {entry.name} {entry.version} to {context.install_path}")

    def _resolve_manager(self, entry: BinaryEntry, context: InstallContext) -> Path:
        if context.resolve_dependency is None:
            raise PackageManagerUnavailableError(
                f"no resolver available to bootstrap '{entry.manager}'"
            )
        try:
            return context.resolve_dependency(entry.manager)
        except (ConfigError, PackageManagerUnavailableError, InstallCancelledError):
            raise
        except BinDepError as e:
            raise PackageManagerUnavailableError(
                f"failed to bootstrap '{entry.manager}': {e}"
            ) from e
