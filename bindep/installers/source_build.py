"""
Build-from-source strategy: compile a Go program for the target platform.

The remote build cache is consulted first. On a miss the repository is
cloned at the pinned version and built with the host Go toolchain, cross
compiling through GOOS/GOARCH. Fresh builds are published back to the
cache.
"""

import logging
import os
import re
from pathlib import Path
from typing import Optional

from bindep.config.registry import AcquisitionType, BinaryEntry
from bindep.core.exceptions import (
    CrossCompileUnsupportedError,
    InstallCancelledError,
    InstallError,
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

_MODULE_LINE = re.compile(r"^module\s+(\S+)", re.MULTILINE)


def read_module_path(source_dir: Path) -> Optional[str]:
    """Module path declared in go.mod, if any."""
    go_mod = source_dir / "go.mod"
    try:
        match = _MODULE_LINE.search(go_mod.read_text(encoding="utf-8"))
    except OSError:
        return None
    return match.group(1).strip('"') if match else None


def relative_package(package: str, repo: str, module_path: Optional[str] = None) -> str:
    """
    Convert an import path into a path relative to the repository root.

    Example:
        >>> relative_package("github.com/acme/tool/cmd/tool", "acme/tool")
        './cmd/tool'
        >>> relative_package("mvdan.cc/garble", "burrowers/garble", "mvdan.cc/garble")
        '.'
    """
    package = package.rstrip("/")
    for root in (module_path, f"github.com/{repo}"):
        if not root:
            continue
        if package == root:
            return "."
        if package.startswith(root + "/"):
            return "./" + package[len(root) + 1 :]
    return "."


def build_env(entry: BinaryEntry, platform: PlatformInfo) -> dict:
    """Environment for `go build` targeting a platform."""
    env = os.environ.copy()
    env["GOOS"] = platform.os
    env["GOARCH"] = platform.arch
    env["CGO_ENABLED"] = "1" if entry.cgo else "0"
    return env


@register_installer(AcquisitionType.BUILD_FROM_SOURCE)
class SourceBuildInstaller(Installer):
    """Clone, build and place a Go program, backed by the remote build cache."""

    def install(self, entry: BinaryEntry, context: InstallContext) -> None:
        platform = context.platform

        with scratch_directory(prefix=self.scratch_prefix(entry)) as scratch:
            cached = self._fetch_cached(entry, context, scratch)
            if cached is not None:
                place_binary(cached, context.install_path, platform)
                logger.info(
                    f"Installed {entry.name} {entry.version} from build cache"
                )
                return

            host = detect_platform()
            if entry.cgo and platform != host:
                raise CrossCompileUnsupportedError(
                    f"{entry.name} requires cgo and cannot be built for {platform} "
                    f"on {host}"
                )

            binary = self._build(entry, context, scratch)
            place_binary(binary, context.install_path, platform)
            logger.info(f"Built and installed {entry.name} {entry.version}")

            self._publish(entry, context)

    def _fetch_cached(
        self, entry: BinaryEntry, context: InstallContext, scratch: Path
    ) -> Optional[Path]:
        cache = context.build_cache
        if cache is None or not cache.enabled:
            return None
        try:
            return cache.fetch(
                entry, context.platform, scratch / "cache", context.cancel_token
            )
        except InstallCancelledError:
            raise
        except InstallError as e:
            logger.warning(f"Build cache lookup for {entry.name} failed: {e}")
            return None

    def _build(self, entry: BinaryEntry, context: InstallContext, scratch: Path) -> Path:
        source_dir = scratch / "src"
        out_dir = scratch / "out"
        out_dir.mkdir()
        timeout = context.settings.build_timeout

        clone_cmd = ["git", "clone", "--depth", "1"]
        if not entry.is_latest:
            clone_cmd += ["--branch", entry.version]
        clone_cmd += [entry.repo_url, str(source_dir)]

        logger.info(f"Cloning {entry.repo_url} ({entry.version})")
        run_command(
            clone_cmd,
            cwd=scratch,
            verbose=context.verbose,
            cancel_token=context.cancel_token,
            timeout=timeout,
        )

        package = relative_package(
            entry.package, entry.repo, read_module_path(source_dir)
        )
        output = out_dir / context.platform.executable_name(entry.name)

        logger.info(f"Building {entry.name} for {context.platform}")
        run_command(
            ["go", "build", "-trimpath", "-o", str(output), package],
            cwd=source_dir,
            env=build_env(entry, context.platform),
            verbose=context.verbose,
            cancel_token=context.cancel_token,
            timeout=timeout,
        )

        return find_binary(out_dir, entry.name, context.platform)

    def _publish(self, entry: BinaryEntry, context: InstallContext) -> None:
        cache = context.build_cache
        if cache is None or not cache.enabled:
            return
        try:
            if cache.publish(entry, context.platform, context.install_path):
                logger.info(f"Published {entry.name} {entry.version} to build cache")
        except InstallError as e:
            logger.warning(f"Failed to publish {entry.name} to build cache: {e}")
