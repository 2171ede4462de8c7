"""
Platform detection for bindep.

This module detects the operating system and CPU architecture of the running
host and normalizes them to the names used by release assets and asset rules
(``darwin``/``linux``/``windows`` and ``amd64``/``arm64``).

Target platforms are always passed explicitly through the installer chain.
For test harnesses that need to simulate another platform, ``platform_override``
scopes an override to the current context without touching global state.

Usage:
    from bindep.core.platform import current_platform, platform_override

    info = current_platform()
    print(info.platform_string())  # e.g. 'linux-amd64'

    with platform_override("windows", "amd64"):
        assert current_platform().exe_suffix == ".exe"
"""

import contextvars
import functools
import platform
import subprocess
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class PlatformInfo:
    """
    Operating system and architecture pair.

    Attributes:
        os: Normalized OS name ('darwin', 'linux', 'windows')
        arch: Normalized architecture ('amd64', 'arm64', '386', 'arm')
    """

    os: str
    arch: str

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def exe_suffix(self) -> str:
        """Executable filename suffix for this platform ('.exe' or '')."""
        return ".exe" if self.is_windows else ""

    def executable_name(self, name: str) -> str:
        """
        Get the platform-specific filename for an executable.

        Example:
            >>> PlatformInfo("windows", "amd64").executable_name("task")
            'task.exe'
        """
        return f"{name}{self.exe_suffix}"

    def platform_string(self) -> str:
        """
        Get canonical platform string (e.g., 'linux-amd64').

        Returns:
            '<os>-<arch>'
        """
        return f"{self.os}-{self.arch}"

    def __str__(self) -> str:
        return f"{self.os}/{self.arch}"


_OS_ALIASES = {
    "darwin": "darwin",
    "macos": "darwin",
    "osx": "darwin",
    "linux": "linux",
    "windows": "windows",
    "win32": "windows",
}

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
}


def normalize_os(name: str) -> str:
    """
    Normalize an OS name to the form used by asset rules.

    Unknown names are returned lowercased so callers can report them.
    """
    lowered = name.strip().lower()
    return _OS_ALIASES.get(lowered, lowered)


def normalize_arch(name: str) -> str:
    """
    Normalize a CPU architecture name to the form used by asset rules.

    Example:
        >>> normalize_arch("x86_64")
        'amd64'
    """
    lowered = name.strip().lower()
    if lowered in _ARCH_ALIASES:
        return _ARCH_ALIASES[lowered]
    if lowered.startswith("arm"):
        return "arm"
    return lowered


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect the host platform.

    This function is cached - it only runs detection once per process.

    Returns:
        PlatformInfo for the running interpreter
    """
    return PlatformInfo(
        os=normalize_os(platform.system()),
        arch=normalize_arch(platform.machine()),
    )


_override: contextvars.ContextVar[Optional[PlatformInfo]] = contextvars.ContextVar(
    "bindep_platform_override", default=None
)


def current_platform() -> PlatformInfo:
    """
    Get the effective target platform.

    Returns the context-scoped override when one is active, otherwise the
    detected host platform.
    """
    override = _override.get()
    return override if override is not None else detect_platform()


@contextmanager
def platform_override(os_name: str, arch: str):
    """
    Simulate another platform for the duration of the context.

    Intended for test harnesses; production code passes PlatformInfo
    explicitly.

    Args:
        os_name: OS to simulate (any alias accepted by normalize_os)
        arch: Architecture to simulate (any alias accepted by normalize_arch)

    Yields:
        The simulated PlatformInfo
    """
    info = PlatformInfo(os=normalize_os(os_name), arch=normalize_arch(arch))
    token = _override.set(info)
    try:
        yield info
    finally:
        _override.reset(token)


_MUSL_LOADERS = (
    "/lib/libc.musl-x86_64.so.1",
    "/lib/libc.musl-aarch64.so.1",
)


def is_musl_libc() -> bool:
    """
    Check whether the host Linux system uses musl libc.

    Returns:
        True on musl-based systems (e.g. Alpine), False otherwise
    """
    if detect_platform().os != "linux":
        return False

    for loader in _MUSL_LOADERS:
        if Path(loader).exists():
            return True

    try:
        result = subprocess.run(
            ["ldd", "--version"], capture_output=True, text=True, timeout=5
        )
    except (OSError, subprocess.SubprocessError):
        return False

    output = (result.stdout + result.stderr).lower()
    return "musl" in output


def clear_platform_cache():
    """
    Clear the platform detection cache.

    This forces the next call to detect_platform() to re-detect.
    """
    detect_platform.cache_clear()


__all__ = [
    "PlatformInfo",
    "normalize_os",
    "normalize_arch",
    "detect_platform",
    "current_platform",
    "platform_override",
    "is_musl_libc",
    "clear_platform_cache",
]
