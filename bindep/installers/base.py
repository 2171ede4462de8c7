"""
Installer strategy abstraction.

Each acquisition type (release-archive, build-from-source, package-manager,
vendor-api) is implemented by one Installer subclass registered against its
AcquisitionType. The manager looks the strategy up with get_installer() and
hands it an InstallContext describing where and for which platform to
install.

Classes:
    InstallContext: Per-install parameters passed to strategies
    Installer: Abstract base class for strategies

Functions:
    register_installer: Class decorator adding a strategy to the registry
    get_installer: Instantiate the strategy for an acquisition type
    run_command: Run a build/package-manager subprocess
"""

import logging
import subprocess
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Type

from bindep.config.registry import AcquisitionType, BinaryEntry
from bindep.config.settings import Settings
from bindep.core.cancellation import (
    CancellationToken,
    check_cancelled,
    subprocess_timeout,
)
from bindep.core.exceptions import (
    BuildFailedError,
    ConfigError,
    InstallCancelledError,
    InstallPhase,
)
from bindep.core.platform import PlatformInfo

logger = logging.getLogger(__name__)

# Lines of captured output included in build errors
OUTPUT_TAIL_LINES = 20

# Seconds between cancellation checks while a subprocess runs
POLL_INTERVAL = 0.25


@dataclass
class InstallContext:
    """
    Everything a strategy needs besides the entry itself.

    Attributes:
        platform: Target OS/arch (may differ from the host)
        install_path: Final path of the binary
        settings: Runtime settings
        github: GitHubClient for release metadata
        build_cache: RemoteBuildCache (may be disabled)
        verbose: Stream subprocess output to the console
        cancel_token: Optional cancellation token
        resolve_dependency: Callback installing another registry entry and
            returning its path (used to bootstrap package managers)
    """

    platform: PlatformInfo
    install_path: Path
    settings: Settings
    github: object = None
    build_cache: object = None
    verbose: bool = False
    cancel_token: Optional[CancellationToken] = None
    resolve_dependency: Optional[Callable[[str], Path]] = None


class Installer(ABC):
    """
    Abstract base class for acquisition strategies.

    Subclasses acquire the binary described by an entry and place it at
    context.install_path. Metadata is written by the manager afterwards,
    so a strategy that raises leaves the previous install untouched.
    """

    acquisition_type: AcquisitionType

    @abstractmethod
    def install(self, entry: BinaryEntry, context: InstallContext) -> None:
        """
        Acquire and place the binary.

        Args:
            entry: Registry entry to install
            context: Install parameters

        Raises:
            InstallError: Subclass describing the failed phase
        """
        pass

    def scratch_prefix(self, entry: BinaryEntry) -> str:
        return f"bindep-{entry.name}-"


_INSTALLERS: Dict[AcquisitionType, Type[Installer]] = {}


def register_installer(acquisition_type: AcquisitionType):
    """
    Class decorator registering a strategy for an acquisition type.

    Example:
        @register_installer(AcquisitionType.RELEASE_ARCHIVE)
        class ReleaseArchiveInstaller(Installer):
            ...
    """

    def decorator(cls: Type[Installer]) -> Type[Installer]:
        cls.acquisition_type = acquisition_type
        _INSTALLERS[acquisition_type] = cls
        return cls

    return decorator


def get_installer(acquisition_type: AcquisitionType) -> Installer:
    """
    Create the strategy registered for an acquisition type.

    Raises:
        ConfigError: If no strategy is registered
    """
    try:
        return _INSTALLERS[acquisition_type]()
    except KeyError:
        raise ConfigError(f"No installer registered for source '{acquisition_type}'")


def registered_types() -> List[AcquisitionType]:
    return list(_INSTALLERS)


def run_command(
    cmd: List[str],
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    verbose: bool = False,
    cancel_token: Optional[CancellationToken] = None,
    timeout: Optional[float] = None,
) -> None:
    """
    Run a build or package-manager command.

    Output is streamed to the console when verbose and captured otherwise;
    captured output is attached to the error on failure. The cancellation
    token is polled while the command runs: cancelling it from another
    thread, or passing its deadline, kills the child process.

    Raises:
        BuildFailedError: If the executable is missing, times out or fails
        InstallCancelledError: If the token is cancelled or its deadline passes
    """
    check_cancelled(cancel_token, InstallPhase.BUILD)
    effective_timeout = subprocess_timeout(cancel_token, timeout)
    capture = None if verbose else subprocess.PIPE

    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdout=capture,
            stderr=capture,
            text=True,
        )
    except FileNotFoundError as e:
        raise BuildFailedError(f"'{cmd[0]}' not found on PATH") from e
    except OSError as e:
        raise BuildFailedError(f"failed to execute '{cmd[0]}': {e}") from e

    started = time.monotonic()
    while True:
        try:
            stdout, stderr = proc.communicate(timeout=POLL_INTERVAL)
            break
        except subprocess.TimeoutExpired:
            pass

        if cancel_token is not None and cancel_token.cancelled:
            _kill(proc)
            logger.debug(f"Killed '{cmd[0]}' (pid {proc.pid}) on cancellation")
            cancel_token.check(InstallPhase.BUILD)
        if (
            effective_timeout is not None
            and time.monotonic() - started >= effective_timeout
        ):
            _kill(proc)
            raise BuildFailedError(
                f"'{' '.join(cmd)}' timed out after {effective_timeout:.0f}s"
            )

    if proc.returncode != 0:
        message = f"'{' '.join(cmd)}' exited with code {proc.returncode}"
        output = "\n".join(part.strip() for part in (stdout, stderr) if part)
        if output:
            tail = "\n".join(output.splitlines()[-OUTPUT_TAIL_LINES:])
            message = f"{message}\n{tail}"
        raise BuildFailedError(message)


def _kill(proc: subprocess.Popen) -> None:
    """Kill a child process and reap it, discarding its remaining output."""
    proc.kill()
    proc.communicate()


__all__ = [
    "InstallContext",
    "Installer",
    "register_installer",
    "get_installer",
    "registered_types",
    "run_command",
]
