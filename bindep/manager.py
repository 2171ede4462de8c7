"""
Binary manager: the caller-facing entry point of bindep.

BinaryManager owns a registry of entries and an install root and provides
ensure/get/install/remove/list on top of the acquisition strategies. Each
install runs under a per-binary file lock as read-metadata -> strategy ->
write-metadata, so concurrent processes never install the same binary twice
and a failed install leaves the previous state untouched.

Example:
    >>> from bindep.manager import BinaryManager
    >>> manager = BinaryManager.from_config()
    >>> manager.ensure()
    >>> task = manager.get("task")
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from bindep.build_cache import RemoteBuildCache
from bindep.config.registry import BinaryEntry, load_registry
from bindep.config.settings import Settings
from bindep.core.cancellation import CancellationToken
from bindep.core.exceptions import (
    BinaryNotFoundError,
    BinDepError,
    ConfigError,
    InstallationFailedError,
    InstallError,
    InstallPhase,
    InvalidInputError,
    PackageManagerUnavailableError,
)
from bindep.core.filesystem import FilesystemError, safe_rmtree
from bindep.core.locking import LockManager, LockTimeout
from bindep.core.metadata import InstalledMeta, read_meta, remove_meta, write_meta
from bindep.core.platform import PlatformInfo, current_platform
from bindep.github import GitHubClient
from bindep.installers import InstallContext, get_installer

logger = logging.getLogger(__name__)


class BinaryManager:
    """
    Installs and tracks the binaries of one registry.

    Attributes:
        entries: Registry entries in declaration order
        settings: Runtime settings
        platform: Target platform for installs
        lock_manager: Per-binary lock provider
        github: Releases client
        build_cache: Remote build cache
    """

    def __init__(
        self,
        entries: Iterable[BinaryEntry],
        settings: Optional[Settings] = None,
        platform: Optional[PlatformInfo] = None,
        lock_manager: Optional[LockManager] = None,
        github: Optional[GitHubClient] = None,
        build_cache: Optional[RemoteBuildCache] = None,
    ):
        self.entries: List[BinaryEntry] = list(entries)
        self._by_name = {entry.name: entry for entry in self.entries}
        self.settings = settings or Settings.from_env()
        self.platform = platform or current_platform()
        self.lock_manager = lock_manager or LockManager(self.settings.lock_dir)
        self.github = github or GitHubClient(
            api_url=self.settings.api_url,
            token=self.settings.github_token,
            timeout=self.settings.timeout,
        )
        self.build_cache = build_cache or RemoteBuildCache(
            self.settings.cache_repo, self.github, timeout=self.settings.timeout
        )

    @classmethod
    def from_config(
        cls,
        config_path: Optional[Path] = None,
        settings: Optional[Settings] = None,
        platform: Optional[PlatformInfo] = None,
    ) -> "BinaryManager":
        """
        Create a manager from a registry document.

        Args:
            config_path: Registry file (falls back to settings.config_path,
                then the usual lookup order of load_registry)
            settings: Runtime settings (read from the environment if None)
            platform: Target platform (host if None)
        """
        settings = settings or Settings.from_env()
        entries = load_registry(config_path or settings.config_path)
        return cls(entries, settings=settings, platform=platform)

    @property
    def install_root(self) -> Path:
        return self.settings.install_root

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def entry(self, name: str) -> BinaryEntry:
        """
        Get the registry entry for a name.

        Raises:
            InvalidInputError: If name is empty or whitespace
            BinaryNotFoundError: If name is not in the registry
        """
        if name is None or not str(name).strip():
            raise InvalidInputError("binary name cannot be empty")
        try:
            return self._by_name[name]
        except KeyError:
            raise BinaryNotFoundError(name)

    def get(self, name: str) -> Path:
        """
        Get the install path of a configured binary.

        Performs no I/O: the path is returned whether or not the binary
        is installed.

        Raises:
            InvalidInputError: If name is empty or whitespace
            BinaryNotFoundError: If name is not in the registry
        """
        entry = self.entry(name)
        return self.install_root / self.platform.executable_name(entry.name)

    def list(self) -> List[BinaryEntry]:
        """Registry entries in declaration order."""
        return list(self.entries)

    # ------------------------------------------------------------------
    # Installing
    # ------------------------------------------------------------------

    def ensure(
        self, verbose: bool = False, cancel_token: Optional[CancellationToken] = None
    ) -> None:
        """
        Install every configured binary that is missing or out of date.

        Binaries are processed in declaration order. The first failure
        aborts the run. Lock files left behind for more than a day are
        removed first.

        Raises:
            InstallError: Carrying the failing binary's name and phase
            ConfigError: On registry problems (unknown strategy, cycles)
        """
        logger.info("Ensuring binaries...")
        removed = self.lock_manager.cleanup_stale_locks()
        if removed:
            logger.debug(f"Removed {removed} stale lock file(s)")
        for entry in self.entries:
            self._install_entry(entry, verbose, force=False, cancel_token=cancel_token)
        logger.info("All binaries ensured.")

    def install(
        self,
        name: str,
        verbose: bool = False,
        force: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> bool:
        """
        Install a single binary.

        Args:
            name: Binary name
            verbose: Show download progress and subprocess output
            force: Reinstall even if the installed version is current
            cancel_token: Optional cancellation token

        Returns:
            True if an install ran, False if it was already current
        """
        entry = self.entry(name)
        return self._install_entry(entry, verbose, force, cancel_token)

    def is_current(self, entry: BinaryEntry, meta: Optional[InstalledMeta]) -> bool:
        """
        Whether an installed binary satisfies its entry.

        A binary pinned to 'latest' counts as current once any version of
        it is recorded.
        """
        if meta is None:
            return False
        return entry.is_latest or meta.version == entry.version

    def _install_entry(
        self,
        entry: BinaryEntry,
        verbose: bool,
        force: bool,
        cancel_token: Optional[CancellationToken],
        chain: Tuple[str, ...] = (),
    ) -> bool:
        # chain: names being installed further up this call, never shared
        # between callers
        if entry.name in chain:
            cycle = " -> ".join(chain + (entry.name,))
            raise ConfigError(f"dependency cycle while installing: {cycle}")

        install_path = self.get(entry.name)
        logger.debug(
            f"Checking {entry.name} {entry.version} ({entry.source.value}) at {install_path}"
        )

        chain = chain + (entry.name,)
        try:
            with self.lock_manager.binary_lock(
                entry.name, timeout=self.settings.lock_timeout
            ):
                # Read inside the lock to observe a concurrent install
                meta = read_meta(install_path)
                if not force and install_path.exists() and self.is_current(entry, meta):
                    logger.info(f"{entry.name} {entry.version} is up to date")
                    return False

                if meta is None:
                    logger.info(f"Installing {entry.name} {entry.version}")
                elif meta.version != entry.version:
                    logger.info(
                        f"Upgrading {entry.name} from {meta.version} to {entry.version}"
                    )
                else:
                    logger.info(f"Reinstalling {entry.name} {entry.version}")

                installer = get_installer(entry.source)
                context = InstallContext(
                    platform=self.platform,
                    install_path=install_path,
                    settings=self.settings,
                    github=self.github,
                    build_cache=self.build_cache,
                    verbose=verbose,
                    cancel_token=cancel_token,
                    resolve_dependency=lambda name: self._resolve_dependency(
                        name, verbose, cancel_token, chain
                    ),
                )
                installer.install(entry, context)
                write_meta(install_path, InstalledMeta(entry.name, entry.version))
                return True

        except LockTimeout as e:
            raise InstallationFailedError(
                f"timed out after {self.settings.lock_timeout}s waiting for lock {e}",
                binary=entry.name,
                phase=InstallPhase.LOCK,
            ) from e
        except InstallError as e:
            raise e.with_binary(entry.name)
        except OSError as e:
            raise InstallationFailedError(
                str(e), binary=entry.name, phase=InstallPhase.INSTALL
            ) from e

    def _resolve_dependency(
        self,
        name: str,
        verbose: bool,
        cancel_token: Optional[CancellationToken],
        chain: Tuple[str, ...],
    ) -> Path:
        """Install a registry entry needed by another strategy and return its path."""
        if name not in self._by_name:
            raise PackageManagerUnavailableError(
                f"'{name}' is not in the registry; add an entry for it so it can "
                "be bootstrapped"
            )
        self._install_entry(self._by_name[name], verbose, False, cancel_token, chain)
        return self.get(name)

    # ------------------------------------------------------------------
    # Removing
    # ------------------------------------------------------------------

    def remove(self, name: str) -> bool:
        """
        Remove an installed binary and its metadata.

        Returns:
            True if anything was removed, False if it was not installed

        Raises:
            InvalidInputError: If name is empty or whitespace
            BinaryNotFoundError: If name is not in the registry
        """
        install_path = self.get(name)
        try:
            with self.lock_manager.binary_lock(
                name, timeout=self.settings.lock_timeout
            ):
                removed = False
                if install_path.exists():
                    install_path.unlink()
                    removed = True
                if remove_meta(install_path):
                    removed = True
        except LockTimeout as e:
            raise InstallationFailedError(
                f"timed out waiting for lock {e}", binary=name, phase=InstallPhase.LOCK
            ) from e
        except OSError as e:
            raise InstallationFailedError(
                f"failed to remove {install_path}: {e}", binary=name
            ) from e

        if removed:
            logger.info(f"Removed {name}")
        else:
            logger.info(f"{name} is not installed")
        return removed

    def clean(self) -> bool:
        """
        Delete the whole install root (binaries, metadata and locks).

        Returns:
            True if the install root existed

        Raises:
            BinDepError: If the install root is a protected location or
                cannot be removed
        """
        root = self.install_root.resolve()
        protected = {Path(root.anchor), Path.home().resolve(), Path.cwd().resolve()}
        if root in protected:
            raise BinDepError(f"Refusing to delete protected directory: {root}")

        if not root.exists():
            return False

        try:
            safe_rmtree(root)
        except FilesystemError as e:
            raise BinDepError(str(e)) from e

        logger.info(f"Removed {root}")
        return True


__all__ = ["BinaryManager"]
