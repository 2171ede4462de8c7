"""Runtime settings for bindep.

Settings are read from the environment; the CLI overrides individual fields
from its flags.

    BINDEP_INSTALL_ROOT   install directory (default: ./.dep)
    BINDEP_CONFIG         registry document path
    BINDEP_CACHE_REPO     owner/repo hosting the remote build cache
    GITHUB_TOKEN          token for API rate limits and cache uploads
    BINDEP_API_URL        GitHub API root (default: https://api.github.com)
    BINDEP_TIMEOUT        HTTP timeout in seconds (default: 30)
    BINDEP_LOCK_TIMEOUT   per-binary lock timeout in seconds (default: 300)
    BINDEP_BUILD_TIMEOUT  build and package-manager command timeout in seconds
                          (default: 1800)
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from bindep.core.exceptions import ConfigError
from bindep.core.locking import LOCK_DIR_NAME

DEFAULT_INSTALL_ROOT = ".dep"
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30
DEFAULT_LOCK_TIMEOUT = 300
DEFAULT_BUILD_TIMEOUT = 1800


@dataclass(frozen=True)
class Settings:
    """Runtime configuration shared by the manager and installers."""

    install_root: Path = Path(DEFAULT_INSTALL_ROOT)
    config_path: Optional[Path] = None
    cache_repo: Optional[str] = None
    github_token: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    timeout: int = DEFAULT_TIMEOUT
    lock_timeout: int = DEFAULT_LOCK_TIMEOUT
    build_timeout: int = DEFAULT_BUILD_TIMEOUT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read (defaults to os.environ)

        Raises:
            ConfigError: If a numeric variable is not an integer
        """
        env = os.environ if environ is None else environ

        config_path = env.get("BINDEP_CONFIG")
        cache_repo = env.get("BINDEP_CACHE_REPO", "").strip()
        if cache_repo and cache_repo.count("/") != 1:
            raise ConfigError(
                f"BINDEP_CACHE_REPO must be 'owner/repo', got '{cache_repo}'"
            )

        return cls(
            install_root=Path(env.get("BINDEP_INSTALL_ROOT") or DEFAULT_INSTALL_ROOT),
            config_path=Path(config_path) if config_path else None,
            cache_repo=cache_repo or None,
            github_token=env.get("GITHUB_TOKEN") or None,
            api_url=(env.get("BINDEP_API_URL") or DEFAULT_API_URL).rstrip("/"),
            timeout=_int_var(env, "BINDEP_TIMEOUT", DEFAULT_TIMEOUT),
            lock_timeout=_int_var(env, "BINDEP_LOCK_TIMEOUT", DEFAULT_LOCK_TIMEOUT),
            build_timeout=_int_var(env, "BINDEP_BUILD_TIMEOUT", DEFAULT_BUILD_TIMEOUT),
        )

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with the non-None keyword arguments applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @property
    def lock_dir(self) -> Path:
        return self.install_root / LOCK_DIR_NAME


def _int_var(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{raw}'")
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


__all__ = ["Settings", "DEFAULT_API_URL", "DEFAULT_INSTALL_ROOT"]
