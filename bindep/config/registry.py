"""Binary registry: declarative list of managed third-party tools.

This module defines the registry data model (BinaryEntry, AssetRule,
AcquisitionType), loads registry documents written in YAML or JSON, and
validates them so that configuration mistakes surface at load time rather
than halfway through an install.

Registry document format::

    binaries:
      - name: task
        repo: go-task/task
        version: v3.44.1
        source: release-archive
        assets:
          - {os: linux, arch: amd64, match: 'task_linux_amd64\\.tar\\.gz$'}
          ...
      - name: garble
        repo: burrowers/garble
        version: v0.14.2
        source: build-from-source
        package: mvdan.cc/garble
"""

import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Tuple

import yaml

from bindep.core.exceptions import ConfigError
from bindep.selection import validate_asset_rules

logger = logging.getLogger(__name__)

BUNDLED_REGISTRY = Path(__file__).resolve().parent.parent / "data" / "binaries.yaml"
DEFAULT_CONFIG_FILES = ("dep.yaml", "dep.json")
CONFIG_ENV_VAR = "BINDEP_CONFIG"

# Every release-archive entry must resolve each of these to exactly one rule
VALIDATION_MATRIX: Tuple[Tuple[str, str], ...] = (
    ("darwin", "amd64"),
    ("darwin", "arm64"),
    ("linux", "amd64"),
    ("linux", "arm64"),
    ("windows", "amd64"),
)

LATEST = "latest"


class AcquisitionType(str, Enum):
    """How a binary is obtained."""

    RELEASE_ARCHIVE = "release-archive"
    BUILD_FROM_SOURCE = "build-from-source"
    PACKAGE_MANAGER = "package-manager"
    VENDOR_API = "vendor-api"

    @classmethod
    def parse(cls, value: str) -> "AcquisitionType":
        """
        Parse a source name, accepting the legacy aliases.

        Raises:
            ConfigError: If the name is not recognized
        """
        key = str(value).strip().lower()
        key = _LEGACY_SOURCES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            valid = ", ".join(t.value for t in cls)
            raise ConfigError(f"Unknown source '{value}' (expected one of: {valid})")


_LEGACY_SOURCES = {
    "github-release": AcquisitionType.RELEASE_ARCHIVE.value,
    "go-build": AcquisitionType.BUILD_FROM_SOURCE.value,
    "go-install": AcquisitionType.PACKAGE_MANAGER.value,
    "claude-release": AcquisitionType.VENDOR_API.value,
}

PACKAGE_MANAGERS = ("go", "cargo")


@dataclass(frozen=True)
class AssetRule:
    """Maps an (os, arch) pair to a regex matched against asset filenames."""

    os: str
    arch: str
    match: str


@dataclass(frozen=True)
class BinaryEntry:
    """A single managed binary."""

    name: str
    repo: str
    version: str
    source: AcquisitionType = AcquisitionType.RELEASE_ARCHIVE
    package: str = ""
    assets: Tuple[AssetRule, ...] = ()
    release_url: str = ""
    description: str = ""
    manager: str = "go"
    cgo: bool = False
    base_url: str = ""

    @property
    def is_latest(self) -> bool:
        return self.version == LATEST

    @property
    def repo_url(self) -> str:
        return f"https://github.com/{self.repo}"


# ============================================================================
# Loading
# ============================================================================


def resolve_registry_path(path: Optional[Path] = None) -> Path:
    """
    Decide which registry document to load.

    Resolution order: explicit path, ``$BINDEP_CONFIG``, ``./dep.yaml`` or
    ``./dep.json`` in the working directory, then the bundled default.
    """
    if path is not None:
        return Path(path)

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    for filename in DEFAULT_CONFIG_FILES:
        candidate = Path.cwd() / filename
        if candidate.is_file():
            return candidate

    return BUNDLED_REGISTRY


def load_registry(path: Optional[Path] = None) -> List[BinaryEntry]:
    """
    Load and validate a registry document.

    Args:
        path: Explicit registry file; see resolve_registry_path() for the
            fallbacks used when omitted

    Returns:
        Validated entries in declaration order

    Raises:
        ConfigError: If the file is missing, unparsable or invalid
    """
    registry_path = resolve_registry_path(path)

    if not registry_path.exists():
        raise ConfigError(f"Registry file not found: {registry_path}")

    try:
        with open(registry_path, "r", encoding="utf-8") as f:
            # JSON is a subset of YAML, so one parser handles both formats
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid registry syntax in {registry_path}: {e}") from e

    if data is None:
        raise ConfigError(f"Registry file is empty: {registry_path}")

    logger.debug(f"Loading registry from {registry_path}")
    return parse_registry(data)


def parse_registry(data: Any) -> List[BinaryEntry]:
    """
    Build validated entries from a parsed registry document.

    Args:
        data: A list of entry mappings, or a mapping with a 'binaries' list

    Raises:
        ConfigError: If the document is malformed or fails validation
    """
    if isinstance(data, dict):
        if "binaries" not in data:
            raise ConfigError("Registry mapping must contain a 'binaries' list")
        data = data["binaries"]

    if not isinstance(data, list):
        raise ConfigError("Registry must be a list of binaries")

    entries: List[BinaryEntry] = []
    seen = set()
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ConfigError(f"Registry entry #{index + 1} must be a mapping")

        entry = _parse_entry(item)
        if entry.name in seen:
            raise ConfigError(f"Duplicate binary name: {entry.name}")
        seen.add(entry.name)
        entries.append(entry)

    validate_registry(entries)
    return entries


def _parse_entry(data: dict) -> BinaryEntry:
    """Parse a single registry entry (shape only; semantics in validate_entry)."""
    name = str(data.get("name") or "").strip()
    if not name:
        raise ConfigError("Binary entry missing required field: name")

    for field_name in ("repo", "version"):
        if not str(data.get(field_name) or "").strip():
            raise ConfigError(f"Binary '{name}' missing required field: {field_name}")

    raw_assets = data.get("assets") or []
    if not isinstance(raw_assets, list):
        raise ConfigError(f"Binary '{name}': assets must be a list")

    assets = []
    for rule in raw_assets:
        if not isinstance(rule, dict) or not all(
            k in rule for k in ("os", "arch", "match")
        ):
            raise ConfigError(
                f"Binary '{name}': each asset rule needs 'os', 'arch' and 'match'"
            )
        assets.append(
            AssetRule(
                os=str(rule["os"]).strip().lower(),
                arch=str(rule["arch"]).strip().lower(),
                match=str(rule["match"]),
            )
        )

    return BinaryEntry(
        name=name,
        repo=str(data["repo"]).strip(),
        version=str(data["version"]).strip(),
        source=AcquisitionType.parse(data.get("source", "release-archive")),
        package=str(data.get("package") or "").strip(),
        assets=tuple(assets),
        release_url=str(data.get("release_url") or ""),
        description=str(data.get("description") or ""),
        manager=str(data.get("manager") or "go").strip().lower(),
        cgo=bool(data.get("cgo", False)),
        base_url=str(data.get("base_url") or "").strip().rstrip("/"),
    )


# ============================================================================
# Validation
# ============================================================================


def validate_entry(entry: BinaryEntry) -> None:
    """
    Validate one entry against the rules of its acquisition type.

    Raises:
        ConfigError: Describing the first problem found
    """
    needs_package = entry.source in (
        AcquisitionType.BUILD_FROM_SOURCE,
        AcquisitionType.PACKAGE_MANAGER,
    )
    if needs_package and not entry.package:
        raise ConfigError(
            f"Binary '{entry.name}': source {entry.source.value} requires 'package'"
        )
    if not needs_package and entry.package:
        raise ConfigError(
            f"Binary '{entry.name}': 'package' is only valid for build-from-source "
            "and package-manager"
        )

    if entry.source == AcquisitionType.RELEASE_ARCHIVE:
        if not entry.assets:
            raise ConfigError(
                f"Binary '{entry.name}': release-archive requires asset rules"
            )
    elif entry.assets:
        raise ConfigError(
            f"Binary '{entry.name}': asset rules are only valid for release-archive"
        )

    for rule in entry.assets:
        try:
            re.compile(rule.match)
        except re.error as e:
            raise ConfigError(
                f"Binary '{entry.name}': invalid asset pattern '{rule.match}': {e}"
            ) from e

    if entry.source == AcquisitionType.RELEASE_ARCHIVE:
        bad_pairs = validate_asset_rules(entry.assets, VALIDATION_MATRIX)
        if bad_pairs:
            pairs = ", ".join(f"{os_name}/{arch}" for os_name, arch in bad_pairs)
            raise ConfigError(
                f"Binary '{entry.name}': platforms without exactly one asset rule: {pairs}"
            )

    if entry.source == AcquisitionType.PACKAGE_MANAGER:
        if entry.manager not in PACKAGE_MANAGERS:
            raise ConfigError(
                f"Binary '{entry.name}': unknown package manager '{entry.manager}' "
                f"(expected one of: {', '.join(PACKAGE_MANAGERS)})"
            )

    if entry.source == AcquisitionType.VENDOR_API and not entry.base_url:
        raise ConfigError(f"Binary '{entry.name}': vendor-api requires 'base_url'")


def validate_registry(entries: List[BinaryEntry]) -> None:
    """Validate every entry and name uniqueness."""
    names = set()
    for entry in entries:
        if not entry.name or entry.name != entry.name.strip():
            raise ConfigError(f"Invalid binary name: '{entry.name}'")
        if entry.name in names:
            raise ConfigError(f"Duplicate binary name: {entry.name}")
        names.add(entry.name)
        validate_entry(entry)


__all__ = [
    "AcquisitionType",
    "AssetRule",
    "BinaryEntry",
    "BUNDLED_REGISTRY",
    "LATEST",
    "PACKAGE_MANAGERS",
    "VALIDATION_MATRIX",
    "load_registry",
    "parse_registry",
    "resolve_registry_path",
    "validate_entry",
    "validate_registry",
]
