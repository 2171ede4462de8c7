"""
Release asset selection.

Given the asset filenames of a release and an entry's ordered asset rules,
pick the one asset built for a target OS/architecture.
"""

import logging
import re
from typing import TYPE_CHECKING, Iterable, List, Sequence, Tuple

from bindep.core.exceptions import NoMatchingAssetError, UnsupportedPlatformError

if TYPE_CHECKING:
    from bindep.config.registry import AssetRule

logger = logging.getLogger(__name__)


def rules_for_platform(
    rules: Iterable["AssetRule"], os_name: str, arch: str
) -> List["AssetRule"]:
    """Rules whose (os, arch) equal the requested platform, in order."""
    return [rule for rule in rules if rule.os == os_name and rule.arch == arch]


def select_asset(
    asset_names: Sequence[str],
    rules: Sequence["AssetRule"],
    os_name: str,
    arch: str,
) -> str:
    """
    Select the release asset for a platform.

    Rules for the platform are tried in declaration order; the first rule
    whose pattern matches any asset wins, and the first matching asset in
    list order is returned.

    Args:
        asset_names: Asset filenames of the release, in API order
        rules: The entry's asset rules
        os_name: Target OS ('darwin', 'linux', 'windows')
        arch: Target architecture ('amd64', 'arm64')

    Returns:
        The selected asset filename

    Raises:
        UnsupportedPlatformError: No rule exists for (os_name, arch)
        NoMatchingAssetError: Rules exist but none matches any asset

    Example:
        >>> rules = [AssetRule("linux", "amd64", r"task_linux_amd64\\.tar\\.gz$")]
        >>> select_asset(["task_linux_amd64.tar.gz"], rules, "linux", "amd64")
        'task_linux_amd64.tar.gz'
    """
    applicable = rules_for_platform(rules, os_name, arch)
    if not applicable:
        raise UnsupportedPlatformError(f"no asset rule for {os_name}/{arch}")

    for rule in applicable:
        pattern = re.compile(rule.match)
        for asset in asset_names:
            if pattern.search(asset):
                logger.debug(f"Asset {asset} matched rule {rule.match}")
                return asset

    candidates = ", ".join(asset_names) if asset_names else "(none)"
    raise NoMatchingAssetError(
        f"no asset matches rules for {os_name}/{arch}; candidates: {candidates}"
    )


def validate_asset_rules(
    rules: Sequence["AssetRule"], matrix: Iterable[Tuple[str, str]]
) -> List[Tuple[str, str]]:
    """
    Check that each (os, arch) pair of a matrix resolves to exactly one rule.

    Returns:
        The pairs with zero or several rules (empty when valid)
    """
    return [
        (os_name, arch)
        for os_name, arch in matrix
        if len(rules_for_platform(rules, os_name, arch)) != 1
    ]


__all__ = ["rules_for_platform", "select_asset", "validate_asset_rules"]
