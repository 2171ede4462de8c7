"""
Unit tests for release asset selection.
"""

import pytest

from bindep.config.registry import VALIDATION_MATRIX, AssetRule
from bindep.core.exceptions import NoMatchingAssetError, UnsupportedPlatformError
from bindep.selection import rules_for_platform, select_asset, validate_asset_rules
from tests.fixtures.registry import TASK_ASSET_NAMES, TASK_ASSETS


class TestSelectAsset:
    """Tests for select_asset."""

    @pytest.mark.parametrize(
        "os_name,arch,expected",
        [
            ("linux", "amd64", "task_linux_amd64.tar.gz"),
            ("linux", "arm64", "task_linux_arm64.tar.gz"),
            ("darwin", "arm64", "task_darwin_arm64.tar.gz"),
            ("windows", "amd64", "task_windows_amd64.zip"),
        ],
    )
    def test_selects_platform_asset(self, os_name, arch, expected):
        assert select_asset(TASK_ASSET_NAMES, TASK_ASSETS, os_name, arch) == expected

    def test_unsupported_platform(self):
        with pytest.raises(UnsupportedPlatformError, match="freebsd/amd64"):
            select_asset(TASK_ASSET_NAMES, TASK_ASSETS, "freebsd", "amd64")

    def test_no_match_lists_candidates(self):
        with pytest.raises(NoMatchingAssetError) as exc:
            select_asset(["task_checksums.txt"], TASK_ASSETS, "linux", "amd64")
        assert "task_checksums.txt" in str(exc.value)

    def test_empty_release(self):
        with pytest.raises(NoMatchingAssetError, match=r"\(none\)"):
            select_asset([], TASK_ASSETS, "linux", "amd64")

    def test_first_rule_wins(self):
        """Rules are tried in order before assets are."""
        rules = [
            AssetRule("linux", "amd64", r"musl"),
            AssetRule("linux", "amd64", r"linux"),
        ]
        assets = ["tool-linux-gnu.tar.gz", "tool-linux-musl.tar.gz"]
        assert select_asset(assets, rules, "linux", "amd64") == "tool-linux-musl.tar.gz"

    def test_first_asset_in_order(self):
        rules = [AssetRule("linux", "amd64", r"linux")]
        assets = ["b-linux.tar.gz", "a-linux.tar.gz"]
        assert select_asset(assets, rules, "linux", "amd64") == "b-linux.tar.gz"

    def test_pattern_is_searched_not_anchored(self):
        rules = [AssetRule("linux", "amd64", r"Linux_x86_64")]
        assets = ["flyctl_0.3.159_Linux_x86_64.tar.gz"]
        assert select_asset(assets, rules, "linux", "amd64") == assets[0]


class TestValidateAssetRules:
    def test_complete_matrix(self):
        assert validate_asset_rules(TASK_ASSETS, VALIDATION_MATRIX) == []

    def test_reports_gaps_and_duplicates(self):
        rules = list(TASK_ASSETS[:3]) + [AssetRule("linux", "amd64", "x")]
        assert validate_asset_rules(rules, VALIDATION_MATRIX) == [
            ("linux", "amd64"),
            ("linux", "arm64"),
            ("windows", "amd64"),
        ]

    def test_rules_for_platform(self):
        assert rules_for_platform(TASK_ASSETS, "windows", "amd64") == [TASK_ASSETS[4]]
