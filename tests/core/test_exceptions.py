"""
Unit tests for the exception hierarchy.
"""

import pytest

from bindep.core.exceptions import (
    ArchiveExtractionError,
    BinDepError,
    BinaryNotFoundError,
    ChecksumMismatchError,
    DownloadFailedError,
    InsecureArchiveError,
    InstallationFailedError,
    InstallError,
    InstallPhase,
    NoMatchingAssetError,
    PackageManagerUnavailableError,
    UnsupportedArchiveFormat,
    UnsupportedPlatformError,
)


class TestInstallError:
    """Tests for InstallError rendering and binary attachment."""

    def test_render_without_binary(self):
        err = NoMatchingAssetError("nothing matched")
        assert str(err) == "asset-selection failed: nothing matched"
        assert err.binary is None

    def test_render_with_binary(self):
        err = UnsupportedPlatformError("no rule for freebsd/amd64", binary="task")
        assert str(err) == "task: asset-selection failed: no rule for freebsd/amd64"

    def test_with_binary_sets_name_once(self):
        err = DownloadFailedError("HTTP 500", url="https://x", status=500)
        assert err.with_binary("task") is err
        err.with_binary("other")

        assert err.binary == "task"
        assert str(err).startswith("task: download failed")
        assert err.args == (str(err),)

    def test_phase_override(self):
        err = InstallationFailedError("chmod failed", phase=InstallPhase.PERMISSION)
        assert err.phase == InstallPhase.PERMISSION
        assert "permission failed" in str(err)

    def test_class_phases(self):
        assert ArchiveExtractionError("x").phase == InstallPhase.EXTRACTION
        assert ChecksumMismatchError("a", "b").phase == InstallPhase.VERIFICATION
        assert PackageManagerUnavailableError("x").phase == InstallPhase.BOOTSTRAP

    def test_checksum_mismatch_message(self):
        err = ChecksumMismatchError("abc", "def", binary="claude")
        assert err.expected == "abc"
        assert err.actual == "def"
        assert str(err) == "claude: verification failed: checksum mismatch: expected abc, got def"

    def test_download_failed_carries_status(self):
        err = DownloadFailedError("not found", url="https://x/y", status=404)
        assert err.status == 404
        assert err.url == "https://x/y"


class TestHierarchy:
    """Tests for exception inheritance."""

    @pytest.mark.parametrize(
        "exc_class",
        [UnsupportedArchiveFormat, InsecureArchiveError],
    )
    def test_archive_errors_are_extraction_errors(self, exc_class):
        assert issubclass(exc_class, ArchiveExtractionError)

    def test_package_manager_unavailable_is_installation_failure(self):
        assert issubclass(PackageManagerUnavailableError, InstallationFailedError)

    def test_all_rooted_at_bindep_error(self):
        assert issubclass(InstallError, BinDepError)
        assert issubclass(BinaryNotFoundError, BinDepError)

    def test_binary_not_found_message(self):
        err = BinaryNotFoundError("nonexistent-xyz")
        assert err.name == "nonexistent-xyz"
        assert "nonexistent-xyz" in str(err)
