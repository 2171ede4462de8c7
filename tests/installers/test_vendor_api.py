"""
Tests for the vendor-api strategy against a mocked distribution endpoint.
"""

import hashlib
from unittest.mock import patch

import pytest
import responses

from bindep.config.registry import AcquisitionType, BinaryEntry
from bindep.core.exceptions import (
    ChecksumMismatchError,
    ReleaseLookupError,
    UnsupportedPlatformError,
)
from bindep.core.platform import PlatformInfo
from bindep.github import GitHubClient
from bindep.installers.base import InstallContext
from bindep.installers.vendor_api import (
    VendorApiInstaller,
    platform_candidates,
    vendor_platform,
)
from tests.fixtures.registry import API_URL, LINUX_AMD64

BASE_URL = "https://downloads.example.com/claude-code-releases"
BINARY = b"vendor-binary"
CHECKSUM = hashlib.sha256(BINARY).hexdigest()
WINDOWS = PlatformInfo("windows", "amd64")


def claude(version="1.0.58"):
    return BinaryEntry(
        name="claude",
        repo="anthropics/claude-code",
        version=version,
        source=AcquisitionType.VENDOR_API,
        base_url=BASE_URL,
    )


def make_context(settings, platform=LINUX_AMD64):
    return InstallContext(
        platform=platform,
        install_path=settings.install_root / platform.executable_name("claude"),
        settings=settings,
        github=GitHubClient(api_url=API_URL),
    )


def manifest(*platforms, checksum=CHECKSUM):
    return {"version": "1.0.58", "platforms": {p: {"checksum": checksum} for p in platforms}}


@pytest.fixture(autouse=True)
def glibc_host():
    with patch("bindep.installers.vendor_api.is_musl_libc", return_value=False):
        yield


class TestPlatformNames:
    """Tests for vendor platform naming."""

    @pytest.mark.parametrize(
        "platform,musl,expected",
        [
            (PlatformInfo("darwin", "arm64"), None, "darwin-arm64"),
            (PlatformInfo("darwin", "amd64"), None, "darwin-x64"),
            (PlatformInfo("linux", "amd64"), False, "linux-x64"),
            (PlatformInfo("linux", "arm64"), True, "linux-arm64-musl"),
            (PlatformInfo("windows", "amd64"), None, "win32-x64"),
        ],
    )
    def test_vendor_platform(self, platform, musl, expected):
        assert vendor_platform(platform, musl) == expected

    def test_detects_musl_on_host(self):
        with patch(
            "bindep.installers.vendor_api.detect_platform", return_value=LINUX_AMD64
        ), patch("bindep.installers.vendor_api.is_musl_libc", return_value=True):
            assert vendor_platform(LINUX_AMD64) == "linux-x64-musl"

    def test_cross_target_ignores_host_libc(self):
        with patch(
            "bindep.installers.vendor_api.detect_platform", return_value=LINUX_AMD64
        ), patch(
            "bindep.installers.vendor_api.is_musl_libc", return_value=True
        ) as is_musl:
            assert vendor_platform(PlatformInfo("linux", "arm64")) == "linux-arm64"

        is_musl.assert_not_called()

    def test_unsupported(self):
        with pytest.raises(UnsupportedPlatformError):
            vendor_platform(PlatformInfo("freebsd", "amd64"))

    def test_windows_candidates(self):
        assert platform_candidates(WINDOWS) == ["win32-x64", "win-x64", "windows-amd64"]

    def test_unix_candidates(self):
        assert platform_candidates(LINUX_AMD64, musl=False) == ["linux-x64"]


class TestVendorApiInstaller:
    """Tests for VendorApiInstaller.install."""

    @responses.activate
    def test_pinned_version(self, settings):
        responses.add(
            responses.GET,
            f"{BASE_URL}/1.0.58/manifest.json",
            json=manifest("linux-x64", "darwin-arm64"),
        )
        responses.add(responses.GET, f"{BASE_URL}/1.0.58/linux-x64/claude", body=BINARY)
        context = make_context(settings)

        VendorApiInstaller().install(claude(), context)

        assert context.install_path.read_bytes() == BINARY
        assert len(responses.calls) == 2

    @responses.activate
    def test_latest_reads_stable(self, settings):
        responses.add(responses.GET, f"{BASE_URL}/stable", body="1.0.60\n")
        responses.add(
            responses.GET, f"{BASE_URL}/1.0.60/manifest.json", json=manifest("linux-x64")
        )
        responses.add(responses.GET, f"{BASE_URL}/1.0.60/linux-x64/claude", body=BINARY)
        context = make_context(settings)

        VendorApiInstaller().install(claude("latest"), context)

        assert context.install_path.read_bytes() == BINARY

    @responses.activate
    def test_windows_alternative_key(self, settings):
        responses.add(
            responses.GET, f"{BASE_URL}/1.0.58/manifest.json", json=manifest("win-x64")
        )
        responses.add(
            responses.GET, f"{BASE_URL}/1.0.58/win-x64/claude.exe", body=BINARY
        )
        context = make_context(settings, platform=WINDOWS)

        VendorApiInstaller().install(claude(), context)

        assert context.install_path.name == "claude.exe"
        assert context.install_path.read_bytes() == BINARY

    @responses.activate
    def test_checksum_mismatch(self, settings):
        responses.add(
            responses.GET,
            f"{BASE_URL}/1.0.58/manifest.json",
            json=manifest("linux-x64", checksum="0" * 64),
        )
        responses.add(responses.GET, f"{BASE_URL}/1.0.58/linux-x64/claude", body=BINARY)
        context = make_context(settings)

        with pytest.raises(ChecksumMismatchError) as exc:
            VendorApiInstaller().install(claude(), context)

        assert exc.value.expected == "0" * 64
        assert exc.value.actual == CHECKSUM
        assert not context.install_path.exists()

    @responses.activate
    def test_uppercase_checksum_accepted(self, settings):
        responses.add(
            responses.GET,
            f"{BASE_URL}/1.0.58/manifest.json",
            json=manifest("linux-x64", checksum=CHECKSUM.upper()),
        )
        responses.add(responses.GET, f"{BASE_URL}/1.0.58/linux-x64/claude", body=BINARY)
        context = make_context(settings)

        VendorApiInstaller().install(claude(), context)

        assert context.install_path.read_bytes() == BINARY

    @responses.activate
    def test_platform_missing_from_manifest(self, settings):
        responses.add(
            responses.GET,
            f"{BASE_URL}/1.0.58/manifest.json",
            json=manifest("darwin-arm64", "darwin-x64"),
        )

        with pytest.raises(UnsupportedPlatformError) as exc:
            VendorApiInstaller().install(claude(), make_context(settings))

        assert "darwin-arm64, darwin-x64" in str(exc.value)
        assert len(responses.calls) == 1

    @responses.activate
    def test_missing_checksum(self, settings):
        responses.add(
            responses.GET,
            f"{BASE_URL}/1.0.58/manifest.json",
            json={"platforms": {"linux-x64": {}}},
        )

        with pytest.raises(ReleaseLookupError, match="no checksum"):
            VendorApiInstaller().install(claude(), make_context(settings))

    @responses.activate
    def test_manifest_unavailable(self, settings):
        responses.add(responses.GET, f"{BASE_URL}/1.0.58/manifest.json", status=404)

        with pytest.raises(ReleaseLookupError, match="manifest"):
            VendorApiInstaller().install(claude(), make_context(settings))

    @responses.activate
    def test_invalid_manifest(self, settings):
        responses.add(responses.GET, f"{BASE_URL}/1.0.58/manifest.json", body="<html>")

        with pytest.raises(ReleaseLookupError, match="invalid manifest"):
            VendorApiInstaller().install(claude(), make_context(settings))

    @responses.activate
    def test_empty_stable(self, settings):
        responses.add(responses.GET, f"{BASE_URL}/stable", body="  ")

        with pytest.raises(ReleaseLookupError, match="empty response"):
            VendorApiInstaller().install(claude("latest"), make_context(settings))
