"""
Tests for the release-archive strategy against mocked GitHub responses.
"""

import os
import stat

import pytest
import responses

from bindep.config.registry import AcquisitionType, AssetRule, BinaryEntry
from bindep.core.exceptions import (
    BinaryNotLocatedError,
    DownloadFailedError,
    InstallPhase,
    NoMatchingAssetError,
    ReleaseLookupError,
    UnsupportedArchiveFormat,
    UnsupportedPlatformError,
)
from bindep.core.metadata import read_meta
from bindep.core.platform import PlatformInfo
from bindep.github import GitHubClient
from bindep.installers.base import InstallContext
from bindep.installers.release_archive import ReleaseArchiveInstaller
from tests.fixtures.archives import make_zip, tar_gz_bytes
from tests.fixtures.registry import (
    API_URL,
    LINUX_AMD64,
    TASK_ASSET_NAMES,
    release_json,
)

RELEASE_URL = f"{API_URL}/repos/go-task/task/releases/tags/v3.44.1"
DOWNLOAD_BASE = "https://github.com/go-task/task/releases/download/v3.44.1"

PLATFORMS = [
    ("darwin", "amd64"),
    ("darwin", "arm64"),
    ("linux", "amd64"),
    ("linux", "arm64"),
    ("windows", "amd64"),
]


def tool_entry(pattern: str) -> BinaryEntry:
    """Entry for acme/tool whose rules format pattern with os and arch."""
    rules = tuple(
        AssetRule(os_name, arch, pattern.format(os=os_name, arch=arch))
        for os_name, arch in PLATFORMS
    )
    return BinaryEntry(name="tool", repo="acme/tool", version="v1.0.0", assets=rules)


def make_context(settings, platform=LINUX_AMD64, install_name="task"):
    return InstallContext(
        platform=platform,
        install_path=settings.install_root / platform.executable_name(install_name),
        settings=settings,
        github=GitHubClient(api_url=API_URL, timeout=settings.timeout),
    )


class TestReleaseArchiveInstaller:
    """Tests for ReleaseArchiveInstaller.install."""

    @responses.activate
    def test_installs_from_tarball(self, task_entry, settings):
        responses.add(
            responses.GET,
            RELEASE_URL,
            json=release_json("go-task/task", "v3.44.1", TASK_ASSET_NAMES),
        )
        responses.add(
            responses.GET,
            f"{DOWNLOAD_BASE}/task_linux_amd64.tar.gz",
            body=tar_gz_bytes({"task": b"task-binary", "LICENSE": b"MIT"}),
        )
        context = make_context(settings)

        ReleaseArchiveInstaller().install(task_entry, context)

        assert context.install_path.read_bytes() == b"task-binary"
        if os.name != "nt":
            assert stat.S_IMODE(context.install_path.stat().st_mode) == 0o755
        assert [c.request.url for c in responses.calls] == [
            RELEASE_URL,
            f"{DOWNLOAD_BASE}/task_linux_amd64.tar.gz",
        ]

    @responses.activate
    def test_installs_windows_zip(self, task_entry, settings, tmp_path):
        archive = make_zip(tmp_path / "task.zip", {"task.exe": b"win-binary"})
        responses.add(
            responses.GET,
            RELEASE_URL,
            json=release_json("go-task/task", "v3.44.1", TASK_ASSET_NAMES),
        )
        responses.add(
            responses.GET,
            f"{DOWNLOAD_BASE}/task_windows_amd64.zip",
            body=archive.read_bytes(),
        )
        context = make_context(settings, platform=PlatformInfo("windows", "amd64"))

        ReleaseArchiveInstaller().install(task_entry, context)

        assert context.install_path.name == "task.exe"
        assert context.install_path.read_bytes() == b"win-binary"

    @responses.activate
    def test_raw_binary_asset(self, settings):
        entry = tool_entry(r"tool-{os}-{arch}$")
        responses.add(
            responses.GET,
            f"{API_URL}/repos/acme/tool/releases/tags/v1.0.0",
            json=release_json("acme/tool", "v1.0.0", ["tool-linux-amd64"]),
        )
        responses.add(
            responses.GET,
            "https://github.com/acme/tool/releases/download/v1.0.0/tool-linux-amd64",
            body=b"raw-binary",
        )
        context = make_context(settings, install_name="tool")

        ReleaseArchiveInstaller().install(entry, context)

        assert context.install_path.read_bytes() == b"raw-binary"

    @responses.activate
    def test_xz_tarball_is_rejected_not_installed_raw(self, settings):
        entry = tool_entry(r"tool_{os}_{arch}\.tar\.xz$")
        responses.add(
            responses.GET,
            f"{API_URL}/repos/acme/tool/releases/tags/v1.0.0",
            json=release_json("acme/tool", "v1.0.0", ["tool_linux_amd64.tar.xz"]),
        )
        context = make_context(settings, install_name="tool")

        with pytest.raises(UnsupportedArchiveFormat, match="tool_linux_amd64.tar.xz"):
            ReleaseArchiveInstaller().install(entry, context)

        assert len(responses.calls) == 1
        assert not context.install_path.exists()

    @responses.activate
    def test_xz_tarball_writes_no_metadata(self, make_manager):
        entry = tool_entry(r"tool_{os}_{arch}\.tar\.xz$")
        responses.add(
            responses.GET,
            f"{API_URL}/repos/acme/tool/releases/tags/v1.0.0",
            json=release_json("acme/tool", "v1.0.0", ["tool_linux_amd64.tar.xz"]),
        )
        manager = make_manager([entry])

        with pytest.raises(UnsupportedArchiveFormat) as exc:
            manager.ensure()

        assert exc.value.binary == "tool"
        assert exc.value.phase == InstallPhase.EXTRACTION
        assert read_meta(manager.get("tool")) is None
        assert not manager.get("tool").exists()

    @responses.activate
    def test_unsupported_platform_makes_no_requests(self, task_entry, settings):
        context = make_context(settings, platform=PlatformInfo("freebsd", "amd64"))

        with pytest.raises(UnsupportedPlatformError):
            ReleaseArchiveInstaller().install(task_entry, context)

        assert len(responses.calls) == 0
        assert not context.install_path.exists()

    @responses.activate
    def test_release_lookup_failure(self, task_entry, settings):
        responses.add(responses.GET, RELEASE_URL, status=404)

        with pytest.raises(ReleaseLookupError):
            ReleaseArchiveInstaller().install(task_entry, make_context(settings))

    @responses.activate
    def test_no_matching_asset(self, task_entry, settings):
        responses.add(
            responses.GET,
            RELEASE_URL,
            json=release_json("go-task/task", "v3.44.1", ["task_checksums.txt"]),
        )

        with pytest.raises(NoMatchingAssetError, match="task_checksums.txt"):
            ReleaseArchiveInstaller().install(task_entry, make_context(settings))

    @responses.activate
    def test_download_failure_leaves_nothing(self, task_entry, settings):
        responses.add(
            responses.GET,
            RELEASE_URL,
            json=release_json("go-task/task", "v3.44.1", TASK_ASSET_NAMES),
        )
        responses.add(
            responses.GET, f"{DOWNLOAD_BASE}/task_linux_amd64.tar.gz", status=500
        )
        context = make_context(settings)

        with pytest.raises(DownloadFailedError):
            ReleaseArchiveInstaller().install(task_entry, context)

        assert not context.install_path.exists()

    @responses.activate
    def test_archive_without_binary(self, task_entry, settings):
        responses.add(
            responses.GET,
            RELEASE_URL,
            json=release_json("go-task/task", "v3.44.1", TASK_ASSET_NAMES),
        )
        responses.add(
            responses.GET,
            f"{DOWNLOAD_BASE}/task_linux_amd64.tar.gz",
            body=tar_gz_bytes({"README.md": b"docs"}),
        )

        with pytest.raises(BinaryNotLocatedError):
            ReleaseArchiveInstaller().install(task_entry, make_context(settings))

    def test_acquisition_type(self):
        assert ReleaseArchiveInstaller.acquisition_type == AcquisitionType.RELEASE_ARCHIVE
