"""
Integration tests that install real binaries from GitHub.

These tests require network access and are skipped unless pytest is run
with --integration. Set BINDEP_TEST_GITHUB_TOKEN to avoid API rate limits.
"""

import os
import subprocess

import pytest

from bindep.config.registry import BUNDLED_REGISTRY, load_registry
from bindep.config.settings import Settings
from bindep.core.metadata import read_meta
from bindep.manager import BinaryManager
from bindep.status import status


@pytest.fixture
def live_manager(tmp_path):
    token = os.environ.get("BINDEP_TEST_GITHUB_TOKEN")
    entries = [e for e in load_registry(BUNDLED_REGISTRY) if e.name == "task"]
    settings = Settings(install_root=tmp_path / ".dep", github_token=token)
    return BinaryManager(entries, settings=settings)


@pytest.mark.integration
class TestLiveInstall:
    """Install go-task from its real GitHub release."""

    def test_install_and_run(self, live_manager):
        live_manager.ensure()

        path = live_manager.get("task")
        assert path.exists()
        assert read_meta(path).version == "v3.44.1"

        result = subprocess.run(
            [str(path), "--version"], capture_output=True, text=True, timeout=30
        )
        assert result.returncode == 0
        assert "3.44.1" in result.stdout

    def test_second_ensure_skips(self, live_manager):
        assert live_manager.install("task") is True
        assert live_manager.install("task") is False
        assert status(live_manager, "task").up_to_date
