"""
Unit tests for installed-binary metadata sidecars.
"""

import json
from pathlib import Path

import pytest

from bindep.core.metadata import (
    InstalledMeta,
    meta_path,
    read_meta,
    remove_meta,
    write_meta,
)


class TestMetaPath:
    def test_sidecar_beside_binary(self):
        assert meta_path(Path(".dep/task")) == Path(".dep/task_meta.json")

    def test_windows_binary_name(self):
        assert meta_path(Path(".dep/task.exe")) == Path(".dep/task.exe_meta.json")


class TestReadWrite:
    """Tests for reading and writing sidecars."""

    def test_round_trip(self, tmp_path):
        install_path = tmp_path / "task"
        meta = InstalledMeta(name="task", version="v3.44.1")

        path = write_meta(install_path, meta)

        assert path == tmp_path / "task_meta.json"
        assert json.loads(path.read_text()) == {"name": "task", "version": "v3.44.1"}
        assert read_meta(install_path) == meta

    @pytest.mark.parametrize(
        "version", ["v3.44.1", "1.0.58", "v2.0.0-rc.1", "v0.18.0-beta.2+build.7", "latest"]
    )
    def test_round_trip_versions(self, tmp_path, version):
        write_meta(tmp_path / "tool", InstalledMeta("tool", version))
        assert read_meta(tmp_path / "tool").version == version

    def test_missing_returns_none(self, tmp_path):
        assert read_meta(tmp_path / "task") is None

    def test_corrupt_returns_none(self, tmp_path, caplog):
        (tmp_path / "task_meta.json").write_text("{not json")

        assert read_meta(tmp_path / "task") is None
        assert "Ignoring corrupt metadata" in caplog.text

    def test_missing_keys_returns_none(self, tmp_path):
        (tmp_path / "task_meta.json").write_text('{"name": "task"}')
        assert read_meta(tmp_path / "task") is None

    def test_remove(self, tmp_path):
        write_meta(tmp_path / "task", InstalledMeta("task", "latest"))

        assert remove_meta(tmp_path / "task") is True
        assert remove_meta(tmp_path / "task") is False
