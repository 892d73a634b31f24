"""Tests for config file and project root discovery."""

import json
from pathlib import Path

import pytest

from wsctl.config.discovery import CONFIG_FILENAME, find_config, find_project_root


class TestFindConfig:
    def test_finds_in_current_dir(self, tmp_path: Path) -> None:
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("[enforce]\nmax_passes = 3\n")
        assert find_config(tmp_path) == config_file

    def test_walks_up(self, tmp_path: Path) -> None:
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("")
        child = tmp_path / "a" / "b" / "c"
        child.mkdir(parents=True)
        assert find_config(child) == config_file

    def test_returns_none_when_not_found(self, tmp_path: Path) -> None:
        child = tmp_path / "empty"
        child.mkdir()
        assert find_config(child) is None

    def test_env_var_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file = tmp_path / "custom.toml"
        config_file.write_text("")
        monkeypatch.setenv("WSCTL_CONFIG", str(config_file))
        assert find_config(tmp_path) == config_file

    def test_env_var_pointing_nowhere(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("")
        monkeypatch.setenv("WSCTL_CONFIG", str(tmp_path / "missing.toml"))
        assert find_config(tmp_path) is None


class TestFindProjectRoot:
    def test_nearest_manifest_with_workspaces(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text(json.dumps({"workspaces": ["packages/*"]}))
        pkg = tmp_path / "packages" / "ui"
        pkg.mkdir(parents=True)
        (pkg / "package.json").write_text(json.dumps({"name": "ui"}))
        assert find_project_root(pkg) == tmp_path

    def test_unreadable_manifest_is_skipped(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text(json.dumps({"workspaces": []}))
        pkg = tmp_path / "broken"
        pkg.mkdir()
        (pkg / "package.json").write_text("{oops")
        assert find_project_root(pkg) == tmp_path
