"""Tests for WsSettings — unified settings with TOML source."""

import json
from pathlib import Path

import click
import pytest

from wsctl.config.settings import WsSettings


class TestWsSettingsDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        """With no TOML and no env vars, all fields use code defaults."""
        settings = WsSettings.from_cli(root=tmp_path)
        assert settings.root == tmp_path
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.packages_version is None
        assert settings.debug_requirements is False
        assert settings.workspace.config_prefixes == ["configs"]
        assert settings.enforce.max_passes == 10
        assert settings.plugins.enabled is True

    def test_frozen(self, tmp_path: Path) -> None:
        settings = WsSettings.from_cli(root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        (tmp_path / "wsctl.toml").write_text(
            '[workspace]\nconfig_prefixes = ["tooling"]\n'
            '[enforce]\ndisabled_rules = ["pack_scripts_present"]\n'
        )
        settings = WsSettings.from_cli(root=tmp_path)
        assert settings.workspace.config_prefixes == ["tooling"]
        assert settings.enforce.disabled_rules == ["pack_scripts_present"]
        assert settings.enforce.max_passes == 10

    def test_top_level_keys(self, tmp_path: Path) -> None:
        (tmp_path / "wsctl.toml").write_text('packages_version = "3.0.0"\n')
        settings = WsSettings.from_cli(root=tmp_path)
        assert settings.packages_version == "3.0.0"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "wsctl.toml").write_text("[enforce\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            WsSettings.from_cli(root=tmp_path)

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom" / "my.toml"
        custom.parent.mkdir(parents=True)
        custom.write_text('[install]\ncommand = "yarn install"\n')
        settings = WsSettings.from_cli(config_path=str(custom), root=tmp_path)
        assert settings.install.command == "yarn install"
        assert settings.config_path == custom


class TestCliFlags:
    def test_cli_flags_override(self, tmp_path: Path) -> None:
        settings = WsSettings.from_cli(root=tmp_path, json_output=True, verbose=True)
        assert settings.json_output is True
        assert settings.verbose is True

    def test_cli_flags_override_toml(self, tmp_path: Path) -> None:
        (tmp_path / "wsctl.toml").write_text('packages_version = "1.0.0"\n')
        settings = WsSettings.from_cli(root=tmp_path, packages_version="2.0.0")
        assert settings.packages_version == "2.0.0"

    def test_none_flags_defer_to_lower_sources(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("WSCTL_QUIET", "true")
        settings = WsSettings.from_cli(root=tmp_path, quiet=None)
        assert settings.quiet is True


class TestRootResolution:
    def test_root_from_toml_location(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        subdir = tmp_path / "sub" / "deep"
        subdir.mkdir(parents=True)
        (tmp_path / "wsctl.toml").write_text("")
        monkeypatch.chdir(subdir)
        settings = WsSettings.from_cli()
        assert settings.root.resolve() == tmp_path.resolve()

    def test_root_from_workspaces_manifest(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "package.json").write_text(json.dumps({"workspaces": ["packages/*"]}))
        pkg = tmp_path / "packages" / "ui"
        pkg.mkdir(parents=True)
        monkeypatch.chdir(pkg)
        settings = WsSettings.from_cli()
        assert settings.root.resolve() == tmp_path.resolve()


class TestEnvVars:
    def test_env_var_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WSCTL_PACKAGES_VERSION", "4.1.0")
        settings = WsSettings.from_cli(root=tmp_path)
        assert settings.packages_version == "4.1.0"

    def test_nested_env_var_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WSCTL_ENFORCE__MAX_PASSES", "3")
        settings = WsSettings.from_cli(root=tmp_path)
        assert settings.enforce.max_passes == 3
