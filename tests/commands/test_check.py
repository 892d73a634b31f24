"""Tests for the check CLI command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from tests.conftest import WorkspaceFactory, write_peer_scenario
from wsctl.cli import cli


@pytest.mark.usefixtures("_isolated_project")
class TestCheckCommand:
    def test_clean_project(self, cli_runner: CliRunner, workspace: WorkspaceFactory) -> None:
        workspace.root()
        result = cli_runner.invoke(cli, ["check"])
        assert result.exit_code == 0
        assert "satisfy all constraints" in result.stdout

    def test_changes_needed_exit_1(
        self, cli_runner: CliRunner, workspace: WorkspaceFactory
    ) -> None:
        write_peer_scenario(workspace)
        result = cli_runner.invoke(cli, ["check"])
        assert result.exit_code == 1
        assert "peerDependencies.react" in result.stdout
        assert "peerDependencies" not in workspace.read("packages/ui")

    def test_json_output(self, cli_runner: CliRunner, workspace: WorkspaceFactory) -> None:
        write_peer_scenario(workspace)
        result = cli_runner.invoke(cli, ["--json", "check"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert data["op"] == "check"
        assert data["data"]["count"] == 1
        assert data["data"]["mutations"][0]["path"] == ["peerDependencies", "react"]

    def test_quiet_output(self, cli_runner: CliRunner, workspace: WorkspaceFactory) -> None:
        write_peer_scenario(workspace)
        result = cli_runner.invoke(cli, ["-q", "check"])
        assert result.stdout.strip() == "ui peerDependencies.react=^18.0.0"

    def test_fix_writes_manifests(
        self, cli_runner: CliRunner, workspace: WorkspaceFactory
    ) -> None:
        write_peer_scenario(workspace)
        result = cli_runner.invoke(cli, ["--json", "check", "--fix", "--no-install"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["op"] == "fix"
        assert data["data"]["files"] == ["packages/ui/package.json"]

        manifest = workspace.read("packages/ui")
        assert manifest["peerDependencies"] == {"react": "^18.0.0"}
        assert manifest["devDependencies"] == {"react": "^18.0.0"}

        again = cli_runner.invoke(cli, ["check"])
        assert again.exit_code == 0

    def test_set_version(self, cli_runner: CliRunner, workspace: WorkspaceFactory) -> None:
        write_peer_scenario(workspace)
        result = cli_runner.invoke(cli, ["check", "--set-version", "2.0.0", "--fix"])
        assert result.exit_code == 0
        assert workspace.read("packages/ui")["version"] == "2.0.0"
        assert "version" not in workspace.read()

    def test_set_version_check_only(
        self, cli_runner: CliRunner, workspace: WorkspaceFactory
    ) -> None:
        write_peer_scenario(workspace)
        result = cli_runner.invoke(cli, ["--json", "check", "--set-version", "2.0.0"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["data"]["mode"] == "version"
        assert workspace.read("packages/ui")["version"] == "1.0.0"

    def test_install_warning_goes_to_stderr(
        self, cli_runner: CliRunner, workspace: WorkspaceFactory
    ) -> None:
        write_peer_scenario(workspace)
        (workspace.path / "wsctl.toml").write_text(
            '[install]\ncommand = "definitely-not-a-real-installer"\n'
        )
        result = cli_runner.invoke(cli, ["check", "--fix"])
        assert result.exit_code == 0
        assert "WARNING: Install command failed to start" in result.stderr
        assert "WARNING" not in result.stdout

    def test_debug_requirements(self, cli_runner: CliRunner, workspace: WorkspaceFactory) -> None:
        write_peer_scenario(workspace)
        result = cli_runner.invoke(cli, ["check", "--debug-requirements"])
        assert result.exit_code == 1
        assert "Enforcing peer dependencies for ui" in result.stderr

    def test_unresolved_dependency(
        self, cli_runner: CliRunner, workspace: WorkspaceFactory
    ) -> None:
        workspace.root()
        workspace.package("packages/app", "app", private=True, dependencies={"ghost": "^1.0.0"})
        result = cli_runner.invoke(cli, ["--json", "check", "--fix"])
        assert result.exit_code == 1
        assert result.stdout == ""
        data = json.loads(result.stderr)
        assert data["error"]["code"] == "UNRESOLVED_DEPENDENCY"
        assert "peerDependencies" not in workspace.read("packages/app")


class TestCheckOutsideProject:
    def test_no_workspace(
        self, cli_runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ["check"])
        assert result.exit_code == 1
        assert "ERROR" in result.stderr
