"""Tests for the graph command group."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from tests.conftest import WorkspaceFactory
from wsctl.cli import cli


def _chain(workspace: WorkspaceFactory) -> None:
    workspace.root()
    workspace.package("packages/core", "core")
    workspace.package("packages/ui", "ui", dependencies={"core": "workspace:^"})


@pytest.mark.usefixtures("_isolated_project")
class TestGraphCommands:
    def test_order(self, cli_runner: CliRunner, workspace: WorkspaceFactory) -> None:
        _chain(workspace)
        result = cli_runner.invoke(cli, ["-q", "graph", "order"])
        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["core", "monorepo", "ui"]

    def test_order_cycle_fails(self, cli_runner: CliRunner, workspace: WorkspaceFactory) -> None:
        workspace.root()
        workspace.package("packages/a", "a", dependencies={"b": "workspace:^"})
        workspace.package("packages/b", "b", dependencies={"a": "workspace:^"})
        result = cli_runner.invoke(cli, ["--json", "graph", "order"])
        assert result.exit_code == 1
        assert json.loads(result.stderr)["error"]["code"] == "CYCLE"

    def test_dependents(self, cli_runner: CliRunner, workspace: WorkspaceFactory) -> None:
        _chain(workspace)
        result = cli_runner.invoke(cli, ["--json", "graph", "dependents", "core"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["data"]["items"] == [
            {"workspace": "ui", "kind": "dependencies", "range": "workspace:^"}
        ]

    def test_cycles(self, cli_runner: CliRunner, workspace: WorkspaceFactory) -> None:
        _chain(workspace)
        result = cli_runner.invoke(cli, ["graph", "cycles"])
        assert result.exit_code == 0
        assert "No dependency cycles." in result.stdout

    def test_group_without_subcommand_shows_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["graph"])
        assert "order" in result.output
        assert "dependents" in result.output
