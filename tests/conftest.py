"""Shared pytest fixtures and test helpers for wsctl tests."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Generator, Mapping
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from wsctl.config.settings import WsSettings
from wsctl.domain.workspace import Manifest, ResolvedPackage, Workspace, WorkspaceGraph
from wsctl.infrastructure.project import Project
from wsctl.services.telemetry import disable_telemetry

_ENV_VARS = (
    "WSCTL_CONFIG",
    "WSCTL_PACKAGES_VERSION",
    "WSCTL_DEBUG_REQUIREMENTS",
    "WSCTL_VERBOSE",
    "WSCTL_QUIET",
    "WSCTL_JSON_OUTPUT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the caller's WSCTL_* variables out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Undo handler and level changes made by CLI invocations."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    ws_level = logging.getLogger("wsctl").level
    yield
    root.handlers = handlers
    root.setLevel(level)
    logging.getLogger("wsctl").setLevel(ws_level)


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Generator[None]:
    """Verbose CLI runs enable telemetry for the rest of the thread."""
    yield
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


class WorkspaceFactory:
    """Writes a throw-away workspace project under a temporary directory."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def root(
        self, name: str = "monorepo", *, workspaces: Any = ("packages/*",), **fields: Any
    ) -> Path:
        data = {"name": name, "private": True, "workspaces": list(workspaces), **fields}
        return self._write(self.path, data)

    def package(self, cwd: str, name: str, **fields: Any) -> Path:
        return self._write(self.path / cwd, {"name": name, "version": "1.0.0", **fields})

    def installed(self, name: str, *, under: str = ".", **fields: Any) -> Path:
        """Place ``node_modules/<name>/package.json`` below *under*."""
        directory = self.path / under / "node_modules" / name
        return self._write(directory, {"name": name, "version": "1.0.0", **fields})

    def read(self, cwd: str = ".") -> dict[str, Any]:
        return json.loads((self.path / cwd / "package.json").read_text(encoding="utf-8"))

    @staticmethod
    def _write(directory: Path, data: dict[str, Any]) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / "package.json"
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        return path


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceFactory:
    """Empty project directory with a factory for manifests."""
    return WorkspaceFactory(tmp_path)


@pytest.fixture
def make_project(workspace: WorkspaceFactory) -> Callable[..., Project]:
    """Build a :class:`Project` over the factory's directory with optional settings."""

    def _make(**overrides: Any) -> Project:
        settings = WsSettings.from_cli(root=workspace.path, **overrides)
        return Project(settings)

    return _make


@pytest.fixture
def _isolated_project(workspace: WorkspaceFactory, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to the temp project root so the CLI discovers it.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command test
    classes.
    """
    monkeypatch.chdir(workspace.path)


# ---------------------------------------------------------------------------
# Shared test helpers (in-memory graphs for domain tests)
# ---------------------------------------------------------------------------


def make_workspace(name: str, cwd: str | None = None, **fields: Any) -> Workspace:
    """Build a workspace from manifest fields (camelCase keys)."""
    raw = {"name": name, **fields}
    return Workspace.from_raw(raw, cwd=cwd or f"packages/{name}", fallback_ident=name)


def make_graph(
    *workspaces: Workspace,
    external: Mapping[tuple[str, str], Mapping[str, Any]] | None = None,
) -> WorkspaceGraph:
    """Build a graph; *external* maps ``(consumer, dependency)`` to a manifest."""
    resolved = {
        key: ResolvedPackage.from_manifest(Manifest.model_validate(dict(data)), ident=key[1])
        for key, data in (external or {}).items()
    }
    return WorkspaceGraph(workspaces, resolved)


def mutation_map(mutations: list[Any]) -> dict[tuple[str, str], str]:
    """Index mutations as ``(workspace, "field.path") -> value``."""
    return {(m.workspace, m.field_name): m.value for m in mutations}


PACK_SCRIPTS = {"pack-package": "yarn pack", "publish-packed-package": "yarn npm publish"}


def write_peer_scenario(factory: WorkspaceFactory) -> None:
    """A publishable ``ui`` using ``lib``, whose installed copy peers on react ^18.

    One check pass finds ``ui.peerDependencies.react`` missing; fixing it
    also moves ``ui.devDependencies.react`` from ^17 into the peer range.
    """
    factory.root()
    factory.package(
        "packages/ui",
        "ui",
        scripts=PACK_SCRIPTS,
        dependencies={"lib": "^1.0.0"},
        devDependencies={"react": "^17.0.0"},
    )
    factory.installed("lib", peerDependencies={"react": "^18.0.0"})
