"""Project — the single dependency injected into every service.

A project is a root ``package.json`` declaring ``workspaces`` plus the
package directories those globs match. The :class:`Project` owns manifest
loading, the derived :class:`WorkspaceGraph`, the dependency graph engine,
and the plugin manager. Everything is built lazily so ``--help`` and
``--version`` never touch the filesystem.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections import defaultdict
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from wsctl.domain.workspace import (
    DependencyKind,
    Manifest,
    Mutation,
    ResolvedPackage,
    Workspace,
    WorkspaceGraph,
)
from wsctl.infrastructure.filesystem import (
    MANIFEST_FILENAME,
    find_installed_manifest,
    find_workspace_dirs,
    read_manifest,
    write_manifest,
)
from wsctl.infrastructure.graph.engine import GraphEngine
from wsctl.infrastructure.semver import NpmRangeAlgebra

if TYPE_CHECKING:
    from wsctl.config.settings import WsSettings
    from wsctl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class ProjectLoadError(Exception):
    """The project's manifests could not be loaded."""

    def __init__(self, code: str, message: str, *, path: Path | None = None) -> None:
        self.code = code
        self.path = path
        super().__init__(message)


class Project:
    """Lazily loaded view of a workspace project rooted at ``settings.root``."""

    def __init__(self, settings: WsSettings) -> None:
        self._settings = settings
        self._graph: WorkspaceGraph | None = None
        self._graph_engine: GraphEngine | None = None
        self._plugins: PluginManager | None = None
        self._paths: dict[str, Path] = {}
        self.algebra = NpmRangeAlgebra()

    @property
    def root(self) -> Path:
        return self._settings.root

    @property
    def settings(self) -> WsSettings:
        return self._settings

    @property
    def graph(self) -> WorkspaceGraph:
        """The workspace graph, loaded from disk on first access.

        Raises:
            ProjectLoadError: ``NO_WORKSPACE`` or ``INVALID_MANIFEST``.
        """
        if self._graph is None:
            self._graph = self._load()
        return self._graph

    @property
    def graph_engine(self) -> GraphEngine:
        if self._graph_engine is None:
            self._graph_engine = GraphEngine(self.graph)
        return self._graph_engine

    @property
    def plugins(self) -> PluginManager | None:
        """The plugin manager, or None when plugins are disabled."""
        if not self._settings.plugins.enabled:
            return None
        if self._plugins is None:
            from wsctl.plugins.manager import PluginManager

            pm = PluginManager()
            pm.discover_and_load(local_dir=self.root / self._settings.plugins.local_dir)
            self._plugins = pm
        return self._plugins

    def manifest_path(self, ident: str) -> Path:
        """Return the ``package.json`` path of workspace *ident*."""
        if self._graph is None:
            self._graph = self._load()
        return self._paths[ident]

    def invalidate(self) -> None:
        """Drop cached state so the next access re-reads the manifests."""
        self._graph = None
        self._graph_engine = None
        self._paths = {}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def write_mutations(self, mutations: Iterable[Mutation]) -> list[Path]:
        """Persist *mutations*, one write per touched manifest.

        Each manifest is re-read from disk before the mutations are applied,
        so keys added since loading are kept. Returns the written paths.
        """
        grouped: dict[str, list[Mutation]] = defaultdict(list)
        for mutation in mutations:
            grouped[mutation.workspace].append(mutation)

        written: list[Path] = []
        for ident, changes in grouped.items():
            path = self.manifest_path(ident)
            data = read_manifest(path)
            for mutation in changes:
                mutation.apply(data)
            write_manifest(path, data)
            logger.debug("Wrote %d change(s) to %s", len(changes), path)
            written.append(path)

        self.invalidate()
        return written

    def run_install(self) -> str | None:
        """Run the configured install command from the project root.

        Returns a warning message on failure, None on success or when no
        command is configured.
        """
        command = self._settings.install.command.strip()
        if not command:
            return None
        logger.debug("Running install command: %s", command)
        try:
            proc = subprocess.run(
                shlex.split(command),
                cwd=self.root,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            return f"Install command failed to start: {exc}"
        if proc.returncode != 0:
            tail = (proc.stderr or proc.stdout).strip().splitlines()[-1:]
            detail = f": {tail[0]}" if tail else ""
            return f"Install command exited with status {proc.returncode}{detail}"
        return None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _read(self, path: Path) -> dict[str, Any]:
        try:
            return read_manifest(path)
        except (OSError, ValueError) as exc:
            raise ProjectLoadError(
                "INVALID_MANIFEST", f"Cannot read {path}: {exc}", path=path
            ) from exc

    def _load(self) -> WorkspaceGraph:
        root = self.root.resolve()
        root_manifest = root / MANIFEST_FILENAME
        if not root_manifest.is_file():
            raise ProjectLoadError(
                "NO_WORKSPACE", f"No {MANIFEST_FILENAME} found in {root}", path=root_manifest
            )

        root_raw = self._read(root_manifest)
        try:
            patterns = Manifest.model_validate(root_raw).workspaces
        except ValueError as exc:
            raise ProjectLoadError(
                "INVALID_MANIFEST", f"Invalid manifest {root_manifest}: {exc}", path=root_manifest
            ) from exc

        workspaces: list[Workspace] = []
        paths: dict[str, Path] = {}
        dirs = [root, *(d for d in find_workspace_dirs(root, patterns) if d != root)]
        for directory in dirs:
            path = directory / MANIFEST_FILENAME
            raw = root_raw if directory == root else self._read(path)
            cwd = directory.relative_to(root).as_posix() if directory != root else "."
            try:
                workspace = Workspace.from_raw(raw, cwd=cwd, fallback_ident=directory.name)
            except ValueError as exc:
                raise ProjectLoadError(
                    "INVALID_MANIFEST", f"Invalid manifest {path}: {exc}", path=path
                ) from exc
            if workspace.ident in paths:
                logger.warning(
                    "Skipping %s: workspace name %s already used by %s",
                    cwd,
                    workspace.ident,
                    paths[workspace.ident],
                )
                continue
            paths[workspace.ident] = path
            workspaces.append(workspace)

        external = self._resolve_external(root, workspaces, set(paths))
        self._paths = paths
        logger.debug("Loaded %d workspaces from %s", len(workspaces), root)
        return WorkspaceGraph(workspaces, external)

    def _resolve_external(
        self,
        root: Path,
        workspaces: list[Workspace],
        local: set[str],
    ) -> dict[tuple[str, str], ResolvedPackage]:
        """Resolve the non-local packages each workspace declares through node_modules.

        Every dependency field is resolved, not just ``dependencies``, so a
        package a fix moves between fields keeps its installed view.
        """
        resolved: dict[tuple[str, str], ResolvedPackage] = {}
        cache: dict[Path, ResolvedPackage] = {}
        for workspace in workspaces:
            start = root / workspace.cwd
            names = dict.fromkeys(
                name for kind in DependencyKind for name in workspace.manifest.ranges(kind)
            )
            for name in names:
                if name in local and name != workspace.ident:
                    continue
                path = find_installed_manifest(start, root, name)
                if path is None:
                    continue
                package = cache.get(path)
                if package is None:
                    try:
                        manifest = Manifest.model_validate(read_manifest(path))
                    except (OSError, ValueError) as exc:
                        msg = f"Invalid installed manifest {path} for {workspace.ident}: {exc}"
                        raise ProjectLoadError("INVALID_MANIFEST", msg, path=path) from exc
                    package = ResolvedPackage.from_manifest(manifest, ident=name)
                    cache[path] = package
                resolved[(workspace.ident, name)] = package
        return resolved
