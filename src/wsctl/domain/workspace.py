"""Workspace graph model — manifests, resolved packages, and mutations.

A :class:`WorkspaceGraph` is built once per run by the infrastructure layer
and treated as immutable while rules run over it. Rules never edit manifests
directly; they emit :class:`Mutation` records, and :meth:`WorkspaceGraph.apply`
produces the next graph when a caller iterates to a fixed point.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class DependencyKind(StrEnum):
    """Manifest categories holding ``name -> range`` mappings."""

    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "devDependencies"
    PEER_DEPENDENCIES = "peerDependencies"
    OPTIONAL_PEER_DEPENDENCIES = "optionalPeerDependencies"


# (kind, required) in the order peer requirements are collected.
PEER_KINDS: tuple[tuple[DependencyKind, bool], ...] = (
    (DependencyKind.PEER_DEPENDENCIES, True),
    (DependencyKind.OPTIONAL_PEER_DEPENDENCIES, False),
)


class UnresolvedDependency(LookupError):
    """A declared dependency has no matching package in the graph."""

    def __init__(self, workspace: str, dependency: str) -> None:
        self.workspace = workspace
        self.dependency = dependency
        super().__init__(
            f'Cannot find the dependency package "{dependency}" in the workspace '
            f'"{workspace}". Running the install command first might fix this issue.'
        )


class Manifest(BaseModel):
    """The parts of a ``package.json`` the constraint rules read."""

    model_config = {"frozen": True, "populate_by_name": True, "extra": "ignore"}

    name: str | None = None
    version: str | None = None
    private: bool = False
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict, alias="devDependencies")
    peer_dependencies: dict[str, str] = Field(default_factory=dict, alias="peerDependencies")
    optional_peer_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="optionalPeerDependencies"
    )
    peer_dependencies_meta: dict[str, dict[str, Any]] = Field(
        default_factory=dict, alias="peerDependenciesMeta"
    )
    scripts: dict[str, str] = Field(default_factory=dict)
    workspaces: list[str] = Field(default_factory=list)

    @field_validator("workspaces", mode="before")
    @classmethod
    def _normalize_workspaces(cls, value: Any) -> Any:
        # Yarn classic also accepts {"packages": [...], "nohoist": [...]}
        if isinstance(value, dict):
            return value.get("packages", [])
        return value

    def ranges(self, kind: DependencyKind) -> dict[str, str]:
        """Return the ``name -> range`` mapping for *kind*."""
        if kind is DependencyKind.DEPENDENCIES:
            return self.dependencies
        if kind is DependencyKind.DEV_DEPENDENCIES:
            return self.dev_dependencies
        if kind is DependencyKind.PEER_DEPENDENCIES:
            return self.peer_dependencies
        return self.optional_peer_dependencies

    def is_optional_peer(self, name: str) -> bool:
        """Whether ``peerDependenciesMeta`` marks *name* as optional."""
        return bool(self.peer_dependencies_meta.get(name, {}).get("optional"))


@dataclass(frozen=True)
class Workspace:
    """A workspace-local package whose manifest is available for inspection."""

    ident: str
    cwd: str  # root-relative POSIX path; "." for the root workspace
    manifest: Manifest
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_raw(cls, raw: dict[str, Any], *, cwd: str, fallback_ident: str) -> Workspace:
        manifest = Manifest.model_validate(raw)
        return cls(ident=manifest.name or fallback_ident, cwd=cwd, manifest=manifest, raw=raw)

    @property
    def private(self) -> bool:
        return self.manifest.private

    def with_mutations(self, mutations: Iterable[Mutation]) -> Workspace:
        """Return a copy of this workspace with *mutations* applied to its manifest."""
        raw = copy.deepcopy(self.raw)
        for mutation in mutations:
            mutation.apply(raw)
        return Workspace(
            ident=self.ident,
            cwd=self.cwd,
            manifest=Manifest.model_validate(raw),
            raw=raw,
        )


@dataclass(frozen=True)
class ResolvedPackage:
    """The concrete package a dependency name resolves to.

    ``peer_dependencies`` and ``optional_peer_dependencies`` are the package
    manager's view of the package. For workspace-local packages the raw
    manifest is reachable through ``workspace``.
    """

    ident: str
    version: str | None = None
    peer_dependencies: Mapping[str, str] = field(default_factory=dict)
    optional_peer_dependencies: Mapping[str, str] = field(default_factory=dict)
    workspace: Workspace | None = None

    @classmethod
    def from_workspace(cls, workspace: Workspace) -> ResolvedPackage:
        """Build the package-manager view of a workspace.

        Peer dependencies that the workspace also holds as a dependency or dev
        dependency are left out of the view, as the package manager does.
        """
        manifest = workspace.manifest
        held = manifest.dependencies.keys() | manifest.dev_dependencies.keys()
        return cls(
            ident=workspace.ident,
            version=manifest.version,
            peer_dependencies={
                name: rng for name, rng in manifest.peer_dependencies.items() if name not in held
            },
            optional_peer_dependencies={
                name: rng
                for name, rng in manifest.optional_peer_dependencies.items()
                if name not in held
            },
            workspace=workspace,
        )

    @classmethod
    def from_manifest(cls, manifest: Manifest, *, ident: str) -> ResolvedPackage:
        """Build the view of an installed (non-workspace) package."""
        required: dict[str, str] = {}
        optional: dict[str, str] = dict(manifest.optional_peer_dependencies)
        for name, rng in manifest.peer_dependencies.items():
            if manifest.is_optional_peer(name):
                optional.setdefault(name, rng)
            else:
                required[name] = rng
        return cls(
            ident=ident,
            version=manifest.version,
            peer_dependencies=required,
            optional_peer_dependencies=optional,
        )

    def ranges(self, kind: DependencyKind) -> Mapping[str, str]:
        if kind is DependencyKind.PEER_DEPENDENCIES:
            return self.peer_dependencies
        if kind is DependencyKind.OPTIONAL_PEER_DEPENDENCIES:
            return self.optional_peer_dependencies
        return {}


@dataclass(frozen=True)
class Mutation:
    """A pending assignment of *value* at *path* in a workspace manifest."""

    workspace: str
    path: tuple[str, ...]
    value: str
    previous: str | None = None

    @property
    def key(self) -> tuple[str, tuple[str, ...]]:
        return (self.workspace, self.path)

    @property
    def field_name(self) -> str:
        return ".".join(self.path)

    def apply(self, raw: dict[str, Any]) -> None:
        """Assign the value inside *raw*, creating intermediate mappings."""
        target = raw
        for key in self.path[:-1]:
            child = target.get(key)
            if not isinstance(child, dict):
                child = {}
                target[key] = child
            target = child
        target[self.path[-1]] = self.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "workspace": self.workspace,
            "path": list(self.path),
            "value": self.value,
            "previous": self.previous,
        }


def read_path(raw: Mapping[str, Any], path: tuple[str, ...]) -> str | None:
    """Return the string stored at *path* in *raw*, or None."""
    node: Any = raw
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node if isinstance(node, str) else None


class WorkspaceGraph:
    """All workspaces plus the resolution of their external dependencies.

    Workspace-local dependencies resolve by identity. Everything else is
    looked up in *external*, keyed by ``(consumer ident, dependency name)``.
    """

    def __init__(
        self,
        workspaces: Iterable[Workspace],
        external: Mapping[tuple[str, str], ResolvedPackage] | None = None,
    ) -> None:
        self._workspaces: dict[str, Workspace] = {ws.ident: ws for ws in workspaces}
        self._external: dict[tuple[str, str], ResolvedPackage] = dict(external or {})
        self._local_views: dict[str, ResolvedPackage] = {}

    def __iter__(self) -> Iterator[Workspace]:
        return iter(self._workspaces.values())

    def __len__(self) -> int:
        return len(self._workspaces)

    def __contains__(self, ident: object) -> bool:
        return ident in self._workspaces

    def get(self, ident: str) -> Workspace | None:
        return self._workspaces.get(ident)

    @property
    def external(self) -> Mapping[tuple[str, str], ResolvedPackage]:
        return self._external

    def is_local(self, workspace: Workspace, name: str) -> bool:
        """Whether *name*, as used by *workspace*, resolves to another workspace."""
        return name in self._workspaces and name != workspace.ident

    def resolve(self, workspace: Workspace, name: str) -> ResolvedPackage:
        """Resolve dependency *name* of *workspace*.

        Raises:
            UnresolvedDependency: If the graph has no package for *name*.
        """
        if self.is_local(workspace, name):
            view = self._local_views.get(name)
            if view is None:
                view = ResolvedPackage.from_workspace(self._workspaces[name])
                self._local_views[name] = view
            return view

        resolved = self._external.get((workspace.ident, name))
        if resolved is None:
            raise UnresolvedDependency(workspace.ident, name)
        return resolved

    def apply(self, mutations: Iterable[Mutation]) -> WorkspaceGraph:
        """Return a new graph with *mutations* applied to workspace manifests.

        A dependency added by a mutation has not been installed yet. It
        resolves to a known installation of the same name when one exists,
        otherwise to a package without peer dependencies.
        """
        grouped: dict[str, list[Mutation]] = {}
        external = dict(self._external)
        installed = {name: package for (_, name), package in self._external.items()}
        for mutation in mutations:
            grouped.setdefault(mutation.workspace, []).append(mutation)
            if len(mutation.path) != 2 or mutation.path[0] != DependencyKind.DEPENDENCIES:
                continue
            name = mutation.path[1]
            key = (mutation.workspace, name)
            if key not in external and name not in self._workspaces:
                external[key] = installed.get(name) or ResolvedPackage(ident=name)

        updated = [
            ws.with_mutations(grouped[ws.ident]) if ws.ident in grouped else ws
            for ws in self._workspaces.values()
        ]
        return WorkspaceGraph(updated, external)
