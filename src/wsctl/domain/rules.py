"""Constraint rules over a workspace graph.

Each rule reads the graph through a :class:`ConstraintContext` and records
manifest assignments with :meth:`ConstraintContext.set`. Rules never observe
each other's assignments within a pass; the recorded mutations are what the
caller persists (or feeds into the next pass).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from wsctl.domain.ranges import is_patch_pinned, is_workspace_pinned
from wsctl.domain.requirements import aggregate_peer_requirements
from wsctl.domain.workspace import DependencyKind, Mutation, read_path

if TYPE_CHECKING:
    from wsctl.domain.ranges import RangeAlgebra
    from wsctl.domain.workspace import Workspace, WorkspaceGraph

logger = logging.getLogger(__name__)

PACK_SCRIPT_PLACEHOLDER = 'echo "TODO: add {script} script for the {ident} package" && exit 1'

DEFAULT_REQUIRED_SCRIPTS: dict[str, str] = {
    "pack-package": PACK_SCRIPT_PLACEHOLDER,
    "publish-packed-package": PACK_SCRIPT_PLACEHOLDER,
}


@dataclass(frozen=True)
class EnforceOptions:
    """Explicit inputs of an enforcement run.

    Attributes:
        version: When set, switches to version-stamping mode.
        debug_requirements: Log the aggregated peer requirements per workspace.
        config_prefixes: Root-relative directories holding configuration workspaces.
        required_scripts: Script name -> placeholder template for non-private workspaces.
        disabled_rules: Rule names to skip.
    """

    version: str | None = None
    debug_requirements: bool = False
    config_prefixes: tuple[str, ...] = ("configs",)
    required_scripts: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_REQUIRED_SCRIPTS)
    )
    disabled_rules: frozenset[str] = frozenset()


class ConstraintContext:
    """Per-pass view handed to every rule."""

    def __init__(
        self,
        graph: WorkspaceGraph,
        algebra: RangeAlgebra,
        options: EnforceOptions | None = None,
    ) -> None:
        self.graph = graph
        self.algebra = algebra
        self.options = options or EnforceOptions()
        self._mutations: dict[tuple[str, tuple[str, ...]], Mutation] = {}

    def set(self, workspace: Workspace, path: tuple[str, ...], value: str) -> None:
        """Record that *path* in *workspace*'s manifest must equal *value*.

        The last assignment to a path wins. Assigning the value already on
        disk cancels any earlier assignment to that path.
        """
        path = tuple(str(part) for part in path)
        key = (workspace.ident, path)
        previous = read_path(workspace.raw, path)
        if previous == value:
            self._mutations.pop(key, None)
            return
        self._mutations[key] = Mutation(
            workspace=workspace.ident,
            path=path,
            value=value,
            previous=previous,
        )

    @property
    def mutations(self) -> list[Mutation]:
        return list(self._mutations.values())


@dataclass(frozen=True)
class Rule:
    """A named constraint applied over the whole graph."""

    name: str
    apply: Callable[[ConstraintContext], None]
    description: str = ""


def rule(name: str) -> Callable[[Callable[[ConstraintContext], None]], Rule]:
    """Decorator turning ``func(ctx)`` into a :class:`Rule` named *name*."""

    def wrap(func: Callable[[ConstraintContext], None]) -> Rule:
        doc = (func.__doc__ or "").strip().splitlines()
        return Rule(name=name, apply=func, description=doc[0] if doc else "")

    return wrap


# ---------------------------------------------------------------------------
# Normal mode
# ---------------------------------------------------------------------------


@rule("peer_dependencies_listed")
def enforce_peer_dependencies_listed(ctx: ConstraintContext) -> None:
    """List the peer dependencies of every dependency in dependencies or peerDependencies."""
    algebra = ctx.algebra

    for workspace in ctx.graph:
        manifest = workspace.manifest
        requirements = aggregate_peer_requirements(
            workspace,
            ctx.graph,
            algebra,
            debug=ctx.options.debug_requirements,
        )

        for name, requirement in requirements.items():
            wanted = requirement.range

            if name in manifest.dependencies or (requirement.required and manifest.private):
                listed = manifest.dependencies.get(name)
                if listed is not None and is_patch_pinned(listed):
                    continue
                if listed is None or not algebra.is_subset(listed, wanted):
                    ctx.set(workspace, (DependencyKind.DEPENDENCIES, name), wanted)
                continue

            # Private packages never need peer declarations.
            if manifest.private:
                continue

            if requirement.required:
                listed = manifest.peer_dependencies.get(name)
                if listed is None or not algebra.is_subset(listed, wanted):
                    ctx.set(workspace, (DependencyKind.PEER_DEPENDENCIES, name), wanted)
                continue

            if algebra.is_wildcard(wanted):
                continue

            listed = manifest.peer_dependencies.get(name)
            if listed is None:
                listed = manifest.optional_peer_dependencies.get(name)
            if (
                listed is None
                or is_workspace_pinned(wanted)
                or not algebra.is_subset(listed, wanted)
            ):
                ctx.set(workspace, (DependencyKind.OPTIONAL_PEER_DEPENDENCIES, name), wanted)


@rule("dev_dependencies_satisfy_peers")
def enforce_dev_dependencies_satisfy_peers(ctx: ConstraintContext) -> None:
    """Keep development copies of peer dependencies inside the supported peer range."""
    for workspace in ctx.graph:
        manifest = workspace.manifest
        for name, peer_range in manifest.peer_dependencies.items():
            dev_range = manifest.dev_dependencies.get(name)
            if not dev_range or is_patch_pinned(dev_range):
                continue
            if not ctx.algebra.is_subset(dev_range, peer_range):
                ctx.set(workspace, (DependencyKind.DEV_DEPENDENCIES, name), peer_range)


def is_config_workspace(workspace: Workspace, prefixes: tuple[str, ...]) -> bool:
    """Whether *workspace* lives under one of the configuration directories."""
    for prefix in prefixes:
        prefix = prefix.strip("/")
        if workspace.cwd == prefix or workspace.cwd.startswith(f"{prefix}/"):
            return True
    return False


@rule("config_peers_matched")
def enforce_config_peers_matched(ctx: ConstraintContext) -> None:
    """Pin the peer dependencies of configuration workspaces in their consumers."""
    configs = [ws for ws in ctx.graph if is_config_workspace(ws, ctx.options.config_prefixes)]
    if not configs:
        return

    for workspace in ctx.graph:
        for kind in (DependencyKind.DEPENDENCIES, DependencyKind.DEV_DEPENDENCIES):
            declared = workspace.manifest.ranges(kind)
            if not declared:
                continue
            for config in configs:
                if config.ident == workspace.ident or config.ident not in declared:
                    continue
                for peer_name, peer_range in config.manifest.peer_dependencies.items():
                    ctx.set(workspace, (kind, peer_name), peer_range)


def render_script(template: str, script: str, ident: str) -> str:
    """Fill the {script} and {ident} placeholders, leaving other braces alone."""
    return template.replace("{script}", script).replace("{ident}", ident)


@rule("pack_scripts_present")
def enforce_pack_scripts_present(ctx: ConstraintContext) -> None:
    """Give every publishable workspace the scripts CI uses to pack and publish it."""
    for workspace in ctx.graph:
        if workspace.private:
            continue
        for script, template in ctx.options.required_scripts.items():
            if workspace.manifest.scripts.get(script):
                continue
            value = render_script(template, script, workspace.ident)
            ctx.set(workspace, ("scripts", script), value)


# ---------------------------------------------------------------------------
# Version mode
# ---------------------------------------------------------------------------


@rule("set_versions")
def set_versions(ctx: ConstraintContext) -> None:
    """Stamp the release version onto every non-private workspace."""
    version = ctx.options.version
    if not version:
        return
    for workspace in ctx.graph:
        if not workspace.private:
            ctx.set(workspace, ("version",), version)


CORE_RULES: tuple[Rule, ...] = (
    enforce_peer_dependencies_listed,
    enforce_dev_dependencies_satisfy_peers,
    enforce_config_peers_matched,
    enforce_pack_scripts_present,
)

VERSION_RULES: tuple[Rule, ...] = (set_versions,)
