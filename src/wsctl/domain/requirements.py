"""Peer requirement aggregation.

For one workspace, collects the peer and optional peer dependencies of every
direct dependency and folds duplicates into a single :class:`PeerRequirement`
per peer name. The result lives only for the duration of one pass.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from wsctl.domain.ranges import most_strict
from wsctl.domain.workspace import PEER_KINDS

if TYPE_CHECKING:
    from wsctl.domain.ranges import RangeAlgebra
    from wsctl.domain.workspace import Workspace, WorkspaceGraph

logger = logging.getLogger(__name__)


@dataclass
class PeerRequirement:
    """The merged ruling for one peer dependency of a workspace."""

    name: str
    required: bool
    range: str
    requested_by: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "required": self.required,
            "range": self.range,
            "requested_by": dict(self.requested_by),
        }


class _RequirementFolder:
    """Accumulates contributions into insertion-ordered requirements."""

    def __init__(self, algebra: RangeAlgebra) -> None:
        self._algebra = algebra
        self.requirements: dict[str, PeerRequirement] = {}

    def fold(self, name: str, requested: str, *, required: bool, requested_by: str) -> None:
        existing = self.requirements.get(name)
        merged = requested

        if existing is not None and existing.range:
            if self._algebra.is_wildcard(requested):
                merged = existing.range
            else:
                merged = most_strict(existing.range, requested, self._algebra)

        # An optional "any version" carries no constraint.
        if not required and self._algebra.is_wildcard(merged):
            return

        if existing is None:
            self.requirements[name] = PeerRequirement(
                name=name,
                required=required,
                range=merged,
                requested_by={requested_by: requested},
            )
            return

        existing.required = existing.required or required
        existing.range = merged
        existing.requested_by[requested_by] = requested


def aggregate_peer_requirements(
    workspace: Workspace,
    graph: WorkspaceGraph,
    algebra: RangeAlgebra,
    *,
    debug: bool = False,
) -> dict[str, PeerRequirement]:
    """Aggregate the peer requirements implied by *workspace*'s dependencies.

    Each dependency contributes the peer ranges of its package-manager view
    and, for workspace-local dependencies, those of its raw manifest as well,
    since workspaces may list a peer only in their own ``package.json`` when
    they also hold it as a regular dependency.

    Raises:
        UnresolvedDependency: If a dependency is missing from *graph*.
    """
    folder = _RequirementFolder(algebra)

    for dependency_name in workspace.manifest.dependencies:
        package = graph.resolve(workspace, dependency_name)

        for kind, required in PEER_KINDS:
            sources: list[Mapping[str, str]] = [package.ranges(kind)]
            if package.workspace is not None:
                sources.append(package.workspace.manifest.ranges(kind))

            for source in sources:
                for peer_name, requested in source.items():
                    folder.fold(
                        peer_name,
                        requested,
                        required=required,
                        requested_by=dependency_name,
                    )

    if debug:
        dump = {name: req.to_dict() for name, req in folder.requirements.items()}
        logger.info(
            "Enforcing peer dependencies for %s: %s",
            workspace.ident,
            json.dumps(dump, indent=2),
        )

    return folder.requirements
