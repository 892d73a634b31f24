"""GraphService — dependency graph queries over workspaces.

Read-only algorithms via NetworkX computed on the lazy-built DiGraph.
Uses ``self._project.graph_engine`` to access the graph (triggers lazy build).
"""

from __future__ import annotations

import networkx as nx

from wsctl.infrastructure.project import ProjectLoadError
from wsctl.services.base import BaseService
from wsctl.services.result import ServiceResult
from wsctl.services.telemetry import traced


class GraphService(BaseService):
    """Handles graph queries over the workspace dependency graph."""

    @staticmethod
    def _load_failure(op: str, exc: ProjectLoadError) -> ServiceResult:
        detail = {"path": str(exc.path)} if exc.path else {}
        return ServiceResult.failure(op, exc.code, str(exc), detail=detail)

    @traced
    def order(self) -> ServiceResult:
        """List workspaces so that every workspace follows its local dependencies."""
        try:
            local = self._project.graph_engine.local_subgraph()
        except ProjectLoadError as exc:
            return self._load_failure("order", exc)

        try:
            # Edges point from consumer to dependency; reverse for build order.
            ordered = list(nx.lexicographical_topological_sort(local.reverse()))
        except nx.NetworkXUnfeasible:
            cycles = [sorted(c) for c in nx.simple_cycles(local)]
            return ServiceResult.failure(
                "order",
                "CYCLE",
                "Workspace dependencies contain a cycle",
                detail={"cycles": cycles},
            )

        return ServiceResult(
            ok=True,
            op="order",
            data={
                "count": len(ordered),
                "items": [{"name": n, "cwd": local.nodes[n]["cwd"]} for n in ordered],
            },
        )

    @traced
    def dependents(self, name: str) -> ServiceResult:
        """List workspaces declaring *name*, with the kinds and ranges used."""
        try:
            g = self._project.graph_engine.graph
        except ProjectLoadError as exc:
            return self._load_failure("dependents", exc)

        if name not in g:
            return ServiceResult(
                ok=True, op="dependents", data={"name": name, "count": 0, "items": []}
            )

        items = [
            {"workspace": src, "kind": kind, "range": rng}
            for src in sorted(g.predecessors(name))
            for kind, rng in g.edges[src, name]["kinds"].items()
        ]
        return ServiceResult(
            ok=True,
            op="dependents",
            data={"name": name, "count": len(items), "items": items},
        )

    @traced
    def cycles(self) -> ServiceResult:
        """Find dependency cycles between workspaces."""
        try:
            local = self._project.graph_engine.local_subgraph()
        except ProjectLoadError as exc:
            return self._load_failure("cycles", exc)

        found = sorted(sorted(c) for c in nx.simple_cycles(local))
        return ServiceResult(
            ok=True,
            op="cycles",
            data={"count": len(found), "items": found},
        )
