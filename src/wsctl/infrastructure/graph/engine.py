"""GraphEngine — lazy-built NetworkX graph of workspace dependencies.

Rebuilt per invocation from the :class:`WorkspaceGraph`, no cross-invocation
cache. Commands that don't need graph operations never build it.

Nodes are package names. Workspaces carry ``local=True`` plus their ``cwd``
and ``private`` flag; declared external packages appear with ``local=False``.
An edge ``a -> b`` means *a* declares *b*; its ``kinds`` attribute maps each
manifest field declaring the dependency to the declared range.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeAlias

import networkx as nx

from wsctl.domain.workspace import DependencyKind

if TYPE_CHECKING:
    from wsctl.domain.workspace import WorkspaceGraph

_Graph: TypeAlias = nx.DiGraph


class GraphEngine:
    """Lazy-loading graph engine backed by a workspace graph."""

    def __init__(self, workspaces: WorkspaceGraph) -> None:
        self._workspaces = workspaces
        self._graph: _Graph | None = None

    @property
    def graph(self) -> _Graph:
        """Return the graph, building it on first access."""
        if self._graph is None:
            self._graph = self._build()
        return self._graph

    def local_subgraph(self) -> _Graph:
        """Return the subgraph induced by workspace nodes only."""
        g = self.graph
        return g.subgraph(n for n, local in g.nodes(data="local") if local)

    def _build(self) -> _Graph:
        g: _Graph = nx.DiGraph()
        for ws in self._workspaces:
            g.add_node(ws.ident, local=True, cwd=ws.cwd, private=ws.private)

        for ws in self._workspaces:
            for kind in DependencyKind:
                for name, rng in ws.manifest.ranges(kind).items():
                    if name == ws.ident:
                        continue
                    if name not in g:
                        g.add_node(name, local=False, cwd=None, private=False)
                    if g.has_edge(ws.ident, name):
                        g.edges[ws.ident, name]["kinds"][str(kind)] = rng
                    else:
                        g.add_edge(ws.ident, name, kinds={str(kind): rng})
        return g
