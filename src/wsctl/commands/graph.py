"""Command group: workspace dependency graph queries."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from wsctl.commands._base import WsGroup
from wsctl.services.graph import GraphService

if TYPE_CHECKING:
    from wsctl.commands._context import AppContext

_GRAPH_EXAMPLES = """\
  wsctl graph order
  wsctl graph dependents react
  wsctl graph cycles
  wsctl -q graph order"""


@click.group(cls=WsGroup, examples=_GRAPH_EXAMPLES)
@click.pass_obj
def graph(app: AppContext) -> None:
    """Inspect the dependency graph between workspaces."""


@graph.command(
    examples="""\
  wsctl graph order
  wsctl --json graph order"""
)
@click.pass_obj
def order(app: AppContext) -> None:
    """List workspaces with dependencies before their dependents."""
    app.emit(GraphService(app.project).order())


@graph.command(
    examples="""\
  wsctl graph dependents react
  wsctl graph dependents @acme/ui"""
)
@click.argument("name")
@click.pass_obj
def dependents(app: AppContext, name: str) -> None:
    """List workspaces that declare NAME in any dependency field."""
    app.emit(GraphService(app.project).dependents(name))


@graph.command(
    examples="""\
  wsctl graph cycles"""
)
@click.pass_obj
def cycles(app: AppContext) -> None:
    """Report dependency cycles between workspaces."""
    app.emit(GraphService(app.project).cycles())
