"""Command: show the peer requirements behind a workspace's constraints."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from wsctl.commands._base import WsCommand

if TYPE_CHECKING:
    from wsctl.commands._context import AppContext


@click.command(
    cls=WsCommand,
    examples="""\
  wsctl explain @acme/app
  wsctl --json explain @acme/ui""",
)
@click.argument("workspace")
@click.pass_obj
def explain(app: AppContext, workspace: str) -> None:
    """List the peer dependencies WORKSPACE inherits from its dependencies."""
    from wsctl.services.enforce import EnforceService

    app.emit(EnforceService(app.project).explain(workspace))
