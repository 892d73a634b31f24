"""Subcommand modules for wsctl.

Provides register_commands() which uses deferred imports to keep
``wsctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group."""
    from wsctl.commands.check import check
    from wsctl.commands.explain import explain
    from wsctl.commands.graph import graph

    cli.add_command(check)
    cli.add_command(explain)
    cli.add_command(graph)
