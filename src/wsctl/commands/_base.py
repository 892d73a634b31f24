"""Click base classes for wsctl commands.

Every command and group built from these classes accepts an ``examples``
keyword. When set, an eager ``--examples`` flag prints the dedented text
under a heading naming the full command path, then exits with status 0.
"""

from __future__ import annotations

import inspect
from typing import Any

import click


def render_examples(command_path: str, examples: str) -> str:
    """Format *examples* for display beneath a ``command_path`` heading."""
    body = inspect.cleandoc(examples)
    return f"Examples for '{command_path}':\n\n{body}\n"


class ExamplesMixin:
    """Adds the ``examples`` keyword and the ``--examples`` flag it backs."""

    params: list[click.Parameter]

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            self.params.append(
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    expose_value=False,
                    is_eager=True,
                    callback=self._print_examples,
                    help="Show usage examples.",
                )
            )

    def _print_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or not self.examples:
            return
        click.echo(render_examples(ctx.command_path, self.examples), nl=False)
        ctx.exit(0)


class WsCommand(ExamplesMixin, click.Command):
    """A leaf command with optional ``--examples``."""


class WsGroup(ExamplesMixin, click.Group):
    """A command group whose subcommands default to :class:`WsCommand`."""

    command_class = WsCommand
