"""Pluggy hook specifications for wsctl.

One setup-time hook lets plugins contribute constraint rules; one lifecycle
hook reports the outcome of every enforcement run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from wsctl.domain.rules import Rule

hookspec = pluggy.HookspecMarker("wsctl")


class WsctlHookSpec:
    """Hook specifications for the wsctl plugin system."""

    @hookspec
    def register_rules(self) -> list[Rule] | None:
        """Return extra rules to run after the core rules in normal mode."""

    @hookspec
    def post_enforce(
        self,
        workspaces_checked: int,
        mutations_found: int,
        fixed: bool,
    ) -> None:
        """Called after ``check`` finishes, with or without ``--fix``."""
