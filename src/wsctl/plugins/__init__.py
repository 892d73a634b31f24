"""Plugin system: pluggy hook specifications and discovery.

Plugins implement hooks with :data:`hookimpl`::

    from wsctl.plugins import hookimpl

    class NoLodash:
        @hookimpl
        def register_rules(self):
            return [my_rule]
"""

from __future__ import annotations

import pluggy

hookimpl = pluggy.HookimplMarker("wsctl")

__all__ = ["hookimpl"]
