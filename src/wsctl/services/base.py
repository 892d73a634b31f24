"""BaseService — foundation for all wsctl services.

Every service receives a :class:`Project` at construction time. The project
provides the workspace graph, the range algebra, manifest writes, and the
plugin manager.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from wsctl.infrastructure.project import Project

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes."""

    def __init__(self, project: Project) -> None:
        self._project = project

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> None:
        """Call plugin hook *hook_name*. No-op when plugins are disabled.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        plugins = self._project.plugins
        if plugins is None:
            return
        try:
            getattr(plugins.hook, hook_name)(**payload)
        except Exception:
            logger.debug("Plugin hook %s failed", hook_name, exc_info=True)
            warnings.append(f"Plugin hook {hook_name} failed")
