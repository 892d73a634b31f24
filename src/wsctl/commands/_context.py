"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides lazy Project initialization and centralized
result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from wsctl.config.logging import configure_logging
from wsctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from wsctl.config.settings import WsSettings
    from wsctl.infrastructure.project import Project
    from wsctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The project is lazily initialized on first use so ``--help`` and
    ``--version`` never read manifests.
    """

    def __init__(self, settings: WsSettings) -> None:
        self.settings = settings
        self._project: Project | None = None
        self._configure()

        if settings.verbose:
            from wsctl.services.telemetry import enable_telemetry

            enable_telemetry()

    def _configure(self) -> None:
        configure_logging(
            verbose=self.settings.verbose,
            log_json=self.settings.log_json,
            diagnostics=self.settings.debug_requirements,
        )

    @property
    def project(self) -> Project:
        """The project instance (created lazily on first access)."""
        if self._project is None:
            from wsctl.infrastructure.project import Project

            self._project = Project(self.settings)
        return self._project

    def override(self, **updates: Any) -> None:
        """Apply command-level overrides; None values are ignored."""
        updates = {key: value for key, value in updates.items() if value is not None}
        if not updates:
            return
        self.settings = self.settings.model_copy(update=updates)
        self._project = None
        self._configure()

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
