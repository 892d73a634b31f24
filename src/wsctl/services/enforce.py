"""EnforceService — check, fix, and explain workspace constraints.

``check`` runs a single pass and reports the mutations it would make.
``fix`` iterates the rules to a fixed point, writes the net changes back to
the manifests, and optionally runs the install command. ``explain`` shows the
aggregated peer requirements behind the rules for one workspace.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from wsctl.domain.enforcer import enforce, enforce_until_stable
from wsctl.domain.ranges import MalformedRange
from wsctl.domain.requirements import aggregate_peer_requirements
from wsctl.domain.rules import EnforceOptions
from wsctl.domain.workspace import UnresolvedDependency
from wsctl.infrastructure.project import ProjectLoadError
from wsctl.services.base import BaseService
from wsctl.services.result import ServiceResult
from wsctl.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from wsctl.config.settings import WsSettings
    from wsctl.domain.rules import Rule


def options_from_settings(settings: WsSettings) -> EnforceOptions:
    """Translate CLI/env/TOML settings into explicit engine options."""
    return EnforceOptions(
        version=settings.packages_version or None,
        debug_requirements=settings.debug_requirements,
        config_prefixes=tuple(settings.workspace.config_prefixes),
        required_scripts=dict(settings.scripts.required),
        disabled_rules=frozenset(settings.enforce.disabled_rules),
    )


_KnownError = UnresolvedDependency | MalformedRange | ProjectLoadError


def _failure(op: str, exc: _KnownError) -> ServiceResult:
    """Convert a known engine or loading error into a failed result."""
    if isinstance(exc, UnresolvedDependency):
        return ServiceResult.failure(
            op,
            "UNRESOLVED_DEPENDENCY",
            str(exc),
            detail={"workspace": exc.workspace, "dependency": exc.dependency},
        )
    if isinstance(exc, MalformedRange):
        return ServiceResult.failure(
            op, "MALFORMED_RANGE", str(exc), detail={"range": exc.expression}
        )
    detail = {"path": str(exc.path)} if exc.path else {}
    return ServiceResult.failure(op, exc.code, str(exc), detail=detail)


class EnforceService(BaseService):
    """Runs the constraint rules over the project's workspaces."""

    def _options(self) -> EnforceOptions:
        return options_from_settings(self._project.settings)

    def _extra_rules(self) -> list[Rule]:
        plugins = self._project.plugins
        if plugins is None:
            return []
        return plugins.collect_rules()

    @traced
    def check(self) -> ServiceResult:
        """Run one pass of the rules and report the mutations found."""
        warnings: list[str] = []
        options = self._options()
        try:
            graph = self._project.graph
            extra = self._extra_rules()
            with trace_span("enforce") as span:
                mutations = enforce(graph, self._project.algebra, options, extra_rules=extra)
                if span:
                    span.annotate("mutations", len(mutations))
        except (UnresolvedDependency, MalformedRange, ProjectLoadError) as exc:
            return _failure("check", exc)

        self._dispatch_event(
            "post_enforce",
            {
                "workspaces_checked": len(graph),
                "mutations_found": len(mutations),
                "fixed": False,
            },
            warnings,
        )
        return ServiceResult(
            ok=True,
            op="check",
            data={
                "mode": "version" if options.version else "constraints",
                "workspaces": len(graph),
                "count": len(mutations),
                "mutations": [m.to_dict() for m in mutations],
            },
            warnings=warnings,
        )

    @traced
    def fix(self, *, install: bool = True) -> ServiceResult:
        """Apply the rules until stable and write the changes to disk."""
        warnings: list[str] = []
        options = self._options()
        settings = self._project.settings
        try:
            graph = self._project.graph
            extra = self._extra_rules()
            with trace_span("enforce_until_stable") as span:
                outcome = enforce_until_stable(
                    graph,
                    self._project.algebra,
                    options,
                    extra_rules=extra,
                    max_passes=settings.enforce.max_passes,
                )
                if span:
                    span.annotate("passes", outcome.passes)
        except (UnresolvedDependency, MalformedRange, ProjectLoadError) as exc:
            return _failure("fix", exc)

        if not outcome.converged:
            warnings.append(
                f"Constraints did not settle after {outcome.passes} passes; "
                "run the fix again or check for conflicting rules"
            )

        with trace_span("write"):
            written = self._project.write_mutations(outcome.mutations)
        root = self._project.root.resolve()
        files = [path.resolve().relative_to(root).as_posix() for path in written]

        if install and written:
            with trace_span("install"):
                install_warning = self._project.run_install()
            if install_warning:
                warnings.append(install_warning)

        self._dispatch_event(
            "post_enforce",
            {
                "workspaces_checked": len(graph),
                "mutations_found": len(outcome.mutations),
                "fixed": True,
            },
            warnings,
        )
        return ServiceResult(
            ok=True,
            op="fix",
            data={
                "mode": "version" if options.version else "constraints",
                "count": len(outcome.mutations),
                "mutations": [m.to_dict() for m in outcome.mutations],
                "passes": outcome.passes,
                "converged": outcome.converged,
                "files": files,
            },
            warnings=warnings,
        )

    @traced
    def explain(self, ident: str) -> ServiceResult:
        """Show the aggregated peer requirements of workspace *ident*."""
        try:
            graph = self._project.graph
            workspace = graph.get(ident)
            if workspace is None:
                return ServiceResult.failure(
                    "explain",
                    "NOT_FOUND",
                    f"No workspace named {ident!r}",
                    detail={"available": sorted(ws.ident for ws in graph)},
                )
            requirements = aggregate_peer_requirements(
                workspace,
                graph,
                self._project.algebra,
                debug=self._project.settings.debug_requirements,
            )
        except (UnresolvedDependency, MalformedRange, ProjectLoadError) as exc:
            return _failure("explain", exc)

        return ServiceResult(
            ok=True,
            op="explain",
            data={
                "workspace": workspace.ident,
                "cwd": workspace.cwd,
                "private": workspace.private,
                "count": len(requirements),
                "requirements": [req.to_dict() for req in requirements.values()],
            },
        )
