"""Constraint enforcer — runs the rule set and collects mutations.

Two mutually exclusive modes: version stamping when
:attr:`EnforceOptions.version` is set, otherwise the core rules followed by
any extra rules contributed by plugins.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from wsctl.domain.rules import CORE_RULES, VERSION_RULES, ConstraintContext, EnforceOptions, Rule
from wsctl.domain.workspace import Mutation, read_path

if TYPE_CHECKING:
    from wsctl.domain.ranges import RangeAlgebra
    from wsctl.domain.workspace import WorkspaceGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnforcementOutcome:
    """Result of iterating the rule set to a fixed point."""

    graph: WorkspaceGraph
    mutations: list[Mutation]
    passes: int
    converged: bool


def select_rules(options: EnforceOptions, extra_rules: Iterable[Rule] = ()) -> list[Rule]:
    """Return the rules to run, in order, for *options*."""
    if options.version:
        candidates: list[Rule] = list(VERSION_RULES)
    else:
        candidates = [*CORE_RULES, *extra_rules]
    return [r for r in candidates if r.name not in options.disabled_rules]


def enforce(
    graph: WorkspaceGraph,
    algebra: RangeAlgebra,
    options: EnforceOptions | None = None,
    *,
    extra_rules: Iterable[Rule] = (),
) -> list[Mutation]:
    """Run one pass of the rule set over *graph*.

    Raises:
        UnresolvedDependency: If a dependency cannot be resolved. No partial
            mutation list is returned.
    """
    options = options or EnforceOptions()
    ctx = ConstraintContext(graph, algebra, options)
    for constraint in select_rules(options, extra_rules):
        before = len(ctx.mutations)
        constraint.apply(ctx)
        logger.debug("Rule %s recorded %d mutations", constraint.name, len(ctx.mutations) - before)
    return ctx.mutations


def enforce_until_stable(
    graph: WorkspaceGraph,
    algebra: RangeAlgebra,
    options: EnforceOptions | None = None,
    *,
    extra_rules: Iterable[Rule] = (),
    max_passes: int = 10,
) -> EnforcementOutcome:
    """Re-run the rule set on the mutated graph until nothing changes.

    The returned mutations are net changes against *graph*: one per path,
    carrying the final value and the value originally on disk.
    """
    extra = list(extra_rules)
    pending: dict[tuple[str, tuple[str, ...]], Mutation] = {}
    current = graph

    for passes in range(1, max(1, max_passes) + 1):
        mutations = enforce(current, algebra, options, extra_rules=extra)
        if not mutations:
            return EnforcementOutcome(current, _net_changes(graph, pending), passes, True)
        for mutation in mutations:
            pending[mutation.key] = mutation
        current = current.apply(mutations)

    logger.warning("Constraints did not settle after %d passes", max_passes)
    return EnforcementOutcome(current, _net_changes(graph, pending), max_passes, False)


def _net_changes(
    original: WorkspaceGraph,
    pending: dict[tuple[str, tuple[str, ...]], Mutation],
) -> list[Mutation]:
    changes: list[Mutation] = []
    for mutation in pending.values():
        workspace = original.get(mutation.workspace)
        previous = read_path(workspace.raw, mutation.path) if workspace else None
        if previous == mutation.value:
            continue
        changes.append(replace(mutation, previous=previous))
    return changes
