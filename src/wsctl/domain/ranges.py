"""Version range reconciliation.

Ranges are opaque strings in npm syntax (``^1.2.0``, ``>=2 <3 || 4.x``) plus
protocol-prefixed specifiers (``workspace:^``, ``patch:foo@...``). The engine
never parses them itself: set relations are answered by a
:class:`RangeAlgebra` oracle injected by the caller.
"""

from __future__ import annotations

from typing import Protocol

WORKSPACE_PROTOCOL = "workspace:"
PATCH_PROTOCOL = "patch:"
WILDCARD = "*"

_ALTERNATIVE = "||"


class MalformedRange(ValueError):
    """A range expression the algebra cannot parse."""

    def __init__(self, expression: str, reason: str = "") -> None:
        self.expression = expression
        self.reason = reason
        msg = f"Invalid version range {expression!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class RangeAlgebra(Protocol):
    """Set relations over version range expressions."""

    def is_subset(self, subset: str, superset: str) -> bool:
        """Whether every version satisfying *subset* also satisfies *superset*."""
        ...

    def is_wildcard(self, expression: str) -> bool:
        """Whether *expression* admits any version."""
        ...

    def validate(self, expression: str) -> None:
        """Raise :class:`MalformedRange` if *expression* is not a valid range."""
        ...


def is_workspace_pinned(expression: str) -> bool:
    """Whether *expression* pins the workspace-local copy of a package."""
    return expression.startswith(WORKSPACE_PROTOCOL)


def is_patch_pinned(expression: str) -> bool:
    """Whether *expression* resolves through a local patch."""
    return expression.startswith(PATCH_PROTOCOL)


def split_alternatives(expression: str) -> list[str]:
    """Split *expression* on ``||`` into trimmed alternatives."""
    return [part.strip() for part in expression.split(_ALTERNATIVE)]


def most_strict(current: str, incoming: str, algebra: RangeAlgebra) -> str:
    """Return the range that satisfies both *current* and *incoming*.

    A workspace-pinned *incoming* range always wins. Otherwise the narrower of
    the two is returned when one contains the other; when neither does, the
    conjunction is spelled out by pairing every alternative of *current* with
    every alternative of *incoming*. The result may be unsatisfiable; that is
    for the caller's algebra to discover when the range is applied.
    """
    if is_workspace_pinned(incoming):
        return incoming

    if algebra.is_subset(current, incoming):
        return current
    if algebra.is_subset(incoming, current):
        return incoming

    clauses = [
        " ".join(part for part in (left, right) if part)
        for left in split_alternatives(current)
        for right in split_alternatives(incoming)
    ]
    return f" {_ALTERNATIVE} ".join(clauses)
