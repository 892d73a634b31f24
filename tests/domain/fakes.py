"""A toy range algebra over the integers 0-9.

``"2-5"`` admits 2..5, ``"3"`` admits 3, space-separated terms intersect,
``||`` unions, and ``*`` admits everything.
"""

from __future__ import annotations

from wsctl.domain.ranges import MalformedRange, split_alternatives

UNIVERSE = frozenset(range(10))


def admitted(expression: str) -> frozenset[int]:
    result: set[int] = set()
    for alternative in split_alternatives(expression):
        allowed = set(UNIVERSE)
        for term in alternative.split():
            allowed &= _term(expression, term)
        result |= allowed
    return frozenset(result)


def _term(expression: str, term: str) -> set[int]:
    if term == "*":
        return set(UNIVERSE)
    low, _, high = term.partition("-")
    if not low.isdigit() or (high and not high.isdigit()):
        raise MalformedRange(expression, f"bad term {term!r}")
    return set(range(int(low), int(high or low) + 1))


class FakeAlgebra:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def is_subset(self, subset: str, superset: str) -> bool:
        self.calls.append((subset, superset))
        if subset.startswith("workspace:") or superset.startswith("workspace:"):
            return subset == superset
        return admitted(subset) <= admitted(superset)

    def is_wildcard(self, expression: str) -> bool:
        return expression.strip() in ("*", "")

    def validate(self, expression: str) -> None:
        admitted(expression)
