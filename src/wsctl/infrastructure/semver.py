"""npm range algebra backed by :mod:`semantic_version`.

``NpmSpec`` parses a range into a tree of ``AnyOf``/``AllOf``/``Range``
clauses. Subset checks flatten that tree into a union of version intervals
and test containment interval by interval. Bounds keep their pre-release
tags and order by semver precedence, so ``^18.0.0-rc.0`` is not within
``^18.0.0``. The clauses' per-range pre-release matching policy is not
modelled.

Protocol specifiers (``workspace:``, ``patch:``, ``npm:``, ``file:`` ...) are
not version ranges. They only equal themselves, except that a
``workspace:`` range is taken to satisfy any plain range, since the local
copy is what the package manager links.
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass

from semantic_version import NpmSpec, Version

# Clause classes are not re-exported at the top level; pinned below 3 in pyproject.
from semantic_version.base import AllOf, Always, AnyOf, Never, Range

from wsctl.domain.ranges import MalformedRange, is_workspace_pinned

_PROTOCOL = re.compile(r"^[a-z][a-z0-9+.-]*:", re.IGNORECASE)
_WILDCARDS = frozenset({"*", "", "x", "X"})
_FLOOR = Version("0.0.0")


@dataclass(frozen=True)
class _Interval:
    low: Version
    low_inclusive: bool
    high: Version | None  # None: unbounded
    high_inclusive: bool

    @property
    def empty(self) -> bool:
        if self.high is None:
            return False
        if self.low > self.high:
            return True
        return self.low == self.high and not (self.low_inclusive and self.high_inclusive)

    def intersect(self, other: _Interval) -> _Interval:
        if self.low > other.low:
            low, low_inc = self.low, self.low_inclusive
        elif other.low > self.low:
            low, low_inc = other.low, other.low_inclusive
        else:
            low, low_inc = self.low, self.low_inclusive and other.low_inclusive

        if self.high is None:
            high, high_inc = other.high, other.high_inclusive
        elif other.high is None or self.high < other.high:
            high, high_inc = self.high, self.high_inclusive
        elif other.high < self.high:
            high, high_inc = other.high, other.high_inclusive
        else:
            high, high_inc = self.high, self.high_inclusive and other.high_inclusive

        return _Interval(low, low_inc, high, high_inc)

    def contains(self, other: _Interval) -> bool:
        if other.low < self.low:
            return False
        if other.low == self.low and other.low_inclusive and not self.low_inclusive:
            return False
        if self.high is None:
            return True
        if other.high is None or other.high > self.high:
            return False
        return not (other.high == self.high and other.high_inclusive and not self.high_inclusive)

    def touches(self, other: _Interval) -> bool:
        """Whether *other*, starting at or after this one, overlaps or abuts it."""
        if self.high is None:
            return True
        if other.low < self.high:
            return True
        return other.low == self.high and (self.high_inclusive or other.low_inclusive)


_EVERYTHING = _Interval(_FLOOR, True, None, False)


def _range_intervals(clause: Range) -> list[_Interval]:
    target = clause.target.truncate("prerelease")
    op = clause.operator
    if op == Range.OP_EQ:
        return [_Interval(target, True, target, True)]
    if op == Range.OP_GT:
        return [_Interval(target, False, None, False)]
    if op == Range.OP_GTE:
        return [_Interval(target, True, None, False)]
    if op == Range.OP_LT:
        return [_Interval(_FLOOR, True, target, False)]
    if op == Range.OP_LTE:
        return [_Interval(_FLOOR, True, target, True)]
    # Range.OP_NEQ
    return [_Interval(_FLOOR, True, target, False), _Interval(target, False, None, False)]


def _intervals(clause: object) -> list[_Interval]:
    if isinstance(clause, Always):
        return [_EVERYTHING]
    if isinstance(clause, Never):
        return []
    if isinstance(clause, Range):
        return [i for i in _range_intervals(clause) if not i.empty]
    if isinstance(clause, AnyOf):
        return [i for sub in clause.clauses for i in _intervals(sub)]
    if isinstance(clause, AllOf):
        result = [_EVERYTHING]
        for sub in clause.clauses:
            parts = _intervals(sub)
            result = [a.intersect(b) for a in result for b in parts]
            result = [i for i in result if not i.empty]
        return result
    msg = f"Unsupported clause {clause!r}"
    raise TypeError(msg)


def _merge(intervals: list[_Interval]) -> list[_Interval]:
    """Sort and coalesce overlapping or adjacent intervals."""
    ordered = sorted(intervals, key=lambda i: (i.low, not i.low_inclusive))
    merged: list[_Interval] = []
    for interval in ordered:
        if merged and merged[-1].touches(interval):
            last = merged[-1]
            merged[-1] = _Interval(
                last.low,
                last.low_inclusive,
                *_upper_of(last, interval),
            )
        else:
            merged.append(interval)
    return merged


def _upper_of(a: _Interval, b: _Interval) -> tuple[Version | None, bool]:
    if a.high is None or b.high is None:
        return None, False
    if a.high > b.high:
        return a.high, a.high_inclusive
    if b.high > a.high:
        return b.high, b.high_inclusive
    return a.high, a.high_inclusive or b.high_inclusive


@functools.lru_cache(maxsize=2048)
def _parse(expression: str) -> tuple[_Interval, ...]:
    try:
        spec = NpmSpec(expression.strip())
    except ValueError as exc:
        raise MalformedRange(expression, str(exc)) from exc
    return tuple(_merge(_intervals(spec.clause)))


def _is_protocol(expression: str) -> bool:
    return bool(_PROTOCOL.match(expression.strip()))


class NpmRangeAlgebra:
    """:class:`~wsctl.domain.ranges.RangeAlgebra` for npm-style ranges."""

    def is_wildcard(self, expression: str) -> bool:
        return expression.strip() in _WILDCARDS

    def validate(self, expression: str) -> None:
        if not _is_protocol(expression):
            _parse(expression)

    def is_subset(self, subset: str, superset: str) -> bool:
        if subset.strip() == superset.strip():
            return True

        sub_protocol = _is_protocol(subset)
        super_protocol = _is_protocol(superset)
        if sub_protocol or super_protocol:
            return sub_protocol and not super_protocol and is_workspace_pinned(subset.strip())

        outer = _parse(superset)
        for interval in _parse(subset):
            if not any(candidate.contains(interval) for candidate in outer):
                return False
        return True
