"""Closed numeric ranges of the LOCC outline.

A category such as ``QH359-425`` carries the range ``359-425`` and a call
number such as ``QH366`` carries the point range ``366``. During lookup two
ranges are treated as the same bucket when one contains the other, so a
query can land on the coarser range used elsewhere in the outline. That
relation is not transitive, so it lives in explicit functions rather than
in ``__eq__``/``__lt__``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

NUMBER_PATTERN = r"\d+(?:\.\d+)?"

_RANGE_RE = re.compile(rf"({NUMBER_PATTERN})-({NUMBER_PATTERN})")
_POINT_RE = re.compile(NUMBER_PATTERN)


@dataclass(frozen=True, slots=True)
class Range:
    """A closed interval ``[min, max]``."""

    min: float
    max: float

    def contains(self, other: Range) -> bool:
        return self.min <= other.min and other.max <= self.max

    def overlaps(self, other: Range) -> bool:
        return self.min <= other.max and other.min <= self.max

    @property
    def is_point(self) -> bool:
        return self.min == self.max

    def __str__(self) -> str:
        if self.is_point:
            return _format_number(self.min)
        return f"{_format_number(self.min)}-{_format_number(self.max)}"


def _format_number(value: float) -> str:
    return f"{value:g}" if value != int(value) else str(int(value))


def parse_range(text: str) -> Range | None:
    """Parse ``"<num>-<num>"`` or ``"<num>"``; None when it is neither."""
    text = text or ""
    m = _RANGE_RE.fullmatch(text)
    if m:
        lo, hi = float(m.group(1)), float(m.group(2))
        if lo > hi:
            return None
        return Range(lo, hi)
    if _POINT_RE.fullmatch(text):
        value = float(text)
        return Range(value, value)
    return None


def containment_equals(a: Range, b: Range) -> bool:
    """True iff one interval contains the other."""
    return a.contains(b) or b.contains(a)


def compare_ranges(a: Range, b: Range) -> int:
    """Containment-aware three-way comparison.

    Returns 0 for containment-equal ranges, otherwise orders by ``max`` and
    then by ``min``.
    """
    if containment_equals(a, b):
        return 0
    if a.max != b.max:
        return -1 if a.max < b.max else 1
    if a.min != b.min:
        return -1 if a.min < b.min else 1
    return 0


def range_sort_key(r: Range) -> tuple[float, float]:
    """Strict ordering key for listing sibling ranges."""
    return (r.min, r.max)
