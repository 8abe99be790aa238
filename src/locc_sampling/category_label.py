"""Category strings and the walk steps they decompose into.

A full category like ``QH359-425`` is resolved from the root one step at a
time: the letter steps ``Q`` and ``H`` and then the range step ``359-425``.
Each step is parsed relative to the letter prefix already matched by the
node doing the parsing.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from locc_sampling.errors import RangeParseError
from locc_sampling.ranges import NUMBER_PATTERN, Range, parse_range

log = logging.getLogger(__name__)

_RANGE_PATTERN = rf"{NUMBER_PATTERN}(?:-{NUMBER_PATTERN})?"

CATEGORY_RE = re.compile(rf"[A-Z]+{_RANGE_PATTERN}")
OUTLINE_ENTRY_RE = re.compile(rf"[A-Z]+(?:{_RANGE_PATTERN})?")
_LETTERS_RE = re.compile(r"[A-Z]+")


@dataclass(frozen=True, slots=True)
class CategoryLabel:
    """One walk step of a raw category string."""

    raw: str
    letter_part: str | None
    range: Range | None
    is_letter_step: bool


def validate_category_string(category: str) -> bool:
    """Check a call-number class such as ``QH366`` or ``QH43.23``."""
    return CATEGORY_RE.fullmatch(category or "") is not None


def validate_outline_entry(entry: str) -> bool:
    """Outline entries may also be bare letter classes (``Q``, ``QH``)."""
    return OUTLINE_ENTRY_RE.fullmatch(entry or "") is not None


def split_category(category: str) -> tuple[str, str]:
    """Split ``QH359-425`` into ``("QH", "359-425")``."""
    m = _LETTERS_RE.match(category or "")
    if not m:
        return "", category or ""
    return m.group(0), category[m.end():]


def parse_label(raw: str, ancestor_prefix: str | None = None) -> CategoryLabel:
    """Parse the next walk step of ``raw`` below ``ancestor_prefix``.

    Args:
        raw: Full category string being resolved.
        ancestor_prefix: Letter prefix already matched by the parsing node,
            or None at the root.

    Returns:
        A letter step holding exactly one uppercase character, or a range
        step holding the whole remainder as a Range.

    Raises:
        RangeParseError: The remainder is neither a letter nor a range.
    """
    rest = raw[len(ancestor_prefix):] if ancestor_prefix else raw
    if not rest:
        # Nothing left below the ancestor: a letter step no child can match.
        return CategoryLabel(raw=raw, letter_part="", range=None, is_letter_step=True)
    if "A" <= rest[0] <= "Z":
        return CategoryLabel(raw=raw, letter_part=rest[0], range=None, is_letter_step=True)

    parsed = parse_range(rest)
    if parsed is None:
        log.error("Fail to parse %s to range for %s", rest, raw)
        raise RangeParseError(rest, raw)
    return CategoryLabel(raw=raw, letter_part=None, range=parsed, is_letter_step=False)
