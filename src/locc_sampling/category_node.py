"""Trie-like node of the LOCC category tree.

The upper levels of the tree are single letters and the lower levels are
numeric ranges::

                Q
               /
             QH
           /    \\
      1-278.5  301-705.5
      /      \\
   1-199.5  201-278.5

Letter steps of a query behave like a trie. Range steps do not get dropped
as the search goes down: the query range is carried to the children and a
child matches when its range contains the query range or is contained by it.
Lookup therefore resolves to an exact outline entry or to the lowest known
node enclosing the query.
"""
from __future__ import annotations

import bisect
import logging
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from locc_sampling.category_label import parse_label, split_category
from locc_sampling.errors import RangeParseError, SampleTooLarge
from locc_sampling.ranges import (
    Range,
    compare_ranges,
    containment_equals,
    parse_range,
    range_sort_key,
)

log = logging.getLogger(__name__)

RangeComparator = Callable[[Range, Range], int]


@dataclass(frozen=True, slots=True)
class LetterKey:
    letter: str


@dataclass(frozen=True, slots=True)
class RangeKey:
    range: Range


ChildKey = LetterKey | RangeKey


class CategoryNode:
    """A category of the outline together with the volumes filed under it.

    Args:
        category: Full category string (``"QH"``, ``"QH1-278.5"``), or None
            for the root.
        strict_miss: When True, a range match whose subtree cannot resolve
            the query yields None instead of the matched node. Inherited by
            children created through ``add_child``.

    Raises:
        RangeParseError: The numeric part of ``category`` is malformed.
    """

    def __init__(self, category: str | None = None, *, strict_miss: bool = False) -> None:
        self.category = category
        self.strict_miss = strict_miss
        self.letter_prefix: str | None = None
        self.enclosing_range: Range | None = None
        self._children: list[tuple[ChildKey, CategoryNode]] = []
        self._ids: list[str] = []

        if category is not None:
            letters, suffix = split_category(category)
            if letters:
                self.letter_prefix = letters
            if suffix:
                self.enclosing_range = parse_range(suffix)
                if self.enclosing_range is None:
                    log.error("Fail to parse %s to range for %s", suffix, category)
                    raise RangeParseError(suffix, category)

    def __repr__(self) -> str:
        return f"CategoryNode({self.category!r})"

    def __str__(self) -> str:
        return self.category or ""

    # -- structure --------------------------------------------------------

    @property
    def has_children(self) -> bool:
        return bool(self._children)

    def children_count(self) -> int:
        return len(self._children)

    @property
    def children(self) -> list[CategoryNode]:
        """Letter children in insertion order, then range children by range."""
        letters = [child for key, child in self._children if isinstance(key, LetterKey)]
        ranged = sorted(
            ((key.range, child) for key, child in self._children if isinstance(key, RangeKey)),
            key=lambda pair: range_sort_key(pair[0]),
        )
        return letters + [child for _, child in ranged]

    def child_items(self) -> list[tuple[ChildKey, CategoryNode]]:
        return list(self._children)

    def add_child(self, raw_label: str) -> CategoryNode:
        """Create a child for ``raw_label`` and index it by its walk step."""
        label = parse_label(raw_label, self.letter_prefix)
        if label.is_letter_step and not label.letter_part:
            raise ValueError(f"{raw_label} adds no step below {self}")
        child = CategoryNode(raw_label, strict_miss=self.strict_miss)
        key: ChildKey
        if label.is_letter_step:
            key = LetterKey(str(label.letter_part))
        else:
            assert label.range is not None
            key = RangeKey(label.range)
        self._children.append((key, child))
        return child

    def detach_child(self, child: CategoryNode) -> ChildKey:
        """Remove ``child`` from this node and return the key it was indexed by."""
        for pos, (key, node) in enumerate(self._children):
            if node is child:
                del self._children[pos]
                return key
        raise ValueError(f"{child} is not a child of {self}")

    def adopt_child(self, key: ChildKey, child: CategoryNode) -> None:
        self._children.append((key, child))

    # -- lookup -----------------------------------------------------------

    def match_range(
        self,
        query: Range,
        *,
        compare: RangeComparator = compare_ranges,
    ) -> CategoryNode | None:
        """Single scan for a child range that ``compare`` rates equal to ``query``.

        An identical range wins over a merely containment-equal one.
        """
        found: CategoryNode | None = None
        for key, child in self._children:
            if not isinstance(key, RangeKey):
                continue
            if key.range == query:
                return child
            if found is None and compare(key.range, query) == 0:
                found = child
        return found

    def find_parent(self, query: str) -> CategoryNode | None:
        """Resolve ``query`` to the most specific node below this one.

        Returns the node whose category equals ``query``, else the lowest
        node whose letters or range enclose it, else None when the query
        falls outside the known outline.

        Raises:
            RangeParseError: The numeric part of ``query`` is malformed.
        """
        label = parse_label(query, self.letter_prefix)

        if label.is_letter_step:
            # The same letter may be indexed more than once; try them all.
            for key, child in self._children:
                if not isinstance(key, LetterKey) or key.letter != label.letter_part:
                    continue
                if child.category == query:
                    return child
                if child.letter_prefix and query.startswith(child.letter_prefix):
                    found = child.find_parent(query)
                    if found is not None:
                        return found
            return None

        assert label.range is not None
        match = self.match_range(label.range)
        if match is not None:
            if not match.has_children or match.category == query:
                return match
            found = match.find_parent(query)
            if found is not None:
                return found
            return None if self.strict_miss else match

        if self.enclosing_range is not None and containment_equals(
            self.enclosing_range, label.range
        ):
            return self
        return None

    # -- volumes ----------------------------------------------------------

    def attach_id(self, volume_id: str) -> None:
        self._ids.append(volume_id)

    @property
    def own_ids(self) -> tuple[str, ...]:
        return tuple(self._ids)

    def id_count(self) -> int:
        """Total number of ids in this subtree."""
        return len(self._ids) + sum(child.id_count() for _, child in self._children)

    def sample(self, k: int, *, rng: random.Random | None = None) -> list[str]:
        """Draw ``k`` ids from this subtree, stratified by the outline.

        Slot 0 holds this node's own ids and slot i holds child i's subtree.
        Each of the ``k`` draws picks a slot with probability proportional to
        its population, then every slot draws its share without replacement:
        own ids directly, children recursively.

        Raises:
            SampleTooLarge: The subtree holds fewer than ``k`` ids.
        """
        if k < 0:
            raise ValueError(f"Sample size must be >= 0, got {k}")
        rng = rng if rng is not None else random.Random()

        nodes = [child for _, child in self._children]
        populations = [len(self._ids)] + [child.id_count() for child in nodes]
        total = sum(populations)
        if total < k:
            raise SampleTooLarge(k, total)
        if k == 0:
            return []

        allocation = allocate_draws(populations, k, rng)
        log.debug("Samples: %s in %s", allocation, self)

        volumes: list[str] = []
        for child, share in zip(nodes, allocation[1:]):
            if share:
                volumes.extend(child.sample(share, rng=rng))
        if allocation[0]:
            # rng.sample draws from a copy; the shared id list stays untouched.
            volumes.extend(rng.sample(self._ids, allocation[0]))
        return volumes


def cumulative_distribution(weights: Sequence[int]) -> list[float]:
    """CDF over slots with probability mass proportional to ``weights``."""
    total = float(sum(weights))
    cdf: list[float] = []
    acc = 0.0
    for weight in weights:
        acc += weight / total
        cdf.append(acc)
    return cdf


def allocate_draws(populations: Sequence[int], k: int, rng: random.Random) -> list[int]:
    """Spread ``k`` draws over slots by inverse-transform sampling.

    Each draw binary-searches the CDF for the first slot whose cumulative
    mass exceeds a uniform number in ``[0, 1)``; empty slots never win. A
    slot that has received as many draws as it has ids drops out and the
    CDF is rebuilt over the slots still open.
    """
    if k > sum(populations):
        raise SampleTooLarge(k, sum(populations))
    allocation = [0] * len(populations)
    if k == 0:
        return allocation
    open_weights = list(populations)
    cdf = cumulative_distribution(open_weights)
    log.debug("CDF: %s", cdf)
    last_open = _last_open_slot(open_weights)

    for _ in range(k):
        slot = min(bisect.bisect_right(cdf, rng.random()), last_open)
        allocation[slot] += 1
        if allocation[slot] >= populations[slot]:
            open_weights[slot] = 0
            if any(open_weights):
                cdf = cumulative_distribution(open_weights)
                last_open = _last_open_slot(open_weights)
    return allocation


def _last_open_slot(weights: Sequence[int]) -> int:
    for pos in range(len(weights) - 1, -1, -1):
        if weights[pos] > 0:
            return pos
    return 0
