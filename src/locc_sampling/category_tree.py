"""The LOCC category tree: outline construction, volume loading and queries.

The tree is built once from an outline, then volume ids are attached to the
node matching their call-number class, and from then on it only answers
``count`` and ``sample`` queries. There is no process-wide instance; the
caller constructs a tree and hands it to whatever serves queries.
"""
from __future__ import annotations

import logging
import random
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any

from locc_sampling.category_label import (
    split_category,
    validate_category_string,
    validate_outline_entry,
)
from locc_sampling.category_node import CategoryNode, LetterKey, RangeKey
from locc_sampling.errors import (
    CategoryNotFound,
    MalformedCategoryString,
    OverlappingRange,
    RangeParseError,
)
from locc_sampling.outline import DEFAULT_OUTLINE
from locc_sampling.ranges import parse_range

log = logging.getLogger(__name__)


@dataclass(slots=True)
class LoadStats:
    """Counters kept while the tree is built and loaded."""

    total_records: int = 0
    discarded_records: int = 0
    inserted_ids: int = 0
    skipped_outline_entries: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class CategoryTree:
    """Owns the root node and answers queries by category string.

    Args:
        outline: Ordered outline entries (pre-order). None builds the
            built-in outline.
        strict_miss: Lookup policy when a range match exists but its subtree
            cannot resolve the query. False falls back to the matched node,
            True reports the category as not found.
    """

    def __init__(
        self,
        outline: Iterable[str] | None = None,
        *,
        strict_miss: bool = False,
    ) -> None:
        self.root = CategoryNode(strict_miss=strict_miss)
        self.stats = LoadStats()
        self.build(DEFAULT_OUTLINE if outline is None else outline)

    # -- construction -----------------------------------------------------

    def build(self, entries: Iterable[str]) -> int:
        """Insert outline entries; returns how many were accepted.

        Malformed or partly overlapping entries are logged and counted, never
        fatal.
        """
        accepted = 0
        for entry in entries:
            try:
                self.add_category(entry)
            except (MalformedCategoryString, OverlappingRange, RangeParseError) as exc:
                log.error("Skipping outline entry %r: %s", entry, exc)
                self.stats.skipped_outline_entries += 1
                continue
            accepted += 1
        return accepted

    def add_category(self, entry: str) -> CategoryNode:
        """Insert one outline entry below its closest existing ancestor.

        Missing letter levels are created on the way down. A range entry
        descends through existing ranges that contain it; ranges already
        present that the new one contains are moved underneath it. A range that
        partly overlaps a sibling is rejected.
        """
        entry = entry.strip()
        if not validate_outline_entry(entry):
            raise MalformedCategoryString(entry)

        letters, range_text = split_category(entry)
        node = self.root
        for depth in range(1, len(letters) + 1):
            prefix = letters[:depth]
            node = _letter_child(node, prefix) or node.add_child(prefix)
        if not range_text:
            return node

        new_range = parse_range(range_text)
        if new_range is None:
            raise RangeParseError(range_text, entry)

        while True:
            enclosing: CategoryNode | None = None
            for key, child in node.child_items():
                if isinstance(key, RangeKey) and key.range.contains(new_range):
                    if key.range == new_range:
                        log.debug("Duplicate outline entry %s", entry)
                        return child
                    enclosing = child
                    break
            if enclosing is None:
                break
            node = enclosing

        for key, sibling in node.child_items():
            if (
                isinstance(key, RangeKey)
                and key.range.overlaps(new_range)
                and not new_range.contains(key.range)
            ):
                raise OverlappingRange(entry, str(sibling))

        created = node.add_child(entry)
        for key, sibling in node.child_items():
            if sibling is created or not isinstance(key, RangeKey):
                continue
            if new_range.contains(key.range):
                created.adopt_child(node.detach_child(sibling), sibling)
        return created

    def load_ids(self, records: Iterable[tuple[str, str]]) -> LoadStats:
        """Attach ``(category, volume_id)`` records to their nodes.

        Records with a malformed category or one outside the outline are
        discarded and counted.
        """
        for category, volume_id in records:
            self.stats.total_records += 1
            if not validate_category_string(category):
                log.debug("Discarding malformed category %r", category)
                self.stats.discarded_records += 1
                continue
            try:
                node = self.root.find_parent(category)
            except RangeParseError:
                node = None
            if node is None:
                log.warning("%s is not found!", category)
                self.stats.discarded_records += 1
                continue
            node.attach_id(volume_id)
            self.stats.inserted_ids += 1

        log.info(
            "Total #records: %d, #records discarded: %d, #id inserted: %d",
            self.stats.total_records,
            self.stats.discarded_records,
            self.stats.inserted_ids,
        )
        return self.stats

    def is_consistent(self) -> bool:
        """Every inserted id is reachable from the root."""
        return self.stats.inserted_ids == self.root.id_count()

    # -- queries ----------------------------------------------------------

    def find(self, category: str) -> CategoryNode:
        node = self.root.find_parent(category)
        if node is None:
            raise CategoryNotFound(category)
        return node

    def id_count(self) -> int:
        return self.root.id_count()

    def count(self, category: str) -> int:
        """Number of volumes under ``category``."""
        return self.find(category).id_count()

    def sample(
        self,
        category: str,
        k: int,
        *,
        rng: random.Random | None = None,
    ) -> list[str]:
        """Draw ``k`` volume ids from the subtree of ``category``.

        Raises:
            CategoryNotFound: ``category`` is outside the outline.
            SampleTooLarge: The subtree holds fewer than ``k`` volumes.
        """
        return self.find(category).sample(k, rng=rng)

    def describe(
        self,
        category: str | None = None,
        *,
        max_depth: int | None = None,
    ) -> dict[str, Any]:
        """JSON-ready summary of a subtree with per-node volume counts."""
        node = self.root if category is None else self.find(category)
        return _describe_node(node, depth=0, max_depth=max_depth)


def _letter_child(node: CategoryNode, prefix: str) -> CategoryNode | None:
    letter = prefix[-1]
    for key, child in node.child_items():
        if isinstance(key, LetterKey) and key.letter == letter and child.category == prefix:
            return child
    return None


def _describe_node(
    node: CategoryNode,
    *,
    depth: int,
    max_depth: int | None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "category": node.category,
        "count": node.id_count(),
        "own_ids": len(node.own_ids),
        "children_count": node.children_count(),
    }
    if max_depth is None or depth < max_depth:
        payload["children"] = [
            _describe_node(child, depth=depth + 1, max_depth=max_depth)
            for child in node.children
        ]
    return payload
