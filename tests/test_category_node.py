"""Tests for locc_sampling.category_node."""
from __future__ import annotations

import random
from collections import Counter
from concurrent.futures import ThreadPoolExecutor

import pytest

from locc_sampling.category_node import (
    CategoryNode,
    LetterKey,
    RangeKey,
    allocate_draws,
    cumulative_distribution,
)
from locc_sampling.errors import RangeParseError, SampleTooLarge
from locc_sampling.ranges import Range


def _qh_branch() -> tuple[CategoryNode, CategoryNode]:
    root = CategoryNode()
    q = root.add_child("Q")
    qh = q.add_child("QH")
    natural = qh.add_child("QH1-278.5")
    natural.add_child("QH1-199.5")
    natural.add_child("QH201-278.5")
    biology = qh.add_child("QH301-705.5")
    biology.add_child("QH359-425")
    biology.add_child("QH426-470")
    return root, qh


def _populated_node() -> CategoryNode:
    """Ten own ids and children holding 20, 5 and 5 ids."""
    node = CategoryNode("Q1-100")
    for i in range(10):
        node.attach_id(f"a{i}")
    for label, prefix, size in (("Q1-10", "b", 20), ("Q11-20", "c", 5), ("Q21-30", "d", 5)):
        child = node.add_child(label)
        for i in range(size):
            child.attach_id(f"{prefix}{i}")
    return node


def test_node_parses_its_own_category() -> None:
    node = CategoryNode("QH1-278.5")
    assert node.letter_prefix == "QH"
    assert node.enclosing_range == Range(1.0, 278.5)
    assert str(node) == "QH1-278.5"

    letters = CategoryNode("QH")
    assert letters.letter_prefix == "QH"
    assert letters.enclosing_range is None

    root = CategoryNode()
    assert root.category is None
    assert root.letter_prefix is None


def test_node_rejects_malformed_range() -> None:
    with pytest.raises(RangeParseError):
        CategoryNode("QH5-1")


def test_add_child_tags_letter_and_range_steps() -> None:
    root, qh = _qh_branch()
    root_keys = [key for key, _ in root.child_items()]
    assert root_keys == [LetterKey("Q")]
    qh_keys = [key for key, _ in qh.child_items()]
    assert qh_keys == [RangeKey(Range(1.0, 278.5)), RangeKey(Range(301.0, 705.5))]


def test_add_child_without_a_step_is_rejected() -> None:
    q = CategoryNode("Q")
    with pytest.raises(ValueError, match="adds no step"):
        q.add_child("Q")


def test_find_parent_exact_matches() -> None:
    root, _ = _qh_branch()
    assert str(root.find_parent("Q")) == "Q"
    assert str(root.find_parent("QH")) == "QH"
    assert str(root.find_parent("QH1-278.5")) == "QH1-278.5"
    assert root.find_parent("QH1-278.5").children_count() == 2
    assert str(root.find_parent("QH426-470")) == "QH426-470"


def test_find_parent_falls_to_enclosing_leaf() -> None:
    root, _ = _qh_branch()
    assert str(root.find_parent("QH5")) == "QH1-199.5"
    assert str(root.find_parent("QH1")) == "QH1-199.5"
    assert str(root.find_parent("QH360")) == "QH359-425"


def test_find_parent_returns_lowest_known_ancestor() -> None:
    root, _ = _qh_branch()
    assert str(root.find_parent("QH332")) == "QH301-705.5"
    assert str(root.find_parent("QH200.5")) == "QH1-278.5"


def test_find_parent_outside_outline_is_none() -> None:
    root, _ = _qh_branch()
    assert root.find_parent("QH290") is None
    assert root.find_parent("QK5") is None
    assert root.find_parent("B5") is None
    assert root.find_parent("") is None


def test_find_parent_with_coarser_query_finds_finer_entry() -> None:
    qh = CategoryNode("QH")
    qh.add_child("QH201-278.5")
    # The outline entry is contained by the query range, so it is the same bucket.
    assert str(qh.find_parent("QH200-280")) == "QH201-278.5"
    root, _ = _qh_branch()
    assert str(root.find_parent("QH210-220")) == "QH201-278.5"


def test_find_parent_scans_every_candidate_with_same_letter() -> None:
    root = CategoryNode()
    first = root.add_child("K")
    first.add_child("KF")
    second = root.add_child("KZ")
    second.add_child("KZ1345-1369")
    assert str(root.find_parent("KZ1350")) == "KZ1345-1369"
    assert str(root.find_parent("KF")) == "KF"


def test_find_parent_malformed_query_raises() -> None:
    root, _ = _qh_branch()
    with pytest.raises(RangeParseError):
        root.find_parent("QH5A")


def test_match_range_accepts_explicit_comparator() -> None:
    _, qh = _qh_branch()
    strict = qh.match_range(Range(5.0, 5.0), compare=lambda a, b: 0 if a == b else 1)
    assert strict is None
    assert str(qh.match_range(Range(5.0, 5.0))) == "QH1-278.5"


def test_fallback_to_matched_child_when_descent_misses(monkeypatch: pytest.MonkeyPatch) -> None:
    _, qh = _qh_branch()
    matched = qh.match_range(Range(5.0, 5.0))
    assert matched is not None
    monkeypatch.setattr(matched, "find_parent", lambda query: None)
    assert qh.find_parent("QH5") is matched


def test_strict_miss_propagates_none(monkeypatch: pytest.MonkeyPatch) -> None:
    qh = CategoryNode("QH", strict_miss=True)
    natural = qh.add_child("QH1-278.5")
    natural.add_child("QH1-199.5")
    assert natural.strict_miss is True
    monkeypatch.setattr(natural, "find_parent", lambda query: None)
    assert qh.find_parent("QH5") is None


def test_children_lists_ranges_in_order() -> None:
    qh = CategoryNode("QH")
    qh.add_child("QH301-705.5")
    qh.add_child("QH1-278.5")
    assert [str(c) for c in qh.children] == ["QH1-278.5", "QH301-705.5"]


def test_id_count_is_invariant_under_shape() -> None:
    root, qh = _qh_branch()
    placements = ["QH5", "QH250", "QH300.5", "QH360", "QH430", "QH332", "QH"]
    attached = 0
    for pos, category in enumerate(placements):
        node = root.find_parent(category)
        if node is None:
            continue
        node.attach_id(f"v{pos}")
        attached += 1
    assert attached == 6
    assert root.id_count() == attached
    assert qh.id_count() == attached


def test_duplicate_ids_are_kept() -> None:
    node = CategoryNode("QH1-199.5")
    node.attach_id("v1")
    node.attach_id("v1")
    assert node.id_count() == 2


def test_sample_sizes_and_membership() -> None:
    node = _populated_node()
    population = Counter(node.own_ids)
    for child in node.children:
        population.update(child.own_ids)
    assert sum(population.values()) == 40

    for _ in range(50):
        drawn = node.sample(4)
        assert len(drawn) == 4
        counts = Counter(drawn)
        for volume_id, times in counts.items():
            assert times <= population[volume_id]


def test_sample_everything_returns_whole_subtree() -> None:
    node = _populated_node()
    drawn = node.sample(40)
    assert len(drawn) == 40
    assert len(set(drawn)) == 40


def test_sample_more_than_available_raises() -> None:
    node = _populated_node()
    with pytest.raises(SampleTooLarge) as exc_info:
        node.sample(41)
    assert exc_info.value.requested == 41
    assert exc_info.value.available == 40


def test_sample_zero_and_negative() -> None:
    assert _populated_node().sample(0) == []
    assert CategoryNode("Q").sample(0) == []
    with pytest.raises(ValueError):
        _populated_node().sample(-1)


def test_sample_never_overdraws_a_small_slot() -> None:
    node = CategoryNode("Q1-100")
    big = node.add_child("Q1-50")
    small = node.add_child("Q51-60")
    for i in range(95):
        big.attach_id(f"big{i}")
    small.attach_id("only")
    for seed in range(30):
        drawn = node.sample(96, rng=random.Random(seed))
        assert len(drawn) == 96
        assert drawn.count("only") == 1


def test_sample_is_reproducible_with_seeded_rng() -> None:
    node = _populated_node()
    first = node.sample(12, rng=random.Random(7))
    second = node.sample(12, rng=random.Random(7))
    assert first == second


def test_sample_does_not_mutate_node_ids() -> None:
    node = _populated_node()
    before = node.own_ids
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: node.sample(10), range(64)))
    assert node.own_ids == before
    assert all(len(r) == 10 and len(set(r)) == 10 for r in results)


def test_cumulative_distribution() -> None:
    cdf = cumulative_distribution([10, 20, 5, 5])
    assert cdf[0] == pytest.approx(0.25)
    assert cdf[1] == pytest.approx(0.75)
    assert cdf[-1] == pytest.approx(1.0)


def test_allocate_draws_skips_empty_slots() -> None:
    rng = random.Random(3)
    for _ in range(20):
        allocation = allocate_draws([0, 3, 0, 2], 4, rng)
        assert sum(allocation) == 4
        assert allocation[0] == 0
        assert allocation[2] == 0
        assert allocation[1] <= 3
        assert allocation[3] <= 2
    assert allocate_draws([0, 0], 0, rng) == [0, 0]
