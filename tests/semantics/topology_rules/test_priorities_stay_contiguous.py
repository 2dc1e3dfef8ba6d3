"""
Semantic test: contiguous priorities.

Invariant:
For every topology, segment priorities form the contiguous range 1..N after
any sequence of add / remove / reorder, so their sum is N*(N+1)/2.
Removing a segment never changes the relative order of the others.
"""

from __future__ import annotations

import random

import pytest

from campaign_topology.core.domain.draft import CampaignDraft
from campaign_topology.core.domain.types import (
    AB_TEST,
    CHAMPION_CHALLENGER,
    MULTIPLE_LEVEL,
    MULTIPLE_TARGET,
    ROUND_ROBIN,
    SegmentRef,
)
from campaign_topology.core.errors import ConfigurationError
from campaign_topology.core.events.sinks.null_event_bus import NullEventBus


def assert_contiguous(draft: CampaignDraft) -> None:
    n = len(draft.segments)
    assert sum(s.priority for s in draft.segments) == n * (n + 1) // 2
    assert sorted(s.priority for s in draft.segments) == list(range(1, n + 1))
    assert draft.check_invariants() == []


@pytest.mark.parametrize(
    "topology",
    [MULTIPLE_TARGET, CHAMPION_CHALLENGER, AB_TEST, ROUND_ROBIN, MULTIPLE_LEVEL],
)
@pytest.mark.parametrize("seed", [1, 7, 42])
def test_random_add_remove_reorder_sequences(topology, seed: int) -> None:
    rng = random.Random(seed)
    draft = CampaignDraft(topology, event_bus=NullEventBus())
    next_id = 0

    for _ in range(60):
        op = rng.choice(["add", "add", "remove", "reorder"])
        ids = [s.id for s in draft.segments]

        if op == "add":
            batch = []
            for _ in range(rng.randint(1, 3)):
                batch.append(SegmentRef(id=f"s{next_id}", name=f"S{next_id}", customer_count=100))
                next_id += 1
            try:
                draft.add_segments(batch)
            except ConfigurationError:
                pass
        elif op == "remove" and ids:
            draft.remove_segment(rng.choice(ids))
        elif op == "reorder" and ids:
            rng.shuffle(ids)
            draft.reorder(ids)

        assert_contiguous(draft)


def test_remove_keeps_relative_order() -> None:
    draft = CampaignDraft(MULTIPLE_TARGET, event_bus=NullEventBus())
    draft.add_segments([SegmentRef(id=i, name=i) for i in ["a", "b", "c", "d"]])

    draft.remove_segment("b")

    assert [(s.id, s.priority) for s in draft.segments] == [("a", 1), ("c", 2), ("d", 3)]


def test_reorder_requires_permutation() -> None:
    draft = CampaignDraft(MULTIPLE_TARGET, event_bus=NullEventBus())
    draft.add_segments([SegmentRef(id=i, name=i) for i in ["a", "b"]])

    with pytest.raises(ConfigurationError):
        draft.reorder(["a"])
    with pytest.raises(ConfigurationError):
        draft.reorder(["a", "a"])
    with pytest.raises(ConfigurationError):
        draft.reorder(["a", "x"])

    assert [s.id for s in draft.segments] == ["a", "b"]
