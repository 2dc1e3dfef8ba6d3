"""
Semantic test: submission payload shape.

Invariant:
Flat topologies emit one mapping per (segment, offer) binding at priority 1.
Sequential topologies emit one mapping per step with priority equal to its
sequence order and the step payload attached.
"""

from __future__ import annotations

from campaign_topology.core.domain.draft import CampaignDraft
from campaign_topology.core.domain.types import (
    MULTIPLE_TARGET,
    ROUND_ROBIN,
    IntervalConfig,
    SegmentRef,
)
from campaign_topology.wizard.submission import (
    build_campaign_request,
    build_offer_mappings,
    build_segment_offer_rows,
)


def test_flat_bindings_use_priority_one() -> None:
    draft = CampaignDraft(MULTIPLE_TARGET)
    draft.add_segments([SegmentRef(id="s1", name="Gold"), SegmentRef(id="s2", name="Silver")])
    draft.map_offers("s1", ["o1", "o2"])
    draft.map_offers("s2", ["o1"])

    mappings = build_offer_mappings(draft)

    assert [(m.offer_id, m.segment_ids, m.priority) for m in mappings] == [
        ("o1", ["s1"], 1),
        ("o2", ["s1"], 1),
        ("o1", ["s2"], 1),
    ]
    assert all(m.step_config is None for m in mappings)


def test_sequential_steps_use_sequence_order() -> None:
    draft = CampaignDraft(ROUND_ROBIN)
    draft.add_segments([SegmentRef(id="s1", name="Gold")])
    draft.append_step("o1")
    draft.append_step("o2", IntervalConfig(unit="hours", value=12))
    draft.append_step("o3")

    rows = build_segment_offer_rows("cmp-1", draft)
    mappings = build_offer_mappings(draft)

    assert [(r.campaign_id, r.segment_id, r.offer_id, r.priority) for r in rows] == [
        ("cmp-1", "s1", "o1", 1),
        ("cmp-1", "s1", "o2", 2),
        ("cmp-1", "s1", "o3", 3),
    ]
    assert mappings[1].step_config == IntervalConfig(unit="hours", value=12)


def test_campaign_request_carries_topology_and_scheduling() -> None:
    draft = CampaignDraft(MULTIPLE_TARGET)
    draft.update_metadata({"name": "Spring", "category_id": 4, "start_date": "2026-04-01"})
    draft.add_segments([SegmentRef(id="s1", name="Gold", customer_count=100)])
    draft.set_mutually_exclusive(True)

    request = build_campaign_request(draft)

    assert request["name"] == "Spring"
    assert request["start_date"] == "2026-04-01"
    assert request["campaign_type"] == "multiple_target_group"
    assert request["is_mutually_exclusive"] is True
    assert request["scheduling"]["time_zone"] == "UTC"
    assert request["scheduling"]["delivery_times"] == ["09:00"]
    assert request["scheduling"]["frequency_capping"] == {"max_per_day": 1, "max_per_week": 3, "max_per_month": 10}
    assert request["scheduling"]["throttling"] == {"max_per_hour": 1000, "max_per_day": 10000}
    assert request["control_groups"] == {"s1": {"type": "none"}}
