"""
Semantic test: preview summary.

Invariant:
The preview summary reports audience totals, derived roles, control-group
labels and flow labels, and warns about overlapping segments, oversized
control groups and segments without offers.
"""

from __future__ import annotations

from campaign_topology.core.domain.draft import CampaignDraft
from campaign_topology.core.domain.types import CHAMPION_CHALLENGER, ROUND_ROBIN, SegmentRef
from campaign_topology.wizard.summary import print_draft_summary, summarize_draft


def test_flat_summary_and_warnings(capsys) -> None:
    draft = CampaignDraft(CHAMPION_CHALLENGER)
    draft.update_metadata({"name": "Spring"})
    draft.add_segments(
        [
            SegmentRef(id="s1", name="Gold", customer_count=100),
            SegmentRef(id="s2", name="Silver", customer_count=2000),
        ]
    )
    draft.set_control_group("s1", {"type": "with_control_group", "method": {"kind": "fixed_number", "count": 60}})
    draft.map_offers("s1", ["o1"])

    summary = summarize_draft(draft)

    assert summary.topology_name == "Champion Challenger"
    assert summary.total_audience == 2100
    assert summary.control_group_size == 60
    assert summary.target_size == 2040
    assert [(s.name, s.role) for s in summary.segments] == [("Gold", "champion"), ("Silver", "challenger")]
    assert summary.segments[0].control_group_label == "Fixed Number (60)"
    assert any("not mutually exclusive" in w for w in summary.warnings)
    assert any(w.startswith("Gold: control group withholds 60%") for w in summary.warnings)
    assert "Silver has no offers mapped" in summary.warnings
    assert 1 in summary.step_errors

    print_draft_summary(summary)
    out = capsys.readouterr().out
    assert "Topology: Champion Challenger" in out
    assert "1. Gold (champion)" in out
    assert "Warnings:" in out


def test_exclusive_segments_do_not_warn_about_overlap() -> None:
    draft = CampaignDraft(CHAMPION_CHALLENGER)
    draft.add_segments([SegmentRef(id="s1", name="Gold"), SegmentRef(id="s2", name="Silver")])
    draft.set_mutually_exclusive(True)

    assert not any("mutually exclusive" in w for w in summarize_draft(draft).warnings)


def test_sequential_flow_labels() -> None:
    draft = CampaignDraft(ROUND_ROBIN)
    draft.add_segments([SegmentRef(id="s1", name="Gold")])
    draft.append_step("o1", {"config_type": "interval", "unit": "days", "value": 2})
    draft.append_step("o2")

    summary = summarize_draft(draft)

    assert summary.flow == ["o1", "Wait 2 days", "o2"]
    assert summary.segments[0].offer_ids == ["o1", "o2"]
