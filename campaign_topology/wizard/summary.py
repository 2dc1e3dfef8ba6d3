from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List

from campaign_topology.core.domain.sequential import describe_step
from campaign_topology.core.domain.topology_rules import rule_for
from campaign_topology.core.domain.wizard_state_machine import step_name
from campaign_topology.core.validation.step_validator import validate_all

if TYPE_CHECKING:
    from campaign_topology.core.domain.draft import CampaignDraft


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SegmentLine:
    segment_id: str
    name: str
    priority: int
    role: str
    customer_count: int
    control_group_label: str
    control_group_size: int
    offer_ids: List[str]


@dataclass(frozen=True, slots=True)
class DraftSummary:
    draft_id: str
    campaign_name: str
    topology_name: str
    current_step: int
    total_audience: int
    control_group_size: int
    target_size: int
    segments: List[SegmentLine]
    flow: List[str]
    step_errors: dict[int, dict[str, str]]
    warnings: List[str]


# ---------------------------------------------------------------------------
# Summary builder
# ---------------------------------------------------------------------------

def summarize_draft(draft: CampaignDraft) -> DraftSummary:
    warnings: list[str] = []
    lines: list[SegmentLine] = []

    segments = draft.segments
    roles = draft.roles()
    overview = draft.audience_overview()

    if not segments:
        warnings.append("Campaign has no segments")

    if len(segments) > 1 and not any(s.is_mutually_exclusive for s in segments):
        warnings.append(
            f"{len(segments)} segments are not mutually exclusive; customers in several "
            "segments may receive more than one offer"
        )

    for segment in segments:
        size = draft.control_group_size(segment.id)
        offers = draft.offers_for(segment.id)

        if segment.customer_count and size > segment.customer_count / 2:
            warnings.append(
                f"{segment.name}: control group withholds {size / segment.customer_count:.0%} of the segment"
            )
        if not offers:
            warnings.append(f"{segment.name} has no offers mapped")

        lines.append(
            SegmentLine(
                segment_id=segment.id,
                name=segment.name,
                priority=segment.priority,
                role=roles[segment.id],
                customer_count=segment.customer_count,
                control_group_label=draft.control_group_label(segment.id),
                control_group_size=size,
                offer_ids=offers,
            )
        )

    flow: list[str] = []
    for step in draft.sequential_steps:
        flow.append(step.offer_id)
        if step.sequence_order < len(draft.sequential_steps):
            flow.append(describe_step(step))

    step_errors = {
        step: result.errors for step, result in validate_all(draft).items() if not result.is_valid
    }

    return DraftSummary(
        draft_id=draft.draft_id,
        campaign_name=draft.metadata.name,
        topology_name=rule_for(draft.topology).display_name,
        current_step=draft.current_step,
        total_audience=overview.total_audience,
        control_group_size=overview.control_group_size,
        target_size=overview.target_size,
        segments=lines,
        flow=flow,
        step_errors=step_errors,
        warnings=warnings,
    )


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

def print_draft_summary(summary: DraftSummary) -> None:
    print(f"Campaign: {summary.campaign_name or '(unnamed)'} [{summary.draft_id}]")
    print(f"Topology: {summary.topology_name}")
    print(f"Current step: {summary.current_step} ({step_name(summary.current_step)})")
    print(
        f"Audience: {summary.total_audience:,} total | "
        f"{summary.control_group_size:,} control | "
        f"{summary.target_size:,} target"
    )
    print()

    if summary.warnings:
        print("Warnings:")
        for w in summary.warnings:
            print(f"  - {w}")
        print()

    print("Segments:")
    for s in summary.segments:
        offers = ", ".join(s.offer_ids) if s.offer_ids else "-"
        print(
            f"  {s.priority}. {s.name} ({s.role}): "
            f"{s.customer_count:,} customers | "
            f"{s.control_group_label} = {s.control_group_size:,} | "
            f"offers: {offers}"
        )

    if summary.flow:
        print()
        print("Flow: " + " -> ".join(summary.flow))

    print()
    if not summary.step_errors:
        print("Validation: all steps valid")
        return

    print("Validation:")
    for step, errors in summary.step_errors.items():
        for field_name, message in errors.items():
            print(f"  - step {step} ({step_name(step)}) {field_name}: {message}")
