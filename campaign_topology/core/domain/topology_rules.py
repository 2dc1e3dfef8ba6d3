"""Topology rules table.

Static mapping from campaign topology to segment-cardinality constraints,
offer-binding style and role assignment. Everything here is pure: the draft
consults the table and applies the outcome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal, Sequence

from campaign_topology.core.domain.reject_reasons import RejectReason
from campaign_topology.core.domain.types import (
    AB_TEST,
    CHAMPION_CHALLENGER,
    MULTIPLE_LEVEL,
    MULTIPLE_TARGET,
    ROUND_ROBIN,
    SegmentRef,
    SegmentRole,
    TopologyType,
)

BindingStyle = Literal["flat", "sequential"]


@dataclass(frozen=True, slots=True)
class TopologyRule:
    """Cardinality and binding rules for one topology.

    - max_segments: hard cap enforced when adding (None = unbounded)
    - exact_segments: cardinality the audience step requires (None = at least one)
    - replaces_on_add: adding a segment discards the current one (last wins)
    - step_config_type: payload variant of sequential steps (None for flat)
    """

    topology: TopologyType
    display_name: str
    binding: BindingStyle
    max_segments: int | None
    exact_segments: int | None
    replaces_on_add: bool
    step_config_type: Literal["interval", "condition"] | None


TOPOLOGY_RULES: dict[TopologyType, TopologyRule] = {
    MULTIPLE_TARGET: TopologyRule(
        topology=MULTIPLE_TARGET,
        display_name="Multiple Target Groups",
        binding="flat",
        max_segments=None,
        exact_segments=None,
        replaces_on_add=False,
        step_config_type=None,
    ),
    CHAMPION_CHALLENGER: TopologyRule(
        topology=CHAMPION_CHALLENGER,
        display_name="Champion Challenger",
        binding="flat",
        max_segments=None,
        exact_segments=None,
        replaces_on_add=False,
        step_config_type=None,
    ),
    AB_TEST: TopologyRule(
        topology=AB_TEST,
        display_name="A/B Test",
        binding="flat",
        max_segments=2,
        exact_segments=2,
        replaces_on_add=False,
        step_config_type=None,
    ),
    ROUND_ROBIN: TopologyRule(
        topology=ROUND_ROBIN,
        display_name="Round Robin",
        binding="sequential",
        max_segments=1,
        exact_segments=1,
        replaces_on_add=True,
        step_config_type="interval",
    ),
    MULTIPLE_LEVEL: TopologyRule(
        topology=MULTIPLE_LEVEL,
        display_name="Multiple Level",
        binding="sequential",
        max_segments=1,
        exact_segments=1,
        replaces_on_add=True,
        step_config_type="condition",
    ),
}


def rule_for(topology: TopologyType) -> TopologyRule:
    """Return the rule row for a topology."""
    return TOPOLOGY_RULES[topology]


def is_sequential(topology: TopologyType) -> bool:
    return TOPOLOGY_RULES[topology].binding == "sequential"


# ---------------------------------------------------------------------------
# Role derivation
# ---------------------------------------------------------------------------


def derive_role(topology: TopologyType, priority: int) -> SegmentRole:
    """Compute the role of a segment from topology and priority.

    Roles are never stored on segments, so a champion flag can never
    disagree with the priority ordering.
    """
    if topology == CHAMPION_CHALLENGER:
        return "champion" if priority == 1 else "challenger"
    if topology == AB_TEST:
        if priority == 1:
            return "variant_a"
        if priority == 2:
            return "variant_b"
        return "member"
    if topology == MULTIPLE_TARGET:
        return "target"
    return "member"


# ---------------------------------------------------------------------------
# Add-segment outcomes
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class AcceptedSegments:
    """Outcome of an accepted add.

    - segments: the complete new segment list (priorities assigned)
    - added: the incoming segments that made it into the list
    - dropped: incoming segments silently truncated away (A/B test capacity)
    - replaced: current segments discarded by last-wins replacement
    """

    segments: list[SegmentRef]
    added: list[SegmentRef]
    dropped: list[SegmentRef] = field(default_factory=list)
    replaced: list[SegmentRef] = field(default_factory=list)


@dataclass(slots=True)
class Rejection:
    reason: str
    message: str


def _dedupe_incoming(
    current: Sequence[SegmentRef],
    incoming: Iterable[SegmentRef],
) -> list[SegmentRef]:
    seen = {s.id for s in current}
    fresh: list[SegmentRef] = []
    for segment in incoming:
        if segment.id in seen:
            continue
        seen.add(segment.id)
        fresh.append(segment)
    return fresh


def _with_priority(segment: SegmentRef, priority: int) -> SegmentRef:
    return segment.model_copy(update={"priority": priority})


def validate_add_segment(
    topology: TopologyType,
    current_segments: Sequence[SegmentRef],
    incoming: Sequence[SegmentRef],
) -> AcceptedSegments | Rejection:
    """Apply the topology's add rules to an incoming selection.

    - A/B test: incoming is truncated to the remaining capacity (2 - current);
      the remainder is dropped without error.
    - Round robin / multiple level: the last incoming segment replaces the
      whole list.
    - Champion challenger: the first segment added to an empty list becomes
      the champion (priority 1); every other addition gets
      current_count + index + 1.
    - Multiple target: append with the next sequential priority.
    """

    if not incoming:
        return Rejection(RejectReason.EMPTY_SELECTION, "No segments were selected")

    rule = TOPOLOGY_RULES[topology]
    current = list(current_segments)

    if rule.replaces_on_add:
        chosen = incoming[-1]
        replaced = [s for s in current if s.id != chosen.id]
        kept = next((s for s in current if s.id == chosen.id), None)
        if kept is not None and not replaced:
            return Rejection(
                RejectReason.DUPLICATE_SEGMENT,
                f"Segment {chosen.name!r} is already the campaign segment",
            )
        segment = _with_priority(chosen, 1)
        return AcceptedSegments(
            segments=[segment],
            added=[segment],
            dropped=list(incoming[:-1]),
            replaced=replaced,
        )

    fresh = _dedupe_incoming(current, incoming)
    if not fresh:
        return Rejection(
            RejectReason.DUPLICATE_SEGMENT,
            "All selected segments are already part of the campaign",
        )

    dropped: list[SegmentRef] = []
    if rule.max_segments is not None:
        capacity = rule.max_segments - len(current)
        if capacity <= 0:
            return Rejection(
                RejectReason.SEGMENT_CAPACITY_REACHED,
                f"{rule.display_name} campaigns accept at most {rule.max_segments} segments",
            )
        fresh, dropped = fresh[:capacity], fresh[capacity:]

    base = len(current)
    added: list[SegmentRef] = []
    for index, segment in enumerate(fresh):
        if topology == CHAMPION_CHALLENGER and base == 0 and index == 0:
            # The very first segment of an empty list is the champion.
            priority = 1
        else:
            priority = base + index + 1
        added.append(_with_priority(segment, priority))

    return AcceptedSegments(
        segments=current + added,
        added=added,
        dropped=dropped,
        replaced=[],
    )
