"""
Draft domain events.

Each store mutation and wizard transition emits exactly one event. Events are
immutable facts consumed by the logging sink, the checkpoint sink and tests.
"""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class SegmentsChangedEvent:
    draft_id: str
    action: str  # add | remove | reorder | replace | exclusivity | topology
    segment_ids: list[str]
    priorities: dict[str, int] = field(default_factory=dict)
    dropped_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class OfferMappingChangedEvent:
    draft_id: str
    action: str  # map | unmap
    segment_id: str
    offer_ids: list[str]
    orphaned_offer_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ControlGroupChangedEvent:
    draft_id: str
    segment_id: str
    label: str
    size: int


@dataclass(slots=True)
class SequentialStepsChangedEvent:
    draft_id: str
    action: str  # append | remove | update | clear
    offer_ids: list[str]


@dataclass(slots=True)
class MetadataChangedEvent:
    draft_id: str
    section: str  # metadata | scheduling
    fields: list[str]


@dataclass(slots=True)
class StepTransitionEvent:
    draft_id: str
    prev_step: int
    next_step: int
    accepted: bool
    errors: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class CheckpointEvent:
    draft_id: str
    action: str  # save | restore | clear | discard
    checkpoint_id: str | None = None


@dataclass(slots=True)
class SubmissionEvent:
    draft_id: str
    campaign_id: str
    warnings: list[str] = field(default_factory=list)


# Events produced by draft mutators. The checkpoint sink reacts to these only.
DRAFT_MUTATION_EVENTS: tuple[type, ...] = (
    SegmentsChangedEvent,
    OfferMappingChangedEvent,
    ControlGroupChangedEvent,
    SequentialStepsChangedEvent,
    MetadataChangedEvent,
)
