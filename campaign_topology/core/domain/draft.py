"""Campaign draft: the segment/offer mapping store.

The draft is the aggregate root owned by one wizard controller. Every
mutation goes through a topology-checked method below; a method either
raises before touching any state or applies its change completely and emits
exactly one event on the draft's event bus.
"""

# pylint: disable=too-many-instance-attributes,too-many-public-methods
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError

from campaign_topology.core.allocation.control_group import (
    DEFAULT_UNIVERSAL_CONTROL_GROUPS,
    compute_control_group_size,
    describe,
    find_universal_group,
)
from campaign_topology.core.domain.reject_reasons import RejectReason
from campaign_topology.core.domain.sequential import SequentialFlowBuilder
from campaign_topology.core.domain.topology_rules import (
    AcceptedSegments,
    Rejection,
    derive_role,
    is_sequential,
    rule_for,
    validate_add_segment,
)
from campaign_topology.core.domain.types import (
    MULTIPLE_TARGET,
    CampaignMetadata,
    ControlGroupConfig,
    MultipleControlGroup,
    SchedulingConfig,
    SegmentRef,
    SegmentRole,
    SequentialStep,
    StepConfig,
    TopologyType,
    UniversalControlGroup,
)
from campaign_topology.core.domain.wizard_state_machine import FIRST_STEP, LAST_STEP
from campaign_topology.core.errors import ConfigurationError, TopologyContractError
from campaign_topology.core.events.events import (
    ControlGroupChangedEvent,
    MetadataChangedEvent,
    OfferMappingChangedEvent,
    SegmentsChangedEvent,
    SequentialStepsChangedEvent,
)
from campaign_topology.core.events.sinks.null_event_bus import NullEventBus

if TYPE_CHECKING:
    from campaign_topology.core.events.event_bus import EventBus
    from campaign_topology.core.validation.offer_status import OfferStatusReport


_CONTROL_GROUP_ADAPTER: TypeAdapter[ControlGroupConfig] = TypeAdapter(ControlGroupConfig)
_STEP_CONFIG_ADAPTER: TypeAdapter[StepConfig] = TypeAdapter(StepConfig)


def _first_error(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    err = errors[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err.get('msg')}" if loc else str(err.get("msg"))


# ---------------------------------------------------------------------------
# Snapshot model (checkpoint payload)
# ---------------------------------------------------------------------------


class DraftSnapshot(BaseModel):
    """Serializable image of a draft.

    Control-group configurations travel inside their segments. The model
    validator re-checks every draft invariant so that a tampered or stale
    payload can never hydrate an inconsistent draft.
    """

    version: Literal[1] = 1
    draft_id: str = Field(..., min_length=1)
    topology: TopologyType
    metadata: CampaignMetadata = Field(default_factory=CampaignMetadata)
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)
    segments: list[SegmentRef] = Field(default_factory=list)
    flat_mappings: dict[str, list[str]] = Field(default_factory=dict)
    sequential_steps: list[SequentialStep] = Field(default_factory=list)
    selected_offers: list[str] = Field(default_factory=list)
    current_step: int = Field(default=FIRST_STEP, ge=FIRST_STEP, le=LAST_STEP)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_invariants(self) -> DraftSnapshot:
        problems = collect_invariant_violations(
            topology=self.topology,
            segments=self.segments,
            flat_mappings=self.flat_mappings,
            sequential_steps=self.sequential_steps,
        )
        if problems:
            raise ValueError("; ".join(problems))
        return self


def collect_invariant_violations(
    *,
    topology: TopologyType,
    segments: list[SegmentRef],
    flat_mappings: Mapping[str, list[str]],
    sequential_steps: list[SequentialStep],
) -> list[str]:
    """Return a description of every violated draft invariant (empty if none)."""
    problems: list[str] = []
    rule = rule_for(topology)
    segment_ids = [s.id for s in segments]

    if len(set(segment_ids)) != len(segment_ids):
        problems.append("segment ids must be unique")
    if rule.max_segments is not None and len(segments) > rule.max_segments:
        problems.append(f"{topology} allows at most {rule.max_segments} segments")

    priorities = sorted(s.priority for s in segments)
    if priorities != list(range(1, len(segments) + 1)):
        problems.append("segment priorities must be a contiguous 1..N permutation")

    if rule.binding == "sequential" and any(flat_mappings.values()):
        problems.append(f"{topology} drafts cannot carry flat mappings")
    if rule.binding == "flat" and sequential_steps:
        problems.append(f"{topology} drafts cannot carry sequential steps")

    for segment_id, offer_ids in flat_mappings.items():
        if segment_id not in segment_ids:
            problems.append(f"flat mapping references unknown segment {segment_id!r}")
        if len(set(offer_ids)) != len(offer_ids):
            problems.append(f"segment {segment_id!r} maps the same offer twice")

    orders = [s.sequence_order for s in sequential_steps]
    if orders != list(range(1, len(sequential_steps) + 1)):
        problems.append("sequence_order must equal list position + 1")
    step_offers = [s.offer_id for s in sequential_steps]
    if len(set(step_offers)) != len(step_offers):
        problems.append("sequential steps repeat an offer")
    for step in sequential_steps:
        if step.segment_id not in segment_ids:
            problems.append(f"sequential step references unknown segment {step.segment_id!r}")
        if step.config.config_type != rule.step_config_type:
            problems.append(f"{topology} steps require {rule.step_config_type} configs")

    return problems


@dataclass(frozen=True, slots=True)
class AudienceOverview:
    segment_count: int
    total_audience: int
    control_group_size: int
    target_size: int


# ---------------------------------------------------------------------------
# Draft
# ---------------------------------------------------------------------------


class CampaignDraft:
    """In-memory campaign draft with topology-aware mutators."""

    def __init__(
        self,
        topology: TopologyType = MULTIPLE_TARGET,
        *,
        event_bus: EventBus | None = None,
        catalog: Iterable[UniversalControlGroup] = DEFAULT_UNIVERSAL_CONTROL_GROUPS,
        draft_id: str | None = None,
        metadata: CampaignMetadata | None = None,
        scheduling: SchedulingConfig | None = None,
    ) -> None:
        rule_for(topology)

        self.draft_id: str = draft_id or uuid.uuid4().hex
        self._event_bus: EventBus = event_bus if event_bus is not None else NullEventBus()
        self._catalog: tuple[UniversalControlGroup, ...] = tuple(catalog)
        self._topology: TopologyType = topology

        self.metadata: CampaignMetadata = metadata if metadata is not None else CampaignMetadata()
        self.scheduling: SchedulingConfig = scheduling if scheduling is not None else SchedulingConfig()

        # Segment list order is always priority order.
        self._segments: list[SegmentRef] = []
        self._flat_mappings: dict[str, list[str]] = {}
        self._flow: SequentialFlowBuilder | None = (
            SequentialFlowBuilder(topology) if is_sequential(topology) else None
        )
        # Global pool of offers referenced by the draft, in selection order.
        self._selected_offers: list[str] = []

        self.current_step: int = FIRST_STEP
        self.validation_errors: dict[str, str] = {}
        # Per-offer verdict of the last external status check.
        self.offer_status_report: OfferStatusReport | None = None

    # ---- Read-only views ----
    @property
    def topology(self) -> TopologyType:
        return self._topology

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def catalog(self) -> tuple[UniversalControlGroup, ...]:
        return self._catalog

    @property
    def segments(self) -> list[SegmentRef]:
        return list(self._segments)

    @property
    def flat_mappings(self) -> dict[str, list[str]]:
        return {k: list(v) for k, v in self._flat_mappings.items()}

    @property
    def sequential_steps(self) -> list[SequentialStep]:
        return [] if self._flow is None else self._flow.steps

    @property
    def selected_offers(self) -> list[str]:
        return list(self._selected_offers)

    @property
    def offer_status_error(self) -> str | None:
        """Blocking status message for the offers still selected, or None."""
        if self.offer_status_report is None:
            return None
        return self.offer_status_report.restricted_to(self._selected_offers).error_message

    def has_segment(self, segment_id: str) -> bool:
        return any(s.id == segment_id for s in self._segments)

    def segment(self, segment_id: str) -> SegmentRef:
        for s in self._segments:
            if s.id == segment_id:
                return s
        raise ConfigurationError(
            f"Unknown segment {segment_id!r}",
            reason=RejectReason.UNKNOWN_SEGMENT,
            field="segments",
        )

    def role_of(self, segment_id: str) -> SegmentRole:
        return derive_role(self._topology, self.segment(segment_id).priority)

    def roles(self) -> dict[str, SegmentRole]:
        return {s.id: derive_role(self._topology, s.priority) for s in self._segments}

    def offers_for(self, segment_id: str) -> list[str]:
        if self._flow is not None:
            return [s.offer_id for s in self._flow.steps if s.segment_id == segment_id]
        return list(self._flat_mappings.get(segment_id, []))

    def control_group_size(self, segment_id: str) -> int:
        segment = self.segment(segment_id)
        return compute_control_group_size(segment, segment.control_group_config, self._catalog)

    def control_group_label(self, segment_id: str) -> str:
        return describe(self.segment(segment_id).control_group_config, self._catalog)

    def audience_overview(self) -> AudienceOverview:
        total = sum(s.customer_count for s in self._segments)
        withheld = sum(
            compute_control_group_size(s, s.control_group_config, self._catalog) for s in self._segments
        )
        return AudienceOverview(
            segment_count=len(self._segments),
            total_audience=total,
            control_group_size=withheld,
            target_size=max(total - withheld, 0),
        )

    def referenced_offer_ids(self) -> set[str]:
        referenced: set[str] = set()
        for offer_ids in self._flat_mappings.values():
            referenced.update(offer_ids)
        if self._flow is not None:
            referenced.update(self._flow.offer_ids())
        return referenced

    def check_invariants(self) -> list[str]:
        return collect_invariant_violations(
            topology=self._topology,
            segments=self._segments,
            flat_mappings=self._flat_mappings,
            sequential_steps=self.sequential_steps,
        )

    # ---- Internal helpers ----
    def _add_to_pool(self, offer_ids: Iterable[str]) -> None:
        for offer_id in offer_ids:
            if offer_id not in self._selected_offers:
                self._selected_offers.append(offer_id)

    def _collect_orphaned_offers(self) -> list[str]:
        """Drop offers no segment or step references any more."""
        referenced = self.referenced_offer_ids()
        orphaned = [o for o in self._selected_offers if o not in referenced]
        if orphaned:
            self._selected_offers = [o for o in self._selected_offers if o in referenced]
        return orphaned

    def _require_flow(self) -> SequentialFlowBuilder:
        if self._flow is None:
            raise TopologyContractError(f"{self._topology} campaigns do not use sequential steps")
        return self._flow

    def _require_flat(self) -> None:
        if self._flow is not None:
            raise ConfigurationError(
                f"{self._topology} campaigns bind offers through sequential steps",
                reason=RejectReason.FLAT_MAPPING_NOT_SUPPORTED,
                field="offers",
            )

    def _renumber_segments(self) -> None:
        self._segments = [
            s if s.priority == i + 1 else s.model_copy(update={"priority": i + 1})
            for i, s in enumerate(self._segments)
        ]

    @staticmethod
    def _coerce_segment(segment: SegmentRef | Mapping[str, Any]) -> SegmentRef:
        if isinstance(segment, SegmentRef):
            return segment
        try:
            return SegmentRef.model_validate(segment)
        except PydanticValidationError as exc:
            raise ConfigurationError(
                f"Invalid segment: {_first_error(exc)}",
                reason=RejectReason.INVALID_METADATA,
                field="segments",
            ) from exc

    # ---- Segment mutators ----
    def add_segments(
        self,
        incoming: Iterable[SegmentRef | Mapping[str, Any]],
        *,
        allow_replace: bool = True,
    ) -> AcceptedSegments:
        """Add segments according to the topology rules.

        Raises ConfigurationError (draft unchanged) when the topology forbids
        the addition, or when a replacement would happen while the caller
        passed allow_replace=False.
        """
        candidates = [self._coerce_segment(s) for s in incoming]
        outcome = validate_add_segment(self._topology, self._segments, candidates)

        if isinstance(outcome, Rejection):
            raise ConfigurationError(outcome.message, reason=outcome.reason, field="segments")

        if outcome.replaced and not allow_replace:
            rule = rule_for(self._topology)
            raise ConfigurationError(
                f"{rule.display_name} campaigns accept exactly one segment",
                reason=RejectReason.SEGMENT_CAPACITY_REACHED,
                field="segments",
            )

        self._segments = list(outcome.segments)
        for gone in outcome.replaced:
            self._flat_mappings.pop(gone.id, None)
            if self._flow is not None:
                self._flow.remove_steps_for_segment(gone.id)
        self._collect_orphaned_offers()

        self._event_bus.emit(
            SegmentsChangedEvent(
                draft_id=self.draft_id,
                action="replace" if outcome.replaced else "add",
                segment_ids=[s.id for s in outcome.added],
                priorities={s.id: s.priority for s in self._segments},
                dropped_ids=[s.id for s in outcome.dropped] + [s.id for s in outcome.replaced],
            )
        )
        return outcome

    def remove_segment(self, segment_id: str) -> SegmentRef:
        """Remove a segment and cascade its flat mapping and sequential steps.

        The relative order of the remaining segments is untouched; their
        priorities are closed up so they stay a contiguous 1..N range.
        """
        removed = self.segment(segment_id)

        self._segments = [s for s in self._segments if s.id != segment_id]
        self._renumber_segments()
        self._flat_mappings.pop(segment_id, None)
        if self._flow is not None:
            self._flow.remove_steps_for_segment(segment_id)
        orphaned = self._collect_orphaned_offers()

        self._event_bus.emit(
            SegmentsChangedEvent(
                draft_id=self.draft_id,
                action="remove",
                segment_ids=[segment_id],
                priorities={s.id: s.priority for s in self._segments},
                dropped_ids=orphaned,
            )
        )
        return removed

    def reorder(self, new_order_of_ids: Iterable[str]) -> None:
        """Recompute every priority as index + 1 in the given order."""
        order = list(new_order_of_ids)
        current_ids = [s.id for s in self._segments]
        if len(order) != len(current_ids) or set(order) != set(current_ids):
            raise ConfigurationError(
                "Reorder must list every current segment exactly once",
                reason=RejectReason.INVALID_ORDER,
                field="segments",
            )

        by_id = {s.id: s for s in self._segments}
        self._segments = [by_id[segment_id] for segment_id in order]
        self._renumber_segments()

        self._event_bus.emit(
            SegmentsChangedEvent(
                draft_id=self.draft_id,
                action="reorder",
                segment_ids=order,
                priorities={s.id: s.priority for s in self._segments},
            )
        )

    def set_mutually_exclusive(self, exclusive: bool) -> None:
        """Flag every segment as (non-)mutually exclusive."""
        self._segments = [s.model_copy(update={"is_mutually_exclusive": exclusive}) for s in self._segments]
        self._event_bus.emit(
            SegmentsChangedEvent(
                draft_id=self.draft_id,
                action="exclusivity",
                segment_ids=[s.id for s in self._segments],
                priorities={s.id: s.priority for s in self._segments},
            )
        )

    def change_topology(self, topology: TopologyType) -> None:
        """Switch topology. Segments and offer bindings are discarded."""
        if topology == self._topology:
            return
        rule_for(topology)

        dropped = [s.id for s in self._segments]
        self._topology = topology
        self._segments = []
        self._flat_mappings = {}
        self._flow = SequentialFlowBuilder(topology) if is_sequential(topology) else None
        self._selected_offers = []
        self.offer_status_report = None

        self._event_bus.emit(
            SegmentsChangedEvent(
                draft_id=self.draft_id,
                action="topology",
                segment_ids=[],
                dropped_ids=dropped,
            )
        )

    # ---- Flat offer mapping ----
    def map_offers(self, segment_id: str, offer_ids: Iterable[str]) -> list[str]:
        """Union offers into a segment's set. Returns the newly mapped ids."""
        self._require_flat()
        self.segment(segment_id)

        current = self._flat_mappings.get(segment_id, [])
        added: list[str] = []
        for offer_id in offer_ids:
            if not offer_id:
                raise ConfigurationError("Offer id must be non-empty", field="offers")
            if offer_id in current or offer_id in added:
                continue
            added.append(offer_id)

        if not added:
            return []

        self._flat_mappings[segment_id] = current + added
        self._add_to_pool(added)

        self._event_bus.emit(
            OfferMappingChangedEvent(
                draft_id=self.draft_id,
                action="map",
                segment_id=segment_id,
                offer_ids=added,
            )
        )
        return added

    def unmap_offer(self, segment_id: str, offer_id: str) -> bool:
        """Remove one offer from one segment.

        If no segment references the offer afterwards, it is also dropped from
        the selected-offers pool. Returns False when the offer was not mapped.
        """
        self._require_flat()
        self.segment(segment_id)

        current = self._flat_mappings.get(segment_id, [])
        if offer_id not in current:
            return False

        remaining = [o for o in current if o != offer_id]
        if remaining:
            self._flat_mappings[segment_id] = remaining
        else:
            del self._flat_mappings[segment_id]
        orphaned = self._collect_orphaned_offers()

        self._event_bus.emit(
            OfferMappingChangedEvent(
                draft_id=self.draft_id,
                action="unmap",
                segment_id=segment_id,
                offer_ids=[offer_id],
                orphaned_offer_ids=orphaned,
            )
        )
        return True

    # ---- Control groups ----
    def set_control_group(
        self,
        segment_id: str,
        config: ControlGroupConfig | Mapping[str, Any],
    ) -> int:
        """Validate and store a segment's control-group config. Returns its size."""
        segment = self.segment(segment_id)

        if isinstance(config, Mapping):
            try:
                config = _CONTROL_GROUP_ADAPTER.validate_python(config)
            except PydanticValidationError as exc:
                raise ConfigurationError(
                    f"Invalid control group: {_first_error(exc)}",
                    reason=RejectReason.INVALID_CONTROL_GROUP,
                    field="control_group_config",
                ) from exc

        if isinstance(config, MultipleControlGroup):
            if find_universal_group(config.selected_universal_group_id, self._catalog) is None:
                raise ConfigurationError(
                    f"Unknown universal control group {config.selected_universal_group_id!r}",
                    reason=RejectReason.UNKNOWN_CONTROL_GROUP,
                    field="control_group_config",
                )

        size = compute_control_group_size(segment, config, self._catalog)
        if size > segment.customer_count:
            raise ConfigurationError(
                f"Control group of {size:,} exceeds the {segment.customer_count:,} customers "
                f"of segment {segment.name!r}",
                reason=RejectReason.CONTROL_GROUP_EXCEEDS_SEGMENT,
                field="control_group_config",
            )

        updated = segment.model_copy(update={"control_group_config": config})
        self._segments = [updated if s.id == segment_id else s for s in self._segments]

        self._event_bus.emit(
            ControlGroupChangedEvent(
                draft_id=self.draft_id,
                segment_id=segment_id,
                label=describe(config, self._catalog),
                size=size,
            )
        )
        return size

    # ---- Sequential flow ----
    def _coerce_step_config(self, config: StepConfig | Mapping[str, Any] | None) -> StepConfig | None:
        if config is None or not isinstance(config, Mapping):
            return config
        try:
            return _STEP_CONFIG_ADAPTER.validate_python(config)
        except PydanticValidationError as exc:
            raise ConfigurationError(
                f"Invalid step config: {_first_error(exc)}",
                field="sequential_steps",
            ) from exc

    def append_step(
        self,
        offer_id: str,
        config: StepConfig | Mapping[str, Any] | None = None,
    ) -> SequentialStep:
        """Append an offer to the flow of the campaign's single segment."""
        flow = self._require_flow()
        if not self._segments:
            raise ConfigurationError(
                "Select the campaign segment before adding offers",
                reason=RejectReason.NO_SEGMENT,
                field="segments",
            )

        step = flow.append_step(offer_id, self._segments[0].id, self._coerce_step_config(config))
        self._add_to_pool([offer_id])

        self._event_bus.emit(
            SequentialStepsChangedEvent(draft_id=self.draft_id, action="append", offer_ids=[offer_id])
        )
        return step

    def remove_step(self, index: int) -> SequentialStep:
        flow = self._require_flow()
        removed = flow.remove_step(index)
        self._collect_orphaned_offers()

        self._event_bus.emit(
            SequentialStepsChangedEvent(draft_id=self.draft_id, action="remove", offer_ids=[removed.offer_id])
        )
        return removed

    def update_step_config(self, index: int, config: StepConfig | Mapping[str, Any]) -> SequentialStep:
        flow = self._require_flow()
        payload = self._coerce_step_config(config)
        if payload is None:
            raise TopologyContractError("update_step_config requires a step payload")
        updated = flow.update_step_config(index, payload)

        self._event_bus.emit(
            SequentialStepsChangedEvent(draft_id=self.draft_id, action="update", offer_ids=[updated.offer_id])
        )
        return updated

    # ---- Externally owned sections ----
    def update_metadata(self, changes: Mapping[str, Any]) -> None:
        self.metadata = self._merge_section(self.metadata, changes, "metadata")
        self._event_bus.emit(
            MetadataChangedEvent(draft_id=self.draft_id, section="metadata", fields=sorted(changes))
        )

    def update_scheduling(self, changes: Mapping[str, Any]) -> None:
        self.scheduling = self._merge_section(self.scheduling, changes, "scheduling")
        self._event_bus.emit(
            MetadataChangedEvent(draft_id=self.draft_id, section="scheduling", fields=sorted(changes))
        )

    @staticmethod
    def _merge_section(model: BaseModel, changes: Mapping[str, Any], section: str) -> Any:
        merged = model.model_dump()
        merged.update(changes)
        try:
            return type(model).model_validate(merged)
        except PydanticValidationError as exc:
            raise ConfigurationError(
                f"Invalid {section}: {_first_error(exc)}",
                reason=RejectReason.INVALID_METADATA,
                field=section,
            ) from exc

    # ---- Snapshot ----
    def to_snapshot(self) -> DraftSnapshot:
        return DraftSnapshot(
            draft_id=self.draft_id,
            topology=self._topology,
            metadata=self.metadata,
            scheduling=self.scheduling,
            segments=self.segments,
            flat_mappings=self.flat_mappings,
            sequential_steps=self.sequential_steps,
            selected_offers=self.selected_offers,
            current_step=self.current_step,
        )

    @classmethod
    def from_snapshot(
        cls,
        snapshot: DraftSnapshot,
        *,
        event_bus: EventBus | None = None,
        catalog: Iterable[UniversalControlGroup] = DEFAULT_UNIVERSAL_CONTROL_GROUPS,
    ) -> CampaignDraft:
        """Hydrate a draft without emitting mutation events."""
        draft = cls(
            snapshot.topology,
            event_bus=event_bus,
            catalog=catalog,
            draft_id=snapshot.draft_id,
            metadata=snapshot.metadata,
            scheduling=snapshot.scheduling,
        )
        draft._segments = sorted(snapshot.segments, key=lambda s: s.priority)
        draft._flat_mappings = {k: list(v) for k, v in snapshot.flat_mappings.items() if v}
        if draft._flow is not None:
            draft._flow = SequentialFlowBuilder(snapshot.topology, snapshot.sequential_steps)
        draft._selected_offers = list(dict.fromkeys(snapshot.selected_offers))
        draft._add_to_pool(sorted(draft.referenced_offer_ids() - set(draft._selected_offers)))
        draft.current_step = snapshot.current_step
        return draft
