"""Five-step campaign wizard controller.

The controller exclusively owns one CampaignDraft. Forward moves are gated on
the current step validating; backward moves never are. While a new campaign
is being created, every draft mutation is checkpointed so the operator can
leave to create an offer and resume on the offers step.
"""

# pylint: disable=too-many-instance-attributes,too-many-arguments
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Literal

from campaign_topology.core.config import EngineConfig
from campaign_topology.core.domain.draft import CampaignDraft
from campaign_topology.core.domain.topology_rules import is_sequential
from campaign_topology.core.domain.types import MULTIPLE_TARGET, CampaignRecord, SegmentRef, TopologyType
from campaign_topology.core.domain.wizard_state_machine import (
    FIRST_STEP,
    LAST_STEP,
    OFFERS_STEP,
    is_valid_transition,
    requires_validation,
)
from campaign_topology.core.errors import (
    CampaignEngineError,
    ConfigurationError,
    ExternalFetchError,
    ValidationError,
)
from campaign_topology.core.events.event_bus import EventBus
from campaign_topology.core.events.events import CheckpointEvent, StepTransitionEvent, SubmissionEvent
from campaign_topology.core.ports.storage import InMemoryStorage
from campaign_topology.core.validation.offer_status import OfferStatusChecker, OfferStatusReport
from campaign_topology.core.validation.step_validator import validate_all, validate_step
from campaign_topology.wizard.checkpoint import DraftCheckpoint, DraftCheckpointSink
from campaign_topology.wizard.metrics import WizardMetrics
from campaign_topology.wizard.submission import CampaignSubmitter, SubmissionResult

if TYPE_CHECKING:
    from campaign_topology.core.ports.repositories import (
        CampaignPersistence,
        OfferRepository,
        SegmentRepository,
    )
    from campaign_topology.core.ports.storage import RecoverableStorage

LOGGER = logging.getLogger(__name__)

WizardMode = Literal["create", "edit", "duplicate"]


class WizardController:
    def __init__(
        self,
        *,
        topology: TopologyType = MULTIPLE_TARGET,
        config: EngineConfig | None = None,
        storage: RecoverableStorage | None = None,
        offer_repository: OfferRepository | None = None,
        segment_repository: SegmentRepository | None = None,
        persistence: CampaignPersistence | None = None,
        event_bus: EventBus | None = None,
        metrics: WizardMetrics | None = None,
    ) -> None:
        self._config = config if config is not None else EngineConfig()
        self._event_bus = event_bus if event_bus is not None else EventBus()
        self._metrics = metrics if metrics is not None else WizardMetrics()
        self._offer_repository = offer_repository
        self._segment_repository = segment_repository
        self._persistence = persistence

        self._checkpoint = DraftCheckpoint(
            storage if storage is not None else InMemoryStorage(),
            config=self._config,
        )
        self._checkpoint_sink = DraftCheckpointSink(self._checkpoint, lambda: self._draft)
        self._event_bus.register(self._checkpoint_sink)

        self._mode: WizardMode = "create"
        self._editing_campaign_id: str | None = None
        self._status_generation = 0
        self.cancelled = False

        self._draft = self._new_draft(topology)

    # ---- Read-only views ----
    @property
    def draft(self) -> CampaignDraft:
        return self._draft

    @property
    def current_step(self) -> int:
        return self._draft.current_step

    @property
    def validation_errors(self) -> dict[str, str]:
        return dict(self._draft.validation_errors)

    @property
    def mode(self) -> WizardMode:
        return self._mode

    @property
    def editing_campaign_id(self) -> str | None:
        return self._editing_campaign_id

    @property
    def checkpoint(self) -> DraftCheckpoint:
        return self._checkpoint

    @property
    def metrics(self) -> WizardMetrics:
        return self._metrics

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def checkpointing_enabled(self) -> bool:
        return self._checkpoint_sink.enabled

    def _new_draft(self, topology: TopologyType) -> CampaignDraft:
        return CampaignDraft(
            topology,
            event_bus=self._event_bus,
            catalog=self._config.universal_control_groups,
        )

    def _save_checkpoint(self) -> None:
        if not self.checkpointing_enabled:
            return
        try:
            self._checkpoint.save(self._draft)
        except Exception:
            LOGGER.exception("draft_checkpoint_save_failed", extra={"draft_id": self._draft.draft_id})

    def _emit_transition(self, prev_step: int, next_step: int, accepted: bool, direction: str) -> None:
        self._event_bus.emit(
            StepTransitionEvent(
                draft_id=self._draft.draft_id,
                prev_step=prev_step,
                next_step=next_step,
                accepted=accepted,
                errors=dict(self._draft.validation_errors),
            )
        )
        self._metrics.record_transition(direction, accepted)

    # ---- Lifecycle ----
    def mount(self) -> bool:
        """Resume from a pending offer-creation round trip.

        Returns True if the draft was replaced. Only applies in create mode and
        at most once per controller.
        """
        if self._mode != "create":
            return False

        fallback_topology = self._draft.topology
        draft = self._checkpoint.resume(
            event_bus=self._event_bus,
            fallback=lambda: self._new_draft(fallback_topology),
        )
        if draft is None:
            return False

        self._status_generation += 1
        self._draft = draft
        self._metrics.record_restore(self._checkpoint.last_resume_restored)
        return True

    def leave_for_offer_creation(self) -> str | None:
        """Checkpoint the draft and raise the return signal.

        In edit/duplicate mode nothing is stored and None is returned.
        """
        if not self.checkpointing_enabled:
            return None
        checkpoint_id = self._checkpoint.save(self._draft)
        self._checkpoint.signal_return()
        self._event_bus.emit(
            CheckpointEvent(draft_id=self._draft.draft_id, action="save", checkpoint_id=checkpoint_id)
        )
        return checkpoint_id

    def reset(self, topology: TopologyType | None = None) -> CampaignDraft:
        """Discard the draft and checkpoint and start over at step 1 in create mode."""
        previous = self._draft
        self._checkpoint.clear()
        self._checkpoint.clear_return_signal()
        self._status_generation += 1
        self._mode = "create"
        self._editing_campaign_id = None
        self._checkpoint_sink.enabled = True
        self._draft = self._new_draft(topology if topology is not None else previous.topology)
        self._event_bus.emit(CheckpointEvent(draft_id=previous.draft_id, action="clear"))
        return self._draft

    def cancel(self) -> None:
        self.reset()
        self.cancelled = True

    # ---- Transitions ----
    def go_next(self) -> bool:
        """Validate the current step and advance by one. Returns True on success."""
        step = self._draft.current_step
        if step >= LAST_STEP:
            return False

        result = validate_step(step, self._draft)
        if not result.is_valid:
            self._draft.validation_errors = dict(result.errors)
            self._emit_transition(step, step + 1, False, "forward")
            LOGGER.info(
                "wizard_step_rejected",
                extra={"draft_id": self._draft.draft_id, "step": step, "errors": result.errors},
            )
            return False

        self._draft.current_step = step + 1
        self._draft.validation_errors = {}
        self._save_checkpoint()
        self._emit_transition(step, step + 1, True, "forward")
        return True

    def go_prev(self) -> bool:
        """Step back without validation. No-op on the first step."""
        step = self._draft.current_step
        if step <= FIRST_STEP:
            return False

        self._draft.current_step = step - 1
        self._draft.validation_errors = {}
        self._emit_transition(step, step - 1, True, "backward")
        return True

    def jump_to(self, target: int) -> bool:
        """Jump to any earlier step, or to the next one if the current step validates."""
        step = self._draft.current_step
        if target == step:
            return True
        if not is_valid_transition(step, target):
            self._emit_transition(step, target, False, "jump")
            return False
        if requires_validation(step, target):
            return self.go_next()

        self._draft.current_step = target
        self._draft.validation_errors = {}
        self._emit_transition(step, target, True, "jump")
        return True

    # ---- Offer status ----
    async def refresh_offer_status(self) -> OfferStatusReport | None:
        """Re-check the status of every selected offer.

        A check superseded by a later one (or by a reset) is discarded: only
        the newest generation writes the verdict.
        """
        if self._offer_repository is None:
            return None

        self._status_generation += 1
        generation = self._status_generation
        draft = self._draft

        checker = OfferStatusChecker(
            self._offer_repository,
            valid_statuses=self._config.valid_offer_statuses,
            strict=self._config.strict_offer_status,
        )
        report = await checker.check(draft.selected_offers)

        if generation != self._status_generation or draft is not self._draft:
            LOGGER.debug("offer_status_superseded", extra={"generation": generation})
            return report

        draft.offer_status_report = report
        message = draft.offer_status_error
        if draft.current_step == OFFERS_STEP:
            if message:
                draft.validation_errors["offer_status"] = message
            else:
                draft.validation_errors.pop("offer_status", None)
        return report

    # ---- Submission ----
    async def submit(self) -> SubmissionResult:
        """Re-validate every step and hand the draft to persistence.

        Raises ValidationError (draft unchanged, wizard moved to the first
        failing step's errors) or propagates a create/update failure.
        Link failures after creation come back as warnings on the result.
        On success the wizard is reset to an empty create-mode draft.
        """
        if self._draft.current_step != LAST_STEP:
            raise ValidationError(
                {"wizard": "Campaigns can only be submitted from the preview step"},
                step=self._draft.current_step,
            )
        if self._persistence is None:
            raise CampaignEngineError("No campaign persistence configured")

        await self.refresh_offer_status()

        for step, result in validate_all(self._draft).items():
            if not result.is_valid:
                self._draft.validation_errors = dict(result.errors)
                self._metrics.record_submission("invalid")
                raise ValidationError(result.errors, step=step)

        submitter = CampaignSubmitter(self._persistence)
        campaign_id = self._editing_campaign_id if self._mode == "edit" else None
        try:
            result = await submitter.submit(self._draft, campaign_id=campaign_id)
        except Exception:
            self._metrics.record_submission("failed")
            self._metrics.push()
            raise

        self._metrics.record_submission("partial" if result.warnings else "succeeded")
        self._metrics.push()
        self._event_bus.emit(
            SubmissionEvent(draft_id=self._draft.draft_id, campaign_id=result.campaign_id, warnings=result.warnings)
        )
        # The submitted draft is done; start a fresh create session.
        self.reset()
        return result

    # ---- Hydration ----
    async def _fetch_segments(self, segment_ids: list[str]) -> tuple[list[SegmentRef], list[str]]:
        repository = self._segment_repository
        if repository is None:
            raise CampaignEngineError("No segment repository configured")

        async def fetch(segment_id: str) -> SegmentRef:
            try:
                return await repository.fetch_segment_by_id(segment_id)
            except Exception as exc:
                raise ExternalFetchError(
                    f"Failed to fetch segment {segment_id}: {exc}", resource_id=segment_id
                ) from exc

        results = await asyncio.gather(*(fetch(i) for i in segment_ids), return_exceptions=True)

        fetched: list[SegmentRef] = []
        skipped: list[str] = []
        for segment_id, result in zip(segment_ids, results):
            if isinstance(result, ExternalFetchError):
                LOGGER.warning("segment_hydration_skipped", extra={"segment_id": segment_id, "error": str(result)})
                skipped.append(segment_id)
            elif isinstance(result, BaseException):
                raise result
            else:
                fetched.append(result)
        return fetched, skipped

    async def load_existing(self, record: CampaignRecord, *, mode: WizardMode = "edit") -> list[str]:
        """Hydrate the draft from an existing campaign.

        Segments that fail to fetch and bindings the topology rejects are
        skipped; their ids are returned. Checkpointing is disabled for the
        lifetime of the edit/duplicate session.
        """
        if mode == "create":
            raise ValueError("load_existing requires mode 'edit' or 'duplicate'")
        if self._segment_repository is None:
            raise CampaignEngineError("No segment repository configured")

        self._mode = mode
        self._editing_campaign_id = record.id if mode == "edit" else None
        self._checkpoint_sink.enabled = False
        self._status_generation += 1

        draft = CampaignDraft(
            record.topology,
            event_bus=self._event_bus,
            catalog=self._config.universal_control_groups,
            metadata=record.metadata.model_copy(deep=True),
            scheduling=record.scheduling.model_copy(deep=True),
        )
        self._draft = draft

        segments, skipped = await self._fetch_segments(list(dict.fromkeys(record.segment_ids)))
        if segments:
            draft.add_segments(segments)

        for segment_id, config in record.control_group_configs.items():
            if not draft.has_segment(segment_id):
                continue
            try:
                draft.set_control_group(segment_id, config)
            except ConfigurationError as exc:
                LOGGER.warning("control_group_hydration_skipped", extra={"segment_id": segment_id, "error": str(exc)})
                skipped.append(segment_id)

        for mapping in sorted(record.offer_mappings, key=lambda m: m.priority):
            try:
                if is_sequential(draft.topology):
                    if draft.segments and draft.segments[0].id in mapping.segment_ids:
                        draft.append_step(mapping.offer_id, mapping.step_config)
                    continue
                for segment_id in mapping.segment_ids:
                    if draft.has_segment(segment_id):
                        draft.map_offers(segment_id, [mapping.offer_id])
            except CampaignEngineError as exc:
                LOGGER.warning("offer_hydration_skipped", extra={"offer_id": mapping.offer_id, "error": str(exc)})
                skipped.append(mapping.offer_id)

        draft.current_step = FIRST_STEP
        LOGGER.info(
            "campaign_loaded",
            extra={"campaign_id": record.id, "mode": mode, "skipped": skipped},
        )
        return skipped
