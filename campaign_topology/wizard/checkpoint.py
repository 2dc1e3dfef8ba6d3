"""Draft checkpoint protocol.

The wizard may be left mid-flow (e.g. to create a new offer) and re-mounted
later. While a draft is being created, every mutation is checkpointed to a
recoverable key/value store. On mount, a pending "returning from offer
creation" signal restores the checkpoint exactly once and lands the wizard on
the offers step.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from campaign_topology.core.config import EngineConfig
from campaign_topology.core.domain.draft import CampaignDraft, DraftSnapshot
from campaign_topology.core.domain.wizard_state_machine import OFFERS_STEP
from campaign_topology.core.errors import SnapshotCorruption
from campaign_topology.core.events.events import DRAFT_MUTATION_EVENTS, CheckpointEvent

if TYPE_CHECKING:
    from campaign_topology.core.events.event_bus import EventBus
    from campaign_topology.core.ports.storage import RecoverableStorage

LOGGER = logging.getLogger(__name__)

RETURN_SIGNAL_VALUE = "1"


class CheckpointEnvelope(BaseModel):
    """Stored payload: one draft snapshot plus bookkeeping."""

    version: Literal[1] = 1
    checkpoint_id: str = Field(..., min_length=1)
    saved_at: datetime
    draft: DraftSnapshot

    model_config = ConfigDict(extra="forbid")


class DraftCheckpoint:
    """Explicit save/load/clear/resume over a RecoverableStorage."""

    def __init__(
        self,
        storage: RecoverableStorage,
        *,
        config: EngineConfig | None = None,
    ) -> None:
        self._storage = storage
        self._config = config if config is not None else EngineConfig()
        # Idempotency token: a consumed return signal is never applied twice.
        self._resumed = False
        self.last_resume_restored = False

    @property
    def snapshot_key(self) -> str:
        return self._config.snapshot_key

    @property
    def has_resumed(self) -> bool:
        return self._resumed

    def save(self, draft: CampaignDraft) -> str:
        """Serialize the draft and overwrite the stored checkpoint."""
        envelope = CheckpointEnvelope(
            checkpoint_id=uuid.uuid4().hex,
            saved_at=datetime.now(timezone.utc),
            draft=draft.to_snapshot(),
        )
        self._storage.set(self._config.snapshot_key, envelope.model_dump_json())
        LOGGER.debug(
            "draft_checkpoint_saved",
            extra={"draft_id": draft.draft_id, "checkpoint_id": envelope.checkpoint_id},
        )
        return envelope.checkpoint_id

    def read_envelope(self) -> CheckpointEnvelope | None:
        """Parse the stored payload.

        A malformed payload is treated as absent unless strict_snapshot is
        set, in which case SnapshotCorruption is raised.
        """
        raw = self._storage.get(self._config.snapshot_key)
        if raw is None:
            return None
        try:
            return CheckpointEnvelope.model_validate_json(raw)
        except (PydanticValidationError, ValueError) as exc:
            if self._config.strict_snapshot:
                raise SnapshotCorruption(f"Stored draft checkpoint is unreadable: {exc}") from exc
            LOGGER.warning(
                "draft_checkpoint_discarded",
                extra={"key": self._config.snapshot_key, "error": str(exc)},
            )
            return None

    def load(self, *, event_bus: EventBus | None = None) -> CampaignDraft | None:
        envelope = self.read_envelope()
        if envelope is None:
            return None
        return CampaignDraft.from_snapshot(
            envelope.draft,
            event_bus=event_bus,
            catalog=self._config.universal_control_groups,
        )

    def clear(self) -> None:
        self._storage.delete(self._config.snapshot_key)

    # ---- Return signal ----
    def signal_return(self) -> None:
        """Record that the operator left to create an offer and will come back."""
        self._storage.set(self._config.return_signal_key, RETURN_SIGNAL_VALUE)

    def is_return_pending(self) -> bool:
        return bool(self._storage.get(self._config.return_signal_key))

    def clear_return_signal(self) -> None:
        self._storage.delete(self._config.return_signal_key)

    def resume(
        self,
        *,
        event_bus: EventBus | None = None,
        fallback: Callable[[], CampaignDraft] | None = None,
    ) -> CampaignDraft | None:
        """Apply a pending return signal exactly once.

        Returns None when there is nothing to resume (no signal, or this
        checkpoint already resumed). Otherwise returns the restored draft, or
        a fresh draft from `fallback` if no usable snapshot exists, forced onto
        the offers step. Snapshot and signal are deleted either way.
        """
        if self._resumed or not self.is_return_pending():
            return None

        self._resumed = True
        self.clear_return_signal()

        draft = self.load(event_bus=event_bus)
        restored = draft is not None
        self.last_resume_restored = restored
        if draft is None:
            draft = fallback() if fallback is not None else CampaignDraft(
                event_bus=event_bus,
                catalog=self._config.universal_control_groups,
            )

        draft.current_step = OFFERS_STEP
        self.clear()

        draft.event_bus.emit(
            CheckpointEvent(draft_id=draft.draft_id, action="restore" if restored else "discard")
        )
        LOGGER.info(
            "draft_checkpoint_resumed",
            extra={"draft_id": draft.draft_id, "restored": restored},
        )
        return draft


class DraftCheckpointSink:
    """Event sink saving a checkpoint after every draft mutation.

    Checkpointing is a best-effort side effect: a failing store is logged and
    never interrupts the mutation that triggered it.
    """

    def __init__(
        self,
        checkpoint: DraftCheckpoint,
        draft_provider: Callable[[], CampaignDraft | None],
    ) -> None:
        self._checkpoint = checkpoint
        self._draft_provider = draft_provider
        self.enabled = True

    def on_event(self, event: object) -> None:
        if not self.enabled or not isinstance(event, DRAFT_MUTATION_EVENTS):
            return
        draft = self._draft_provider()
        if draft is None:
            return
        try:
            self._checkpoint.save(draft)
        except Exception:
            LOGGER.exception("draft_checkpoint_save_failed", extra={"draft_id": draft.draft_id})
