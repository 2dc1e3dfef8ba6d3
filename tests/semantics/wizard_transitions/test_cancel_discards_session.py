"""
Semantic test: cancelling the wizard.

Invariant:
cancel() discards the draft, the stored checkpoint and any pending return
signal, marks the wizard cancelled, and leaves an empty create-mode draft
on step 1. A later mount has nothing to resume.
"""

from __future__ import annotations

from campaign_topology.core.domain.types import CHAMPION_CHALLENGER, SegmentRef
from campaign_topology.core.events.event_bus import EventBus
from campaign_topology.core.events.events import CheckpointEvent
from campaign_topology.core.events.sinks.null_event_bus import RecordingSink
from campaign_topology.core.ports.storage import InMemoryStorage
from campaign_topology.wizard.controller import WizardController


def test_cancel_clears_checkpoint_and_flags_wizard() -> None:
    storage = InMemoryStorage()
    sink = RecordingSink()
    wizard = WizardController(topology=CHAMPION_CHALLENGER, storage=storage, event_bus=EventBus([sink]))
    wizard.draft.update_metadata({"name": "Holiday"})
    wizard.draft.add_segments([SegmentRef(id="s1", name="Gold", customer_count=100)])
    cancelled_id = wizard.draft.draft_id
    wizard.leave_for_offer_creation()
    assert wizard.checkpoint.load() is not None

    wizard.cancel()

    assert wizard.cancelled is True
    assert wizard.checkpoint.load() is None
    assert not wizard.checkpoint.is_return_pending()
    assert wizard.draft.draft_id != cancelled_id
    assert wizard.draft.topology == CHAMPION_CHALLENGER
    assert wizard.draft.segments == []
    assert wizard.draft.metadata.name == ""
    assert wizard.current_step == 1
    assert wizard.mode == "create"

    clears = [e for e in sink.of_type(CheckpointEvent) if e.action == "clear"]
    assert [e.draft_id for e in clears] == [cancelled_id]


def test_mount_after_cancel_has_nothing_to_resume() -> None:
    storage = InMemoryStorage()
    wizard = WizardController(storage=storage)
    wizard.draft.add_segments([SegmentRef(id="s1", name="Gold", customer_count=100)])
    wizard.leave_for_offer_creation()
    wizard.cancel()

    returning = WizardController(storage=storage)

    assert returning.mount() is False
    assert returning.current_step == 1
