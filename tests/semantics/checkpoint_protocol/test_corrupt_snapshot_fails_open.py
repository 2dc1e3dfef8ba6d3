"""
Semantic test: snapshot corruption handling.

Invariant:
A malformed or invariant-violating checkpoint is treated as absent (fail
open) unless strict_snapshot is configured, in which case
SnapshotCorruption is raised.
"""

from __future__ import annotations

import json

import pytest

from campaign_topology.core.config import EngineConfig
from campaign_topology.core.errors import SnapshotCorruption
from campaign_topology.core.ports.storage import InMemoryStorage
from campaign_topology.wizard.checkpoint import DraftCheckpoint
from campaign_topology.wizard.controller import WizardController

KEY = "campaign_draft_snapshot"


def envelope_with(draft: dict) -> str:
    return json.dumps(
        {
            "version": 1,
            "checkpoint_id": "c1",
            "saved_at": "2026-01-01T00:00:00Z",
            "draft": draft,
        }
    )


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        json.dumps({"unexpected": True}),
        # priorities 1 and 3 are not contiguous
        envelope_with(
            {
                "draft_id": "d1",
                "topology": "multiple_target_group",
                "segments": [
                    {"id": "s1", "name": "A", "priority": 1},
                    {"id": "s2", "name": "B", "priority": 3},
                ],
            }
        ),
        # flat mappings on a round-robin draft
        envelope_with(
            {
                "draft_id": "d1",
                "topology": "round_robin",
                "segments": [{"id": "s1", "name": "A"}],
                "flat_mappings": {"s1": ["o1"]},
            }
        ),
    ],
)
def test_lenient_load_treats_corruption_as_absent(payload: str) -> None:
    storage = InMemoryStorage({KEY: payload})

    assert DraftCheckpoint(storage).load() is None


def test_strict_load_raises() -> None:
    storage = InMemoryStorage({KEY: "{not json"})
    checkpoint = DraftCheckpoint(storage, config=EngineConfig(strict_snapshot=True))

    with pytest.raises(SnapshotCorruption):
        checkpoint.load()


def test_resume_with_corrupt_snapshot_starts_empty() -> None:
    storage = InMemoryStorage({KEY: "{not json"})
    DraftCheckpoint(storage).signal_return()

    wizard = WizardController(storage=storage)
    assert wizard.mount() is True

    assert wizard.current_step == 3
    assert wizard.draft.segments == []
    assert storage.get(KEY) is None
