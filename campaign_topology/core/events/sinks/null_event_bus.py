from __future__ import annotations

from typing import Any

from campaign_topology.core.events.event_bus import EventBus


class RecordingSink:
    """Keeps every event in memory (used by tests and previews)."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    def on_event(self, event: Any) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[Any]:
        return [e for e in self.events if isinstance(e, event_type)]


class NullEventBus(EventBus):
    """EventBus without sinks (used for tests and throwaway drafts)."""

    def __init__(self) -> None:
        super().__init__(sinks=[])
