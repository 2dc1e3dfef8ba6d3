"""
Event sink interface.

Sinks consume draft and wizard events emitted by the engine.
"""
from __future__ import annotations

from typing import Any, Protocol


class EventSink(Protocol):
    def on_event(self, event: Any) -> None:
        """Consume a draft or wizard event."""
