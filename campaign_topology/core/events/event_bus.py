"""
Synchronous draft event bus.

Events are dispatched in registration order on the caller's thread, so a sink
observes the draft exactly as the mutator left it.
"""
from __future__ import annotations

from typing import Any, Iterable

from campaign_topology.core.events.event_sink import EventSink


class EventBus:
    """Dispatches draft events to registered sinks."""

    def __init__(self, sinks: Iterable[EventSink] | None = None) -> None:
        self._sinks: list[EventSink] = list(sinks) if sinks is not None else []
        self._closed = False

    def register(self, sink: EventSink) -> None:
        """Register a new sink (idempotent)."""
        if any(s is sink for s in self._sinks):
            return
        self._sinks.append(sink)

    @property
    def sinks(self) -> list[EventSink]:
        return list(self._sinks)

    def emit(self, event: Any) -> None:
        """Emit an event to all sinks. Emitting after close() is a no-op."""
        if self._closed:
            return
        for sink in list(self._sinks):
            sink.on_event(event)

    def close(self) -> None:
        """
        Finalize all sinks that expose a close() method.
        """
        if self._closed:
            return

        for sink in self._sinks:
            close_fn = getattr(sink, "close", None)
            if callable(close_fn):
                close_fn()

        self._closed = True
