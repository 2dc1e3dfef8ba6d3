"""
Logging event sink.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, is_dataclass
from typing import Any


class LoggingEventSink:
    """Logs draft events using the standard logging module."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self._logger = logger if logger is not None else logging.getLogger("campaign_topology.events")
        self._level = level

    def on_event(self, event: Any) -> None:
        payload = asdict(event) if is_dataclass(event) and not isinstance(event, type) else {"event": repr(event)}
        self._logger.log(
            self._level,
            "draft_event",
            extra={"event_type": type(event).__name__, "event": payload},
        )
