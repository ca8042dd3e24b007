# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Protocol

from coreason_bulk_admin.utils.logger import logger


class EventType(Enum):
    RUN_START = "run_start"
    ITEM_START = "item_start"
    ITEM_RESULT = "item_result"
    RUN_END = "run_end"
    ERROR = "error"


@dataclass
class AutomationEvent:
    type: EventType
    message: str
    timestamp: float = field(default_factory=time.time)
    payload: Dict[str, Any] = field(default_factory=dict)


class EventEmitter(Protocol):
    def emit(self, event: AutomationEvent) -> None:
        """Emits an automation event."""
        ...  # pragma: no cover


class LoguruEmitter:
    """Adapter that logs events to Loguru."""

    def emit(self, event: AutomationEvent) -> None:
        if event.type == EventType.ERROR:
            logger.error(f"[{event.type.value}] {event.message} | {event.payload}")
        elif event.type == EventType.ITEM_RESULT:
            outcome = event.payload.get("outcome", "unknown")
            if outcome == "failed":
                logger.error(f"[{event.type.value}] {event.message} | {event.payload}")
            elif outcome == "skipped":
                logger.warning(f"[{event.type.value}] {event.message} | {event.payload}")
            else:
                logger.info(f"[{event.type.value}] {event.message} | {event.payload}")
        elif event.type == EventType.ITEM_START:
            logger.debug(f"[{event.type.value}] {event.message}")
        else:
            logger.info(f"[{event.type.value}] {event.message} | {event.payload}")


class EventCollector:
    """Collects events in memory."""

    def __init__(self) -> None:
        self.events: List[AutomationEvent] = []

    def emit(self, event: AutomationEvent) -> None:
        self.events.append(event)

    def get_events(self) -> List[AutomationEvent]:
        return self.events


class CompositeEmitter:
    """Broadcasts events to multiple emitters."""

    def __init__(self, emitters: List[EventEmitter]) -> None:
        self.emitters = emitters

    def emit(self, event: AutomationEvent) -> None:
        for emitter in self.emitters:
            emitter.emit(event)
