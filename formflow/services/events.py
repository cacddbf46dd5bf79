"""
Engine events.

The engine announces what happened (a submission was created, an approval
was requested or resolved, a button asked for users to be notified) and
leaves delivery to whoever subscribes.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

SUBMISSION_CREATED = "submission.created"
APPROVAL_REQUESTED = "approval.requested"
APPROVAL_APPROVED = "approval.approved"
APPROVAL_REJECTED = "approval.rejected"
BUTTON_NOTIFY = "button.notify"


@dataclass
class EngineEvent:
    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EventSink(ABC):
    """Receives engine events. Implementations must not raise into the engine."""

    @abstractmethod
    async def emit(self, event: EngineEvent) -> None:
        ...


class LoggingEventSink(EventSink):
    """Default sink: records events in the application log."""

    async def emit(self, event: EngineEvent) -> None:
        logger.info(f"Event {event.name}: {event.payload}")


class InMemoryEventSink(EventSink):
    """Collects events in a list (preview mode and tests)."""

    def __init__(self) -> None:
        self.events: list[EngineEvent] = []

    async def emit(self, event: EngineEvent) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [event.name for event in self.events]


async def publish(sink: EventSink | None, name: str, payload: dict[str, Any]) -> EngineEvent:
    """
    Emit an event, logging (not raising) if the sink fails.

    Delivery is outside the engine, so a broken sink never fails the action
    that produced the event.
    """
    event = EngineEvent(name=name, payload=payload)
    if sink is None:
        return event
    try:
        await sink.emit(event)
    except Exception:
        logger.exception(f"Event sink failed for {name}")
    return event
