"""
Notification sink.

Services publish named events after their transaction commits. Delivery is
fire-and-forget: a publisher failure is logged and dropped so it can never
turn a committed operation into a reported failure.

The concrete publisher is injected (see factory.api.deps.get_event_publisher);
nothing in the core reaches for a global dispatcher.
"""
import logging
from typing import Any, Dict, List, Protocol, Tuple


logger = logging.getLogger(__name__)


APPROVAL_UPDATED = "approval:updated"
BATCH_STATUS_UPDATED = "batch:status_updated"
BOX_UPDATED = "box:updated"


class EventPublisher(Protocol):
    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        ...


class LoggingEventPublisher:
    """Default publisher: writes every event to the application log."""

    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        logger.info(f"[EVENT] {event}: {payload}")


class RecordingEventPublisher:
    """Keeps published events in memory, in publish order."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((event, payload))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def clear(self) -> None:
        self.events.clear()


async def notify(publisher: EventPublisher, event: str, payload: Dict[str, Any]) -> None:
    """Publish an event, swallowing delivery failures."""
    if publisher is None:
        return
    try:
        await publisher.publish(event, payload)
    except Exception as e:
        logger.warning(f"Failed to deliver {event} notification: {e}")
