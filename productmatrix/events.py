"""Event system for harness runs.

Every significant step of a run (a matrix opened, a case recorded, the
report written) emits a typed RunEvent. Events are immutable and the
runtime keeps them in emission order, so a run can be audited afterwards or
streamed to a JSON Lines file.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from dateutil.parser import isoparse

from productmatrix.types import EventType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunEvent:
    """A single event in a harness run.

    Attributes:
        event_id: Unique event identifier (e.g., "evt_3f2a...")
        type: Event type from EventType enum
        ts: UTC timestamp when the event occurred
        matrix: Category of the matrix the event relates to, if any
        payload: Optional event-specific data

    Examples:
        >>> event = RunEvent.create(EventType.MATRIX_OPENED, matrix="valid")
        >>> event.type
        <EventType.MATRIX_OPENED: 'matrix.opened'>
    """
    event_id: str
    type: EventType
    ts: datetime
    matrix: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        # Convert string type to EventType enum if needed
        if isinstance(self.type, str):
            object.__setattr__(self, "type", EventType(self.type))

    @classmethod
    def create(
        cls,
        event_type: EventType,
        matrix: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> "RunEvent":
        """Create an event stamped with a fresh id and the current UTC time."""
        return cls(
            event_id=f"evt_{uuid.uuid4().hex[:16]}",
            type=event_type,
            ts=datetime.now(timezone.utc),
            matrix=matrix,
            payload=payload,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization.

        Timestamp is formatted as ISO 8601 string.
        """
        result: Dict[str, Any] = {
            "eventId": self.event_id,
            "type": self.type.value,
            "ts": self.ts.isoformat(),
        }
        if self.matrix is not None:
            result["matrix"] = self.matrix
        if self.payload is not None:
            result["payload"] = self.payload
        return result

    def to_jsonl(self) -> str:
        """Convert event to a single-line JSON string."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunEvent":
        ts = isoparse(data["ts"])
        return cls(
            event_id=data["eventId"],
            type=EventType(data["type"]),
            ts=ts,
            matrix=data.get("matrix"),
            payload=data.get("payload"),
        )


EventListener = Callable[[RunEvent], None]
"""Type alias for event listener callbacks.

Listeners are called synchronously when events are emitted.
"""


class EventEmitter:
    """Dispatches run events to subscribed listeners.

    Listeners are called in registration order: type-specific listeners
    first, then wildcard listeners. A listener that raises is logged and
    skipped; it never interrupts the run or other listeners.

    Examples:
        >>> emitter = EventEmitter()
        >>> seen = []
        >>> emitter.on(EventType.CASE_RECORDED, seen.append)
        >>> emitter.emit(RunEvent.create(EventType.CASE_RECORDED, matrix="valid"))
        >>> len(seen)
        1
    """

    def __init__(self):
        self._listeners: Dict[EventType, List[EventListener]] = {}
        self._any_listeners: List[EventListener] = []

    def on(self, event_type: EventType, listener: EventListener) -> None:
        """Subscribe to a specific event type."""
        self._listeners.setdefault(event_type, []).append(listener)

    def on_any(self, listener: EventListener) -> None:
        """Subscribe to all event types."""
        self._any_listeners.append(listener)

    def off(self, event_type: EventType, listener: EventListener) -> None:
        """Unsubscribe from a specific event type. Unknown listeners are ignored."""
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def off_any(self, listener: EventListener) -> None:
        if listener in self._any_listeners:
            self._any_listeners.remove(listener)

    def emit(self, event: RunEvent) -> None:
        """Dispatch an event to all registered listeners.

        Args:
            event: Event to dispatch
        """
        listeners = list(self._listeners.get(event.type, [])) + list(self._any_listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener failed for %s", event.type.value)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners.clear()
        self._any_listeners.clear()

    def listener_count(self, event_type: Optional[EventType] = None) -> int:
        """Count registered listeners.

        Args:
            event_type: If provided, count listeners for this type only.
                        If None, count all listeners (including wildcard).
        """
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return len(self._any_listeners) + sum(len(v) for v in self._listeners.values())


__all__ = [
    "RunEvent",
    "EventListener",
    "EventEmitter",
]
