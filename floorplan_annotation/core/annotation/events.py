"""
Event system for annotation workflow.

Provides a decoupled way for the annotation core to notify the host
application about state changes without depending on a UI framework.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Types of events that can occur during annotation."""

    # Session events
    SESSION_OPENED = "session_opened"
    SESSION_CLOSED = "session_closed"

    # Marker events
    MARKER_ADDED = "marker_added"
    MARKER_UPDATED = "marker_updated"
    MARKER_DELETED = "marker_deleted"
    MARKER_BATCH_CHANGED = "marker_batch_changed"

    # Editor events
    EDITOR_OPENED = "editor_opened"
    EDITOR_CLOSED = "editor_closed"

    # Region events
    REGION_ADDED = "region_added"
    REGIONS_RESET = "regions_reset"

    # Interaction events
    TOOL_CHANGED = "tool_changed"
    VIEWPORT_CHANGED = "viewport_changed"

    # Export events
    EXPORT_STARTED = "export_started"
    EXPORT_READY = "export_ready"
    EXPORT_FAILED = "export_failed"

    # Persistence events
    SAVE_COMPLETED = "save_completed"
    SAVE_FAILED = "save_failed"


@dataclass
class AnnotationEvent:
    """Event that occurs during annotation."""

    event_type: EventType
    data: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.data is None:
            self.data = {}


class EventEmitter:
    """
    Simple event emitter for pub/sub pattern.

    Allows components to subscribe to events without tight coupling.
    """

    def __init__(self):
        self._listeners: Dict[EventType, List[Callable]] = {}

    def on(self, event_type: EventType, callback: Callable[[AnnotationEvent], None]):
        """Subscribe to an event type."""
        if event_type not in self._listeners:
            self._listeners[event_type] = []
        self._listeners[event_type].append(callback)

    def off(self, event_type: EventType, callback: Callable[[AnnotationEvent], None]):
        """Unsubscribe from an event type."""
        if event_type in self._listeners:
            self._listeners[event_type].remove(callback)

    def emit(self, event: AnnotationEvent):
        """Emit an event to all subscribers."""
        for callback in list(self._listeners.get(event.event_type, [])):
            try:
                callback(event)
            except Exception:
                # A broken listener must not break the engine
                logger.exception(f"Error in listener for {event.event_type.value}")

    def clear(self):
        """Clear all event listeners."""
        self._listeners.clear()
