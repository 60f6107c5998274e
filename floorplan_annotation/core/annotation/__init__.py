"""
Core annotation module - UI-agnostic annotation logic.

This module provides the viewport transform, the annotation model, the
interaction state machine and the editor session, usable from any UI
framework (Tkinter, Qt, Web, CLI).
"""

from .events import AnnotationEvent, EventEmitter, EventType
from .interaction import InteractionStateMachine, ToolMode
from .session import (
    EditorContext,
    EditorSession,
    ExportArtifact,
    InMemoryRecordStore,
    RecordStore,
    SaveResult,
)
from .state import AnnotationModel, Marker, MarkerDraft, MarkerKind, Region
from .viewport import (
    Viewport,
    ViewportController,
    normalized_to_screen,
    screen_to_normalized,
)

__all__ = [
    "AnnotationEvent",
    "AnnotationModel",
    "EditorContext",
    "EditorSession",
    "EventEmitter",
    "EventType",
    "ExportArtifact",
    "InMemoryRecordStore",
    "InteractionStateMachine",
    "Marker",
    "MarkerDraft",
    "MarkerKind",
    "RecordStore",
    "Region",
    "SaveResult",
    "ToolMode",
    "Viewport",
    "ViewportController",
    "normalized_to_screen",
    "screen_to_normalized",
]
