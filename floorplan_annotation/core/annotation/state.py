"""
State management for annotation sessions.

Contains the data classes for markers and regions, and the
AnnotationModel that owns their lifetimes.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..errors import InputError
from .events import AnnotationEvent, EventEmitter, EventType
from .utils import is_inside, validate_point

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("label", "serial", "name", "kind")


class MarkerKind(Enum):
    """Equipment configuration attached to a marker."""

    SINGLE = "Single"
    DUAL = "Dual"

    @classmethod
    def parse(cls, value) -> "MarkerKind":
        if isinstance(value, cls):
            return value
        for kind in cls:
            if isinstance(value, str) and value.strip().lower() == kind.value.lower():
                return kind
        raise InputError(f"Unknown marker kind: {value!r}")


def _new_marker_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Marker:
    """A labeled point annotation in normalized percent coordinates."""

    x: float
    y: float
    label: str = ""
    kind: MarkerKind = MarkerKind.SINGLE
    serial: str = ""
    name: str = ""
    id: str = field(default_factory=_new_marker_id)

    @property
    def complete(self) -> bool:
        """True iff serial, name and label are all non-blank."""
        return all(value.strip() for value in (self.serial, self.name, self.label))

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def to_dict(self):
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "label": self.label,
            "x": self.x,
            "y": self.y,
            "kind": self.kind.value,
            "serial": self.serial,
            "name": self.name,
            "complete": self.complete,
        }

    @classmethod
    def from_dict(cls, data: dict):
        """Create from dictionary."""
        x, y = validate_position((data["x"], data["y"]))
        kwargs = {}
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        return cls(
            x=x,
            y=y,
            label=str(data.get("label", "")),
            kind=MarkerKind.parse(data.get("kind", MarkerKind.SINGLE)),
            serial=str(data.get("serial", "")),
            name=str(data.get("name", "")),
            **kwargs,
        )

    def to_record(self, context=None) -> dict:
        """Flatten into a record for the host's persistence call."""
        record = self.to_dict()
        if context is not None:
            record.update(
                {
                    "company": context.company,
                    "branch": context.branch,
                    "recorder": context.recorder,
                }
            )
        return record


@dataclass(frozen=True)
class Region:
    """
    A drawn rectangle in pixels of the surface it was captured on.

    The capturing surface size travels with the rectangle so that it can
    be projected onto rasters of any size later on.
    """

    x: float
    y: float
    w: float
    h: float
    surface_width: float
    surface_height: float

    def normalized(self) -> Tuple[float, float, float, float]:
        """Rectangle as percent of the capturing surface."""
        return (
            self.x / self.surface_width * 100.0,
            self.y / self.surface_height * 100.0,
            self.w / self.surface_width * 100.0,
            self.h / self.surface_height * 100.0,
        )

    def to_dict(self):
        return {
            "x": self.x,
            "y": self.y,
            "w": self.w,
            "h": self.h,
            "surface_width": self.surface_width,
            "surface_height": self.surface_height,
        }

    @classmethod
    def from_dict(cls, data: dict):
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            w=float(data["w"]),
            h=float(data["h"]),
            surface_width=float(data["surface_width"]),
            surface_height=float(data["surface_height"]),
        )


def validate_position(position) -> Tuple[float, float]:
    """Validate a normalized marker position, which must lie on the image."""
    x, y = validate_point(position)
    if not is_inside((x, y), (100.0, 100.0)):
        raise InputError(f"Marker position must lie within 0-100%, got {(x, y)}")
    return x, y


def _coerce_field(field_name: str, value):
    if field_name not in EDITABLE_FIELDS:
        raise InputError(f"Field {field_name!r} cannot be edited")
    if field_name == "kind":
        return MarkerKind.parse(value)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InputError(f"Field {field_name!r} expects text, got {type(value)}")
    return value


class MarkerDraft:
    """
    Private copy of a marker being edited in the detail editor.

    Changes stay here until the editor is confirmed.
    """

    def __init__(self, marker: Marker):
        self.marker_id = marker.id
        self._values: Dict[str, object] = {
            name: getattr(marker, name) for name in EDITABLE_FIELDS
        }
        self._original = dict(self._values)

    def set(self, field_name: str, value):
        self._values[field_name] = _coerce_field(field_name, value)

    def get(self, field_name: str):
        return self._values[field_name]

    @property
    def complete(self) -> bool:
        return all(
            str(self._values[name]).strip() for name in ("serial", "name", "label")
        )

    def changes(self) -> Dict[str, object]:
        return {
            name: value
            for name, value in self._values.items()
            if value != self._original[name]
        }


class AnnotationModel:
    """
    Owns the markers and regions of one editing session.

    Only one marker can be in the detail editor at a time; while it is
    open, new markers cannot be placed.
    """

    def __init__(self, events: Optional[EventEmitter] = None):
        self.events = events if events is not None else EventEmitter()
        self._markers: List[Marker] = []
        self._regions: List[Region] = []
        self._draft: Optional[MarkerDraft] = None

    @property
    def markers(self) -> Tuple[Marker, ...]:
        return tuple(self._markers)

    @property
    def regions(self) -> Tuple[Region, ...]:
        return tuple(self._regions)

    @property
    def active_edit_target(self) -> Optional[str]:
        """Id of the marker whose editor is open, if any."""
        return self._draft.marker_id if self._draft is not None else None

    @property
    def draft(self) -> Optional[MarkerDraft]:
        return self._draft

    def get_marker(self, marker_id: str) -> Marker:
        for marker in self._markers:
            if marker.id == marker_id:
                return marker
        raise KeyError(marker_id)

    def add_marker(self, position) -> Optional[Marker]:
        """
        Place a new marker.

        Args:
            position: (x, y) in normalized percent coordinates

        Returns:
            The new marker, or None when another marker's editor is open
        """
        if self._draft is not None:
            logger.debug(
                f"Ignoring placement while marker {self._draft.marker_id} is edited"
            )
            return None

        x, y = validate_position(position)
        marker = Marker(x=x, y=y, label=str(len(self._markers) + 1))
        self._markers.append(marker)

        self.events.emit(
            AnnotationEvent(EventType.MARKER_ADDED, {"marker": marker.to_dict()})
        )
        self._emit_batch_changed()
        return marker

    def update_marker(self, marker_id: str, field_name: str, value) -> Marker:
        """
        Update a single metadata field of a marker.

        Raises:
            KeyError: If no marker has this id
            InputError: If the field or value is invalid
        """
        marker = self.get_marker(marker_id)
        setattr(marker, field_name, _coerce_field(field_name, value))

        self.events.emit(
            AnnotationEvent(EventType.MARKER_UPDATED, {"marker": marker.to_dict()})
        )
        self._emit_batch_changed()
        return marker

    def delete_marker(self, marker_id: str):
        marker = self.get_marker(marker_id)
        self._markers.remove(marker)
        if self.active_edit_target == marker_id:
            self._draft = None

        self.events.emit(
            AnnotationEvent(EventType.MARKER_DELETED, {"marker_id": marker_id})
        )
        self._emit_batch_changed()

    def add_region(self, rect) -> Region:
        """Append a region; accepts a Region or an (x, y, w, h, sw, sh) tuple."""
        region = rect if isinstance(rect, Region) else Region(*rect)
        if region.w < 0 or region.h < 0:
            raise InputError(f"Region size must be non-negative, got {region}")
        if region.surface_width <= 0 or region.surface_height <= 0:
            raise InputError(f"Region surface must be positive, got {region}")
        self._regions.append(region)

        self.events.emit(
            AnnotationEvent(
                EventType.REGION_ADDED,
                {"region": region.to_dict(), "num_regions": len(self._regions)},
            )
        )
        return region

    def reset_regions(self):
        self._regions.clear()
        self.events.emit(AnnotationEvent(EventType.REGIONS_RESET))

    def open_editor(self, marker_id: str) -> MarkerDraft:
        """
        Open the detail editor for a marker.

        Raises:
            KeyError: If no marker has this id
            InputError: If another marker's editor is already open
        """
        if self._draft is not None and self._draft.marker_id != marker_id:
            raise InputError(
                f"Marker {self._draft.marker_id} is already being edited"
            )
        if self._draft is None:
            self._draft = MarkerDraft(self.get_marker(marker_id))
            self.events.emit(
                AnnotationEvent(EventType.EDITOR_OPENED, {"marker_id": marker_id})
            )
        return self._draft

    def confirm_editor(self) -> Optional[Marker]:
        """Apply the draft to its marker and close the editor."""
        if self._draft is None:
            return None
        draft, self._draft = self._draft, None

        marker = self.get_marker(draft.marker_id)
        changes = draft.changes()
        for field_name, value in changes.items():
            setattr(marker, field_name, _coerce_field(field_name, value))

        if changes:
            self.events.emit(
                AnnotationEvent(EventType.MARKER_UPDATED, {"marker": marker.to_dict()})
            )
            self._emit_batch_changed()
        self.events.emit(
            AnnotationEvent(
                EventType.EDITOR_CLOSED,
                {"marker_id": draft.marker_id, "confirmed": True},
            )
        )
        return marker

    def delete_from_editor(self):
        """Delete the marker being edited and close the editor."""
        if self._draft is None:
            return
        marker_id = self._draft.marker_id
        self.delete_marker(marker_id)
        self.events.emit(
            AnnotationEvent(
                EventType.EDITOR_CLOSED, {"marker_id": marker_id, "confirmed": False}
            )
        )

    def snapshot(self) -> Tuple[Marker, ...]:
        """Independent copies of the confirmed markers, in order."""
        return tuple(replace(marker) for marker in self._markers)

    def region_snapshot(self) -> Tuple[Region, ...]:
        return tuple(self._regions)

    def clear(self):
        self._markers.clear()
        self._regions.clear()
        self._draft = None

    def _emit_batch_changed(self):
        self.events.emit(
            AnnotationEvent(
                EventType.MARKER_BATCH_CHANGED,
                {"markers": [marker.to_dict() for marker in self._markers]},
            )
        )
