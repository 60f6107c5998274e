"""
Interaction state machine.

Interprets raw pointer and wheel events through the viewport transform
and turns them into model mutations. The current tool mode decides what
a gesture means:

- PAN: dragging moves the viewport.
- ADD: a click places one marker, opens its editor, then the machine
  falls back to PAN.
- REGION: dragging draws a rectangle; it is committed on release when
  wider than the minimum width.

While a marker editor is open, or while the surface is disabled during
an export, pointer events are ignored.
"""

import functools
import logging
import math
from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Dict, Optional, Tuple

from ..errors import InputError
from .events import AnnotationEvent, EventEmitter, EventType
from .state import AnnotationModel, Marker, Region
from .utils import is_inside, normalize_rect, validate_point, validate_size
from .viewport import ViewportController

logger = logging.getLogger(__name__)


class ToolMode(Enum):
    PAN = "pan"
    ADD = "add"
    REGION = "region"

    @classmethod
    def parse(cls, value) -> "ToolMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InputError(f"Unknown tool mode: {value!r}")


# (mode, trigger) -> next mode
TRANSITIONS: Dict[Tuple[ToolMode, str], ToolMode] = {
    (ToolMode.PAN, "select_pan"): ToolMode.PAN,
    (ToolMode.PAN, "select_add"): ToolMode.ADD,
    (ToolMode.PAN, "select_region"): ToolMode.REGION,
    (ToolMode.ADD, "select_pan"): ToolMode.PAN,
    (ToolMode.ADD, "select_add"): ToolMode.ADD,
    (ToolMode.ADD, "select_region"): ToolMode.REGION,
    (ToolMode.ADD, "marker_placed"): ToolMode.PAN,
    (ToolMode.REGION, "select_pan"): ToolMode.PAN,
    (ToolMode.REGION, "select_add"): ToolMode.ADD,
    (ToolMode.REGION, "select_region"): ToolMode.REGION,
}


def next_mode(mode: ToolMode, trigger: str) -> ToolMode:
    """Look up a transition; unknown triggers leave the mode unchanged."""
    return TRANSITIONS.get((mode, trigger), mode)


@dataclass
class Gesture:
    """A pointer gesture in progress."""

    mode: ToolMode
    start_x: float
    start_y: float
    start_pan_x: float = 0.0
    start_pan_y: float = 0.0
    moved: bool = False


def ignores_malformed_input(method):
    """Report malformed pointer data as an ignored event."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except InputError as e:
            logger.debug(f"Ignoring malformed input in {method.__name__}: {e}")
            return False

    return wrapper


class InteractionStateMachine:
    """
    Owns the tool mode, the gesture in progress and the viewport.

    All handlers return True when the event was consumed and False when
    it was ignored.
    """

    def __init__(
        self,
        model: AnnotationModel,
        viewport: ViewportController,
        surface_size: Tuple[float, float],
        click_tolerance: float = 4,
        min_region_width: float = 2,
        events: Optional[EventEmitter] = None,
    ):
        self.model = model
        self.viewport = viewport
        self.surface_size = validate_size(surface_size)
        self.click_tolerance = click_tolerance
        self.min_region_width = min_region_width
        self.events = events if events is not None else model.events

        self.enabled = True
        self._mode = ToolMode.PAN
        self._gesture: Optional[Gesture] = None
        self._candidate: Optional[Region] = None

    @classmethod
    def from_config(cls, model, viewport, surface_size, cfg, events=None):
        return cls(
            model,
            viewport,
            surface_size,
            click_tolerance=cfg.interaction.click_tolerance,
            min_region_width=cfg.interaction.min_region_width,
            events=events,
        )

    @property
    def tool_mode(self) -> ToolMode:
        return self._mode

    @property
    def is_dragging(self) -> bool:
        return self._gesture is not None and self._gesture.mode != ToolMode.ADD

    @property
    def candidate_region(self) -> Optional[Region]:
        """Rectangle being drawn, not yet committed."""
        return self._candidate

    @property
    def editor_open(self) -> bool:
        return self.model.active_edit_target is not None

    def resize_surface(self, width: float, height: float):
        self.surface_size = validate_size((width, height))
        self._cancel_gesture()

    @ignores_malformed_input
    def select_tool(self, mode) -> bool:
        mode = ToolMode.parse(mode)
        if self.editor_open:
            logger.debug(f"Ignoring tool change to {mode.value}: editor is open")
            return False
        self._cancel_gesture()
        self._fire(f"select_{mode.value}")
        return True

    @ignores_malformed_input
    def pointer_down(self, x: float, y: float) -> bool:
        x, y = validate_point((x, y))
        if not self._accepts_pointer():
            return False

        if self._mode == ToolMode.REGION:
            x, y = self.viewport.screen_to_surface((x, y))

        pan_x, pan_y = self.viewport.viewport.pan_offset
        self._gesture = Gesture(self._mode, x, y, pan_x, pan_y)
        self._candidate = None
        return True

    @ignores_malformed_input
    def pointer_move(self, x: float, y: float) -> bool:
        x, y = validate_point((x, y))
        gesture = self._gesture
        if gesture is None or not self._accepts_pointer():
            return False

        if gesture.mode == ToolMode.PAN:
            self.viewport.pan_to(
                gesture.start_pan_x + (x - gesture.start_x),
                gesture.start_pan_y + (y - gesture.start_y),
            )
            gesture.moved = True
            self._emit_viewport_changed()
        elif gesture.mode == ToolMode.ADD:
            if self._travel(gesture, x, y) > self.click_tolerance:
                gesture.moved = True
        else:
            self._candidate = self._region_from(gesture, x, y)
            gesture.moved = True
        return True

    @ignores_malformed_input
    def pointer_up(self, x: float, y: float) -> bool:
        x, y = validate_point((x, y))
        gesture, self._gesture = self._gesture, None
        if gesture is None or not self._accepts_pointer():
            self._candidate = None
            return False

        if gesture.mode == ToolMode.PAN:
            return True
        if gesture.mode == ToolMode.ADD:
            if gesture.moved or self._travel(gesture, x, y) > self.click_tolerance:
                logger.debug("Pointer travelled too far for a placement click")
                return False
            return self._place_marker(gesture.start_x, gesture.start_y) is not None

        candidate = self._region_from(gesture, x, y)
        self._candidate = None
        return self._commit_region(candidate)

    def pointer_leave(self) -> bool:
        """The pointer left the surface: finish or drop the current gesture."""
        gesture, self._gesture = self._gesture, None
        candidate, self._candidate = self._candidate, None
        if gesture is None:
            return False
        if gesture.mode == ToolMode.REGION and candidate is not None:
            return self._commit_region(candidate)
        return gesture.mode == ToolMode.PAN

    @ignores_malformed_input
    def wheel(self, delta: float) -> bool:
        if isinstance(delta, bool) or not isinstance(delta, Real):
            raise InputError(f"Wheel delta must be a number, got {delta!r}")
        if not math.isfinite(delta):
            raise InputError(f"Wheel delta must be finite, got {delta!r}")
        if not self._accepts_pointer():
            return False
        self.viewport.zoom_by(delta)
        self._emit_viewport_changed()
        return True

    @ignores_malformed_input
    def pan_by(self, dx: float, dy: float) -> bool:
        dx, dy = validate_point((dx, dy))
        if self._mode != ToolMode.PAN or not self._accepts_pointer():
            return False
        self.viewport.pan_by(dx, dy)
        self._emit_viewport_changed()
        return True

    def _accepts_pointer(self) -> bool:
        if not self.enabled:
            logger.debug("Ignoring pointer event: surface is disabled")
            self._cancel_gesture()
            return False
        if self.editor_open:
            logger.debug("Ignoring pointer event: marker editor is open")
            self._cancel_gesture()
            return False
        return True

    def _place_marker(self, x: float, y: float) -> Optional[Marker]:
        if not is_inside((x, y), self.surface_size):
            logger.debug(f"Click at ({x}, {y}) is outside the surface")
            return None
        position = self.viewport.screen_to_normalized((x, y), self.surface_size)
        if not is_inside(position, (100.0, 100.0)):
            logger.debug(f"Click at ({x}, {y}) is outside the image")
            return None

        marker = self.model.add_marker(position)
        if marker is None:
            return None
        self.model.open_editor(marker.id)
        self._fire("marker_placed")
        return marker

    def _commit_region(self, region: Region) -> bool:
        if region.w <= self.min_region_width:
            logger.debug(f"Discarding region narrower than {self.min_region_width}px")
            return False
        self.model.add_region(region)
        return True

    def _region_from(self, gesture: Gesture, x: float, y: float) -> Region:
        x, y = self.viewport.screen_to_surface((x, y))
        rect = normalize_rect(gesture.start_x, gesture.start_y, x, y)
        return Region(*rect, *self.surface_size)

    @staticmethod
    def _travel(gesture: Gesture, x: float, y: float) -> float:
        return math.hypot(x - gesture.start_x, y - gesture.start_y)

    def _cancel_gesture(self):
        self._gesture = None
        self._candidate = None

    def _fire(self, trigger: str):
        previous = self._mode
        self._mode = next_mode(previous, trigger)
        if self._mode != previous:
            logger.debug(f"Tool mode {previous.value} -> {self._mode.value} ({trigger})")
            self.events.emit(
                AnnotationEvent(
                    EventType.TOOL_CHANGED,
                    {"previous": previous.value, "mode": self._mode.value},
                )
            )

    def _emit_viewport_changed(self):
        vp = self.viewport.viewport
        self.events.emit(
            AnnotationEvent(
                EventType.VIEWPORT_CHANGED,
                {
                    "scale": vp.scale,
                    "pan_offset": vp.pan_offset,
                    "zoom_percent": self.viewport.zoom_percent,
                },
            )
        )
