"""
GUI adapter for editor sessions.

Bridges the EditorSession with host UI components.
"""

from typing import Callable, List, Optional

import cv2
import numpy as np

from ..core.annotation import AnnotationEvent, EditorSession, EventType
from ..core.annotation.viewport import surface_to_screen
from ..core.export.compositor import marker_radius


class GUIAnnotationAdapter:
    """
    Adapter connecting EditorSession to a host GUI.

    Provides a compatibility layer that:
    - Translates session events to host callbacks
    - Exposes read state for UI chrome (tool mode, zoom, busy flag)
    - Renders an on-screen preview for the current viewport
    """

    def __init__(
        self,
        session: EditorSession,
        on_export_ready: Optional[Callable[[bytes, str], None]] = None,
        on_marker_batch_changed: Optional[Callable[[List[dict]], None]] = None,
        update_view_callback: Optional[Callable[[], None]] = None,
    ):
        """
        Initialize adapter.

        Args:
            session: Core editor session
            on_export_ready: Called with (png_bytes, suggested_filename)
            on_marker_batch_changed: Called with the confirmed marker dicts
            update_view_callback: Called whenever the preview should redraw
        """
        self.session = session
        self.on_export_ready = on_export_ready
        self.on_marker_batch_changed = on_marker_batch_changed
        self.update_view_callback = update_view_callback

        # Subscribe to session events
        self._setup_event_handlers()

    def _setup_event_handlers(self):
        """Setup event handlers for session events."""
        events = self.session.events
        events.on(EventType.EXPORT_READY, self._on_export_ready)
        events.on(EventType.MARKER_BATCH_CHANGED, self._on_marker_batch_changed)
        for event_type in (
            EventType.SESSION_OPENED,
            EventType.REGION_ADDED,
            EventType.REGIONS_RESET,
            EventType.TOOL_CHANGED,
            EventType.VIEWPORT_CHANGED,
            EventType.EDITOR_OPENED,
            EventType.EDITOR_CLOSED,
        ):
            events.on(event_type, self._on_view_changed)

    def _on_export_ready(self, event: AnnotationEvent):
        if self.on_export_ready:
            self.on_export_ready(event.data["data"], event.data["filename"])

    def _on_marker_batch_changed(self, event: AnnotationEvent):
        if self.on_marker_batch_changed:
            self.on_marker_batch_changed(event.data["markers"])
        self._on_view_changed(event)

    def _on_view_changed(self, event: AnnotationEvent):
        if self.update_view_callback:
            self.update_view_callback()

    # Read state for UI chrome

    @property
    def tool_mode(self) -> Optional[str]:
        if not self.session.is_open:
            return None
        return self.session.tool_mode.value

    @property
    def zoom_percent(self) -> Optional[int]:
        if not self.session.is_open:
            return None
        return self.session.zoom_percent

    @property
    def busy(self) -> bool:
        return self.session.busy

    @property
    def markers(self) -> List[dict]:
        if not self.session.is_open:
            return []
        return [marker.to_dict() for marker in self.session.model.markers]

    # Input forwarding

    def select_tool(self, mode: str) -> bool:
        return self.session.interaction.select_tool(mode)

    def pointer_down(self, x: float, y: float) -> bool:
        return self.session.interaction.pointer_down(x, y)

    def pointer_move(self, x: float, y: float) -> bool:
        return self.session.interaction.pointer_move(x, y)

    def pointer_up(self, x: float, y: float) -> bool:
        return self.session.interaction.pointer_up(x, y)

    def pointer_leave(self) -> bool:
        return self.session.interaction.pointer_leave()

    def wheel(self, delta: float) -> bool:
        return self.session.interaction.wheel(delta)

    def get_visualization(self) -> Optional[np.ndarray]:
        """
        Get the surface as currently displayed.

        The image is fitted to the surface, then the viewport transform is
        applied. Markers keep a constant on-screen size.

        Returns:
            RGB surface image, or None when no decoded image is open
        """
        session = self.session
        if not session.is_open or not isinstance(session.context.image, np.ndarray):
            return None

        image = session.context.image
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
        elif image.shape[2] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_RGBA2RGB)

        surface_w, surface_h = (int(round(v)) for v in session.interaction.surface_size)
        fitted = cv2.resize(image, (surface_w, surface_h), interpolation=cv2.INTER_AREA)
        vp = session.viewport.viewport
        transform = np.float32([[vp.scale, 0, vp.pan_x], [0, vp.scale, vp.pan_y]])
        vis = cv2.warpAffine(fitted, transform, (surface_w, surface_h))

        cfg = session.cfg
        regions = list(session.model.regions)
        if session.interaction.candidate_region is not None:
            regions.append(session.interaction.candidate_region)
        for region in regions:
            scale_x = surface_w / region.surface_width
            scale_y = surface_h / region.surface_height
            top_left = surface_to_screen((region.x * scale_x, region.y * scale_y), vp)
            bottom_right = surface_to_screen(
                ((region.x + region.w) * scale_x, (region.y + region.h) * scale_y), vp
            )
            cv2.rectangle(
                vis,
                tuple(int(round(v)) for v in top_left),
                tuple(int(round(v)) for v in bottom_right),
                tuple(int(c) for c in cfg.overlay.stroke_color),
                int(cfg.overlay.stroke_width),
            )

        radius = marker_radius(surface_w, cfg)
        for marker in session.model.markers:
            center = session.viewport.normalized_to_screen(
                marker.position, session.interaction.surface_size
            )
            color = (
                cfg.export.complete_color if marker.complete else cfg.export.incomplete_color
            )
            cv2.circle(
                vis,
                tuple(int(round(v)) for v in center),
                radius,
                tuple(int(c) for c in color),
                -1,
                cv2.LINE_AA,
            )

        return vis
