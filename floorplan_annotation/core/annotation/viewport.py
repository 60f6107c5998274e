"""
Viewport transform controller.

Maps between screen pixels (which move with every pan and zoom) and
normalized image coordinates, expressed as percent of the image size,
which stay stable across sessions and exports.

The displayed affine mapping is ``screen = world * scale + pan`` where
world coordinates are pixels of the surface at its fitted base size.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

from .utils import clamp, validate_point, validate_size

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


@dataclass
class Viewport:
    """Ephemeral pan/zoom state of the display surface."""

    scale: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0

    @property
    def pan_offset(self) -> Point:
        return (self.pan_x, self.pan_y)


def screen_to_surface(point: Point, viewport: Viewport) -> Point:
    """Invert the displayed transform: ``(screen - pan) / scale``."""
    x, y = validate_point(point)
    return (
        (x - viewport.pan_x) / viewport.scale,
        (y - viewport.pan_y) / viewport.scale,
    )


def surface_to_screen(point: Point, viewport: Viewport) -> Point:
    x, y = validate_point(point)
    return (
        x * viewport.scale + viewport.pan_x,
        y * viewport.scale + viewport.pan_y,
    )


def screen_to_normalized(
    point: Point, viewport: Viewport, surface_size: Tuple[float, float]
) -> Point:
    """
    Convert a screen position into normalized percent coordinates.

    Args:
        point: (x, y) in screen pixels relative to the surface origin
        viewport: Current pan/zoom state
        surface_size: (width, height) of the surface at scale 1

    Returns:
        (x%, y%) of the image dimensions
    """
    width, height = validate_size(surface_size)
    world_x, world_y = screen_to_surface(point, viewport)
    return (world_x / width * 100.0, world_y / height * 100.0)


def normalized_to_screen(
    point: Point, viewport: Viewport, surface_size: Tuple[float, float]
) -> Point:
    """Inverse of :func:`screen_to_normalized`."""
    width, height = validate_size(surface_size)
    nx, ny = validate_point(point)
    return surface_to_screen((nx / 100.0 * width, ny / 100.0 * height), viewport)


class ViewportController:
    """
    Owns a Viewport and applies zoom and pan gestures to it.

    Scale always stays within [min_scale, max_scale]. Returning to the
    minimum scale does not reset the pan offset.
    """

    def __init__(
        self,
        min_scale: float = 1.0,
        max_scale: float = 8.0,
        zoom_sensitivity: float = 0.001,
    ):
        if min_scale <= 0 or max_scale < min_scale:
            raise ValueError(
                f"Invalid scale bounds: min={min_scale}, max={max_scale}"
            )
        self.min_scale = float(min_scale)
        self.max_scale = float(max_scale)
        self.zoom_sensitivity = float(zoom_sensitivity)
        self.viewport = Viewport(scale=self.min_scale)

    @classmethod
    def from_config(cls, cfg):
        return cls(
            min_scale=cfg.viewport.min_scale,
            max_scale=cfg.viewport.max_scale,
            zoom_sensitivity=cfg.viewport.zoom_sensitivity,
        )

    @property
    def scale(self) -> float:
        return self.viewport.scale

    @property
    def zoom_percent(self) -> int:
        return int(round(self.viewport.scale * 100))

    def zoom_by(self, delta: float) -> float:
        """
        Apply a wheel or pinch delta.

        Positive deltas zoom out, negative deltas zoom in, matching
        wheel event conventions.

        Returns:
            The new scale
        """
        factor = 1.0 - float(delta) * self.zoom_sensitivity
        scale = clamp(self.viewport.scale * factor, self.min_scale, self.max_scale)
        self.viewport.scale = scale
        logger.debug(f"Zoom delta {delta} -> scale {scale:.4f}")
        return scale

    def pan_by(self, dx: float, dy: float):
        self.viewport.pan_x += dx
        self.viewport.pan_y += dy

    def pan_to(self, x: float, y: float):
        self.viewport.pan_x = x
        self.viewport.pan_y = y

    def reset(self):
        self.viewport = Viewport(scale=self.min_scale)

    def screen_to_normalized(self, point: Point, surface_size) -> Point:
        return screen_to_normalized(point, self.viewport, surface_size)

    def normalized_to_screen(self, point: Point, surface_size) -> Point:
        return normalized_to_screen(point, self.viewport, surface_size)

    def screen_to_surface(self, point: Point) -> Point:
        return screen_to_surface(point, self.viewport)
