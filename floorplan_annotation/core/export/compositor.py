"""
Compositors that bake markers and regions into an export raster.

Marker positions are normalized percents and are resolved against the
export raster's own dimensions. Drawing happens in sequence order, so
later annotations paint over earlier ones.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional, Tuple

import cv2
import numpy as np

from ...config import get_default_config
from .raster import RasterSource, fit_within, load_raster

logger = logging.getLogger(__name__)

FONT = cv2.FONT_HERSHEY_SIMPLEX


def percent_to_pixel(value: float, extent: int) -> int:
    """Map a 0-100 percent coordinate onto a pixel index of an extent."""
    return int(round(value / 100.0 * extent))


def _color(value) -> Tuple[int, int, int]:
    return tuple(int(c) for c in value)


def marker_radius(width: int, cfg) -> int:
    """Marker radius for a raster of this width, never below the floor."""
    return max(
        int(cfg.export.marker_min_radius),
        int(round(width * cfg.export.marker_radius_ratio)),
    )


def _fit_label(label: str, radius: int):
    thickness = max(1, int(round(radius / 10.0)))
    scale = radius / 22.0
    (text_w, text_h), _ = cv2.getTextSize(label, FONT, scale, thickness)
    # Shrink long labels until they sit inside the circle
    while text_w > 1.6 * radius and scale > 0.2:
        scale *= 0.85
        (text_w, text_h), _ = cv2.getTextSize(label, FONT, scale, thickness)
    return scale, thickness, text_w, text_h


def composite_markers(raster: np.ndarray, markers: Iterable, cfg) -> np.ndarray:
    """
    Draw markers onto a raster in place.

    Args:
        raster: RGB export raster
        markers: Markers in draw order
        cfg: Engine configuration

    Returns:
        The same raster
    """
    height, width = raster.shape[:2]
    radius = marker_radius(width, cfg)
    outline = max(2, radius // 6)

    for marker in markers:
        center = (percent_to_pixel(marker.x, width), percent_to_pixel(marker.y, height))
        fill = cfg.export.complete_color if marker.complete else cfg.export.incomplete_color

        cv2.circle(raster, center, radius, _color(fill), -1, cv2.LINE_AA)
        cv2.circle(raster, center, radius, _color(cfg.export.outline_color), outline, cv2.LINE_AA)

        label = marker.label.strip()
        if not label:
            continue
        scale, thickness, text_w, text_h = _fit_label(label, radius)
        origin = (center[0] - text_w // 2, center[1] + text_h // 2)
        cv2.putText(
            raster,
            label,
            origin,
            FONT,
            scale,
            _color(cfg.export.label_color),
            thickness,
            cv2.LINE_AA,
        )

    return raster


def composite_regions(raster: np.ndarray, regions: Iterable, cfg) -> np.ndarray:
    """
    Blend regions onto a raster in place.

    Each region is projected from the surface it was drawn on onto the
    raster, filled with a translucent color and outlined.
    """
    height, width = raster.shape[:2]
    alpha = float(cfg.overlay.fill_alpha)
    fill = np.array(_color(cfg.overlay.fill_color), dtype=np.float32)
    stroke = _color(cfg.overlay.stroke_color)

    for region in regions:
        nx, ny, nw, nh = region.normalized()
        x0 = int(np.clip(percent_to_pixel(nx, width), 0, width))
        y0 = int(np.clip(percent_to_pixel(ny, height), 0, height))
        x1 = int(np.clip(percent_to_pixel(nx + nw, width), 0, width))
        y1 = int(np.clip(percent_to_pixel(ny + nh, height), 0, height))
        if x1 <= x0 or y1 <= y0:
            continue

        roi = raster[y0:y1, x0:x1].astype(np.float32)
        blended = roi * (1.0 - alpha) + fill * alpha
        raster[y0:y1, x0:x1] = np.clip(np.round(blended), 0, 255).astype(np.uint8)

        factor = width / float(region.surface_width)
        thickness = max(1, int(round(cfg.overlay.stroke_width * factor)))
        cv2.rectangle(raster, (x0, y0), (x1 - 1, y1 - 1), stroke, thickness)

    return raster


def footer_text(recorder: str, saved_at: datetime) -> str:
    return f"Saved: {saved_at:%Y-%m-%d %H:%M:%S} | by {recorder}"


def burn_footer(raster: np.ndarray, text: str, cfg) -> np.ndarray:
    """Paint a footer bar with the given text along the bottom edge."""
    height, width = raster.shape[:2]
    bar = max(
        int(cfg.overlay.footer_min_height),
        int(round(height * cfg.overlay.footer_height_ratio)),
    )
    bar = min(bar, height)

    cv2.rectangle(
        raster,
        (0, height - bar),
        (width - 1, height - 1),
        _color(cfg.overlay.footer_background),
        -1,
    )

    (_, unit_h), _ = cv2.getTextSize("Ag", FONT, 1.0, 1)
    scale = bar * 0.5 / unit_h
    thickness = max(1, int(round(bar / 14.0)))
    margin = int(round(bar * 0.5))
    origin = (margin, height - int(round(bar * 0.25)))
    cv2.putText(
        raster,
        text,
        origin,
        FONT,
        scale,
        _color(cfg.overlay.footer_text_color),
        thickness,
        cv2.LINE_AA,
    )
    return raster


def export_markers(
    image: RasterSource, markers: Iterable, cfg=None
) -> np.ndarray:
    """
    Bake markers onto a copy of the source image.

    Raises:
        DecodeError: If the image cannot be rasterized
        CapacityError: If the image is too large to process
    """
    if cfg is None:
        cfg = get_default_config()
    raster = fit_within(load_raster(image, cfg), cfg.export.max_dimension)
    markers = list(markers)
    logger.debug(f"Compositing {len(markers)} markers onto {raster.shape[1]}x{raster.shape[0]}")
    return composite_markers(raster, markers, cfg)


def export_regions(
    image: RasterSource,
    regions: Iterable,
    recorder: str,
    saved_at: Optional[datetime] = None,
    cfg=None,
) -> np.ndarray:
    """Bake regions and the saved-by footer onto a copy of the source image."""
    if cfg is None:
        cfg = get_default_config()
    if saved_at is None:
        saved_at = datetime.now()
    raster = fit_within(load_raster(image, cfg), cfg.export.max_dimension)
    composite_regions(raster, regions, cfg)
    return burn_footer(raster, footer_text(recorder, saved_at), cfg)
