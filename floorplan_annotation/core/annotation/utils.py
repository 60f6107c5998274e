"""
Pure utility functions for annotation logic.

These functions have no side effects and can be tested in isolation.
"""

import math
from numbers import Real
from typing import Tuple

from ..errors import InputError


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into the closed interval [low, high]."""
    return max(low, min(high, value))


def validate_point(point) -> Tuple[float, float]:
    """
    Check that a pointer position is a pair of finite numbers.

    Args:
        point: Any (x, y) sequence

    Returns:
        The point as a tuple of floats

    Raises:
        InputError: If the point is malformed
    """
    try:
        x, y = point
    except (TypeError, ValueError):
        raise InputError(f"Point must be an (x, y) pair, got {point!r}")

    for value in (x, y):
        if isinstance(value, bool) or not isinstance(value, Real):
            raise InputError(f"Point coordinates must be numbers, got {point!r}")
        if not math.isfinite(value):
            raise InputError(f"Point coordinates must be finite, got {point!r}")

    return float(x), float(y)


def validate_size(size) -> Tuple[float, float]:
    """Check that a surface size is a pair of positive numbers."""
    width, height = validate_point(size)
    if width <= 0 or height <= 0:
        raise InputError(f"Surface size must be positive, got {size!r}")
    return width, height


def normalize_rect(
    x0: float, y0: float, x1: float, y1: float
) -> Tuple[float, float, float, float]:
    """
    Build an (x, y, w, h) rectangle from two corners in any order.

    Args:
        x0, y0: Corner where the drag started
        x1, y1: Corner where the pointer is now

    Returns:
        Rectangle with top-left origin and non-negative size
    """
    return (min(x0, x1), min(y0, y1), abs(x1 - x0), abs(y1 - y0))


def is_inside(point: Tuple[float, float], size: Tuple[float, float]) -> bool:
    """Whether point lies within [0, width] x [0, height]."""
    x, y = point
    width, height = size
    return 0 <= x <= width and 0 <= y <= height

