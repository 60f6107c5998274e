"""
Test fixtures and utilities for floorplan annotation tests.

Provides reusable fixtures for images, configuration and sessions.
"""

import cv2
import numpy as np
import pytest
from unittest.mock import Mock


@pytest.fixture
def cfg():
    """Fresh default configuration, safe to modify per test."""
    from floorplan_annotation.config import get_default_config

    return get_default_config()


@pytest.fixture
def test_image():
    """Black RGB floor plan of 1000x500 pixels."""
    return np.zeros((500, 1000, 3), dtype=np.uint8)


@pytest.fixture
def noisy_image():
    """Random RGB image for rendering tests that need texture."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 255, (300, 400, 3), dtype=np.uint8)


@pytest.fixture
def encoded_image(test_image):
    """The black test image as PNG bytes."""
    ok, buffer = cv2.imencode(".png", test_image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def model():
    from floorplan_annotation.core.annotation import AnnotationModel

    return AnnotationModel()


@pytest.fixture
def context(test_image):
    from floorplan_annotation.core.annotation import EditorContext

    return EditorContext(
        image=test_image, company="Makro", branch="Branch 1", recorder="operator"
    )


@pytest.fixture
def session(cfg, context):
    """Open editor session on the black test image."""
    from floorplan_annotation.core.annotation import EditorSession

    return EditorSession(cfg).open(context)


@pytest.fixture
def mock_store():
    """Record store that accepts everything."""
    store = Mock()
    store.save = Mock(return_value=True)
    store.fetch = Mock(return_value=[])
    return store


def color_centroid(raster, color):
    """Centroid (x, y) of the pixels exactly matching color, or None."""
    mask = np.all(raster == np.array(color, dtype=np.uint8), axis=-1)
    ys, xs = np.nonzero(mask)
    if len(xs) == 0:
        return None
    return float(xs.mean()), float(ys.mean())
