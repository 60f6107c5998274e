"""
Tests for the raster exporters.

Images are synthetic numpy arrays so expected pixels can be computed.
"""

import io
from datetime import datetime

import cv2
import numpy as np
import pytest
from PIL import Image

from floorplan_annotation.core.annotation import Marker, Region
from floorplan_annotation.core.errors import CapacityError, DecodeError
from floorplan_annotation.core.export import (
    burn_footer,
    encode_png,
    export_markers,
    export_regions,
    fit_within,
    footer_text,
    load_raster,
    marker_radius,
)
from floorplan_annotation.tests.conftest import color_centroid

SAVED_AT = datetime(2024, 1, 2, 3, 4, 5)


def complete_marker(x, y, label="1"):
    return Marker(x=x, y=y, label=label, serial="S1", name="N1")


class TestLoadRaster:
    """Tests for decoding and capacity checks."""

    def test_encoded_bytes(self, encoded_image, cfg):
        raster = load_raster(encoded_image, cfg)
        assert raster.shape == (500, 1000, 3)
        assert raster.dtype == np.uint8

    def test_channel_order(self, cfg):
        bgr = np.zeros((10, 10, 3), dtype=np.uint8)
        bgr[:, :, 2] = 255  # red in OpenCV order
        ok, buffer = cv2.imencode(".png", bgr)
        raster = load_raster(buffer.tobytes(), cfg)
        assert tuple(raster[0, 0]) == (255, 0, 0)

    def test_path(self, tmp_path, test_image, cfg):
        path = tmp_path / "plan.png"
        cv2.imwrite(str(path), test_image)
        assert load_raster(path, cfg).shape == (500, 1000, 3)
        assert load_raster(str(path), cfg).shape == (500, 1000, 3)

    def test_array_is_copied(self, test_image, cfg):
        raster = load_raster(test_image, cfg)
        raster[0, 0] = 255
        assert test_image[0, 0, 0] == 0

    def test_grayscale_and_rgba_arrays(self, cfg):
        gray = np.full((20, 30), 128, dtype=np.uint8)
        assert load_raster(gray, cfg).shape == (20, 30, 3)

        rgba = np.zeros((20, 30, 4), dtype=np.uint8)
        rgba[..., 0] = 200
        raster = load_raster(rgba, cfg)
        assert raster.shape == (20, 30, 3)
        assert tuple(raster[0, 0]) == (200, 0, 0)

    @pytest.mark.parametrize(
        "source",
        [b"", b"definitely not an image", np.zeros((10, 10, 3), dtype=np.float32), 42],
    )
    def test_undecodable_sources(self, source, cfg):
        with pytest.raises(DecodeError):
            load_raster(source, cfg)

    def test_missing_file(self, tmp_path, cfg):
        with pytest.raises(DecodeError):
            load_raster(tmp_path / "missing.png", cfg)

    def test_capacity_checked_from_header(self, encoded_image, cfg):
        cfg.export.max_source_dimension = 800
        with pytest.raises(CapacityError) as excinfo:
            load_raster(encoded_image, cfg)
        assert (excinfo.value.width, excinfo.value.height) == (1000, 500)

    def test_exif_orientation_ignored(self, cfg):
        exif = Image.Exif()
        exif[0x0112] = 6  # rotate 90 degrees on display
        buffer = io.BytesIO()
        Image.new("RGB", (40, 20), (255, 0, 0)).save(buffer, "JPEG", exif=exif)

        raster = load_raster(buffer.getvalue(), cfg)
        assert raster.shape == (20, 40, 3)

    def test_capacity_pixel_count(self, test_image, cfg):
        cfg.export.max_source_pixels = 1000 * 500 - 1
        with pytest.raises(CapacityError):
            load_raster(test_image, cfg)


class TestFitWithin:
    """Tests for the downscale bound."""

    def test_small_images_untouched(self, test_image):
        assert fit_within(test_image, 2560) is test_image

    def test_downscale_preserves_aspect(self):
        raster = np.zeros((2000, 4000, 3), dtype=np.uint8)
        fitted = fit_within(raster, 2560)
        assert fitted.shape == (1280, 2560, 3)

    def test_portrait(self):
        raster = np.zeros((3000, 1000, 3), dtype=np.uint8)
        assert fit_within(raster, 1500).shape == (1500, 500, 3)


class TestMarkerExport:
    """Tests for the marker compositor."""

    def test_radius_has_floor(self, cfg):
        assert marker_radius(1000, cfg) == 15
        assert marker_radius(100, cfg) == cfg.export.marker_min_radius

    def test_marker_center_in_export_pixels(self, test_image, cfg):
        marker = Marker(x=50, y=50, label="")
        raster = export_markers(test_image, [marker], cfg)

        assert raster.shape == (500, 1000, 3)
        assert tuple(raster[250, 500]) == tuple(cfg.export.incomplete_color)
        cx, cy = color_centroid(raster, cfg.export.incomplete_color)
        assert cx == pytest.approx(500, abs=1)
        assert cy == pytest.approx(250, abs=1)

    def test_complete_color(self, test_image, cfg):
        marker = complete_marker(25, 80)
        raster = export_markers(test_image, [marker], cfg)

        assert color_centroid(raster, cfg.export.incomplete_color) is None
        cx, cy = color_centroid(raster, cfg.export.complete_color)
        assert cx == pytest.approx(250, abs=2)
        assert cy == pytest.approx(400, abs=2)

    def test_label_is_drawn(self, test_image, cfg):
        blank = export_markers(test_image, [complete_marker(50, 50, label=" ")], cfg)
        labeled = export_markers(test_image, [complete_marker(50, 50, label="12")], cfg)
        assert not np.array_equal(blank, labeled)

    def test_later_markers_paint_over_earlier(self, test_image, cfg):
        markers = [Marker(x=50, y=50, label=""), complete_marker(50, 50, label="2")]
        raster = export_markers(test_image, markers, cfg)
        # Inside the circle, clear of the label and the outline
        radius = marker_radius(1000, cfg)
        assert tuple(raster[250, 500 + radius - 5]) == tuple(cfg.export.complete_color)
        assert color_centroid(raster, cfg.export.incomplete_color) is None

    def test_source_is_not_modified(self, test_image, cfg):
        export_markers(test_image, [complete_marker(50, 50)], cfg)
        assert not test_image.any()

    def test_downscaled_export_uses_export_dimensions(self, cfg):
        image = np.zeros((1000, 2000, 3), dtype=np.uint8)
        cfg.export.max_dimension = 1000
        raster = export_markers(image, [Marker(x=50, y=50, label="")], cfg)

        assert raster.shape == (500, 1000, 3)
        cx, cy = color_centroid(raster, cfg.export.incomplete_color)
        assert cx == pytest.approx(500, abs=1)
        assert cy == pytest.approx(250, abs=1)

    def test_deterministic(self, noisy_image, cfg):
        markers = [complete_marker(10, 10), Marker(x=70, y=40, label="2")]
        first = encode_png(export_markers(noisy_image, markers, cfg))
        second = encode_png(export_markers(noisy_image, markers, cfg))
        assert first == second
        assert first.startswith(b"\x89PNG")

    def test_decode_failure(self, cfg):
        with pytest.raises(DecodeError):
            export_markers(b"garbage", [complete_marker(50, 50)], cfg)


class TestRegionExport:
    """Tests for the region overlay exporter."""

    def test_footer_text(self):
        assert footer_text("op", SAVED_AT) == "Saved: 2024-01-02 03:04:05 | by op"

    def test_region_projected_onto_export(self, test_image, cfg):
        region = Region(10, 10, 20, 10, 100, 50)
        raster = export_regions(test_image, [region], "op", SAVED_AT, cfg)

        expected = tuple(int(round(c * cfg.overlay.fill_alpha)) for c in cfg.overlay.fill_color)
        assert tuple(raster[150, 200]) == expected
        assert tuple(raster[50, 50]) == (0, 0, 0)
        assert tuple(raster[150, 100]) == tuple(cfg.overlay.stroke_color)

    def test_overlapping_regions_blend_in_order(self, test_image, cfg):
        regions = [Region(0, 0, 50, 25, 100, 50), Region(0, 0, 50, 25, 100, 50)]
        raster = export_regions(test_image, regions, "op", SAVED_AT, cfg)
        single = export_regions(test_image, regions[:1], "op", SAVED_AT, cfg)
        assert raster[200, 200, 1] > single[200, 200, 1]

    def test_footer(self, test_image, cfg):
        raster = export_regions(test_image, [], "op", SAVED_AT, cfg)
        assert tuple(raster[499, 999]) == (255, 255, 255)
        assert tuple(raster[480, 999]) == (255, 255, 255)
        assert tuple(raster[479, 999]) == (0, 0, 0)
        # Footer carries dark text pixels
        assert (raster[480:, :400] < 128).any()

    def test_footer_never_exceeds_image(self, cfg):
        tiny = np.zeros((10, 10, 3), dtype=np.uint8)
        raster = burn_footer(tiny, "x", cfg)
        assert raster.shape == (10, 10, 3)

    def test_deterministic(self, noisy_image, cfg):
        regions = [Region(5, 5, 40, 20, 100, 100), Region(30, 10, 50, 50, 100, 100)]
        first = encode_png(export_regions(noisy_image, regions, "op", SAVED_AT, cfg))
        second = encode_png(export_regions(noisy_image, regions, "op", SAVED_AT, cfg))
        assert first == second
