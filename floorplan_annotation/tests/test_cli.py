"""
Tests for the command line interface.
"""

import json

import cv2
import numpy as np
import pytest

from floorplan_annotation.cli import build_parser, main


@pytest.fixture
def image_path(tmp_path):
    path = tmp_path / "plan.png"
    cv2.imwrite(str(path), np.zeros((100, 200, 3), dtype=np.uint8))
    return path


def test_parser_discovers_subcommands():
    parser = build_parser()
    args = parser.parse_args(["markers", "a.png", "b.json", "-o", "c.png"])
    assert args.fn is not None
    args = parser.parse_args(["overlay", "a.png", "b.json", "-o", "c.png", "-r", "op"])
    assert args.recorder == "op"


def test_markers_command(tmp_path, image_path):
    markers = tmp_path / "markers.json"
    markers.write_text(
        json.dumps([{"x": 50, "y": 50, "label": "1", "serial": "S1", "name": "N1"}])
    )
    output = tmp_path / "out.png"

    with pytest.raises(SystemExit) as excinfo:
        main(["markers", str(image_path), str(markers), "-o", str(output)])

    assert excinfo.value.code == 0
    raster = cv2.imread(str(output))
    assert raster.shape == (100, 200, 3)


def test_overlay_command_is_reproducible(tmp_path, image_path):
    regions = tmp_path / "regions.json"
    regions.write_text(
        json.dumps(
            {
                "regions": [
                    {"x": 5, "y": 5, "w": 20, "h": 10, "surface_width": 100, "surface_height": 50}
                ]
            }
        )
    )
    outputs = [tmp_path / "first.png", tmp_path / "second.png"]
    for output in outputs:
        with pytest.raises(SystemExit) as excinfo:
            main(
                [
                    "overlay",
                    str(image_path),
                    str(regions),
                    "-o",
                    str(output),
                    "-r",
                    "op",
                    "--saved-at",
                    "2024-01-02T03:04:05",
                ]
            )
        assert excinfo.value.code == 0

    assert outputs[0].read_bytes() == outputs[1].read_bytes()


def test_export_failure_exit_code(tmp_path):
    broken = tmp_path / "broken.png"
    broken.write_bytes(b"not a png")
    markers = tmp_path / "markers.json"
    markers.write_text("[]")

    with pytest.raises(SystemExit) as excinfo:
        main(["markers", str(broken), str(markers), "-o", str(tmp_path / "out.png")])
    assert excinfo.value.code == 1


def test_off_image_marker_exit_code(tmp_path, image_path):
    markers = tmp_path / "markers.json"
    markers.write_text(json.dumps([{"x": 150, "y": -20}]))
    output = tmp_path / "out.png"

    with pytest.raises(SystemExit) as excinfo:
        main(["markers", str(image_path), str(markers), "-o", str(output)])
    assert excinfo.value.code == 1
    assert not output.exists()
