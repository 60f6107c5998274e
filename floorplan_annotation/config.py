"""
Engine configuration.

Defaults live in a single EasyDict tree; any entry can be overridden
from the environment with ``FPA_<section>__<key>=<value>``.
"""

import os
from typing import Dict, Optional

from easydict import EasyDict as edict

from .utils.env import load_cfg_from_env


def get_default_config() -> edict:
    return edict(
        {
            "viewport": {
                "min_scale": 1.0,
                "max_scale": 8.0,
                "zoom_sensitivity": 0.001,
            },
            "interaction": {
                "click_tolerance": 4,
                "min_region_width": 2,
            },
            "export": {
                "max_dimension": 2560,
                "max_source_dimension": 30000,
                "max_source_pixels": 180_000_000,
                "marker_radius_ratio": 0.015,
                "marker_min_radius": 12,
                "complete_color": (16, 185, 129),
                "incomplete_color": (239, 68, 68),
                "outline_color": (255, 255, 255),
                "label_color": (255, 255, 255),
            },
            "overlay": {
                "fill_color": (16, 185, 129),
                "fill_alpha": 0.6,
                "stroke_color": (5, 150, 105),
                "stroke_width": 2,
                "footer_min_height": 20,
                "footer_height_ratio": 0.025,
                "footer_background": (255, 255, 255),
                "footer_text_color": (0, 0, 0),
            },
            "naming": {
                "marker_template": "Markers_{branch}.png",
                "overlay_template": "Layout_{branch}.png",
            },
        }
    )


def load_config(env: Optional[Dict[str, str]] = None) -> edict:
    """Build the default configuration and apply environment overrides."""
    if env is None:
        env = dict(os.environ)
    return load_cfg_from_env(get_default_config(), env)
