"""
Raster input and output for the exporters.

Sources are header-probed before decoding so that oversized images are
rejected before any pixel buffer is allocated.
"""

import io
import logging
from pathlib import Path
from typing import Tuple, Union

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from ..errors import CapacityError, DecodeError, ExportError

logger = logging.getLogger(__name__)

RasterSource = Union[bytes, bytearray, str, Path, np.ndarray]

PNG_COMPRESSION = 6


def check_capacity(width: int, height: int, cfg):
    """
    Reject dimensions no export can handle.

    Raises:
        DecodeError: If a dimension is not positive
        CapacityError: If the image is beyond the configured bounds
    """
    if width <= 0 or height <= 0:
        raise DecodeError(f"Image has empty dimensions {width}x{height}")
    limit = cfg.export.max_source_dimension
    if max(width, height) > limit:
        raise CapacityError(
            width, height, f"Image {width}x{height} exceeds {limit}px per side"
        )
    pixel_limit = cfg.export.max_source_pixels
    if width * height > pixel_limit:
        raise CapacityError(
            width, height, f"Image {width}x{height} exceeds {pixel_limit} pixels"
        )


def probe_size(data: bytes) -> Tuple[int, int]:
    """Read (width, height) from the image header without decoding pixels."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except Image.DecompressionBombError as e:
        raise CapacityError(-1, -1, f"Image rejected as oversized: {e}")
    except (UnidentifiedImageError, OSError) as e:
        raise DecodeError(f"Unrecognized image data: {e}")


def _decode_bytes(data: bytes, cfg) -> np.ndarray:
    if not data:
        raise DecodeError("Image data is empty")
    width, height = probe_size(data)
    check_capacity(width, height, cfg)

    buffer = np.frombuffer(data, dtype=np.uint8)
    # Stored orientation, matching the header size checked above
    decoded = cv2.imdecode(buffer, cv2.IMREAD_COLOR | cv2.IMREAD_IGNORE_ORIENTATION)
    if decoded is None:
        raise DecodeError("Image data could not be decoded")
    return cv2.cvtColor(decoded, cv2.COLOR_BGR2RGB)


def _from_array(image: np.ndarray, cfg) -> np.ndarray:
    if image.ndim not in (2, 3):
        raise DecodeError(f"Image must be 2D or 3D, got shape {image.shape}")
    height, width = image.shape[:2]
    check_capacity(width, height, cfg)

    if image.dtype != np.uint8:
        raise DecodeError(f"Image must be uint8, got {image.dtype}")
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    channels = image.shape[2]
    if channels == 3:
        return image.copy()
    if channels == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2RGB)
    if channels == 1:
        return cv2.cvtColor(image[:, :, 0], cv2.COLOR_GRAY2RGB)
    raise DecodeError(f"Image must have 1, 3 or 4 channels, got {channels}")


def load_raster(source: RasterSource, cfg) -> np.ndarray:
    """
    Produce an RGB uint8 copy of the source image.

    Args:
        source: Encoded bytes, a file path or a decoded array (RGB, RGBA
            or grayscale)
        cfg: Engine configuration

    Returns:
        RGB image owned by the caller

    Raises:
        DecodeError: If the source cannot be rasterized
        CapacityError: If it is too large to process
    """
    if isinstance(source, np.ndarray):
        return _from_array(source, cfg)
    if isinstance(source, (str, Path)):
        try:
            source = Path(source).read_bytes()
        except OSError as e:
            raise DecodeError(f"Cannot read image file: {e}")
    if isinstance(source, (bytes, bytearray, memoryview)):
        return _decode_bytes(bytes(source), cfg)
    raise DecodeError(f"Unsupported image source: {type(source)}")


def fit_within(raster: np.ndarray, max_dimension: int) -> np.ndarray:
    """Uniformly downscale so that neither side exceeds max_dimension."""
    height, width = raster.shape[:2]
    longest = max(width, height)
    if longest <= max_dimension:
        return raster

    factor = max_dimension / float(longest)
    size = (max(1, int(round(width * factor))), max(1, int(round(height * factor))))
    logger.debug(f"Downscaling export raster {width}x{height} -> {size[0]}x{size[1]}")
    return cv2.resize(raster, size, interpolation=cv2.INTER_AREA)


def encode_png(raster: np.ndarray) -> bytes:
    """Encode an RGB raster as PNG bytes."""
    bgr = cv2.cvtColor(raster, cv2.COLOR_RGB2BGR)
    ok, buffer = cv2.imencode(".png", bgr, [cv2.IMWRITE_PNG_COMPRESSION, PNG_COMPRESSION])
    if not ok:
        raise ExportError("Raster could not be encoded as PNG")
    return buffer.tobytes()
