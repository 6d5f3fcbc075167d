"""
Colouring of escape-time values and pixel buffer conversions.

Escape-time values are mapped through a fixed polynomial palette that is
periodic in its parameter, so ``color_offset`` cycles the palette and
``color_scale`` sets banding density. Pixel buffers hold colours packed as
0x00RRGGBB in ``uint32`` cells; helpers here convert them for display and
export.
"""

import math
import numpy as np
from typing import Tuple
from dataclasses import dataclass
import logging

from numba import njit

logger = logging.getLogger(__name__)

BLACK = 0x000000


@njit(nogil=True, cache=True)
def color_value(value, max_iter, color_scale, color_offset):
    """
    Packed 0x00RRGGBB colour for an escape-time value.

    Args:
        value: Continuous iteration value
        max_iter: Iteration cap used to produce ``value``
        color_scale: Palette repetitions across [0, max_iter]
        color_offset: Cyclic palette shift

    Returns:
        Packed colour, black for points in the set
    """
    if value >= max_iter:
        return 0

    u = (value / max_iter) * color_scale + color_offset
    t = u - math.floor(u)
    if t != t:
        # NaN values from sub-unit escape radii saturate to zero channels
        return 0

    one_minus_t = 1.0 - t
    r = int(9.0 * one_minus_t * t * t * t * 255.0)
    g = int(15.0 * one_minus_t * one_minus_t * t * t * 255.0)
    b = int(8.5 * one_minus_t * one_minus_t * one_minus_t * t * 255.0)
    return (r << 16) | (g << 8) | b


def pack_rgb(r: int, g: int, b: int) -> int:
    """Pack 8-bit channels into a buffer cell value."""
    return ((r & 0xFF) << 16) | ((g & 0xFF) << 8) | (b & 0xFF)


def unpack_rgb(packed: int) -> Tuple[int, int, int]:
    """Split a buffer cell value into 8-bit channels."""
    packed = int(packed)
    return (packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF


@dataclass(frozen=True)
class ColorMapper:
    """Palette settings of one frame."""

    color_scale: float = 1.0
    color_offset: float = 0.0

    def __post_init__(self):
        if self.color_scale <= 0:
            raise ValueError("color_scale must be positive")

    def map(self, value: float, max_iter: int) -> Tuple[int, int, int]:
        """Colour for one escape-time value as an (r, g, b) triple."""
        if max_iter <= 0:
            raise ValueError("max_iter must be positive")
        return unpack_rgb(color_value(float(value), int(max_iter), float(self.color_scale),
                                      float(self.color_offset)))

    def map_packed(self, value: float, max_iter: int) -> int:
        if max_iter <= 0:
            raise ValueError("max_iter must be positive")
        return int(color_value(float(value), int(max_iter), float(self.color_scale),
                               float(self.color_offset)))


def map_color(value: float, max_iter: int, color_scale: float = 1.0,
              color_offset: float = 0.0) -> Tuple[int, int, int]:
    """Functional form of :meth:`ColorMapper.map`."""
    return ColorMapper(color_scale, color_offset).map(value, max_iter)


def buffer_to_rgb_array(buffer: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Convert a packed pixel buffer to an image array.

    Args:
        buffer: Packed ``uint32`` buffer with width*height cells
        width, height: Image resolution

    Returns:
        ``uint8`` array of shape (height, width, 3)
    """
    if buffer.size != width * height:
        raise ValueError(f"Buffer holds {buffer.size} pixels, expected {width}x{height}")

    packed = np.asarray(buffer, dtype=np.uint32).reshape(height, width)
    rgb = np.empty((height, width, 3), dtype=np.uint8)
    rgb[..., 0] = (packed >> 16) & 0xFF
    rgb[..., 1] = (packed >> 8) & 0xFF
    rgb[..., 2] = packed & 0xFF
    return rgb


def buffer_to_rgba(buffer: np.ndarray) -> bytes:
    """Flat RGBA bytes (alpha 255) for texture upload."""
    packed = np.asarray(buffer, dtype=np.uint32).reshape(-1)
    rgba = np.empty((packed.size, 4), dtype=np.uint8)
    rgba[:, 0] = (packed >> 16) & 0xFF
    rgba[:, 1] = (packed >> 8) & 0xFF
    rgba[:, 2] = packed & 0xFF
    rgba[:, 3] = 255
    return rgba.tobytes()
