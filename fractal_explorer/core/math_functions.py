"""
Core mathematical functions for escape-time iteration.

This module provides the scalar escape-time kernels used by every render
path, the smooth (continuous) iteration count, the cardioid/bulb membership
test for the Mandelbrot set, and the pixel-to-plane mapping of a view.
The kernels are compiled with Numba in ``nogil`` mode so that the tiling
backend can run them on several threads at once.
"""

import math
from typing import Optional, Tuple
import logging

from numba import njit

logger = logging.getLogger(__name__)

LN_2 = math.log(2.0)

# Orbits of points inside the main cardioid and period-2 bulb never leave |z| <= 2.
SHORTCUT_MIN_ESCAPE_RADIUS = 2.0


@njit(nogil=True, cache=True)
def in_cardioid_or_bulb(x, y):
    """Return True if (x, y) lies in the main cardioid or the period-2 bulb."""
    y_sq = y * y
    q = (x - 0.25) * (x - 0.25) + y_sq
    if q * (q + x - 0.25) < 0.25 * y_sq:
        return True
    return (x + 1.0) * (x + 1.0) + y_sq < 0.0625


@njit(nogil=True, cache=True)
def smooth_escape_value(iteration, zr, zi):
    """
    Continuous iteration count for an escaped orbit.

    Uses the double logarithm of the final magnitude. No clamping is applied,
    so a final magnitude below 1 (only possible with escape radii under 1)
    yields NaN or infinity exactly like the reference formula.
    """
    magnitude = math.sqrt(zr * zr + zi * zi)
    return iteration + 1.0 - math.log(math.log(magnitude) / LN_2) / LN_2


@njit(nogil=True, cache=True)
def mandelbrot_value(x0, y0, max_iter, escape_radius_sq, use_shortcut):
    """
    Escape-time value of the Mandelbrot iteration z <- z^2 + (x0, y0).

    Args:
        x0, y0: Point in the complex plane (also the iterated constant)
        max_iter: Iteration cap
        escape_radius_sq: Squared escape radius
        use_shortcut: Skip iteration for cardioid and bulb members

    Returns:
        max_iter for bounded points, otherwise the smooth escape value
    """
    if use_shortcut and in_cardioid_or_bulb(x0, y0):
        return float(max_iter)

    zr = 0.0
    zi = 0.0
    iteration = 0
    while zr * zr + zi * zi <= escape_radius_sq and iteration < max_iter:
        zr_new = zr * zr - zi * zi + x0
        zi = 2.0 * zr * zi + y0
        zr = zr_new
        iteration += 1

    if iteration >= max_iter:
        return float(max_iter)
    return smooth_escape_value(iteration, zr, zi)


@njit(nogil=True, cache=True)
def julia_value(x0, y0, c_real, c_imag, max_iter, escape_radius_sq):
    """
    Escape-time value of the Julia iteration z <- z^2 + c starting at (x0, y0).

    Args:
        x0, y0: Starting point of the orbit
        c_real, c_imag: Julia constant
        max_iter: Iteration cap
        escape_radius_sq: Squared escape radius

    Returns:
        max_iter for bounded points, otherwise the smooth escape value
    """
    zr = x0
    zi = y0
    iteration = 0
    while zr * zr + zi * zi <= escape_radius_sq and iteration < max_iter:
        zr_new = zr * zr - zi * zi + c_real
        zi = 2.0 * zr * zi + c_imag
        zr = zr_new
        iteration += 1

    if iteration >= max_iter:
        return float(max_iter)
    return smooth_escape_value(iteration, zr, zi)


class EscapeTimeEvaluator:
    """Evaluate Mandelbrot and Julia escape-time values for single points."""

    def __init__(self, escape_radius: float = 2.0):
        """
        Initialize evaluator.

        Args:
            escape_radius: Radius for escape condition
        """
        if escape_radius <= 0:
            raise ValueError("escape_radius must be positive")

        self.escape_radius = float(escape_radius)
        self.escape_radius_sq = self.escape_radius ** 2
        # The cardioid/bulb test is only transparent when bounded orbits fit inside the radius
        self.use_shortcut = self.escape_radius >= SHORTCUT_MIN_ESCAPE_RADIUS

    def mandelbrot(self, x0: float, y0: float, max_iter: int, shortcut: bool = True) -> float:
        """Mandelbrot value at (x0, y0); ``shortcut=False`` forces the full loop."""
        self._check_max_iter(max_iter)
        return mandelbrot_value(float(x0), float(y0), int(max_iter), self.escape_radius_sq,
                                shortcut and self.use_shortcut)

    def julia(self, x0: float, y0: float, c_real: float, c_imag: float, max_iter: int) -> float:
        """Julia value at (x0, y0) for the constant (c_real, c_imag)."""
        self._check_max_iter(max_iter)
        return julia_value(float(x0), float(y0), float(c_real), float(c_imag), int(max_iter),
                           self.escape_radius_sq)

    def evaluate(self, x0: float, y0: float, max_iter: int,
                 julia_c: Optional[Tuple[float, float]] = None) -> float:
        """Evaluate a point as Mandelbrot, or as Julia when ``julia_c`` is given."""
        if julia_c is None:
            return self.mandelbrot(x0, y0, max_iter)
        return self.julia(x0, y0, julia_c[0], julia_c[1], max_iter)

    @staticmethod
    def _check_max_iter(max_iter: int) -> None:
        if max_iter <= 0:
            raise ValueError("max_iter must be positive")


class ViewPlane:
    """Maps pixel coordinates of a render target onto the complex plane."""

    def __init__(self, center_x: float, center_y: float, zoom: float, width: int, height: int):
        """
        Initialize the mapping.

        Args:
            center_x, center_y: Complex-plane point shown at the middle of the image
            zoom: Pixels per unit of the complex plane
            width, height: Image resolution in pixels
        """
        if zoom <= 0:
            raise ValueError("zoom must be positive")
        if width <= 0 or height <= 0:
            raise ValueError("Width and height must be positive")

        self.center_x = center_x
        self.center_y = center_y
        self.zoom = zoom
        self.width = width
        self.height = height

    def pixel_to_complex(self, px: float, py: float) -> Tuple[float, float]:
        """Convert pixel coordinates to a complex-plane point."""
        real = self.center_x + (px - self.width / 2.0) / self.zoom
        imag = self.center_y + (py - self.height / 2.0) / self.zoom
        return real, imag

    def complex_to_pixel(self, real: float, imag: float) -> Tuple[float, float]:
        """Convert a complex-plane point to (fractional) pixel coordinates."""
        px = (real - self.center_x) * self.zoom + self.width / 2.0
        py = (imag - self.center_y) * self.zoom + self.height / 2.0
        return px, py

    def get_bounds(self) -> Tuple[float, float, float, float]:
        """Visible region as (xmin, xmax, ymin, ymax)."""
        xmin, ymin = self.pixel_to_complex(0, 0)
        xmax, ymax = self.pixel_to_complex(self.width, self.height)
        return xmin, xmax, ymin, ymax
