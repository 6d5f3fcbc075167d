"""
Numba JIT kernels for rendering bands of a pixel buffer.

A band is a run of whole rows of the output buffer. The kernels here write
packed colours straight into that band, one sample per pixel or one sample
per block replicated across the block, and release the GIL so bands can be
rendered concurrently from a thread pool.
"""

import time
import numpy as np
import logging

import numba
from numba import njit

from ..core.math_functions import mandelbrot_value, julia_value
from ..rendering.coloring import color_value

logger = logging.getLogger(__name__)
logger.debug(f"Numba available: {numba.__version__}")


@njit(nogil=True, cache=True)
def render_band_kernel(out, width, height, y_start, y_end, block,
                       center_x, center_y, zoom, max_iter, escape_radius_sq, use_shortcut,
                       julia, c_real, c_imag, color_scale, color_offset):
    """
    JIT-compiled kernel filling rows [y_start, y_end) of a packed buffer.

    Args:
        out: Flat ``uint32`` buffer of width*height cells
        width, height: Full image resolution
        y_start, y_end: Rows owned by this band (y_start is a multiple of block)
        block: Block edge in pixels; 1 samples every pixel
        center_x, center_y, zoom: View mapping
        max_iter: Iteration cap
        escape_radius_sq: Squared escape radius
        use_shortcut: Enable the cardioid/bulb test (Mandelbrot only)
        julia: Render the Julia set for (c_real, c_imag) instead of the Mandelbrot set
        color_scale, color_offset: Palette settings

    Returns:
        Number of evaluated samples
    """
    half_width = width / 2.0
    half_height = height / 2.0
    samples = 0

    for by in range(y_start, y_end, block):
        imag = center_y + (by - half_height) / zoom
        row_end = min(by + block, y_end)
        for bx in range(0, width, block):
            real = center_x + (bx - half_width) / zoom

            if julia:
                value = julia_value(real, imag, c_real, c_imag, max_iter, escape_radius_sq)
            else:
                value = mandelbrot_value(real, imag, max_iter, escape_radius_sq, use_shortcut)
            color = color_value(value, max_iter, color_scale, color_offset)
            samples += 1

            col_end = min(bx + block, width)
            for y in range(by, row_end):
                row = y * width
                for x in range(bx, col_end):
                    out[row + x] = color

    return samples


def warm_up() -> float:
    """
    Compile the kernels ahead of the first frame.

    Returns:
        Seconds spent compiling (or loading from the cache)
    """
    start_time = time.perf_counter()
    scratch = np.zeros(4, dtype=np.uint32)
    render_band_kernel(scratch, 2, 2, 0, 2, 1, -0.75, 0.0, 1.0, 4, 4.0, True, False, 0.0, 0.0, 1.0, 0.0)
    render_band_kernel(scratch, 2, 2, 0, 2, 2, 0.0, 0.0, 1.0, 4, 4.0, False, True, -0.7, 0.27015, 1.0, 0.0)
    elapsed = time.perf_counter() - start_time
    logger.debug(f"Render kernels ready in {elapsed:.3f}s")
    return elapsed
