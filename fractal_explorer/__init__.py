"""
Interactive escape-time fractal rendering engine.

This library renders Mandelbrot and Julia sets into caller-owned pixel
buffers under an interactive latency budget: Fast block-sampled previews
while the user pans or zooms, and a HighQuality frame once the gesture ends.

Key Features:
- Smooth (continuous) escape-time colouring
- Cardioid and period-2 bulb short-circuit for the Mandelbrot set
- Zoom-adaptive iteration budget with selectable policy
- Numba-compiled kernels spread over a thread pool
- Keyframe animation of the Julia constant

Example usage:
    >>> import numpy as np
    >>> from fractal_explorer import RenderScheduler, RenderRequest, ViewParams
    >>> request = RenderRequest(ViewParams(), width=320, height=240)
    >>> buffer = np.zeros(320 * 240, dtype=np.uint32)
    >>> with RenderScheduler() as scheduler:
    ...     stats = scheduler.render(request, buffer)
"""

__version__ = "1.0.0"
__author__ = "Fractal Explorer Team"

from fractal_explorer.core.parameters import Fidelity, RenderRequest, RenderStats, ViewParams
from fractal_explorer.core.math_functions import EscapeTimeEvaluator, ViewPlane
from fractal_explorer.core.fractal_types import MandelbrotSet, JuliaSet, FractalRegistry
from fractal_explorer.core.iteration_control import AdaptiveIterationController, IterationPolicy
from fractal_explorer.rendering.coloring import ColorMapper, map_color
from fractal_explorer.rendering.image_output import ImageExporter
from fractal_explorer.tools.animation import Keyframe, KeyframeAnimator

# Main API classes
from fractal_explorer.api import RenderScheduler, RenderConfig, FidelityPolicy, FractalExplorer

__all__ = [
    "RenderScheduler",
    "RenderConfig",
    "FidelityPolicy",
    "FractalExplorer",
    "Fidelity",
    "RenderRequest",
    "RenderStats",
    "ViewParams",
    "EscapeTimeEvaluator",
    "ViewPlane",
    "MandelbrotSet",
    "JuliaSet",
    "FractalRegistry",
    "AdaptiveIterationController",
    "IterationPolicy",
    "ColorMapper",
    "map_color",
    "ImageExporter",
    "Keyframe",
    "KeyframeAnimator",
]
