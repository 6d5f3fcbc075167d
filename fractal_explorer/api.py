"""
Main API classes for interactive fractal rendering.

This module combines the backend components into the render scheduler, the
fidelity policy that decides between Fast previews and HighQuality frames,
and a shell-agnostic explorer session that a windowing layer drives with
pointer and keyboard gestures.
"""

import time
import numpy as np
from typing import Optional, Dict, Any, Tuple
from dataclasses import dataclass, replace
from enum import Enum
import logging

from .core.fractal_types import FractalRegistry
from .core.iteration_control import AdaptiveIterationController, IterationPolicy
from .core.math_functions import EscapeTimeEvaluator, ViewPlane
from .core.parameters import (
    Fidelity, RenderRequest, RenderStats, ViewParams, MAX_ITERATION_CEILING, REFERENCE_ZOOM,
)
from .acceleration.numba_backend import warm_up
from .acceleration.tiling import KernelArguments, TileRenderer, get_optimal_worker_count
from .rendering.coloring import buffer_to_rgba
from .tools.animation import KeyframeAnimator

logger = logging.getLogger(__name__)


@dataclass
class RenderConfig:
    """Configuration for the render engine."""

    # Parallelism
    num_workers: Optional[int] = None
    band_rows: int = 32

    # Iteration budget
    iteration_policy: str = 'multiplicative'
    reference_zoom: float = REFERENCE_ZOOM

    # Fast previews
    fast_block_size: int = 2
    fast_iteration_ratio: float = 0.75
    fast_iteration_floor: int = 80

    # Interaction
    scroll_settle_seconds: float = 0.15

    warm_up: bool = True

    def validate(self):
        """Validate configuration parameters."""
        if self.num_workers is not None and self.num_workers < 1:
            raise ValueError("num_workers must be >= 1")

        if self.band_rows < 1:
            raise ValueError("band_rows must be >= 1")

        try:
            self.get_policy()
        except ValueError:
            available = ', '.join(p.value for p in IterationPolicy)
            raise ValueError(f"Unknown iteration policy '{self.iteration_policy}'. Available: {available}")

        if self.reference_zoom <= 0:
            raise ValueError("reference_zoom must be positive")

        if self.fast_block_size < 1:
            raise ValueError("fast_block_size must be >= 1")

        if not 0 < self.fast_iteration_ratio <= 1:
            raise ValueError("fast_iteration_ratio must be in (0, 1]")

        if self.fast_iteration_floor < 1:
            raise ValueError("fast_iteration_floor must be >= 1")

        if self.scroll_settle_seconds < 0:
            raise ValueError("scroll_settle_seconds must be >= 0")

    def get_policy(self) -> IterationPolicy:
        if isinstance(self.iteration_policy, IterationPolicy):
            return self.iteration_policy
        return IterationPolicy(str(self.iteration_policy).lower())

    def create_controller(self) -> AdaptiveIterationController:
        return AdaptiveIterationController(
            policy=self.get_policy(),
            reference_zoom=self.reference_zoom,
            fast_ratio=self.fast_iteration_ratio,
            fast_floor=self.fast_iteration_floor,
        )


def _flat_view(out: np.ndarray, request: RenderRequest) -> np.ndarray:
    """Flat writable view of a caller buffer, rejecting any size or layout mismatch."""
    if not isinstance(out, np.ndarray):
        raise ValueError(f"Output buffer must be a numpy array, got {type(out).__name__}")
    if out.dtype != np.uint32:
        raise ValueError(f"Output buffer must have dtype uint32, got {out.dtype}")
    if out.size != request.pixel_count:
        raise ValueError(f"Output buffer holds {out.size} pixels, request is "
                         f"{request.width}x{request.height} ({request.pixel_count})")
    if out.ndim == 2 and out.shape != (request.height, request.width):
        raise ValueError(f"Output buffer shape {out.shape} does not match ({request.height}, {request.width})")
    if out.ndim > 2:
        raise ValueError(f"Output buffer must be 1-D or 2-D, got {out.ndim} dimensions")
    if not out.flags.c_contiguous or not out.flags.writeable:
        raise ValueError("Output buffer must be C-contiguous and writeable")
    return out.reshape(-1)


class RenderScheduler:
    """Renders frames into caller-owned buffers at the requested fidelity."""

    def __init__(self, config: Optional[RenderConfig] = None):
        """
        Initialize render scheduler.

        Args:
            config: Engine configuration (uses defaults if None)
        """
        self.config = config or RenderConfig()
        self.config.validate()

        self.controller = self.config.create_controller()
        num_workers = self.config.num_workers or get_optimal_worker_count()
        self.tile_renderer = TileRenderer(num_workers, self.config.band_rows)

        if self.config.warm_up:
            warm_up()

        logger.info(f"RenderScheduler initialized: {num_workers} workers, "
                    f"policy={self.controller.policy.value}, fast block={self.config.fast_block_size}")

    def iteration_caps(self, params: ViewParams, fidelity: Fidelity) -> Tuple[int, int]:
        """Effective cap and the cap actually used for ``fidelity``."""
        effective = self.controller.effective_max_iter(params.max_iter_base, params.zoom)
        if fidelity is Fidelity.FAST:
            return effective, self.controller.fast_max_iter(effective)
        return effective, effective

    def render(self, request: RenderRequest, out: np.ndarray) -> RenderStats:
        """
        Render a frame, overwriting every cell of ``out``.

        Args:
            request: View snapshot, resolution and fidelity
            out: Caller-owned ``uint32`` buffer of width*height cells

        Returns:
            RenderStats for the frame
        """
        flat = _flat_view(out, request)
        start_time = time.perf_counter()

        params = request.params
        effective, max_iter = self.iteration_caps(params, request.fidelity)
        block = self.config.fast_block_size if request.fidelity is Fidelity.FAST else 1

        evaluator = EscapeTimeEvaluator(params.escape_radius)
        constants = FractalRegistry.for_view(params).kernel_constants()

        args = KernelArguments(
            width=int(request.width),
            height=int(request.height),
            block=int(block),
            center_x=float(params.center_x),
            center_y=float(params.center_y),
            zoom=float(params.zoom),
            max_iter=int(max_iter),
            escape_radius_sq=float(evaluator.escape_radius_sq),
            use_shortcut=bool(evaluator.use_shortcut and not constants.julia),
            julia=bool(constants.julia),
            c_real=float(constants.c_real),
            c_imag=float(constants.c_imag),
            color_scale=float(params.color_scale),
            color_offset=float(params.color_offset),
        )
        tiles, samples = self.tile_renderer.render(flat, args)

        elapsed = time.perf_counter() - start_time
        logger.debug(f"Rendered {request.width}x{request.height} {request.fidelity.value} frame "
                     f"(max_iter={max_iter}) in {elapsed * 1000:.1f}ms")

        return RenderStats(
            elapsed=elapsed,
            fidelity=request.fidelity,
            effective_max_iter=effective,
            max_iter=max_iter,
            block_size=block,
            tiles=tiles,
            samples=samples,
        )

    def close(self) -> None:
        self.tile_renderer.close()

    def __enter__(self) -> 'RenderScheduler':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class InteractionState(Enum):
    IDLE = "idle"
    INTERACTING = "interacting"
    SETTLING = "settling_to_high_quality"


class FidelityPolicy:
    """
    Chooses the fidelity of the next frame from the interaction state.

    While a drag or zoom gesture is in flight frames are Fast. When the
    gesture ends the policy settles: exactly one HighQuality frame replaces
    the preview, after which it is idle again.
    """

    def __init__(self, scroll_settle_seconds: float = 0.15):
        self.scroll_settle_seconds = scroll_settle_seconds
        self.state = InteractionState.IDLE
        self.dragging = False
        self.zoom_in_flight = False
        self._last_scroll: Optional[float] = None

    @property
    def pending_high_quality(self) -> bool:
        return self.state is InteractionState.SETTLING

    def begin_interaction(self) -> None:
        self.state = InteractionState.INTERACTING

    def end_interaction(self) -> None:
        if self.state is InteractionState.INTERACTING and not (self.dragging or self.zoom_in_flight):
            self.state = InteractionState.SETTLING

    def begin_drag(self) -> None:
        self.dragging = True
        self.begin_interaction()

    def end_drag(self) -> None:
        self.dragging = False
        self.end_interaction()

    def note_scroll(self, now: float) -> None:
        """Record a scroll event; scroll zooms end after a quiet period."""
        self.zoom_in_flight = True
        self._last_scroll = now
        self.begin_interaction()

    def poll(self, now: float) -> None:
        """End a scroll zoom once no scroll event arrived for the settle period."""
        if self.zoom_in_flight and self._last_scroll is not None:
            if now - self._last_scroll >= self.scroll_settle_seconds:
                self.zoom_in_flight = False
                self._last_scroll = None
                self.end_interaction()

    def next_fidelity(self) -> Fidelity:
        if self.state is InteractionState.INTERACTING:
            return Fidelity.FAST
        return Fidelity.HIGH_QUALITY

    def frame_rendered(self, fidelity: Fidelity) -> None:
        if self.state is InteractionState.SETTLING and fidelity is Fidelity.HIGH_QUALITY:
            self.state = InteractionState.IDLE


class FractalExplorer:
    """Interactive fractal exploration with pan, zoom and animation."""

    DRAG_THRESHOLD = 2.0
    DRAG_FLUSH_THRESHOLD = 0.1
    SCROLL_ZOOM_FACTOR = 1.1
    CLICK_ZOOM_FACTOR = 2.0
    ITERATION_STEP = 10
    MIN_ITERATIONS = 10

    def __init__(self, width: int = 800, height: int = 600,
                 params: Optional[ViewParams] = None,
                 config: Optional[RenderConfig] = None,
                 scheduler: Optional[RenderScheduler] = None,
                 animator: Optional[KeyframeAnimator] = None,
                 clock=time.monotonic):
        """
        Initialize explorer.

        Args:
            width, height: Render resolution
            params: Initial view (defaults to the reference view)
            config: Engine configuration used when no scheduler is given
            scheduler: Shared render scheduler
            animator: Julia keyframe animator
            clock: Monotonic time source used for scroll settling
        """
        self.config = config or (scheduler.config if scheduler else RenderConfig())
        self.scheduler = scheduler or RenderScheduler(self.config)
        self.policy = FidelityPolicy(self.config.scroll_settle_seconds)
        self.animator = animator or KeyframeAnimator()
        self.clock = clock

        self.params = params or ViewParams()
        self.width = 0
        self.height = 0
        self.front_buffer = np.zeros(0, dtype=np.uint32)
        self.back_buffer = np.zeros(0, dtype=np.uint32)
        self.resize(width, height)

        self.auto_zoom = False
        self.zoom_speed = 1.02
        self.needs_redraw = True
        self.last_stats: Optional[RenderStats] = None
        self._drag_accumulator = (0.0, 0.0)

    def resize(self, width: int, height: int) -> None:
        """Change the render resolution; both buffers are reallocated."""
        if width <= 0 or height <= 0:
            raise ValueError("Width and height must be positive")
        if (width, height) == (self.width, self.height):
            return
        self.width = width
        self.height = height
        self.front_buffer = np.zeros(width * height, dtype=np.uint32)
        self.back_buffer = np.zeros(width * height, dtype=np.uint32)
        self.needs_redraw = True

    def update_view(self, **changes) -> ViewParams:
        """Replace the current view with a modified snapshot."""
        self.params = replace(self.params, **changes)
        self.needs_redraw = True
        return self.params

    # Pointer gestures

    def begin_drag(self) -> None:
        self.policy.begin_drag()
        self._drag_accumulator = (0.0, 0.0)

    def drag(self, dx: float, dy: float, display_width: float, display_height: float) -> None:
        """Accumulate a drag delta in display pixels and pan once it is large enough."""
        ax, ay = self._drag_accumulator
        ax += dx
        ay += dy
        if (ax * ax + ay * ay) ** 0.5 > self.DRAG_THRESHOLD:
            self._pan(ax, ay, display_width, display_height)
            ax, ay = 0.0, 0.0
        self._drag_accumulator = (ax, ay)

    def end_drag(self, display_width: float, display_height: float) -> None:
        ax, ay = self._drag_accumulator
        if (ax * ax + ay * ay) ** 0.5 > self.DRAG_FLUSH_THRESHOLD:
            self._pan(ax, ay, display_width, display_height)
        self._drag_accumulator = (0.0, 0.0)
        self.policy.end_drag()
        self.needs_redraw = True

    def _pan(self, dx: float, dy: float, display_width: float, display_height: float) -> None:
        scale_x = (self.width / self.params.zoom) / display_width
        scale_y = (self.height / self.params.zoom) / display_height
        self.update_view(center_x=self.params.center_x - dx * scale_x,
                         center_y=self.params.center_y - dy * scale_y)

    def scroll(self, delta: float) -> None:
        """Zoom in for a positive scroll delta, out for a negative one."""
        if delta == 0:
            return
        factor = self.SCROLL_ZOOM_FACTOR if delta > 0 else 1.0 / self.SCROLL_ZOOM_FACTOR
        self.policy.note_scroll(self.clock())
        self.update_view(zoom=self.params.zoom * factor)

    def click(self, x_ratio: float, y_ratio: float) -> None:
        """Recentre on the clicked point (fractions of the display) and zoom in."""
        plane = ViewPlane(self.params.center_x, self.params.center_y, self.params.zoom,
                          self.width, self.height)
        real, imag = plane.pixel_to_complex(x_ratio * self.width, y_ratio * self.height)
        self.update_view(center_x=real, center_y=imag, zoom=self.params.zoom * self.CLICK_ZOOM_FACTOR)

    # Keyboard and controls

    def adjust_iterations(self, steps: int) -> int:
        """Change the base cap by ``steps`` increments of ten, within [10, 5000]."""
        new_value = self.params.max_iter_base + steps * self.ITERATION_STEP
        new_value = min(max(new_value, self.MIN_ITERATIONS), MAX_ITERATION_CEILING)
        self.update_view(max_iter_base=new_value)
        return new_value

    def reset_view(self) -> None:
        self.params = ViewParams()
        self.needs_redraw = True
        logger.info("Reset to default view")

    def set_julia_mode(self, enabled: bool) -> None:
        if not enabled:
            self.animator.stop()
        self.update_view(julia_mode=bool(enabled))

    def start_julia_animation(self) -> bool:
        """Start the keyframe animation; only possible in Julia mode."""
        if not self.params.julia_mode:
            logger.warning("Enable Julia mode to use the keyframe animation")
            return False
        self.animator.start(self.params.julia_c)
        return True

    def stop_julia_animation(self) -> None:
        self.animator.stop()

    def advance(self, dt: float) -> None:
        """Advance auto zoom and the Julia animation by one step of ``dt`` seconds."""
        if self.auto_zoom:
            self.update_view(zoom=self.params.zoom * self.zoom_speed)

        if self.animator.active and self.params.julia_mode:
            c_real, c_imag = self.animator.tick(dt)
            if self.animator.active:
                self.update_view(julia_c=(c_real, c_imag))

        self.policy.poll(self.clock())

    @property
    def animating(self) -> bool:
        return self.auto_zoom or self.animator.active

    # Rendering

    def render_frame(self, force: bool = False) -> Optional[RenderStats]:
        """
        Render the current view if anything changed.

        The frame is rendered into the back buffer and the buffers are swapped
        afterwards, so ``front_buffer`` always holds a complete frame.

        Returns:
            RenderStats, or None when nothing needed drawing
        """
        self.policy.poll(self.clock())
        if not (force or self.needs_redraw or self.policy.pending_high_quality):
            return None

        fidelity = self.policy.next_fidelity()
        request = RenderRequest(self.params, self.width, self.height, fidelity)
        stats = self.scheduler.render(request, self.back_buffer)
        self.front_buffer, self.back_buffer = self.back_buffer, self.front_buffer

        self.policy.frame_rendered(fidelity)
        self.needs_redraw = False
        self.last_stats = stats
        return stats

    def to_rgba(self) -> bytes:
        return buffer_to_rgba(self.front_buffer)

    def view_info(self) -> Dict[str, Any]:
        """Get current exploration state information."""
        effective, _ = self.scheduler.iteration_caps(self.params, Fidelity.HIGH_QUALITY)
        return {
            'fractal': FractalRegistry.for_view(self.params).name,
            'center': (self.params.center_x, self.params.center_y),
            'zoom': self.params.zoom,
            'zoom_multiple': self.params.zoom / self.config.reference_zoom,
            'max_iter_base': self.params.max_iter_base,
            'effective_max_iter': effective,
            'resolution': (self.width, self.height),
            'interaction': self.policy.state.value,
            'julia_c': self.params.julia_c,
            'animation_progress': self.animator.progress if self.animator.active else None,
            'last_render_ms': self.last_stats.elapsed_ms if self.last_stats else None,
        }

    def close(self) -> None:
        self.scheduler.close()
