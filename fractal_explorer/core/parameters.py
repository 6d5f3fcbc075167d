"""
View parameters and render request types.

This module defines the immutable value objects that cross the boundary
between the interactive shell and the rendering engine: the view snapshot,
the per-frame render request, the fidelity tier and the statistics returned
after a render.
"""

import math
import numbers
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Tuple
import logging

logger = logging.getLogger(__name__)

MAX_ITERATION_CEILING = 5000
REFERENCE_ZOOM = 200.0


class Fidelity(Enum):
    """Quality/speed tradeoff for a single render pass."""

    FAST = "fast"
    HIGH_QUALITY = "high_quality"


@dataclass(frozen=True)
class ViewParams:
    """Snapshot of the view used for one frame."""

    center_x: float = -0.75
    center_y: float = 0.0
    zoom: float = REFERENCE_ZOOM
    max_iter_base: int = 500
    escape_radius: float = 2.0
    color_offset: float = 0.0
    color_scale: float = 1.0
    julia_mode: bool = False
    julia_c: Tuple[float, float] = field(default=(-0.7, 0.27015))

    def __post_init__(self):
        self.validate()
        # numpy integers are accepted and stored as int
        object.__setattr__(self, 'max_iter_base', int(self.max_iter_base))

    def validate(self) -> None:
        """Validate parameter values."""
        for name in ('center_x', 'center_y', 'zoom', 'escape_radius', 'color_offset', 'color_scale'):
            value = getattr(self, name)
            if not isinstance(value, numbers.Real) or not math.isfinite(value):
                raise ValueError(f"{name} must be a finite number")
        if self.zoom <= 0:
            raise ValueError("zoom must be positive")
        if self.escape_radius <= 0:
            raise ValueError("escape_radius must be positive")
        if self.color_scale <= 0:
            raise ValueError("color_scale must be positive")
        if not isinstance(self.max_iter_base, numbers.Integral) or isinstance(self.max_iter_base, bool):
            raise ValueError("max_iter_base must be an integer")
        if not 1 <= self.max_iter_base <= MAX_ITERATION_CEILING:
            raise ValueError(f"max_iter_base must be between 1 and {MAX_ITERATION_CEILING}")
        if len(self.julia_c) != 2:
            raise ValueError("julia_c must be a (real, imag) pair")

    @classmethod
    def clamped(cls, **kwargs) -> 'ViewParams':
        """
        Create a snapshot with ``max_iter_base`` clamped into the valid range.

        Shells that let the user type an iteration count use this instead of
        the constructor so an out-of-range value is corrected, not rejected.
        """
        if 'max_iter_base' in kwargs:
            kwargs['max_iter_base'] = min(max(int(kwargs['max_iter_base']), 1), MAX_ITERATION_CEILING)
        return cls(**kwargs)

    @property
    def julia_c_real(self) -> float:
        return float(self.julia_c[0])

    @property
    def julia_c_imag(self) -> float:
        return float(self.julia_c[1])

    def to_dict(self) -> Dict[str, Any]:
        """Convert parameters to dictionary."""
        return {
            'center_x': self.center_x,
            'center_y': self.center_y,
            'zoom': self.zoom,
            'max_iter_base': self.max_iter_base,
            'escape_radius': self.escape_radius,
            'color_offset': self.color_offset,
            'color_scale': self.color_scale,
            'julia_mode': self.julia_mode,
            'julia_c': list(self.julia_c),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ViewParams':
        """Create parameters from dictionary."""
        data = dict(data)
        if 'julia_c' in data:
            data['julia_c'] = tuple(float(v) for v in data['julia_c'])
        return cls(**data)


@dataclass(frozen=True)
class RenderRequest:
    """A single frame to render."""

    params: ViewParams
    width: int
    height: int
    fidelity: Fidelity = Fidelity.HIGH_QUALITY

    def __post_init__(self):
        if not isinstance(self.params, ViewParams):
            raise ValueError("params must be a ViewParams instance")
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Width and height must be positive")
        if not isinstance(self.fidelity, Fidelity):
            raise ValueError(f"Unknown fidelity: {self.fidelity!r}")

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class RenderStats:
    """Timing and metadata returned by a render call."""

    elapsed: float
    fidelity: Fidelity
    effective_max_iter: int
    max_iter: int
    block_size: int
    tiles: int
    samples: int

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000.0
