"""
Adaptive iteration budget.

Deeper zoom needs more iterations to resolve boundary detail; shallow zoom
must not pay for them. The controller derives the effective cap of a frame
from the user's base cap and the current zoom, and the reduced cap used by
Fast previews.
"""

import math
from enum import Enum
import logging

from .parameters import MAX_ITERATION_CEILING, REFERENCE_ZOOM

logger = logging.getLogger(__name__)


class IterationPolicy(Enum):
    """How the base cap grows with zoom."""

    MULTIPLICATIVE = "multiplicative"
    ADDITIVE = "additive"


class AdaptiveIterationController:
    """Derive effective iteration caps from zoom level."""

    def __init__(self, policy: IterationPolicy = IterationPolicy.MULTIPLICATIVE,
                 reference_zoom: float = REFERENCE_ZOOM,
                 additive_bonus_per_decade: float = 50.0,
                 fast_ratio: float = 0.75,
                 fast_floor: int = 80):
        """
        Initialize controller.

        Args:
            policy: Growth policy (multiplicative log-scaled or additive per-decade bonus)
            reference_zoom: Zoom level at which no extra iterations are added
            additive_bonus_per_decade: Iterations added per decade of zoom (additive policy)
            fast_ratio: Fraction of the effective cap used by Fast renders
            fast_floor: Minimum cap for Fast renders
        """
        if isinstance(policy, str):
            policy = IterationPolicy(policy.lower())
        if reference_zoom <= 0:
            raise ValueError("reference_zoom must be positive")
        if not 0 < fast_ratio <= 1:
            raise ValueError("fast_ratio must be in (0, 1]")
        if fast_floor < 1:
            raise ValueError("fast_floor must be >= 1")

        self.policy = policy
        self.reference_zoom = float(reference_zoom)
        self.additive_bonus_per_decade = float(additive_bonus_per_decade)
        self.fast_ratio = float(fast_ratio)
        self.fast_floor = int(fast_floor)

    def effective_max_iter(self, base_max_iter: int, zoom: float) -> int:
        """
        Effective iteration cap for a frame.

        Args:
            base_max_iter: User-chosen cap
            zoom: Pixels per unit of the complex plane

        Returns:
            Cap in [base, 5000], non-decreasing in zoom
        """
        if not 1 <= base_max_iter <= MAX_ITERATION_CEILING:
            raise ValueError(f"base_max_iter must be between 1 and {MAX_ITERATION_CEILING}")
        if zoom <= 0:
            raise ValueError("zoom must be positive")

        zoom_factor = zoom / self.reference_zoom
        if self.policy is IterationPolicy.MULTIPLICATIVE:
            zoom_factor = max(zoom_factor, 1.0)
            scaled = base_max_iter * max(math.log10(zoom_factor), 1.0)
        else:
            bonus = self.additive_bonus_per_decade * math.log10(zoom_factor) if zoom_factor > 1.0 else 0.0
            scaled = base_max_iter + bonus

        return min(int(scaled), MAX_ITERATION_CEILING)

    def fast_max_iter(self, effective_max_iter: int) -> int:
        """Reduced cap for Fast previews, never above the effective cap."""
        reduced = max(int(effective_max_iter * self.fast_ratio), self.fast_floor)
        return min(reduced, effective_max_iter)
