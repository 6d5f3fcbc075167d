"""
Keyframe animation of the Julia constant.

The animator walks a timeline of keyframes over a fixed duration. Each call
to :meth:`KeyframeAnimator.tick` advances the timeline by an explicit time
step and returns the interpolated constant, so the animator does not depend
on any particular frame rate.
"""

from typing import List, Optional, Sequence, Tuple
from dataclasses import dataclass
from enum import Enum
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Keyframe:
    """A Julia constant pinned to a point on the normalised timeline."""
    time: float
    c_real: float
    c_imag: float

    def __post_init__(self):
        if not 0.0 <= self.time <= 1.0:
            raise ValueError(f"Keyframe time must be in [0, 1], got {self.time}")


# Tour used by the explorer when no keyframes are supplied
DEFAULT_JULIA_KEYFRAMES = (
    Keyframe(0.0, -0.7, 0.27015),
    Keyframe(0.25, -0.8, 0.156),
    Keyframe(0.5, 0.285, 0.01),
    Keyframe(0.75, -0.4, 0.6),
    Keyframe(1.0, -0.7, 0.27015),
)


class AnimationPhase(Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class AnimationState:
    """Mutable progress of an animation run."""
    elapsed: float = 0.0
    duration: float = 20.0
    active: bool = False

    @property
    def progress(self) -> float:
        return min(self.elapsed / self.duration, 1.0)


def smoothstep(t: float) -> float:
    """Cubic ease-in/ease-out on [0, 1]."""
    return t * t * (3.0 - 2.0 * t)


def interpolate_keyframes(keyframes: Sequence[Keyframe], progress: float,
                          fallback: Tuple[float, float]) -> Tuple[float, float]:
    """
    Julia constant at a point of the timeline.

    Args:
        keyframes: Keyframes sorted by time
        progress: Position on the timeline
        fallback: Constant returned when there are no keyframes

    Returns:
        Interpolated (c_real, c_imag)
    """
    if not keyframes:
        return fallback

    previous = keyframes[0]
    following = keyframes[-1]
    for current, upcoming in zip(keyframes, keyframes[1:]):
        if current.time <= progress <= upcoming.time:
            previous, following = current, upcoming
            break

    span = following.time - previous.time
    local_t = (progress - previous.time) / span if span > 0 else 0.0
    s = smoothstep(local_t)

    c_real = previous.c_real + (following.c_real - previous.c_real) * s
    c_imag = previous.c_imag + (following.c_imag - previous.c_imag) * s
    return c_real, c_imag


class KeyframeAnimator:
    """Drives the Julia constant along a keyframe timeline."""

    def __init__(self, keyframes: Optional[Sequence[Keyframe]] = None, duration: float = 20.0,
                 initial_c: Tuple[float, float] = (-0.7, 0.27015)):
        """
        Initialize animator.

        Args:
            keyframes: Timeline (sorted by time here); defaults to the built-in tour
            duration: Seconds for one pass over the timeline
            initial_c: Constant reported before the first interpolation
        """
        if duration <= 0:
            raise ValueError("duration must be positive")

        if keyframes is None:
            keyframes = DEFAULT_JULIA_KEYFRAMES
        self.keyframes: List[Keyframe] = sorted(keyframes, key=lambda k: k.time)
        self.state = AnimationState(duration=float(duration))
        self.current_c: Tuple[float, float] = (float(initial_c[0]), float(initial_c[1]))

    @property
    def phase(self) -> AnimationPhase:
        return AnimationPhase.RUNNING if self.state.active else AnimationPhase.IDLE

    @property
    def active(self) -> bool:
        return self.state.active

    @property
    def progress(self) -> float:
        return self.state.progress

    @property
    def duration(self) -> float:
        return self.state.duration

    @duration.setter
    def duration(self, value: float) -> None:
        if value <= 0:
            raise ValueError("duration must be positive")
        self.state.duration = float(value)

    def start(self, current_c: Optional[Tuple[float, float]] = None) -> None:
        """
        Begin a pass over the timeline from the start.

        Args:
            current_c: Constant in use when the pass begins; it is kept
                while the timeline has no keyframes
        """
        if current_c is not None:
            self.current_c = (float(current_c[0]), float(current_c[1]))
        self.state.active = True
        self.state.elapsed = 0.0
        logger.debug(f"Julia animation started ({self.state.duration:.1f}s, {len(self.keyframes)} keyframes)")

    def stop(self) -> None:
        """Stop the animation, keeping the last constant."""
        self.state.active = False
        self.state.elapsed = 0.0

    def tick(self, dt: float) -> Tuple[float, float]:
        """
        Advance the timeline by ``dt`` seconds.

        Args:
            dt: Time step in seconds

        Returns:
            Current Julia constant
        """
        if dt < 0:
            raise ValueError("dt must be non-negative")
        if not self.state.active:
            return self.current_c

        self.state.elapsed += dt
        progress = self.state.progress
        if progress >= 1.0:
            self.state.active = False
            self.state.elapsed = 0.0
            logger.debug("Julia animation finished")
        else:
            self.current_c = self.interpolate(progress)
        return self.current_c

    def interpolate(self, progress: float) -> Tuple[float, float]:
        """Constant at ``progress`` without touching the animation state."""
        return interpolate_keyframes(self.keyframes, progress, self.current_c)
