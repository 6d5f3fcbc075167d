"""
Fractal type definitions and parameter management.

The engine renders two escape-time families that share one iteration,
z <- z^2 + c. They differ only in where the orbit starts and where the
constant comes from, which is what the classes here describe.
"""

from typing import Dict, Any, Tuple
from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging

from .math_functions import EscapeTimeEvaluator
from .parameters import ViewParams

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KernelConstants:
    """Scalar arguments that select the per-pixel kernel."""

    julia: bool
    c_real: float
    c_imag: float


class FractalType(ABC):
    """Abstract base class for fractal types."""

    name = "fractal"

    @abstractmethod
    def evaluate(self, evaluator: EscapeTimeEvaluator, x0: float, y0: float, max_iter: int) -> float:
        """
        Compute the escape-time value for one point.

        Args:
            evaluator: Evaluator carrying the escape radius
            x0, y0: Point in the complex plane
            max_iter: Iteration cap

        Returns:
            Continuous iteration value in [0, max_iter]
        """

    @abstractmethod
    def kernel_constants(self) -> KernelConstants:
        """Arguments the band kernel needs to run this fractal."""

    @abstractmethod
    def get_recommended_center(self) -> Tuple[float, float]:
        """Complex-plane point to centre the default view on."""

    def get_description(self) -> str:
        return f"{self.name} fractal"


class MandelbrotSet(FractalType):
    """Mandelbrot set: the constant is the sampled point, the orbit starts at 0."""

    name = "Mandelbrot"

    def evaluate(self, evaluator: EscapeTimeEvaluator, x0: float, y0: float, max_iter: int) -> float:
        return evaluator.mandelbrot(x0, y0, max_iter)

    def kernel_constants(self) -> KernelConstants:
        return KernelConstants(julia=False, c_real=0.0, c_imag=0.0)

    def get_recommended_center(self) -> Tuple[float, float]:
        return (-0.75, 0.0)

    def get_description(self) -> str:
        return "Mandelbrot set: z_{n+1} = z_n^2 + c, where c is the complex coordinate and z_0 = 0"


@dataclass(frozen=True)
class JuliaParameters:
    """Parameters for Julia set generation."""

    c_real: float = -0.7
    c_imag: float = 0.27015

    @property
    def c(self) -> complex:
        """Get the Julia constant as a complex number."""
        return complex(self.c_real, self.c_imag)

    def to_dict(self) -> Dict[str, Any]:
        return {'c_real': self.c_real, 'c_imag': self.c_imag}


class JuliaSet(FractalType):
    """Julia set: the constant is fixed, the orbit starts at the sampled point."""

    name = "Julia"

    def __init__(self, parameters: JuliaParameters = None):
        """
        Initialize Julia set.

        Args:
            parameters: Julia constant (defaults to the reference constant)
        """
        self.parameters = parameters or JuliaParameters()

    def evaluate(self, evaluator: EscapeTimeEvaluator, x0: float, y0: float, max_iter: int) -> float:
        return evaluator.julia(x0, y0, self.parameters.c_real, self.parameters.c_imag, max_iter)

    def kernel_constants(self) -> KernelConstants:
        return KernelConstants(julia=True, c_real=float(self.parameters.c_real),
                               c_imag=float(self.parameters.c_imag))

    def get_recommended_center(self) -> Tuple[float, float]:
        return (0.0, 0.0)

    def get_description(self) -> str:
        return f"Julia set: z_{{n+1}} = z_n^2 + c, where c = {self.parameters.c} and z_0 is the complex coordinate"


class FractalRegistry:
    """Registry for the available fractal types."""

    _fractals: Dict[str, type] = {
        'mandelbrot': MandelbrotSet,
        'julia': JuliaSet,
    }

    @classmethod
    def list_fractals(cls) -> Dict[str, str]:
        """Get a dictionary of available fractals and their descriptions."""
        return {name: fractal_class().get_description() for name, fractal_class in cls._fractals.items()}

    @classmethod
    def for_view(cls, params: ViewParams) -> FractalType:
        """Select the fractal a view snapshot asks for."""
        if params.julia_mode:
            return JuliaSet(JuliaParameters(params.julia_c_real, params.julia_c_imag))
        return MandelbrotSet()


# Predefined interesting Julia set constants
JULIA_PRESETS = {
    'classic': JuliaParameters(c_real=-0.7, c_imag=0.27015),
    'dragon': JuliaParameters(c_real=-0.75, c_imag=0.1),
    'spiral': JuliaParameters(c_real=-0.4, c_imag=0.6),
    'dendrite': JuliaParameters(c_real=-0.235125, c_imag=0.827215),
    'lightning': JuliaParameters(c_real=-0.8, c_imag=0.156),
    'rabbit': JuliaParameters(c_real=-0.123, c_imag=0.745),
    'airplane': JuliaParameters(c_real=-1.25, c_imag=0.0),
    'san_marco': JuliaParameters(c_real=-0.75, c_imag=0.0),
    'siegel_disk': JuliaParameters(c_real=-0.391, c_imag=-0.587),
    'seahorse': JuliaParameters(c_real=0.285, c_imag=0.01),
}
