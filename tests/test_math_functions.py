import math

import pytest

from fractal_explorer.core.math_functions import (
    EscapeTimeEvaluator, ViewPlane, in_cardioid_or_bulb, mandelbrot_value, julia_value,
)

INTERIOR_POINTS = [
    (0.0, 0.0),
    (-0.5, 0.3),
    (0.2, 0.1),
    (-0.1, -0.6),
    (-1.0, 0.0),
    (-1.1, 0.1),
    (-0.95, -0.15),
]


@pytest.fixture
def evaluator():
    return EscapeTimeEvaluator(escape_radius=2.0)


@pytest.mark.parametrize("point", [(3.0, 0.0), (0.0, 2.5), (-2.1, 0.1), (1.5, 1.5), (-30.0, 40.0)])
@pytest.mark.parametrize("max_iter", [2, 10, 1000])
def test_points_outside_radius_escape_immediately(evaluator, point, max_iter):
    assert evaluator.mandelbrot(*point, max_iter) < 2.0


@pytest.mark.parametrize("max_iter", [1, 2, 7, 500, 5000])
def test_origin_is_in_the_set(evaluator, max_iter):
    assert evaluator.mandelbrot(0.0, 0.0, max_iter) == max_iter
    assert evaluator.mandelbrot(0.0, 0.0, max_iter, shortcut=False) == max_iter


@pytest.mark.parametrize("point", INTERIOR_POINTS)
def test_cardioid_and_bulb_membership(point):
    assert in_cardioid_or_bulb(*point)


@pytest.mark.parametrize("point", [(0.5, 0.0), (-2.0, 0.0), (0.3, 0.6), (-0.75, 0.0), (-1.3, 0.0)])
def test_points_outside_cardioid_and_bulb(point):
    assert not in_cardioid_or_bulb(*point)


@pytest.mark.parametrize("point", INTERIOR_POINTS)
@pytest.mark.parametrize("max_iter", [20, 300])
def test_shortcut_matches_full_iteration(evaluator, point, max_iter):
    shortcut = evaluator.mandelbrot(*point, max_iter)
    full = evaluator.mandelbrot(*point, max_iter, shortcut=False)
    assert shortcut == full == max_iter


def test_shortcut_is_not_applied_to_julia_sets(evaluator):
    # (0.2, 0.1) is inside the cardioid, but the Julia orbit for c = 1 + i escapes
    assert in_cardioid_or_bulb(0.2, 0.1)
    assert evaluator.julia(0.2, 0.1, 1.0, 1.0, 100) < 100


def test_shortcut_disabled_below_radius_two():
    small = EscapeTimeEvaluator(escape_radius=1.0)
    assert not small.use_shortcut
    # c = -1.2 is in the period-2 bulb but |c| > 1, so the orbit leaves the radius at once
    assert in_cardioid_or_bulb(-1.2, 0.0)
    assert small.mandelbrot(-1.2, 0.0, 50) < 50


def test_escaped_value_uses_smooth_formula(evaluator):
    # c = 3: one step gives z = 3, which is outside the radius
    expected = 1 + 1 - math.log(math.log(3.0) / math.log(2.0)) / math.log(2.0)
    assert evaluator.mandelbrot(3.0, 0.0, 100) == pytest.approx(expected, rel=1e-12)


def test_smooth_value_is_fractional(evaluator):
    value = evaluator.mandelbrot(0.4, 0.4, 200)
    assert 0 < value < 200
    assert value != int(value)


def test_julia_starts_from_the_point(evaluator):
    # Outside the radius at iteration zero: no iteration happens at all
    expected = 0 + 1 - math.log(math.log(3.0) / math.log(2.0)) / math.log(2.0)
    assert evaluator.julia(3.0, 0.0, -0.7, 0.27015, 100) == pytest.approx(expected, rel=1e-12)
    assert evaluator.julia(0.0, 0.0, 0.0, 0.0, 64) == 64


def test_julia_point_symmetry(evaluator):
    for x, y in [(0.3, 0.2), (-0.9, 0.45), (0.05, -0.7)]:
        assert evaluator.julia(x, y, -0.7, 0.27015, 300) == evaluator.julia(-x, -y, -0.7, 0.27015, 300)


def test_mandelbrot_conjugate_symmetry(evaluator):
    for x, y in [(-0.74, 0.12), (0.28, 0.53), (-1.77, 0.01)]:
        assert evaluator.mandelbrot(x, y, 400) == evaluator.mandelbrot(x, -y, 400)


def test_evaluate_dispatches_on_julia_constant(evaluator):
    assert evaluator.evaluate(0.4, 0.4, 100) == evaluator.mandelbrot(0.4, 0.4, 100)
    assert evaluator.evaluate(0.4, 0.4, 100, julia_c=(-0.8, 0.156)) == evaluator.julia(0.4, 0.4, -0.8, 0.156, 100)


def test_kernels_are_callable_directly():
    assert mandelbrot_value(0.0, 0.0, 10, 4.0, False) == 10.0
    assert julia_value(0.0, 0.0, 0.0, 0.0, 10, 4.0) == 10.0


@pytest.mark.parametrize("radius", [0.0, -1.0])
def test_non_positive_escape_radius_is_rejected(radius):
    with pytest.raises(ValueError):
        EscapeTimeEvaluator(escape_radius=radius)


def test_non_positive_max_iter_is_rejected(evaluator):
    with pytest.raises(ValueError):
        evaluator.mandelbrot(0.0, 0.0, 0)


def test_view_plane_mapping():
    plane = ViewPlane(-0.75, 0.0, 200.0, 800, 600)
    assert plane.pixel_to_complex(400, 300) == (-0.75, 0.0)
    assert plane.pixel_to_complex(0, 0) == pytest.approx((-0.75 - 2.0, -1.5))

    px, py = plane.complex_to_pixel(*plane.pixel_to_complex(123, 456))
    assert px == pytest.approx(123)
    assert py == pytest.approx(456)

    xmin, xmax, ymin, ymax = plane.get_bounds()
    assert xmax - xmin == pytest.approx(4.0)
    assert ymax - ymin == pytest.approx(3.0)


def test_view_plane_rejects_bad_zoom():
    with pytest.raises(ValueError):
        ViewPlane(0.0, 0.0, 0.0, 10, 10)
