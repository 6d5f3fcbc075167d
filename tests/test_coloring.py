import numpy as np
import pytest

from fractal_explorer.rendering.coloring import (
    ColorMapper, buffer_to_rgb_array, buffer_to_rgba, map_color, pack_rgb, unpack_rgb,
)


@pytest.mark.parametrize("value", [100.0, 100.5, 1e9, float("inf")])
@pytest.mark.parametrize("scale, offset", [(1.0, 0.0), (3.5, 0.25), (0.2, 7.0)])
def test_points_in_set_are_black(value, scale, offset):
    assert map_color(value, 100, scale, offset) == (0, 0, 0)


def test_nan_maps_to_black():
    assert map_color(float("nan"), 100) == (0, 0, 0)


def test_palette_midpoint():
    # t = 0.5 for value 50 of 100
    assert map_color(50.0, 100) == (143, 239, 135)


def test_palette_start_is_black():
    assert map_color(0.0, 100) == (0, 0, 0)


@pytest.mark.parametrize("value", [3.7, 37.25, 81.9])
@pytest.mark.parametrize("offset", [0.0, 0.125, 0.6])
def test_offset_is_periodic(value, offset):
    assert map_color(value, 100, 1.0, offset) == map_color(value, 100, 1.0, offset + 1.0)


def test_scale_repeats_palette():
    # With scale 2 the value 25 lands on the same palette position as 50 with scale 1
    assert map_color(25.0, 100, 2.0) == map_color(50.0, 100, 1.0)


def test_channels_are_bytes():
    mapper = ColorMapper(color_scale=1.7, color_offset=0.3)
    for value in np.linspace(0.0, 499.0, 97):
        r, g, b = mapper.map(value, 500)
        assert 0 <= r <= 255 and 0 <= g <= 255 and 0 <= b <= 255


def test_map_packed_matches_map():
    mapper = ColorMapper(color_offset=0.4)
    assert unpack_rgb(mapper.map_packed(12.3, 40)) == mapper.map(12.3, 40)


def test_invalid_mapper_settings():
    with pytest.raises(ValueError):
        ColorMapper(color_scale=0.0)
    with pytest.raises(ValueError):
        ColorMapper().map(1.0, 0)


def test_pack_rgb_layout():
    assert pack_rgb(0x12, 0x34, 0x56) == 0x123456
    assert unpack_rgb(0x00ABCDEF) == (0xAB, 0xCD, 0xEF)


def test_buffer_to_rgb_array():
    buffer = np.array([0xFF0000, 0x00FF00, 0x0000FF, 0x102030, 0, 0xFFFFFF], dtype=np.uint32)
    rgb = buffer_to_rgb_array(buffer, 3, 2)

    assert rgb.shape == (2, 3, 3)
    assert rgb.dtype == np.uint8
    assert tuple(rgb[0, 0]) == (255, 0, 0)
    assert tuple(rgb[0, 2]) == (0, 0, 255)
    assert tuple(rgb[1, 0]) == (0x10, 0x20, 0x30)


def test_buffer_to_rgb_array_rejects_size_mismatch():
    with pytest.raises(ValueError):
        buffer_to_rgb_array(np.zeros(5, dtype=np.uint32), 3, 2)


def test_buffer_to_rgba():
    data = buffer_to_rgba(np.array([[0x102030, 0x405060]], dtype=np.uint32))
    assert data == bytes([0x10, 0x20, 0x30, 255, 0x40, 0x50, 0x60, 255])
