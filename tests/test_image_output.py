import json

import numpy as np
import pytest
from PIL import Image

from fractal_explorer.rendering.image_output import ImageExporter, RenderMetadata


@pytest.fixture
def metadata():
    return RenderMetadata(
        fractal_type='Julia',
        view={'center_x': 0.0, 'center_y': 0.0, 'zoom': 150.0, 'julia_c': [-0.8, 0.156]},
        resolution=(4, 3),
        fidelity='high_quality',
        effective_max_iterations=500,
        max_iterations=500,
        iteration_policy='multiplicative',
        render_time_seconds=0.01,
    )


@pytest.fixture
def buffer():
    return np.array([0xFF0000, 0x00FF00, 0x0000FF, 0x000000,
                     0x123456, 0xABCDEF, 0xFFFFFF, 0x010203,
                     0, 0, 0, 0x808080], dtype=np.uint32)


def test_png_keeps_pixels_and_metadata(tmp_path, buffer, metadata):
    exporter = ImageExporter()
    path = exporter.save_buffer(buffer, 4, 3, tmp_path / 'frame.png', metadata)

    with Image.open(path) as img:
        assert img.size == (4, 3)
        assert img.getpixel((0, 0)) == (255, 0, 0)
        assert img.getpixel((1, 1)) == (0xAB, 0xCD, 0xEF)

    restored = exporter.extract_metadata_from_image(path)
    assert restored == metadata
    assert restored.resolution == (4, 3)


def test_png_without_metadata(tmp_path, buffer):
    exporter = ImageExporter()
    path = exporter.save_buffer(buffer, 4, 3, tmp_path / 'plain.png')
    assert exporter.extract_metadata_from_image(path) is None


def test_jpeg_writes_companion_metadata(tmp_path, buffer, metadata):
    path = ImageExporter().save_buffer(buffer, 4, 3, tmp_path / 'frame.jpg', metadata)
    assert path.exists()
    companion = json.loads((tmp_path / 'frame.json').read_text())
    assert companion['fractal_type'] == 'Julia'


def test_tiff_export(tmp_path, buffer, metadata):
    path = ImageExporter().save_buffer(buffer, 4, 3, tmp_path / 'frame.tiff', metadata)
    with Image.open(path) as img:
        assert img.size == (4, 3)


def test_unsupported_format(tmp_path, buffer):
    with pytest.raises(ValueError):
        ImageExporter().save_buffer(buffer, 4, 3, tmp_path / 'frame.bmp')


def test_size_mismatch(tmp_path, buffer):
    with pytest.raises(ValueError):
        ImageExporter().save_buffer(buffer, 5, 3, tmp_path / 'frame.png')


def test_image_sequence_numbering(tmp_path, buffer):
    frames = ((buffer, None) for _ in range(3))
    paths = ImageExporter().create_image_sequence(frames, 4, 3, tmp_path / 'seq')
    assert [p.name for p in paths] == ['frame_000000.png', 'frame_000001.png', 'frame_000002.png']
    assert all(p.exists() for p in paths)


def test_metadata_json_round_trip(metadata):
    assert RenderMetadata.from_json(metadata.to_json()) == metadata
    assert metadata.timestamp
    assert metadata.software_version
