import pytest
from click.testing import CliRunner
from PIL import Image

from fractal_explorer.cli.main import main
from fractal_explorer.rendering.image_output import ImageExporter


@pytest.fixture
def runner(monkeypatch):
    for name in ('WORKERS', 'BAND_ROWS', 'ITERATION_POLICY', 'FAST_BLOCK_SIZE'):
        monkeypatch.delenv(f'FRACTAL_EXPLORER_{name}', raising=False)
    return CliRunner()


def test_presets(runner):
    result = runner.invoke(main, ['presets'])
    assert result.exit_code == 0
    assert 'rabbit' in result.output
    assert 'classic' in result.output
    assert 'mandelbrot:' in result.output


def test_version(runner):
    result = runner.invoke(main, ['--version'])
    assert result.exit_code == 0
    assert 'Fractal Explorer v' in result.output


def test_render_png(runner, tmp_path):
    output = tmp_path / 'mandelbrot.png'
    result = runner.invoke(main, ['render', str(output), '--width', '16', '--height', '12',
                                  '--zoom', '5', '--max-iter', '100'])
    assert result.exit_code == 0, result.output
    with Image.open(output) as img:
        assert img.size == (16, 12)

    metadata = ImageExporter().extract_metadata_from_image(output)
    assert metadata.fractal_type == 'Mandelbrot'
    assert metadata.fidelity == 'high_quality'
    assert metadata.view['max_iter_base'] == 100


def test_render_fast_julia_preset(runner, tmp_path):
    output = tmp_path / 'julia.png'
    result = runner.invoke(main, ['render', str(output), '--width', '10', '--height', '10',
                                  '--julia-c', 'rabbit', '--fast', '--policy', 'additive'])
    assert result.exit_code == 0, result.output

    metadata = ImageExporter().extract_metadata_from_image(output)
    assert metadata.fractal_type == 'Julia'
    assert metadata.fidelity == 'fast'
    assert metadata.iteration_policy == 'additive'
    assert metadata.view['julia_c'] == [-0.123, 0.745]
    assert (metadata.view['center_x'], metadata.view['center_y']) == (0.0, 0.0)


def test_render_julia_keeps_explicit_centre(runner, tmp_path):
    output = tmp_path / 'julia.png'
    result = runner.invoke(main, ['render', str(output), '--width', '4', '--height', '4',
                                  '--julia-c', '0.285,0.01', '--center', '0.25,-0.5'])
    assert result.exit_code == 0, result.output

    metadata = ImageExporter().extract_metadata_from_image(output)
    assert (metadata.view['center_x'], metadata.view['center_y']) == (0.25, -0.5)


def test_render_clamps_iterations(runner, tmp_path):
    output = tmp_path / 'deep.png'
    result = runner.invoke(main, ['render', str(output), '--width', '4', '--height', '4',
                                  '--max-iter', '99999'])
    assert result.exit_code == 0, result.output
    assert ImageExporter().extract_metadata_from_image(output).view['max_iter_base'] == 5000


def test_render_rejects_bad_centre(runner, tmp_path):
    result = runner.invoke(main, ['render', str(tmp_path / 'x.png'), '--center', 'abc'])
    assert result.exit_code == 1


def test_animate(runner, tmp_path):
    out_dir = tmp_path / 'frames'
    result = runner.invoke(main, ['animate', str(out_dir), '--frames', '3', '--duration', '3',
                                  '--width', '8', '--height', '6'])
    assert result.exit_code == 0, result.output

    paths = sorted(out_dir.glob('frame_*.png'))
    assert [p.name for p in paths] == ['frame_000000.png', 'frame_000001.png', 'frame_000002.png']

    first = ImageExporter().extract_metadata_from_image(paths[0])
    assert first.view['julia_c'] == [-0.7, 0.27015]
    assert first.view['julia_mode']
    assert (first.view['center_x'], first.view['center_y']) == (0.0, 0.0)


def test_benchmark(runner):
    result = runner.invoke(main, ['benchmark', '--size', '16x12', '--repeat', '1', '--iterations', '50'])
    assert result.exit_code == 0, result.output
    assert 'high_quality' in result.output
    assert 'fast' in result.output


def test_benchmark_rejects_bad_size(runner):
    result = runner.invoke(main, ['benchmark', '--size', 'large'])
    assert result.exit_code == 1


@pytest.mark.parametrize("name, args", [
    ("settings.json", []),
    ("settings.yaml", []),
    ("settings", ["--format", "yaml"]),
])
def test_init_config_round_trip(runner, tmp_path, name, args):
    result = runner.invoke(main, ["init-config", "-o", str(tmp_path / name)] + args)
    assert result.exit_code == 0, result.output
    settings = next(tmp_path.glob("settings*"))
    assert settings.suffix in (".json", ".yaml")

    output = tmp_path / 'configured.png'
    result = runner.invoke(main, ['--config', str(settings), 'render', str(output),
                                  '--width', '6', '--height', '4'])
    assert result.exit_code == 0, result.output
    assert output.exists()


def test_init_config_rejects_conflicting_format(runner, tmp_path):
    result = runner.invoke(main, ['init-config', '-o', str(tmp_path / 'settings.json'), '--format', 'yaml'])
    assert result.exit_code == 1
