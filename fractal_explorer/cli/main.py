"""
Command-line interface for the fractal engine.

This module renders single frames, Julia keyframe sweeps and benchmarks
from the command line using the same scheduler as the interactive explorer.
"""

import click
import sys
from dataclasses import replace
from pathlib import Path
from typing import Tuple
import logging

import numpy as np

from .. import __version__
from ..api import RenderScheduler, RenderConfig
from ..core.fractal_types import FractalRegistry, JULIA_PRESETS
from ..core.parameters import Fidelity, RenderRequest, RenderStats, ViewParams
from ..io.config import ConfigManager, detect_format, load_config_from_args
from ..rendering.image_output import ImageExporter, RenderMetadata
from ..tools.animation import KeyframeAnimator

logger = logging.getLogger(__name__)


def _parse_pair(text: str, what: str) -> Tuple[float, float]:
    try:
        parts = [float(x.strip()) for x in text.split(',')]
    except ValueError:
        raise click.BadParameter(f"Invalid {what}. Use 'real,imag'")
    if len(parts) != 2:
        raise click.BadParameter(f"Invalid {what}. Use 'real,imag'")
    return parts[0], parts[1]


def _parse_julia_c(text: str) -> Tuple[float, float]:
    if text in JULIA_PRESETS:
        preset = JULIA_PRESETS[text]
        return preset.c_real, preset.c_imag
    return _parse_pair(text, "Julia constant (use 'real,imag' or a preset name)")


def _parse_size(text: str) -> Tuple[int, int]:
    try:
        width, height = map(int, text.lower().split('x'))
    except ValueError:
        raise click.BadParameter("Invalid size format. Use 'widthxheight'")
    return width, height


def _build_metadata(request: RenderRequest, stats: RenderStats, config: RenderConfig) -> RenderMetadata:
    return RenderMetadata(
        fractal_type=FractalRegistry.for_view(request.params).name,
        view=request.params.to_dict(),
        resolution=(request.width, request.height),
        fidelity=request.fidelity.value,
        effective_max_iterations=stats.effective_max_iter,
        max_iterations=stats.max_iter,
        iteration_policy=config.get_policy().value,
        render_time_seconds=stats.elapsed,
    )


def _fail(ctx, e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    if ctx.obj.get('verbose'):
        import traceback
        traceback.print_exc()
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--config', type=click.Path(exists=True), help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.pass_context
def main(ctx, version, config, verbose, quiet):
    """
    Fractal Explorer - interactive Mandelbrot and Julia set renderer.

    Render frames at preview or full quality, sweep the Julia constant along
    a keyframe timeline, and measure render latency.
    """
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.INFO,
                            format='%(levelname)s: %(message)s')

    if version:
        click.echo(f"Fractal Explorer v{__version__}")
        click.echo(f"Python: {sys.version}")
        if ctx.invoked_subcommand is None:
            sys.exit(0)

    ctx.ensure_object(dict)
    ctx.obj['config_file'] = config
    ctx.obj['verbose'] = verbose


@main.command()
@click.argument('output', type=click.Path())
@click.option('--width', '-w', type=int, default=800, help='Image width')
@click.option('--height', type=int, default=600, help='Image height')
@click.option('--center', type=str, help='View centre "real,imag"')
@click.option('--zoom', type=float, help='Zoom in pixels per unit')
@click.option('--max-iter', type=int, help='Base iteration cap (clamped to 1-5000)')
@click.option('--escape-radius', type=float, help='Escape radius')
@click.option('--color-offset', type=float, help='Palette offset')
@click.option('--color-scale', type=float, help='Palette scale')
@click.option('--julia-c', type=str, help='Render a Julia set for this constant (real,imag) or preset name')
@click.option('--policy', type=click.Choice(['multiplicative', 'additive']), help='Adaptive iteration policy')
@click.option('--fast', is_flag=True, help='Render the Fast preview tier instead of HighQuality')
@click.pass_context
def render(ctx, output, width, height, center, zoom, max_iter, escape_radius,
           color_offset, color_scale, julia_c, policy, fast):
    """
    Render a single frame.

    OUTPUT: Output image file path (.png, .jpg or .tiff)
    """
    try:
        render_config, view = load_config_from_args(ctx.obj.get('config_file'))
        if policy:
            render_config.iteration_policy = policy

        changes = {}
        if center:
            changes['center_x'], changes['center_y'] = _parse_pair(center, "centre")
        if zoom is not None:
            changes['zoom'] = zoom
        if escape_radius is not None:
            changes['escape_radius'] = escape_radius
        if color_offset is not None:
            changes['color_offset'] = color_offset
        if color_scale is not None:
            changes['color_scale'] = color_scale
        if julia_c:
            changes['julia_mode'] = True
            changes['julia_c'] = _parse_julia_c(julia_c)
        view = ViewParams.clamped(**{**view.to_dict(), 'julia_c': tuple(view.julia_c), **changes,
                                     'max_iter_base': max_iter if max_iter is not None else view.max_iter_base})
        if julia_c and not center:
            center_x, center_y = FractalRegistry.for_view(view).get_recommended_center()
            view = replace(view, center_x=center_x, center_y=center_y)

        fidelity = Fidelity.FAST if fast else Fidelity.HIGH_QUALITY
        request = RenderRequest(view, width, height, fidelity)
        buffer = np.zeros(width * height, dtype=np.uint32)

        with RenderScheduler(render_config) as scheduler:
            stats = scheduler.render(request, buffer)

        ImageExporter().save_buffer(buffer, width, height, Path(output),
                                    _build_metadata(request, stats, render_config))

        click.echo(f"Render complete: {stats.elapsed_ms:.1f}ms "
                   f"({fidelity.value}, max_iter={stats.max_iter})")
        click.echo(f"Saved: {output}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.argument('output_dir', type=click.Path())
@click.option('--frames', type=int, default=60, help='Number of animation frames')
@click.option('--duration', type=float, default=20.0, help='Animation duration in seconds')
@click.option('--width', '-w', type=int, default=400, help='Frame width')
@click.option('--height', type=int, default=300, help='Frame height')
@click.option('--zoom', type=float, default=150.0, help='Zoom in pixels per unit')
@click.option('--format', 'image_format', type=click.Choice(['png', 'jpg', 'tiff']), default='png',
              help='Frame image format')
@click.pass_context
def animate(ctx, output_dir, frames, duration, width, height, zoom, image_format):
    """
    Sweep the Julia constant along the keyframe tour.

    OUTPUT_DIR: Output directory for animation frames
    """
    try:
        if frames < 1:
            raise click.BadParameter("frames must be >= 1")

        render_config, view = load_config_from_args(ctx.obj.get('config_file'))
        view = replace(view, julia_mode=True, zoom=zoom)
        center_x, center_y = FractalRegistry.for_view(view).get_recommended_center()
        view = replace(view, center_x=center_x, center_y=center_y)

        animator = KeyframeAnimator(duration=duration)
        dt = duration / frames
        buffer = np.zeros(width * height, dtype=np.uint32)

        click.echo(f"Creating {frames} frame Julia animation ({duration:.1f}s timeline)...")

        with RenderScheduler(render_config) as scheduler:
            def frame_source():
                animator.start()
                for frame_num in range(frames):
                    c = animator.interpolate(animator.progress)
                    request = RenderRequest(replace(view, julia_c=c), width, height, Fidelity.HIGH_QUALITY)
                    stats = scheduler.render(request, buffer)
                    if ctx.obj.get('verbose'):
                        click.echo(f"Rendered frame {frame_num + 1}/{frames} c={c[0]:.5f}{c[1]:+.5f}i")
                    yield buffer, _build_metadata(request, stats, render_config)
                    animator.tick(dt)

            paths = ImageExporter().create_image_sequence(
                frame_source(), width, height, Path(output_dir), format=image_format
            )

        click.echo(f"Animation frames saved to: {output_dir} ({len(paths)} files)")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.option('--size', type=str, default='800x600', help='Benchmark image size (widthxheight)')
@click.option('--iterations', type=int, default=500, help='Base iteration cap')
@click.option('--zoom', type=float, default=200.0, help='Zoom in pixels per unit')
@click.option('--repeat', type=int, default=3, help='Renders per fidelity tier')
@click.pass_context
def benchmark(ctx, size, iterations, zoom, repeat):
    """
    Compare Fast and HighQuality render latency.
    """
    try:
        width, height = _parse_size(size)
        render_config, view = load_config_from_args(ctx.obj.get('config_file'))
        view = ViewParams.clamped(**{**view.to_dict(), 'julia_c': tuple(view.julia_c),
                                     'zoom': zoom, 'max_iter_base': iterations})
        buffer = np.zeros(width * height, dtype=np.uint32)

        click.echo("Fractal Explorer Render Benchmark")
        click.echo(f"Image size: {width}x{height} ({width * height:,} pixels)")

        results = {}
        with RenderScheduler(render_config) as scheduler:
            click.echo(f"Workers: {scheduler.tile_renderer.num_workers}")
            click.echo("")
            for fidelity in (Fidelity.FAST, Fidelity.HIGH_QUALITY):
                request = RenderRequest(view, width, height, fidelity)
                timings = []
                stats = None
                for _ in range(max(1, repeat)):
                    stats = scheduler.render(request, buffer)
                    timings.append(stats.elapsed)
                average = sum(timings) / len(timings)
                results[fidelity] = average
                click.echo(f"  {fidelity.value}: {average * 1000:.1f}ms "
                           f"(max_iter={stats.max_iter}, block={stats.block_size}, "
                           f"{width * height / average:,.0f} pixels/sec)")

        if results[Fidelity.FAST] > 0:
            click.echo(f"\nFast speedup: {results[Fidelity.HIGH_QUALITY] / results[Fidelity.FAST]:.2f}x")

    except Exception as e:
        _fail(ctx, e)


@main.command('init-config')
@click.option('--output', '-o', type=click.Path(), default='fractal_explorer.yaml',
              help='Output file path')
@click.option('--format', 'file_format', type=click.Choice(['yaml', 'json']),
              help='Output format (auto-detect if not specified)')
@click.pass_context
def init_config(ctx, output, file_format):
    """
    Create a configuration file with the default settings.
    """
    try:
        output_path = Path(output)

        # Auto-detect format if not specified
        if not file_format:
            file_format = detect_format(output_path)
        if not output_path.suffix:
            output_path = output_path.with_suffix(f'.{file_format}')
        elif detect_format(output_path) != file_format:
            raise click.BadParameter(f"File suffix '{output_path.suffix}' does not match format {file_format}")

        ConfigManager().save_config(output_path, RenderConfig(), ViewParams())
        click.echo(f"Configuration template created: {output_path}")
        click.echo(f"Format: {file_format.upper()}")
    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.pass_context
def presets(ctx):
    """List the fractal types and the built-in Julia constants."""
    click.echo("Available fractal types:")
    for name, description in FractalRegistry.list_fractals().items():
        click.echo(f"  {name}: {description}")

    click.echo("\nAvailable Julia presets:")
    for name, params in JULIA_PRESETS.items():
        click.echo(f"  {name}: {params.c_real}{params.c_imag:+}i")


if __name__ == '__main__':
    main()
