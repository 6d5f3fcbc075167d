"""
Band partitioning and the worker pool for parallel rendering.

The pixel grid is split into horizontal bands of whole rows. Every band owns
a disjoint index range of the destination buffer, so workers write without
locks, and band heights are multiples of the sampling block so that no block
is split between two workers. Bands run on a thread pool; the Numba kernels
release the GIL while they compute.
"""

import os
import time
import numpy as np
from typing import List, Optional, Tuple
from dataclasses import dataclass
from concurrent.futures import ThreadPoolExecutor
import logging

from .numba_backend import render_band_kernel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TileSpec:
    """Specification for a single band in parallel rendering."""
    tile_id: int
    y_start: int
    y_end: int
    width: int

    @property
    def height(self) -> int:
        return self.y_end - self.y_start

    def index_range(self) -> Tuple[int, int]:
        """Half-open range of buffer indices owned by this band."""
        return self.y_start * self.width, self.y_end * self.width


@dataclass(frozen=True)
class KernelArguments:
    """Per-frame scalars shared by every band of a render."""
    width: int
    height: int
    block: int
    center_x: float
    center_y: float
    zoom: float
    max_iter: int
    escape_radius_sq: float
    use_shortcut: bool
    julia: bool
    c_real: float
    c_imag: float
    color_scale: float
    color_offset: float


def create_tile_grid(width: int, height: int, band_rows: int = 32, block: int = 1) -> List[TileSpec]:
    """
    Create the band grid for a frame.

    Args:
        width: Total image width
        height: Total image height
        band_rows: Target band height in rows
        block: Sampling block edge; band heights are rounded up to a multiple of it

    Returns:
        List of TileSpec objects covering every row exactly once
    """
    if width <= 0 or height <= 0:
        raise ValueError("Width and height must be positive")
    if block < 1:
        raise ValueError("block must be >= 1")

    rows = max(block, ((max(1, band_rows) + block - 1) // block) * block)
    tiles = []
    for tile_id, y in enumerate(range(0, height, rows)):
        tiles.append(TileSpec(tile_id=tile_id, y_start=y, y_end=min(y + rows, height), width=width))

    logger.debug(f"Created {len(tiles)} bands of {rows} rows for {width}x{height}")
    return tiles


def process_band(out: np.ndarray, tile: TileSpec, args: KernelArguments) -> int:
    """Render one band into ``out``; returns the number of samples evaluated."""
    return render_band_kernel(
        out, args.width, args.height, tile.y_start, tile.y_end, args.block,
        args.center_x, args.center_y, args.zoom, args.max_iter, args.escape_radius_sq,
        args.use_shortcut, args.julia, args.c_real, args.c_imag,
        args.color_scale, args.color_offset,
    )


def get_optimal_worker_count() -> int:
    """Get optimal number of worker threads for rendering."""
    return max(1, os.cpu_count() or 1)


class TileRenderer:
    """Fork-join renderer that spreads bands over a thread pool."""

    def __init__(self, num_workers: Optional[int] = None, band_rows: int = 32):
        """
        Initialize tile renderer.

        Args:
            num_workers: Number of worker threads (None for CPU count)
            band_rows: Target band height in rows
        """
        if num_workers is None:
            self.num_workers = get_optimal_worker_count()
        else:
            self.num_workers = max(1, num_workers)

        self.band_rows = band_rows
        self._executor: Optional[ThreadPoolExecutor] = None
        logger.info(f"Tile renderer: {self.num_workers} workers, {band_rows}-row bands")

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.num_workers,
                                                thread_name_prefix="fractal-band")
        return self._executor

    def render(self, out: np.ndarray, args: KernelArguments) -> Tuple[int, int]:
        """
        Render every band of a frame into ``out`` and wait for all of them.

        Args:
            out: Flat ``uint32`` buffer of width*height cells
            args: Frame scalars

        Returns:
            Tuple of (bands rendered, samples evaluated)
        """
        tiles = create_tile_grid(args.width, args.height, self.band_rows, args.block)

        if self.num_workers == 1 or len(tiles) == 1:
            samples = sum(process_band(out, tile, args) for tile in tiles)
            return len(tiles), samples

        start_time = time.perf_counter()
        executor = self._get_executor()
        futures = [executor.submit(process_band, out, tile, args) for tile in tiles]

        samples = 0
        failure = None
        for tile, future in zip(tiles, futures):
            try:
                samples += future.result()
            except Exception as e:
                logger.error(f"Band {tile.tile_id} (rows {tile.y_start}-{tile.y_end}) failed: {e}")
                if failure is None:
                    failure = e

        if failure is not None:
            raise failure

        logger.debug(f"Rendered {len(tiles)} bands in {time.perf_counter() - start_time:.4f}s")
        return len(tiles), samples

    def close(self) -> None:
        """Shut down the worker pool."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> 'TileRenderer':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
