import numpy as np
import pytest

from fractal_explorer.api import RenderConfig, RenderScheduler


@pytest.fixture(scope="session")
def scheduler():
    config = RenderConfig(num_workers=3, band_rows=4)
    with RenderScheduler(config) as shared:
        yield shared


@pytest.fixture
def make_buffer():
    def _make(width, height, fill=0):
        return np.full(width * height, fill, dtype=np.uint32)
    return _make


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()
