import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from osmduck.config import PipelineConfig
from osmduck.collectors.osm.cache import SpatialCache
from osmduck.rate_limit import RateLimiter


class FakeClock:
    """Deterministic clock whose sleep() just advances time"""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds


def make_response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = "OK" if response.ok else "Error"
    response.text = text
    response.json.return_value = payload if payload is not None else {}
    return response


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def no_wait_limiter(fake_clock):
    return RateLimiter(0.0, clock=fake_clock.time, sleep=fake_clock.sleep)


@pytest.fixture
def config(tmp_path):
    cfg = PipelineConfig()
    cfg.api.overpass_urls = []
    cfg.storage.db_path = str(tmp_path / "osm.duckdb")
    cfg.storage.spatial = False
    return cfg


@pytest.fixture
def cache(config):
    spatial_cache = SpatialCache(":memory:", spatial=False, config=config)
    spatial_cache.initialize()
    yield spatial_cache
    spatial_cache.close()
