"""Shared test fixtures."""
import os
import sys
import time
import pytest
import tempfile
from types import SimpleNamespace

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.database import Database
from models.health import MB
from models.metrics import (
    CpuMetrics, MemoryMetrics, DatabaseMetrics, ApplicationMetrics, BusinessMetrics, SystemMetrics,
)
from monitor.profiler import PerformanceProfiler
from monitor.request_stats import RequestStats


class FakeProcess:
    """psutil.Process stand-in with fixed RSS and a CPU-time counter that
    advances by ``cpu_step`` seconds per ``cpu_times()`` call."""

    def __init__(self, rss_mb=100, cpu_step=0.0):
        self.rss = int(rss_mb * MB)
        self.cpu_step = cpu_step
        self._cpu = 0.0

    def memory_info(self):
        return SimpleNamespace(rss=self.rss, vms=self.rss * 2)

    def cpu_times(self):
        value = self._cpu
        self._cpu += self.cpu_step
        return SimpleNamespace(user=value, system=0.0)


class StubDB:
    """Store double with controllable latency and failures."""

    def __init__(self, ping_delay=0.0, fail=False, users=3, books=2, reviews=5, query_stats=None):
        self.ping_delay = ping_delay
        self.fail = fail
        self.users = users
        self.books = books
        self.reviews = reviews
        self.query_stats = query_stats

    def _check(self):
        if self.fail:
            raise ConnectionError("store unreachable")

    def ping(self):
        self._check()
        if self.ping_delay:
            time.sleep(self.ping_delay)
        return True

    def count_active_connections(self):
        self._check()
        return 4

    def get_query_statistics(self):
        self._check()
        return self.query_stats

    def count_users(self, created_since=None, updated_since=None):
        self._check()
        return self.users

    def count_books(self):
        self._check()
        return self.books

    def count_reviews(self, created_since=None):
        self._check()
        return self.reviews


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    db = Database(db_path, profiler=PerformanceProfiler())
    db.connect()
    yield db
    db.close()
    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(db_path + suffix):
            os.unlink(db_path + suffix)


@pytest.fixture
def stats():
    return RequestStats()


@pytest.fixture
def fake_process():
    return FakeProcess()


@pytest.fixture
def stub_db():
    return StubDB()


def _make_metrics(cpu=10.0, memory_pct=20.0, response_time=100.0, request_count=100,
                 error_count=0, throughput=50.0, slow_queries=0, connections=1):
    """SystemMetrics with the fields alert rules look at."""
    return SystemMetrics(
        cpu=CpuMetrics(usage=cpu),
        memory=MemoryMetrics(used=200 * MB, total=1000 * MB, free=800 * MB, percentage=memory_pct),
        database=DatabaseMetrics(connection_count=connections, slow_queries=slow_queries,
                                 connection_count_available=True),
        application=ApplicationMetrics(uptime=60_000, request_count=request_count,
                                       error_count=error_count, response_time=response_time,
                                       throughput=throughput),
        business=BusinessMetrics(),
    )


@pytest.fixture
def make_metrics():
    return _make_metrics
