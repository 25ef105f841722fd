"""Tests for the rolling request statistics recorder."""
import pytest

from monitor.request_stats import RequestStats


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_empty_recorder_reports_zero(stats):
    assert stats.average_response_time() == 0
    assert stats.error_rate() == 0
    assert stats.samples() == []


def test_average_response_time(stats):
    for ms in (100, 200, 300):
        stats.record_request(ms)
    assert stats.average_response_time() == 200


def test_error_rate_over_all_requests(stats):
    stats.record_request(50)
    stats.record_request(50)
    stats.record_request(50, is_error=True)
    stats.record_request(50)
    assert stats.error_rate() == 25.0
    assert stats.request_count == 4
    assert stats.error_count == 1


@pytest.mark.parametrize("n", [1, 999, 1000, 1050, 2500])
def test_window_keeps_most_recent_samples(n):
    stats = RequestStats()
    for i in range(n):
        stats.record_request(i)
    samples = stats.samples()
    assert len(samples) == min(n, 1000)
    assert [s.response_time_ms for s in samples] == list(range(max(0, n - 1000), n))


def test_error_counter_survives_window_eviction():
    stats = RequestStats(capacity=10)
    for _ in range(10):
        stats.record_request(5, is_error=True)
    for _ in range(30):
        stats.record_request(5)
    assert all(not s.is_error for s in stats.samples())
    assert stats.error_rate() == 25.0


def test_accepts_non_positive_latency(stats):
    stats.record_request(0)
    stats.record_request(-20)
    assert stats.average_response_time() == -10


def test_uptime_and_reset():
    clock = FakeClock()
    stats = RequestStats(clock=clock)
    clock.now += 2.5
    assert stats.uptime_ms == pytest.approx(2500)

    stats.record_request(100, is_error=True)
    stats.reset()
    assert stats.request_count == 0
    assert stats.error_count == 0
    assert stats.samples() == []
    assert stats.uptime_ms == 0


def test_snapshot(stats):
    stats.record_request(100)
    stats.record_request(300, is_error=True)
    assert stats.snapshot() == {
        "request_count": 2,
        "error_count": 1,
        "average_response_time": 200,
        "error_rate": 50.0,
    }
