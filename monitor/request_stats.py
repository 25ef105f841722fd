"""Rolling request latency and error statistics."""
import threading
import time
from collections import deque

from models.metrics import RequestSample

DEFAULT_WINDOW = 1000


class RequestStats:
    """Bounded window of recent request samples plus monotonic counters.

    The latency average only sees the last ``capacity`` samples; the request
    and error counters cover everything recorded since the last reset.
    """

    def __init__(self, capacity=DEFAULT_WINDOW, clock=time.monotonic):
        self.capacity = capacity
        self._clock = clock
        self._samples = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self.request_count = 0
        self.error_count = 0
        self._started = clock()

    def record_request(self, response_time_ms, is_error=False):
        with self._lock:
            self.request_count += 1
            if is_error:
                self.error_count += 1
            self._samples.append(RequestSample(response_time_ms, bool(is_error)))

    def average_response_time(self):
        with self._lock:
            if not self._samples:
                return 0.0
            return sum(s.response_time_ms for s in self._samples) / len(self._samples)

    def error_rate(self):
        with self._lock:
            if self.request_count == 0:
                return 0.0
            return self.error_count / self.request_count * 100

    def samples(self):
        with self._lock:
            return list(self._samples)

    @property
    def uptime_ms(self):
        return (self._clock() - self._started) * 1000

    def snapshot(self):
        return {
            "request_count": self.request_count,
            "error_count": self.error_count,
            "average_response_time": self.average_response_time(),
            "error_rate": self.error_rate(),
        }

    def reset(self):
        with self._lock:
            self.request_count = 0
            self.error_count = 0
            self._samples.clear()
            self._started = self._clock()
