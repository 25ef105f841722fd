"""Per-query timing statistics and a slow-query log."""
import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone

logger = logging.getLogger("wordwise.monitor.profiler")


@dataclass
class QueryStat:
    count: int = 0
    total_time: float = 0.0
    avg_time: float = 0.0


@dataclass
class SlowQuery:
    query: str
    time: float
    timestamp: datetime

    def to_dict(self):
        return {"query": self.query, "time": self.time, "timestamp": self.timestamp.isoformat()}


class PerformanceProfiler:
    """Thread-safe query profiler.

    Keeps running totals per query name, the last ``slow_log_size`` queries
    slower than ``slow_query_ms``, and a window of the last ``window`` execution
    times used to count recent slow queries.
    """

    def __init__(self, slow_query_ms=1000, slow_log_size=100, window=1000):
        self.slow_query_ms = slow_query_ms
        self._stats = {}
        self._slow = deque(maxlen=slow_log_size)
        self._recent = deque(maxlen=window)
        self._lock = threading.Lock()

    def record_query(self, name, execution_time_ms):
        with self._lock:
            stat = self._stats.setdefault(name, QueryStat())
            stat.count += 1
            stat.total_time += execution_time_ms
            stat.avg_time = stat.total_time / stat.count
            self._recent.append(execution_time_ms)

            if execution_time_ms > self.slow_query_ms:
                self._slow.append(SlowQuery(name, execution_time_ms, datetime.now(timezone.utc)))
                logger.debug(f"Slow query {name}: {execution_time_ms:.1f}ms")

    def get_query_metrics(self):
        with self._lock:
            return {name: QueryStat(s.count, s.total_time, s.avg_time) for name, s in self._stats.items()}

    def get_slow_queries(self):
        with self._lock:
            return list(self._slow)

    def get_top_slow_queries(self, limit=10):
        return sorted(self.get_slow_queries(), key=lambda q: q.time, reverse=True)[:limit]

    def recent_slow_count(self):
        """Slow queries among the most recent executions."""
        with self._lock:
            return sum(1 for t in self._recent if t > self.slow_query_ms)

    def summary(self):
        """Total calls and mean execution time across all queries."""
        with self._lock:
            calls = sum(s.count for s in self._stats.values())
            total = sum(s.total_time for s in self._stats.values())
        return {"calls": calls, "mean_time_ms": total / calls if calls else 0.0}

    def clear_metrics(self):
        with self._lock:
            self._stats.clear()
            self._slow.clear()
            self._recent.clear()
