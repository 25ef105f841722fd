"""Dataclasses for request samples and system metrics snapshots."""
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone


@dataclass(frozen=True)
class RequestSample:
    response_time_ms: float = 0.0
    is_error: bool = False


@dataclass(frozen=True)
class CpuMetrics:
    usage: float = 0.0  # percent of one core over the sampling window
    load_average: tuple = (0.0, 0.0, 0.0)


@dataclass(frozen=True)
class MemoryMetrics:
    used: int = 0  # process RSS, bytes
    total: int = 0
    free: int = 0
    percentage: float = 0.0


@dataclass(frozen=True)
class DatabaseMetrics:
    connection_count: int = 0
    query_count: int = 0
    average_query_time: float = 0.0  # ms
    slow_queries: int = 0
    # False when the store could not report the value, as opposed to a real zero
    connection_count_available: bool = False
    query_stats_available: bool = False


@dataclass(frozen=True)
class ApplicationMetrics:
    uptime: float = 0.0  # ms
    request_count: int = 0
    error_count: int = 0
    response_time: float = 0.0  # ms, rolling average
    throughput: float = 0.0  # requests per minute

    @property
    def error_rate(self):
        """Error percentage over all observed requests, 0 when there are none."""
        if self.request_count == 0:
            return 0.0
        return self.error_count / self.request_count * 100


@dataclass(frozen=True)
class BusinessMetrics:
    total_users: int = 0
    total_books: int = 0
    total_reviews: int = 0
    active_users: int = 0
    new_users_today: int = 0
    new_reviews_today: int = 0
    available: bool = False


@dataclass(frozen=True)
class SystemMetrics:
    cpu: CpuMetrics = field(default_factory=CpuMetrics)
    memory: MemoryMetrics = field(default_factory=MemoryMetrics)
    database: DatabaseMetrics = field(default_factory=DatabaseMetrics)
    application: ApplicationMetrics = field(default_factory=ApplicationMetrics)
    business: BusinessMetrics = field(default_factory=BusinessMetrics)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        """JSON-safe nested dict."""
        d = asdict(self)
        d["timestamp"] = self.timestamp.isoformat()
        d["cpu"]["load_average"] = list(self.cpu.load_average)
        d["application"]["error_rate"] = self.application.error_rate
        return d
