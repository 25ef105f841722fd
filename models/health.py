"""Dataclasses for health snapshots and the thresholds that classify them."""
from dataclasses import dataclass, field, fields, replace, asdict
from datetime import datetime, timezone

from models.enums import HealthStatus, DatabaseStatus

MB = 1024 * 1024


@dataclass(frozen=True)
class MemoryUsage:
    rss: int = 0
    vms: int = 0

    @property
    def rss_mb(self):
        return self.rss / MB


@dataclass(frozen=True)
class AlertThresholds:
    memory_mb: float = 500
    cpu_pct: float = 80
    response_time_ms: float = 2000
    error_rate_pct: float = 5
    db_response_time_ms: float = 1000

    @classmethod
    def from_dict(cls, overrides=None):
        """Build thresholds from a partial dict; missing fields keep their defaults."""
        overrides = overrides or {}
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown threshold keys: {sorted(unknown)}")
        return replace(cls(), **{k: float(v) for k, v in overrides.items()})


@dataclass(frozen=True)
class HealthMetrics:
    status: HealthStatus = HealthStatus.HEALTHY
    uptime_ms: float = 0.0
    memory_usage: MemoryUsage = field(default_factory=MemoryUsage)
    cpu_usage_pct: float = 0.0
    database_status: DatabaseStatus = DatabaseStatus.CONNECTED
    avg_response_time_ms: float = 0.0
    error_rate_pct: float = 0.0
    active_connections: int = 0
    request_count: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        d = asdict(self)
        d["timestamp"] = self.timestamp.isoformat()
        d["status"] = self.status.value
        d["database_status"] = self.database_status.value
        return d
