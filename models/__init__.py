"""Data models."""
from models.enums import HealthStatus, DatabaseStatus, Severity, IncidentType
from models.metrics import (
    RequestSample, CpuMetrics, MemoryMetrics, DatabaseMetrics,
    ApplicationMetrics, BusinessMetrics, SystemMetrics,
)
from models.health import MemoryUsage, HealthMetrics, AlertThresholds
from models.alerts import AlertRule, AlertRecord, Incident
