"""Enums for health status, database status, and alert severities."""
from enum import Enum


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class DatabaseStatus(str, Enum):
    CONNECTED = "connected"
    SLOW = "slow"
    DISCONNECTED = "disconnected"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IncidentType(str, Enum):
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"
