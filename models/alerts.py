"""Dataclasses for alert rules, fired alerts, and manual incidents."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from models.enums import Severity, IncidentType


@dataclass
class AlertRule:
    id: str = ""
    name: str = ""
    condition: Optional[Callable] = None  # SystemMetrics -> bool
    severity: Severity = Severity.MEDIUM
    message: str = ""
    cooldown_seconds: float = 300
    last_triggered: Optional[datetime] = None
    enabled: bool = True
    # Display-only metadata for rules built from YAML
    metric: str = ""
    operator: str = ""
    threshold: Optional[float] = None

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "severity": Severity(self.severity).value,
            "message": self.message,
            "cooldown_seconds": self.cooldown_seconds,
            "enabled": self.enabled,
            "metric": self.metric,
            "operator": self.operator,
            "threshold": self.threshold,
            "last_triggered": self.last_triggered.isoformat() if self.last_triggered else None,
        }


@dataclass
class AlertRecord:
    rule_id: str = ""
    rule_name: str = ""
    severity: Severity = Severity.MEDIUM
    message: str = ""
    triggered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metrics: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "severity": Severity(self.severity).value,
            "message": self.message,
            "triggered_at": self.triggered_at.isoformat(),
            "metrics": dict(self.metrics),
        }


@dataclass
class Incident:
    id: str = ""
    type: IncidentType = IncidentType.WARNING
    message: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resolved: bool = False

    def to_dict(self):
        return {
            "id": self.id,
            "type": IncidentType(self.type).value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
