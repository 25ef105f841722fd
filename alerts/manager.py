"""Manually raised incident alerts, open until resolved."""
import logging
import secrets
import threading
import time

from models.alerts import Incident
from models.enums import IncidentType

logger = logging.getLogger("wordwise.alerts.manager")

_LEVELS = {
    IncidentType.WARNING: logging.WARNING,
    IncidentType.ERROR: logging.ERROR,
    IncidentType.CRITICAL: logging.CRITICAL,
}


class AlertManager:
    def __init__(self):
        self._incidents = []
        self._lock = threading.Lock()

    def create_alert(self, alert_type, message):
        """Record an open incident and log it; returns the new id."""
        alert_type = IncidentType(alert_type)
        incident = Incident(
            id=f"alert_{int(time.time() * 1000)}_{secrets.token_hex(5)}",
            type=alert_type,
            message=message,
        )
        with self._lock:
            self._incidents.append(incident)
        logger.log(_LEVELS[alert_type], f"[{alert_type.value.upper()}] {message}")
        return incident.id

    def resolve_alert(self, alert_id):
        with self._lock:
            for incident in self._incidents:
                if incident.id == alert_id:
                    incident.resolved = True
                    return True
        return False

    def get_active_alerts(self):
        with self._lock:
            return [i for i in self._incidents if not i.resolved]

    def get_alerts_by_type(self, alert_type):
        alert_type = IncidentType(alert_type)
        return [i for i in self.get_active_alerts() if i.type == alert_type]
