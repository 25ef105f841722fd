"""Alert evaluation engine with per-rule cooldowns."""
import logging
import threading
from datetime import datetime, timezone

from alerts.rules_manager import resolve_metric
from models.alerts import AlertRecord
from models.enums import Severity

logger = logging.getLogger("wordwise.alerts.engine")

ACTIVE_WINDOW_SECONDS = 3600


def _utcnow():
    return datetime.now(timezone.utc)


class AlertEngine:
    """Evaluates alert rules against SystemMetrics snapshots.

    Rules are held in insertion order keyed by id. A rule fires when its
    condition holds and it has never fired, or at least ``cooldown_seconds``
    have passed since it last fired. Firing stamps ``last_triggered`` and
    dispatches an AlertRecord to every channel.
    """

    def __init__(self, rules=None, channels=None, clock=None,
                 active_window_seconds=ACTIVE_WINDOW_SECONDS):
        self._rules = {}
        self.channels = channels or []
        self.clock = clock or _utcnow
        self.active_window_seconds = active_window_seconds
        self._lock = threading.Lock()
        for rule in rules or []:
            self.add_rule(rule)

    # --- Rule set ---

    def add_rule(self, rule):
        with self._lock:
            if rule.id in self._rules:
                logger.info(f"Replacing alert rule {rule.id}")
            self._rules[rule.id] = rule

    def remove_rule(self, rule_id):
        with self._lock:
            return self._rules.pop(rule_id, None) is not None

    def get_rule(self, rule_id):
        with self._lock:
            return self._rules.get(rule_id)

    def get_rules(self):
        with self._lock:
            return list(self._rules.values())

    # --- Evaluation ---

    def _cooled_down(self, rule, now):
        if rule.last_triggered is None:
            return True
        elapsed = (now - rule.last_triggered).total_seconds()
        return elapsed >= rule.cooldown_seconds

    def _condition_holds(self, rule, metrics):
        try:
            return bool(rule.condition(metrics))
        except Exception:
            logger.exception(f"Alert rule {rule.id} failed to evaluate, skipping")
            return False

    def check_alerts(self, metrics):
        """Evaluate all enabled rules; fire and return the eligible ones."""
        triggered = []
        with self._lock:
            rules = [r for r in self._rules.values() if r.enabled]

        for rule in rules:
            if not self._condition_holds(rule, metrics):
                continue
            now = self.clock()
            with self._lock:
                if not self._cooled_down(rule, now):
                    continue
                rule.last_triggered = now
            record = self._build_record(rule, metrics, now)
            triggered.append(record)
            self._dispatch(record)

        return triggered

    def _build_record(self, rule, metrics, now):
        return AlertRecord(
            rule_id=rule.id,
            rule_name=rule.name,
            severity=rule.severity,
            message=rule.message,
            triggered_at=now,
            metrics={
                "cpu": metrics.cpu.usage,
                "memory": metrics.memory.percentage,
                "response_time": metrics.application.response_time,
                "error_rate": metrics.application.error_rate,
            },
        )

    def test_rules(self, metrics):
        """Evaluate ALL rules ignoring cooldowns, for testing/validation."""
        results = []
        for rule in self.get_rules():
            current = None
            if rule.metric:
                try:
                    current = resolve_metric(metrics, rule.metric)
                except AttributeError:
                    logger.warning(f"Rule {rule.id} references unknown metric {rule.metric}")
            results.append({
                "rule_id": rule.id,
                "name": rule.name,
                "metric": rule.metric,
                "operator": rule.operator,
                "threshold": rule.threshold,
                "current_value": current,
                "would_fire": self._condition_holds(rule, metrics),
                "severity": Severity(rule.severity).value,
                "enabled": rule.enabled,
            })
        return results

    # --- Active alerts ---

    def list_active_alerts(self):
        """Rules that fired within the active window, most recent state per rule."""
        now = self.clock()
        active = []
        for rule in self.get_rules():
            if rule.last_triggered is None:
                continue
            if (now - rule.last_triggered).total_seconds() < self.active_window_seconds:
                active.append({
                    "rule_id": rule.id,
                    "message": rule.message,
                    "severity": Severity(rule.severity).value,
                    "timestamp": rule.last_triggered.isoformat(),
                })
        return active

    def clear_alerts(self):
        with self._lock:
            for rule in self._rules.values():
                rule.last_triggered = None

    def format_alert_summary(self, alerts):
        """Format alerts for display."""
        if not alerts:
            return "All clear - no alerts triggered."
        lines = []
        for a in alerts:
            sev = Severity(a.severity).value.upper()
            icon = {"CRITICAL": "!!!", "HIGH": "!!", "MEDIUM": "!", "LOW": "i"}.get(sev, "?")
            lines.append(f"[{icon}] [{sev}] {a.rule_name}: {a.message}")
        return "\n".join(lines)

    def _dispatch(self, record):
        for channel in self.channels:
            try:
                channel.send(record)
            except Exception as e:
                logger.warning(f"Channel dispatch error: {e}")
