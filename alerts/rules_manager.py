"""Alert rules loading and management."""
import logging
import yaml
from pathlib import Path

from models.alerts import AlertRule
from models.enums import Severity

logger = logging.getLogger("wordwise.alerts.rules")

DEFAULT_RULES_PATH = Path(__file__).parent.parent / "config" / "alerts_rules.yaml"

OPERATOR_MAP = {
    "<": lambda v, t: v < t,
    ">": lambda v, t: v > t,
    "<=": lambda v, t: v <= t,
    ">=": lambda v, t: v >= t,
    "==": lambda v, t: v == t,
    "!=": lambda v, t: v != t,
}


def resolve_metric(metrics, path):
    """Follow a dotted attribute path such as ``application.error_rate``."""
    value = metrics
    for part in path.split("."):
        value = getattr(value, part)
    return value


def make_condition(metric, operator, threshold):
    """Build a SystemMetrics -> bool predicate."""
    compare = OPERATOR_MAP[operator]

    def condition(metrics):
        return compare(resolve_metric(metrics, metric), threshold)

    condition.__name__ = f"{metric} {operator} {threshold:g}"
    return condition


class RulesManager:
    def __init__(self, rules_path=None, overrides=None):
        self.rules_path = Path(rules_path) if rules_path else DEFAULT_RULES_PATH
        self.overrides = overrides or {}
        self.rules = []
        self.load()

    def load(self):
        if not self.rules_path.exists():
            logger.warning(f"Alert rules file not found: {self.rules_path}")
            return
        with open(self.rules_path) as f:
            data = yaml.safe_load(f) or {}
        self.rules = self._parse_rules(data.get("rules", []))
        unknown = set(self.overrides) - {r.id for r in self.rules}
        if unknown:
            logger.warning(f"Overrides reference unknown rules: {sorted(unknown)}")
        logger.info(f"Loaded {len(self.rules)} alert rules")

    def _parse_rules(self, raw_rules):
        rules = []
        for r in raw_rules:
            r = {**r, **self.overrides.get(r.get("id"), {})}
            if r.get("operator") not in OPERATOR_MAP:
                logger.warning(f"Invalid operator in rule {r.get('id')}: {r.get('operator')}")
                continue
            try:
                severity = Severity(str(r.get("severity", "medium")).lower())
            except ValueError:
                logger.warning(f"Invalid severity in rule {r.get('id')}: {r.get('severity')}")
                continue
            try:
                rule_id = r["id"]
                metric = r["metric"]
                threshold = float(r["threshold"])
            except (KeyError, TypeError, ValueError):
                logger.warning(f"Invalid metric or threshold in rule {r.get('id')}: "
                               f"{r.get('metric')} {r.get('threshold')}")
                continue
            rules.append(AlertRule(
                id=rule_id,
                name=r.get("name", rule_id),
                condition=make_condition(metric, r["operator"], threshold),
                severity=severity,
                message=r.get("message", ""),
                cooldown_seconds=float(r.get("cooldown_seconds", 300)),
                enabled=r.get("enabled", True),
                metric=metric,
                operator=r["operator"],
                threshold=threshold,
            ))
        return rules

    def get_rule(self, rule_id):
        for r in self.rules:
            if r.id == rule_id:
                return r
        return None

    def get_all_rules(self):
        return self.rules
