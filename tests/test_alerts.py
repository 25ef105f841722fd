"""Tests for alerts engine, rules manager, channels, and incidents."""
import json
import logging
import pytest
from datetime import datetime, timedelta, timezone

import yaml

from models.alerts import AlertRule, AlertRecord
from models.enums import Severity, IncidentType
from alerts.engine import AlertEngine
from alerts.rules_manager import RulesManager, make_condition, resolve_metric
from alerts.channels import LogChannel, ConsoleChannel, FileChannel
from alerts.manager import AlertManager


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class RecordingChannel:
    def __init__(self):
        self.sent = []

    def send(self, alert):
        self.sent.append(alert)


def _cpu_rule(cooldown=300, threshold=80, rule_id="cpu"):
    return AlertRule(
        id=rule_id, name="High CPU", severity=Severity.HIGH, message="CPU hot",
        condition=make_condition("cpu.usage", ">", threshold), cooldown_seconds=cooldown,
        metric="cpu.usage", operator=">", threshold=threshold,
    )


@pytest.fixture
def clock():
    return FakeClock()


# ── Rule Evaluation ─────────────────────────────────────

def test_rule_triggers(clock, make_metrics):
    engine = AlertEngine([_cpu_rule()], clock=clock)
    fired = engine.check_alerts(make_metrics(cpu=95))
    assert [a.rule_id for a in fired] == ["cpu"]
    assert fired[0].metrics["cpu"] == 95
    assert engine.get_rule("cpu").last_triggered == clock.now


def test_rule_does_not_trigger(clock, make_metrics):
    engine = AlertEngine([_cpu_rule()], clock=clock)
    assert engine.check_alerts(make_metrics(cpu=50)) == []
    assert engine.get_rule("cpu").last_triggered is None


def test_cooldown_blocks_until_elapsed(clock, make_metrics):
    engine = AlertEngine([_cpu_rule(cooldown=300)], clock=clock)
    hot = make_metrics(cpu=95)

    assert len(engine.check_alerts(hot)) == 1
    clock.advance(299)
    assert engine.check_alerts(hot) == []
    clock.advance(1)
    assert len(engine.check_alerts(hot)) == 1


def test_clear_alerts_makes_rules_eligible(clock, make_metrics):
    engine = AlertEngine([_cpu_rule(cooldown=3600)], clock=clock)
    hot = make_metrics(cpu=95)
    engine.check_alerts(hot)
    clock.advance(10)
    assert engine.check_alerts(hot) == []

    engine.clear_alerts()
    assert engine.list_active_alerts() == []
    assert len(engine.check_alerts(hot)) == 1


def test_failing_condition_is_skipped(clock, make_metrics, caplog):
    def boom(metrics):
        raise RuntimeError("bad predicate")

    broken = AlertRule(id="broken", name="Broken", condition=boom)
    engine = AlertEngine([broken, _cpu_rule()], clock=clock)

    with caplog.at_level(logging.ERROR, logger="wordwise.alerts.engine"):
        fired = engine.check_alerts(make_metrics(cpu=95))

    assert [a.rule_id for a in fired] == ["cpu"]
    assert "broken" in caplog.text


def test_disabled_rule_never_fires(clock, make_metrics):
    rule = _cpu_rule()
    rule.enabled = False
    engine = AlertEngine([rule], clock=clock)
    assert engine.check_alerts(make_metrics(cpu=95)) == []


def test_add_and_remove_rules(clock):
    engine = AlertEngine(clock=clock)
    engine.add_rule(_cpu_rule(threshold=80))
    engine.add_rule(_cpu_rule(threshold=90))
    assert len(engine.get_rules()) == 1
    assert engine.get_rule("cpu").threshold == 90

    assert engine.remove_rule("cpu") is True
    assert engine.remove_rule("cpu") is False
    assert engine.get_rules() == []


def test_active_alerts_window(clock, make_metrics):
    engine = AlertEngine([_cpu_rule(cooldown=60)], clock=clock)
    engine.check_alerts(make_metrics(cpu=95))

    active = engine.list_active_alerts()
    assert active == [{
        "rule_id": "cpu",
        "message": "CPU hot",
        "severity": "high",
        "timestamp": clock.now.isoformat(),
    }]

    clock.advance(3600)
    assert engine.list_active_alerts() == []


def test_channels_receive_fired_alerts(clock, make_metrics):
    channel = RecordingChannel()
    engine = AlertEngine([_cpu_rule()], channels=[channel], clock=clock)
    engine.check_alerts(make_metrics(cpu=95))
    assert len(channel.sent) == 1
    assert isinstance(channel.sent[0], AlertRecord)


def test_channel_failure_does_not_stop_dispatch(clock, make_metrics):
    class Broken:
        def send(self, alert):
            raise OSError("disk full")

    channel = RecordingChannel()
    engine = AlertEngine([_cpu_rule()], channels=[Broken(), channel], clock=clock)
    engine.check_alerts(make_metrics(cpu=95))
    assert len(channel.sent) == 1


def test_test_rules_ignores_cooldown(clock, make_metrics):
    engine = AlertEngine([_cpu_rule()], clock=clock)
    hot = make_metrics(cpu=95)
    engine.check_alerts(hot)

    results = engine.test_rules(hot)
    assert results[0]["would_fire"] is True
    assert results[0]["current_value"] == 95
    assert results[0]["severity"] == "high"


def test_format_alert_summary(clock, make_metrics):
    engine = AlertEngine([_cpu_rule()], clock=clock)
    assert "All clear" in engine.format_alert_summary([])
    fired = engine.check_alerts(make_metrics(cpu=95))
    assert engine.format_alert_summary(fired) == "[!!] [HIGH] High CPU: CPU hot"


# ── Rules Manager ───────────────────────────────────────

def test_builtin_rules_load():
    rm = RulesManager()
    ids = [r.id for r in rm.get_all_rules()]
    assert ids == [
        "high-cpu-usage", "high-memory-usage", "slow-response-time", "high-error-rate",
        "database-slow-queries", "database-connection-issues", "low-throughput",
    ]
    error_rule = rm.get_rule("high-error-rate")
    assert error_rule.severity == Severity.CRITICAL
    assert error_rule.cooldown_seconds == 60


@pytest.mark.parametrize("rule_id,kwargs,fires", [
    ("high-cpu-usage", {"cpu": 81}, True),
    ("high-cpu-usage", {"cpu": 80}, False),
    ("high-memory-usage", {"memory_pct": 90}, True),
    ("slow-response-time", {"response_time": 2500}, True),
    ("high-error-rate", {"request_count": 100, "error_count": 6}, True),
    ("high-error-rate", {"request_count": 0, "error_count": 0}, False),
    ("database-slow-queries", {"slow_queries": 11}, True),
    ("database-connection-issues", {"connections": 51}, True),
    ("low-throughput", {"throughput": 5}, True),
    ("low-throughput", {"throughput": 10}, False),
])
def test_builtin_rule_conditions(rule_id, kwargs, fires, make_metrics):
    rule = RulesManager().get_rule(rule_id)
    assert rule.condition(make_metrics(**kwargs)) is fires


def test_overrides_apply_per_rule():
    rm = RulesManager(overrides={
        "high-cpu-usage": {"threshold": 95, "cooldown_seconds": 30},
        "low-throughput": {"enabled": False},
    })
    cpu = rm.get_rule("high-cpu-usage")
    assert cpu.threshold == 95
    assert cpu.cooldown_seconds == 30
    assert rm.get_rule("low-throughput").enabled is False


def test_invalid_rules_are_skipped(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(yaml.safe_dump({"rules": [
        {"id": "bad-op", "metric": "cpu.usage", "operator": "~", "threshold": 1},
        {"id": "bad-sev", "metric": "cpu.usage", "operator": ">", "threshold": 1, "severity": "urgent"},
        {"id": "ok", "metric": "cpu.usage", "operator": ">", "threshold": 1, "severity": "LOW"},
    ]}))
    rm = RulesManager(path)
    assert [r.id for r in rm.get_all_rules()] == ["ok"]
    assert rm.get_rule("ok").severity == Severity.LOW


def test_incomplete_rules_are_skipped(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(yaml.safe_dump({"rules": [
        {"id": "no-threshold", "metric": "cpu.usage", "operator": ">"},
        {"id": "no-metric", "operator": ">", "threshold": 1},
        {"metric": "cpu.usage", "operator": ">", "threshold": 1},
        {"id": "word-threshold", "metric": "cpu.usage", "operator": ">", "threshold": "high"},
        {"id": "bad-override", "metric": "cpu.usage", "operator": ">", "threshold": 1},
        {"id": "ok", "metric": "cpu.usage", "operator": ">", "threshold": "2.5"},
    ]}))
    rm = RulesManager(path, overrides={"bad-override": {"threshold": "abc"}})
    assert [r.id for r in rm.get_all_rules()] == ["ok"]
    assert rm.get_rule("ok").threshold == 2.5


def test_missing_rules_file(tmp_path):
    rm = RulesManager(tmp_path / "nope.yaml")
    assert rm.get_all_rules() == []


def test_resolve_metric(make_metrics):
    metrics = make_metrics(request_count=4, error_count=1)
    assert resolve_metric(metrics, "application.error_rate") == 25.0
    with pytest.raises(AttributeError):
        resolve_metric(metrics, "application.nope")


# ── Channels ────────────────────────────────────────────

def _record():
    return AlertRecord(rule_id="cpu", rule_name="High CPU", severity=Severity.CRITICAL,
                       message="CPU hot", metrics={"cpu": 99.0})


def test_file_channel(tmp_path):
    log_path = tmp_path / "alerts" / "alerts.jsonl"
    channel = FileChannel(str(log_path))
    channel.send(_record())
    channel.send(_record())

    lines = log_path.read_text().splitlines()
    assert len(lines) == 2
    data = json.loads(lines[0])
    assert data["rule_id"] == "cpu"
    assert data["severity"] == "critical"
    assert data["metrics"] == {"cpu": 99.0}


def test_log_channel(caplog):
    with caplog.at_level(logging.WARNING, logger="wordwise.alerts.channels"):
        LogChannel().send(_record())
    assert "ALERT [CRITICAL] High CPU: CPU hot" in caplog.text


def test_console_channel():
    """Console channel should not crash."""
    ConsoleChannel().send(_record())


# ── Incidents ───────────────────────────────────────────

def test_incident_lifecycle(caplog):
    manager = AlertManager()
    with caplog.at_level(logging.WARNING, logger="wordwise.alerts.manager"):
        first = manager.create_alert("warning", "Disk filling up")
        second = manager.create_alert(IncidentType.CRITICAL, "Primary down")

    assert first != second
    assert first.startswith("alert_")
    assert "[CRITICAL] Primary down" in caplog.text
    assert [i.id for i in manager.get_active_alerts()] == [first, second]
    assert [i.id for i in manager.get_alerts_by_type("critical")] == [second]

    assert manager.resolve_alert(first) is True
    assert manager.resolve_alert("alert_missing") is False
    assert [i.id for i in manager.get_active_alerts()] == [second]


def test_incident_rejects_unknown_type():
    with pytest.raises(ValueError):
        AlertManager().create_alert("panic", "nope")
