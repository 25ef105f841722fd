"""Alert notification channels."""
import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from models.enums import Severity

logger = logging.getLogger("wordwise.alerts.channels")


@runtime_checkable
class AlertChannel(Protocol):
    def send(self, alert) -> None: ...


class LogChannel:
    """Write fired alerts to the application log."""

    LEVELS = {
        Severity.LOW: logging.INFO,
        Severity.MEDIUM: logging.WARNING,
        Severity.HIGH: logging.WARNING,
        Severity.CRITICAL: logging.ERROR,
    }

    def send(self, alert):
        sev = Severity(alert.severity)
        logger.log(
            self.LEVELS[sev],
            f"ALERT [{sev.value.upper()}] {alert.rule_name}: {alert.message} | {alert.metrics}",
        )


class ConsoleChannel:
    """Print alerts to terminal with rich formatting."""

    def send(self, alert):
        from rich.console import Console
        console = Console()

        severity_styles = {
            "critical": "bold white on red",
            "high": "bold red",
            "medium": "bold yellow",
            "low": "bold blue",
        }
        sev = Severity(alert.severity).value
        style = severity_styles.get(sev, "")
        console.print(f"[{style}] [{sev.upper()}] {alert.rule_name}: {alert.message}[/]")


class FileChannel:
    """Append alerts to a JSON lines log file."""

    def __init__(self, log_path="data/alerts.jsonl"):
        self.log_path = log_path

    def send(self, alert):
        try:
            Path(self.log_path).parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a") as f:
                f.write(json.dumps(alert.to_dict()) + "\n")
        except OSError as e:
            logger.warning(f"Failed to write alert to file: {e}")
