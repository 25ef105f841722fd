"""Alert system module."""
from alerts.engine import AlertEngine
from alerts.rules_manager import RulesManager
from alerts.manager import AlertManager
from alerts.channels import LogChannel, ConsoleChannel, FileChannel
