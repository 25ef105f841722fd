"""Utility modules for WordWise monitoring."""
from utils.logger import setup_logging
from utils.formatters import format_bytes, format_pct, format_ms, format_duration, status_style
