"""Formatting utilities for CLI display."""


def format_bytes(value):
    """Format a byte count with a binary unit: 1536 -> '1.5 KB'."""
    if value is None:
        return "N/A"
    value = float(value)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(value) < 1024:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"


def format_pct(value, decimals=1, with_color=False, warn_at=None):
    """Format a percentage. With color, values above ``warn_at`` render red."""
    if value is None:
        return "N/A"
    value = float(value)
    formatted = f"{value:.{decimals}f}%"
    if with_color and warn_at is not None:
        color = "red" if value > warn_at else "green"
        return f"[{color}]{formatted}[/{color}]"
    return formatted


def format_ms(value):
    """Milliseconds, switching to seconds past 1000: 2500 -> '2.50s'."""
    if value is None:
        return "N/A"
    value = float(value)
    if abs(value) >= 1000:
        return f"{value / 1000:.2f}s"
    return f"{value:.1f}ms"


def format_duration(ms):
    """Format an uptime in milliseconds: 90061000 -> '1d 1h 1m'."""
    if ms is None:
        return "N/A"
    seconds = int(float(ms) // 1000)
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    if days:
        return f"{days}d {hours}h {minutes}m"
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def status_style(status):
    """Rich style for a health or database status value."""
    value = getattr(status, "value", status)
    return {
        "healthy": "bold green",
        "connected": "bold green",
        "degraded": "bold yellow",
        "slow": "bold yellow",
        "unhealthy": "bold red",
        "disconnected": "bold red",
    }.get(value, "")
