#!/usr/bin/env python3
"""WordWise Monitor - CLI Entry Point."""
import sys
import json
import asyncio
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

import click
from rich.console import Console
from rich.table import Table

from __version__ import __version__

console = Console()


def _init_components(config_path=None, verbose=False):
    """Lazy initialization of all components."""
    from utils.logger import setup_logging
    from config import load_config
    from models.database import Database
    from models.health import AlertThresholds
    from monitor.request_stats import RequestStats
    from monitor.profiler import PerformanceProfiler
    from monitor.health import HealthMonitor
    from monitor.collector import MetricsCollector
    from alerts.rules_manager import RulesManager
    from alerts.engine import AlertEngine
    from alerts.manager import AlertManager
    from alerts.channels import LogChannel, ConsoleChannel, FileChannel

    config = load_config(config_path)
    log_cfg = config["logging"]
    setup_logging("DEBUG" if verbose else log_cfg.get("level", "INFO"), log_cfg.get("file"))

    mon_cfg = config["monitoring"]
    alert_cfg = config["alerts"]

    profiler = PerformanceProfiler(slow_query_ms=mon_cfg.get("slow_query_ms", 1000))
    db = Database(config["database"]["path"], profiler=profiler)
    db.connect()

    stats = RequestStats(capacity=mon_cfg.get("request_window", 1000))

    rules = RulesManager(alert_cfg.get("rules_path"), overrides=alert_cfg.get("overrides"))
    channels = [LogChannel()]
    if alert_cfg.get("log_path"):
        channels.append(FileChannel(alert_cfg["log_path"]))

    # Console only if running interactively
    if alert_cfg.get("console") and sys.stdout.isatty():
        channels.append(ConsoleChannel())

    alert_engine = AlertEngine(
        rules.get_all_rules(),
        channels,
        active_window_seconds=alert_cfg.get("active_window_seconds", 3600),
    )

    probe_kwargs = {
        "probe_timeout": mon_cfg.get("probe_timeout_seconds", 5.0),
        "cpu_sample_seconds": mon_cfg.get("cpu_sample_seconds", 0.1),
    }
    health_monitor = HealthMonitor(
        db, stats, AlertThresholds.from_dict(config["thresholds"]), **probe_kwargs,
    )
    collector = MetricsCollector(db, stats, alert_engine, profiler, **probe_kwargs)

    return {
        "config": config, "db": db, "stats": stats, "profiler": profiler,
        "rules": rules, "alert_engine": alert_engine, "incidents": AlertManager(),
        "health_monitor": health_monitor, "metrics_collector": collector,
    }


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config YAML")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="wordwise-monitor")
@click.pass_context
def cli(ctx, config_path, verbose):
    """WordWise Monitor - health checks, metrics, alert rules & dashboard."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _get_components(ctx):
    if "_components" not in ctx.obj:
        ctx.obj["_components"] = _init_components(ctx.obj.get("config_path"), ctx.obj.get("verbose"))
    return ctx.obj["_components"]


# ──────────────────────────────────────────────────────
# SETUP
# ──────────────────────────────────────────────────────
@cli.command()
@click.pass_context
def setup(ctx):
    """First-time setup: initialize the database and check it responds."""
    c = _get_components(ctx)
    console.print("[bold]WordWise Monitor - Setup[/bold]\n")
    console.print(f"[green]✓[/green] Database initialized at {c['db'].db_path}")

    try:
        c["db"].ping()
        console.print("[green]✓[/green] Database responds")
    except Exception as e:
        console.print(f"[red]✗[/red] Database check failed: {e}")

    console.print(f"[green]✓[/green] {len(c['rules'].get_all_rules())} alert rules loaded")
    console.print("\n[bold]Setup complete![/bold] Run [bold]python main.py web[/bold] to start the dashboard.\n")


# ──────────────────────────────────────────────────────
# HEALTH & METRICS
# ──────────────────────────────────────────────────────
@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def health(ctx, as_json):
    """Run a health check."""
    from utils.formatters import format_bytes, format_duration, format_ms, format_pct, status_style

    c = _get_components(ctx)
    result = asyncio.run(c["health_monitor"].check_health())

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    t = c["health_monitor"].thresholds
    style = status_style(result.status)
    console.print(f"Status: [{style}]{result.status.value.upper()}[/{style}]")

    table = Table(show_header=True)
    table.add_column("Check")
    table.add_column("Value", justify="right")
    table.add_row("Uptime", format_duration(result.uptime_ms))
    table.add_row("Memory (RSS)", format_bytes(result.memory_usage.rss))
    table.add_row("CPU", format_pct(result.cpu_usage_pct, with_color=True, warn_at=t.cpu_pct))
    db_style = status_style(result.database_status)
    table.add_row("Database", f"[{db_style}]{result.database_status.value}[/{db_style}]")
    table.add_row("Avg response", format_ms(result.avg_response_time_ms))
    table.add_row("Error rate", format_pct(result.error_rate_pct, with_color=True, warn_at=t.error_rate_pct))
    table.add_row("Requests", str(result.request_count))
    console.print(table)

    for alert in c["health_monitor"].get_alerts():
        console.print(f"  [yellow]![/yellow] {alert}")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def metrics(ctx, as_json):
    """Collect a full metrics snapshot."""
    from utils.formatters import format_bytes, format_ms, format_pct

    c = _get_components(ctx)
    snapshot = asyncio.run(c["metrics_collector"].collect_metrics())

    if as_json:
        click.echo(json.dumps(snapshot.to_dict(), indent=2))
        return

    table = Table(title="System Metrics", show_header=True)
    table.add_column("Section", style="dim")
    table.add_column("Metric")
    table.add_column("Value", justify="right")

    table.add_row("cpu", "usage", format_pct(snapshot.cpu.usage))
    table.add_row("cpu", "load average", " ".join(f"{v:.2f}" for v in snapshot.cpu.load_average))
    table.add_row("memory", "used", format_bytes(snapshot.memory.used))
    table.add_row("memory", "percentage", format_pct(snapshot.memory.percentage))

    db = snapshot.database
    table.add_row("database", "connections", str(db.connection_count) if db.connection_count_available else "n/a")
    table.add_row("database", "queries", str(db.query_count) if db.query_stats_available else "n/a")
    table.add_row("database", "avg query", format_ms(db.average_query_time) if db.query_stats_available else "n/a")
    table.add_row("database", "slow queries", str(db.slow_queries))

    app_m = snapshot.application
    table.add_row("application", "requests", str(app_m.request_count))
    table.add_row("application", "errors", str(app_m.error_count))
    table.add_row("application", "response time", format_ms(app_m.response_time))
    table.add_row("application", "throughput", f"{app_m.throughput:.1f} req/min")

    biz = snapshot.business
    if biz.available:
        table.add_row("business", "users", str(biz.total_users))
        table.add_row("business", "books", str(biz.total_books))
        table.add_row("business", "reviews", str(biz.total_reviews))
        table.add_row("business", "active users (24h)", str(biz.active_users))
        table.add_row("business", "new users today", str(biz.new_users_today))
        table.add_row("business", "new reviews today", str(biz.new_reviews_today))
    else:
        table.add_row("business", "-", "[dim]unavailable[/dim]")
    console.print(table)

    console.print("\n[bold]Alerts fired[/bold]")
    console.print(c["alert_engine"].format_alert_summary(c["metrics_collector"].last_fired), markup=False)


# ──────────────────────────────────────────────────────
# ALERTS
# ──────────────────────────────────────────────────────
@cli.group()
def alerts():
    """Alert management."""
    pass


@alerts.command("rules")
@click.pass_context
def alerts_rules(ctx):
    """List configured alert rules."""
    c = _get_components(ctx)
    table = Table(title="Alert Rules", show_header=True)
    table.add_column("ID")
    table.add_column("Condition")
    table.add_column("Severity")
    table.add_column("Cooldown", justify="right")
    table.add_column("Enabled")
    for r in c["alert_engine"].get_rules():
        en_str = "✓" if r.enabled else "✗"
        table.add_row(r.id, f"{r.metric} {r.operator} {r.threshold:g}", r.severity.value,
                      f"{r.cooldown_seconds:g}s", en_str)
    console.print(table)


@alerts.command("test")
@click.pass_context
def alerts_test(ctx):
    """Test all rules (ignore cooldowns) against a fresh snapshot."""
    c = _get_components(ctx)
    snapshot = asyncio.run(c["metrics_collector"].collect_metrics())
    results = c["alert_engine"].test_rules(snapshot)

    table = Table(title="Alert Rules Test", show_header=True)
    table.add_column("Rule")
    table.add_column("Metric")
    table.add_column("Condition")
    table.add_column("Current")
    table.add_column("Would Fire")
    table.add_column("Enabled")

    for r in results:
        fire_str = "[green]YES[/green]" if r["would_fire"] else "[dim]no[/dim]"
        en_str = "✓" if r["enabled"] else "✗"
        val = f"{r['current_value']:.2f}" if r["current_value"] is not None else "N/A"
        table.add_row(r["name"], r["metric"], f"{r['operator']} {r['threshold']:g}",
                      val, fire_str, en_str)
    console.print(table)


# ──────────────────────────────────────────────────────
# WEB
# ──────────────────────────────────────────────────────
@cli.command()
@click.option("--port", default=None, type=int, help="Port (default: from config)")
@click.option("--host", default=None, help="Host (default: from config)")
@click.pass_context
def web(ctx, port, host):
    """Launch the web dashboard."""
    from web.app import create_app

    c = _get_components(ctx)
    web_cfg = c["config"]["web"]
    host = host or web_cfg.get("host", "127.0.0.1")
    port = port or web_cfg.get("port", 5000)

    app = create_app(c["config"], c)

    console.print("\n[bold]WordWise Monitor -- Web Dashboard[/bold]\n")
    console.print(f"  Dashboard:  http://{host}:{port}/")
    console.print(f"  Health:     http://{host}:{port}/health")
    console.print("\n  Press Ctrl+C to stop.\n")

    app.run(host=host, port=port, debug=False)


if __name__ == "__main__":
    cli()
