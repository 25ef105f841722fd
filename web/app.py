"""
Flask dashboard and JSON API for WordWise monitoring.

Views:
  GET /                      — Dashboard page, polls the API every 30 seconds
  GET /health                — Liveness probe for load balancers

API endpoints (consumed by frontend JavaScript):
  GET  /api/metrics          — Collect a SystemMetrics snapshot
  GET  /api/health           — Run a health check
  GET  /api/history/metrics  — Recent metrics snapshots (?limit=N)
  GET  /api/history/health   — Recent health snapshots (?limit=N)
  GET  /api/alerts           — Rule engine alerts + health alerts
  POST /api/alerts/clear     — Clear both alert sources
  GET  /api/summary          — Latest health/metrics flattened
  GET  /api/status           — Latest cached status, never collects
  GET  /api/rules            — Configured alert rules
  GET  /api/chart/<type>     — Plotly chart JSON
  GET  /api/queries          — Query profiler statistics
  GET  /api/incidents        — Open incidents (?type=warning|error|critical)
  POST /api/incidents        — Raise an incident
  POST /api/incidents/<id>/resolve

Started via: python main.py web [--port 5000] [--host 0.0.0.0]
"""
import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone

from flask import Flask, render_template, jsonify, request

from __version__ import __version__
from models.enums import IncidentType
from monitor.probes import run_probe, DEFAULT_PROBE_TIMEOUT
from web.history import HistoryBuffer
from web.middleware import install_request_recorder

logger = logging.getLogger("wordwise.web.app")

DEFAULT_LIMIT = 100
DEFAULT_CHART_POINTS = 50

# Chart type -> alert rule whose threshold is drawn on the chart
CHART_RULES = {
    "cpu": "high-cpu-usage",
    "memory": "high-memory-usage",
    "response_time": "slow-response-time",
    "throughput": "low-throughput",
}


def create_app(config: dict, engines: dict) -> Flask:
    """
    Factory function. Receives initialized engines from main.py CLI.

    Args:
        config: Application config dict
        engines: dict of initialized engine objects (health_monitor,
                 metrics_collector, alert_engine, incidents, db, stats, profiler)
    """
    app = Flask(__name__,
                template_folder="templates",
                static_folder="static")

    health_monitor = engines["health_monitor"]
    collector = engines["metrics_collector"]
    alert_engine = engines["alert_engine"]

    dash_cfg = config.get("dashboard", {})
    mon_cfg = config.get("monitoring", {})
    history_size = dash_cfg.get("history_size", 1000)
    default_limit = dash_cfg.get("default_history_limit", DEFAULT_LIMIT)
    chart_points = dash_cfg.get("chart_points", DEFAULT_CHART_POINTS)
    probe_timeout = mon_cfg.get("probe_timeout_seconds", DEFAULT_PROBE_TIMEOUT)

    metrics_history = HistoryBuffer(history_size)
    health_history = HistoryBuffer(history_size)
    app.extensions["wordwise_history"] = {
        "metrics": metrics_history,
        "health": health_history,
    }

    if mon_cfg.get("record_dashboard_requests", True) and engines.get("stats") is not None:
        install_request_recorder(app, engines["stats"])

    @app.after_request
    def _cors(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response

    # ─── Data Collection ─────────────────────────────────

    async def fresh_metrics():
        metrics = await collector.collect_metrics()
        metrics_history.append(metrics)
        return metrics

    async def fresh_health():
        health = await health_monitor.check_health()
        health_history.append(health)
        return health

    def history_limit():
        limit = request.args.get("limit", default_limit, type=int)
        return limit if limit and limit > 0 else default_limit

    def active_alert_count():
        return len(alert_engine.list_active_alerts()) + len(health_monitor.get_alerts())

    # ─── Routes ──────────────────────────────────────────

    @app.route("/")
    def dashboard():
        return render_template(
            "dashboard.html",
            refresh_seconds=dash_cfg.get("refresh_seconds", 30),
            chart_types=list(CHART_RULES),
            version=__version__,
        )

    @app.route("/health")
    async def liveness():
        db = engines.get("db")
        try:
            if db is None:
                raise RuntimeError("no database configured")
            await run_probe(db.ping, timeout=probe_timeout)
        except Exception as e:
            logger.warning(f"Liveness check failed: {e!r}")
            return jsonify({"error": "Database unavailable"}), 503
        return jsonify({
            "status": "ok",
            "database": "connected",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    @app.route("/api/metrics")
    async def api_metrics():
        try:
            metrics = await fresh_metrics()
        except Exception:
            logger.exception("Metrics collection failed")
            return jsonify({"error": "Failed to collect metrics"}), 500
        return jsonify(metrics.to_dict())

    @app.route("/api/health")
    async def api_health():
        try:
            health = await fresh_health()
        except Exception:
            logger.exception("Health check failed")
            return jsonify({"error": "Failed to check health"}), 500
        return jsonify(health.to_dict())

    @app.route("/api/history/metrics")
    def api_metrics_history():
        items = metrics_history.recent(history_limit())
        return jsonify({"history": [m.to_dict() for m in items], "count": len(items)})

    @app.route("/api/history/health")
    def api_health_history():
        items = health_history.recent(history_limit())
        return jsonify({"history": [h.to_dict() for h in items], "count": len(items)})

    @app.route("/api/alerts")
    def api_alerts():
        return jsonify({
            "metrics": alert_engine.list_active_alerts(),
            "health": health_monitor.get_alerts(),
        })

    @app.route("/api/alerts/clear", methods=["POST"])
    def api_alerts_clear():
        alert_engine.clear_alerts()
        health_monitor.clear_alerts()
        logger.info("Alerts cleared")
        return jsonify({"cleared": True})

    @app.route("/api/summary")
    async def api_summary():
        try:
            health = health_history.latest() or await fresh_health()
            metrics = metrics_history.latest() or await fresh_metrics()
        except Exception:
            logger.exception("Summary collection failed")
            return jsonify({"error": "Failed to get summary"}), 500

        return jsonify({
            "status": health.status.value,
            "uptime": health.uptime_ms,
            "memory_usage_mb": round(health.memory_usage.rss_mb, 2),
            "cpu_usage": health.cpu_usage_pct,
            "database_status": health.database_status.value,
            "response_time": health.avg_response_time_ms,
            "error_rate": health.error_rate_pct,
            "request_count": health.request_count,
            "throughput": metrics.application.throughput,
            "total_users": metrics.business.total_users,
            "total_books": metrics.business.total_books,
            "total_reviews": metrics.business.total_reviews,
            "active_alerts": active_alert_count(),
            "last_updated": max(health.timestamp, metrics.timestamp).isoformat(),
        })

    @app.route("/api/status")
    def api_status():
        health = health_history.latest()
        metrics = metrics_history.latest()
        return jsonify({
            "status": health.status.value if health else None,
            "uptime": health.uptime_ms if health else None,
            "database_status": health.database_status.value if health else None,
            "memory_usage_mb": round(health.memory_usage.rss_mb, 2) if health else None,
            "cpu_usage": metrics.cpu.usage if metrics else None,
            "response_time": metrics.application.response_time if metrics else None,
            "throughput": metrics.application.throughput if metrics else None,
            "timestamp": health.timestamp.isoformat() if health else None,
        })

    @app.route("/api/rules")
    def api_rules():
        rules = [r.to_dict() for r in alert_engine.get_rules()]
        return jsonify({"rules": rules, "count": len(rules)})

    @app.route("/api/chart/<chart_type>")
    def api_chart(chart_type):
        import plotly.io as pio
        from web import charts as web_charts

        if chart_type not in web_charts.CHARTS:
            return jsonify({"error": f"Unknown chart type: {chart_type}"}), 404

        points = request.args.get("points", chart_points, type=int)
        if not points or points <= 0:
            points = chart_points
        rule = alert_engine.get_rule(CHART_RULES[chart_type])
        threshold = rule.threshold if rule and rule.enabled else None

        try:
            fig = web_charts.metric_chart(chart_type, metrics_history.recent(points), threshold)
            return json.loads(pio.to_json(fig))
        except Exception:
            logger.exception(f"Chart generation error ({chart_type})")
            return jsonify({"error": "Failed to build chart"}), 500

    @app.route("/api/queries")
    def api_queries():
        profiler = engines.get("profiler")
        if profiler is None:
            return jsonify({"error": "Query profiling is disabled"}), 404
        limit = request.args.get("limit", 10, type=int)
        return jsonify({
            "summary": profiler.summary(),
            "queries": {name: asdict(s) for name, s in profiler.get_query_metrics().items()},
            "slow_queries": [q.to_dict() for q in profiler.get_top_slow_queries(limit)],
        })

    @app.route("/api/incidents", methods=["GET"])
    def api_incidents():
        incidents = engines["incidents"]
        alert_type = request.args.get("type")
        try:
            items = (incidents.get_alerts_by_type(alert_type) if alert_type
                     else incidents.get_active_alerts())
        except ValueError:
            return jsonify({"error": f"Unknown incident type: {alert_type}"}), 400
        return jsonify({"incidents": [i.to_dict() for i in items], "count": len(items)})

    @app.route("/api/incidents", methods=["POST"])
    def api_create_incident():
        payload = request.get_json(silent=True) or {}
        message = payload.get("message")
        alert_type = payload.get("type", IncidentType.WARNING.value)
        if not message:
            return jsonify({"error": "message is required"}), 400
        try:
            incident_id = engines["incidents"].create_alert(alert_type, message)
        except ValueError:
            return jsonify({"error": f"Unknown incident type: {alert_type}"}), 400
        return jsonify({"id": incident_id}), 201

    @app.route("/api/incidents/<incident_id>/resolve", methods=["POST"])
    def api_resolve_incident(incident_id):
        if not engines["incidents"].resolve_alert(incident_id):
            return jsonify({"error": f"Incident not found: {incident_id}"}), 404
        return jsonify({"resolved": True, "id": incident_id})

    return app
