"""HealthMonitor - classifies system health from live probes and request stats."""
import logging
import threading
import time

import psutil

from models.enums import HealthStatus, DatabaseStatus
from models.health import HealthMetrics, AlertThresholds
from monitor.probes import (
    sample_cpu_usage, process_memory, run_probe,
    CPU_SAMPLE_SECONDS, DEFAULT_PROBE_TIMEOUT,
)

logger = logging.getLogger("wordwise.monitor.health")


class HealthMonitor:
    def __init__(self, db, stats, thresholds=None, probe_timeout=DEFAULT_PROBE_TIMEOUT,
                 cpu_sample_seconds=CPU_SAMPLE_SECONDS, process=None):
        self.db = db
        self.stats = stats
        self.thresholds = thresholds or AlertThresholds()
        self.probe_timeout = probe_timeout
        self.cpu_sample_seconds = cpu_sample_seconds
        self.process = process or psutil.Process()
        self._alerts = []
        self._lock = threading.Lock()

    async def check_health(self) -> HealthMetrics:
        """Probe memory, CPU and the store, then classify and refresh the alert list."""
        memory = process_memory(self.process)
        cpu_usage = await sample_cpu_usage(self.process, self.cpu_sample_seconds)
        database_status = await self._check_database()
        active_connections = await self._active_connections()
        response_time = self.stats.average_response_time()
        error_rate = self.stats.error_rate()

        status = self.determine_status(
            memory_mb=memory.rss_mb,
            cpu_usage=cpu_usage,
            response_time=response_time,
            error_rate=error_rate,
            database_status=database_status,
        )

        metrics = HealthMetrics(
            status=status,
            uptime_ms=self.stats.uptime_ms,
            memory_usage=memory,
            cpu_usage_pct=cpu_usage,
            database_status=database_status,
            avg_response_time_ms=response_time,
            error_rate_pct=error_rate,
            active_connections=active_connections,
            request_count=self.stats.request_count,
        )

        alerts = self._evaluate_alerts(metrics)
        with self._lock:
            self._alerts = alerts
        logger.debug(f"Health: {status.value} | db={database_status.value} | alerts={len(alerts)}")
        return metrics

    async def _check_database(self) -> DatabaseStatus:
        start = time.perf_counter()
        try:
            await run_probe(self.db.ping, timeout=self.probe_timeout)
        except Exception as e:
            logger.warning(f"Database health check failed: {e!r}")
            return DatabaseStatus.DISCONNECTED

        latency_ms = (time.perf_counter() - start) * 1000
        if latency_ms > self.thresholds.db_response_time_ms:
            return DatabaseStatus.SLOW
        return DatabaseStatus.CONNECTED

    async def _active_connections(self) -> int:
        try:
            return int(await run_probe(self.db.count_active_connections, timeout=self.probe_timeout))
        except Exception as e:
            logger.warning(f"Failed to get active connections: {e!r}")
            return 0

    def determine_status(self, memory_mb, cpu_usage, response_time, error_rate, database_status):
        """Pure classification of one set of readings against the thresholds."""
        t = self.thresholds

        if (
            database_status == DatabaseStatus.DISCONNECTED
            or error_rate > t.error_rate_pct * 2
            or memory_mb > t.memory_mb * 2
        ):
            return HealthStatus.UNHEALTHY

        if (
            memory_mb > t.memory_mb
            or cpu_usage > t.cpu_pct
            or response_time > t.response_time_ms
            or error_rate > t.error_rate_pct
            or database_status == DatabaseStatus.SLOW
        ):
            return HealthStatus.DEGRADED

        return HealthStatus.HEALTHY

    def _evaluate_alerts(self, metrics):
        t = self.thresholds
        alerts = []
        memory_mb = metrics.memory_usage.rss_mb

        if memory_mb > t.memory_mb:
            alerts.append(f"High memory usage: {memory_mb:.2f}MB (threshold: {t.memory_mb:g}MB)")
        if metrics.cpu_usage_pct > t.cpu_pct:
            alerts.append(f"High CPU usage: {metrics.cpu_usage_pct:.2f}% (threshold: {t.cpu_pct:g}%)")
        if metrics.avg_response_time_ms > t.response_time_ms:
            alerts.append(
                f"Slow response time: {metrics.avg_response_time_ms:.2f}ms "
                f"(threshold: {t.response_time_ms:g}ms)"
            )
        if metrics.error_rate_pct > t.error_rate_pct:
            alerts.append(f"High error rate: {metrics.error_rate_pct:.2f}% (threshold: {t.error_rate_pct:g}%)")
        if metrics.database_status == DatabaseStatus.SLOW:
            alerts.append("Database response is slow")
        if metrics.database_status == DatabaseStatus.DISCONNECTED:
            alerts.append("Database connection lost")
        return alerts

    def get_alerts(self):
        with self._lock:
            return list(self._alerts)

    def clear_alerts(self):
        with self._lock:
            self._alerts = []

    def get_metrics(self):
        return self.stats.snapshot()

    def reset(self):
        self.stats.reset()
        self.clear_alerts()
