"""MetricsCollector - assembles SystemMetrics snapshots and feeds the alert engine."""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from functools import partial

import psutil

from models.metrics import (
    CpuMetrics, MemoryMetrics, DatabaseMetrics, ApplicationMetrics,
    BusinessMetrics, SystemMetrics,
)
from monitor.probes import (
    sample_cpu_usage, process_memory, system_memory, load_average, run_probe,
    CPU_SAMPLE_SECONDS, DEFAULT_PROBE_TIMEOUT,
)

logger = logging.getLogger("wordwise.monitor.collector")


def local_midnight(now=None):
    """Start of the current local day, as an aware datetime."""
    now = (now or datetime.now(timezone.utc)).astimezone()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


class MetricsCollector:
    def __init__(self, db, stats, alert_engine, profiler=None,
                 probe_timeout=DEFAULT_PROBE_TIMEOUT,
                 cpu_sample_seconds=CPU_SAMPLE_SECONDS, process=None):
        self.db = db
        self.stats = stats
        self.alert_engine = alert_engine
        self.profiler = profiler
        self.probe_timeout = probe_timeout
        self.cpu_sample_seconds = cpu_sample_seconds
        self.process = process or psutil.Process()
        self.last_fired = []

    async def collect_metrics(self) -> SystemMetrics:
        """Build all five sections, run the alert rules, and return the snapshot.

        Sections fail soft: a probe that errors or times out leaves its
        section zeroed and logged rather than failing the snapshot.
        """
        cpu, database, business = await asyncio.gather(
            self._cpu_metrics(),
            self._database_metrics(),
            self._business_metrics(),
        )
        metrics = SystemMetrics(
            cpu=cpu,
            memory=self._memory_metrics(),
            database=database,
            application=self._application_metrics(),
            business=business,
        )

        fired = self.alert_engine.check_alerts(metrics)
        self.last_fired = fired
        if fired:
            logger.info(f"{len(fired)} alert rule(s) fired: {', '.join(a.rule_id for a in fired)}")
        return metrics

    async def _cpu_metrics(self):
        try:
            usage = await sample_cpu_usage(self.process, self.cpu_sample_seconds)
        except psutil.Error as e:
            logger.warning(f"CPU sampling failed: {e!r}")
            usage = 0.0
        return CpuMetrics(usage=min(usage, 100.0), load_average=load_average())

    def _memory_metrics(self):
        try:
            used = process_memory(self.process).rss
            total, free = system_memory()
        except psutil.Error as e:
            logger.warning(f"Memory probe failed: {e!r}")
            return MemoryMetrics()
        percentage = used / total * 100 if total else 0.0
        return MemoryMetrics(used=used, total=total, free=free, percentage=percentage)

    async def _database_metrics(self):
        connection_count, connections_ok = 0, False
        try:
            connection_count = int(await run_probe(self.db.count_active_connections,
                                                   timeout=self.probe_timeout))
            connections_ok = True
        except Exception as e:
            logger.warning(f"Could not get connection count: {e!r}")

        query_count, average_query_time, stats_ok = 0, 0.0, False
        try:
            stats = await run_probe(self.db.get_query_statistics, timeout=self.probe_timeout)
            if stats is None:
                logger.debug("Query statistics unavailable for this store")
            else:
                query_count = int(stats["calls"])
                average_query_time = float(stats["mean_time_ms"])
                stats_ok = True
        except Exception as e:
            logger.warning(f"Could not get query statistics: {e!r}")

        slow_queries = self.profiler.recent_slow_count() if self.profiler else 0

        return DatabaseMetrics(
            connection_count=connection_count,
            query_count=query_count,
            average_query_time=average_query_time,
            slow_queries=slow_queries,
            connection_count_available=connections_ok,
            query_stats_available=stats_ok,
        )

    def _application_metrics(self):
        uptime = self.stats.uptime_ms
        request_count = self.stats.request_count
        throughput = request_count / (uptime / 60_000) if uptime > 0 else 0.0
        return ApplicationMetrics(
            uptime=uptime,
            request_count=request_count,
            error_count=self.stats.error_count,
            response_time=self.stats.average_response_time(),
            throughput=throughput,
        )

    async def _business_metrics(self):
        midnight = local_midnight()
        day_ago = datetime.now(timezone.utc) - timedelta(days=1)

        def probe(func, **kwargs):
            return run_probe(partial(func, **kwargs), timeout=self.probe_timeout)

        results = await asyncio.gather(
            probe(self.db.count_users),
            probe(self.db.count_books),
            probe(self.db.count_reviews),
            probe(self.db.count_users, updated_since=day_ago),
            probe(self.db.count_users, created_since=midnight),
            probe(self.db.count_reviews, created_since=midnight),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            logger.warning(f"Failed to collect business metrics: {errors[0]!r}")
            return BusinessMetrics()
        total_users, total_books, total_reviews, active_users, new_users, new_reviews = results

        return BusinessMetrics(
            total_users=total_users,
            total_books=total_books,
            total_reviews=total_reviews,
            active_users=active_users,
            new_users_today=new_users,
            new_reviews_today=new_reviews,
            available=True,
        )

    def record_query(self, execution_time_ms, name="query"):
        if self.profiler is not None:
            self.profiler.record_query(name, execution_time_ms)
