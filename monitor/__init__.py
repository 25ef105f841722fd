"""Request statistics, health evaluation and metrics collection."""
from monitor.request_stats import RequestStats
from monitor.profiler import PerformanceProfiler
from monitor.health import HealthMonitor
from monitor.collector import MetricsCollector
