"""Flask hooks that feed request timings into RequestStats."""
import logging
import time

from flask import g

logger = logging.getLogger("wordwise.web.middleware")


def install_request_recorder(app, stats):
    """Record latency for every request; 5xx responses and unhandled errors count as errors."""

    @app.before_request
    def _start_timer():
        g._request_started = time.perf_counter()

    @app.after_request
    def _record(response):
        started = g.pop("_request_started", None)
        if started is not None:
            elapsed_ms = (time.perf_counter() - started) * 1000
            stats.record_request(elapsed_ms, is_error=response.status_code >= 500)
        return response

    @app.teardown_request
    def _record_failure(exc):
        # after_request never ran if the exception propagated
        started = g.pop("_request_started", None)
        if started is not None and exc is not None:
            stats.record_request((time.perf_counter() - started) * 1000, is_error=True)
            logger.debug(f"Request failed: {exc!r}")

    return app
