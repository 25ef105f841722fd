"""Process and OS resource probes, plus a timeout wrapper for blocking store calls."""
import asyncio
import os
import time
from concurrent.futures import ThreadPoolExecutor
from functools import partial

import psutil

from models.health import MemoryUsage

CPU_SAMPLE_SECONDS = 0.1
DEFAULT_PROBE_TIMEOUT = 5.0

# Kept off the loop default executor, which asyncio.run and Flask wait on at shutdown
_probe_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="wordwise-probe")


async def sample_cpu_usage(process, interval=CPU_SAMPLE_SECONDS):
    """CPU time used by ``process`` over a short window, as a percent of wall time.

    Suspends for ``interval`` seconds. Concurrent callers each run their own
    window.
    """
    start = process.cpu_times()
    start_wall = time.monotonic()
    await asyncio.sleep(interval)
    end = process.cpu_times()
    elapsed = time.monotonic() - start_wall
    if elapsed <= 0:
        return 0.0
    cpu_seconds = (end.user - start.user) + (end.system - start.system)
    return cpu_seconds / elapsed * 100


def process_memory(process):
    info = process.memory_info()
    return MemoryUsage(rss=info.rss, vms=info.vms)


def system_memory():
    """(total, free) bytes of OS memory."""
    vm = psutil.virtual_memory()
    return vm.total, vm.available


def load_average():
    try:
        return tuple(os.getloadavg())
    except (AttributeError, OSError):
        return (0.0, 0.0, 0.0)


async def run_probe(func, *args, timeout=DEFAULT_PROBE_TIMEOUT):
    """Run a blocking call on the probe thread pool, bounded by ``timeout`` seconds.

    Raises ``asyncio.TimeoutError`` when the call overruns. The worker thread
    is not interrupted and finishes in the background, without holding up the
    caller or its event loop shutdown.
    """
    loop = asyncio.get_running_loop()
    return await asyncio.wait_for(
        loop.run_in_executor(_probe_executor, partial(func, *args)), timeout
    )
