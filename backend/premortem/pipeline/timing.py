"""
Timing Utilities for Latency Instrumentation

Logs execution times of pipeline stages and generation-service calls.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional


def log_timing(node_name: str, action: str, duration_ms: Optional[float] = None):
    """Log a timing event in standard format."""
    if duration_ms is not None:
        print(f"[TIMING] {node_name}: {action} — duration={duration_ms:.0f}ms")
    else:
        print(f"[TIMING] {node_name}: {action}")


@asynccontextmanager
async def async_timer(node_name: str, action: str = "STAGE"):
    """Async context manager for timing operations."""
    log_timing(node_name, f"{action} START")
    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        log_timing(node_name, f"{action} END", duration_ms)
