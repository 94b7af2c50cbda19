"""
Timing Utilities for Latency Instrumentation

Context managers for logging how long each generation stage and the
whole pipeline take.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

logger = logging.getLogger(__name__)


def log_timing(node_name: str, action: str, duration_ms: Optional[float] = None):
    """Log a timing event in standard format."""
    if duration_ms is not None:
        logger.info("[TIMING] %s: %s — duration=%.0fms", node_name, action, duration_ms)
    else:
        logger.info("[TIMING] %s: %s", node_name, action)


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
