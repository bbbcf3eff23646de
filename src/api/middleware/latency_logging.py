"""Request latency logging middleware."""

import logging
import re
import time
from collections import defaultdict, deque
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

# Log level thresholds in milliseconds
SLOW_REQUEST_THRESHOLD_MS = 1000
VERY_SLOW_REQUEST_THRESHOLD_MS = 3000

QUIET_PATHS = ("/health", "/health/ready")
UUID_PATTERN = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)


def normalize_path(path: str) -> str:
    """Collapse ids in a path so /chats/<uuid>/messages groups as one route."""
    return UUID_PATTERN.sub("{id}", path)


def _percentile(sorted_values: list[float], fraction: float) -> float:
    index = min(int(len(sorted_values) * fraction), len(sorted_values) - 1)
    return round(sorted_values[index], 2)


class LatencyStats:
    """Rolling window of request latencies, grouped by normalized path."""

    def __init__(self, max_samples: int = 1000) -> None:
        self._samples: deque[tuple[str, float]] = deque(maxlen=max_samples)

    def record(self, path: str, latency_ms: float) -> None:
        self._samples.append((normalize_path(path), latency_ms))

    def get_stats(self) -> dict:
        """Overall count, mean and p50/p95 latency."""
        latencies = sorted(sample[1] for sample in self._samples)
        if not latencies:
            return {"total_requests": 0, "avg_latency_ms": 0, "p50_latency_ms": 0, "p95_latency_ms": 0}

        return {
            "total_requests": len(latencies),
            "avg_latency_ms": round(sum(latencies) / len(latencies), 2),
            "p50_latency_ms": _percentile(latencies, 0.5),
            "p95_latency_ms": _percentile(latencies, 0.95),
        }

    def get_stats_by_path(self) -> dict:
        by_path: dict[str, list[float]] = defaultdict(list)
        for path, latency in self._samples:
            by_path[path].append(latency)

        return {
            path: {
                "count": len(latencies),
                "avg_ms": round(sum(latencies) / len(latencies), 2),
                "p95_ms": _percentile(sorted(latencies), 0.95),
            }
            for path, latencies in by_path.items()
        }


_latency_stats: LatencyStats | None = None


def get_latency_stats() -> LatencyStats:
    """Get or create the global latency stats instance."""
    global _latency_stats
    if _latency_stats is None:
        _latency_stats = LatencyStats()
    return _latency_stats


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log every request with its status and latency, and record the sample.

    The log level rises with the status code and with latency. Health
    probes are logged at debug level only when they are slow.

    Args:
        request: The incoming request.
        call_next: The next middleware/handler in the chain.

    Returns:
        Response: The response from the handler.
    """
    start_time = time.perf_counter()
    method = request.method
    path = request.url.path
    is_health_check = path in QUIET_PATHS

    response = None
    error_occurred = False

    try:
        response = await call_next(request)
        return response
    except Exception:
        error_occurred = True
        raise
    finally:
        latency_ms = (time.perf_counter() - start_time) * 1000
        status_code = response.status_code if response else 500

        if not is_health_check:
            get_latency_stats().record(path, latency_ms)

        if is_health_check:
            if latency_ms > 100:
                logger.debug("%s %s - %d - %.2fms", method, path, status_code, latency_ms)
        elif error_occurred or status_code >= 500:
            logger.error("%s %s - %d - %.2fms", method, path, status_code, latency_ms)
        elif latency_ms > VERY_SLOW_REQUEST_THRESHOLD_MS:
            logger.error("VERY SLOW REQUEST: %s %s - %d - %.2fms", method, path, status_code, latency_ms)
        elif latency_ms > SLOW_REQUEST_THRESHOLD_MS:
            logger.warning("SLOW REQUEST: %s %s - %d - %.2fms", method, path, status_code, latency_ms)
        elif status_code >= 400:
            logger.warning("%s %s - %d - %.2fms", method, path, status_code, latency_ms)
        else:
            logger.info("%s %s - %d - %.2fms", method, path, status_code, latency_ms)
