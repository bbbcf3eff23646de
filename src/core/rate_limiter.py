"""In-memory sliding-window limiter for sign-in attempts."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock

logger = logging.getLogger(__name__)


@dataclass
class AttemptLimitConfig:
    """Configuration for attempt limiting."""

    max_attempts: int = 5  # Attempts allowed per key within the window
    window_seconds: int = 300
    cleanup_interval_seconds: int = 300

    @classmethod
    def from_settings(cls) -> "AttemptLimitConfig":
        """Create config from application settings."""
        from src.core.config import get_settings

        settings = get_settings()
        return cls(
            max_attempts=settings.signin_max_attempts,
            window_seconds=settings.signin_window_seconds,
        )


@dataclass
class AttemptRecord:
    """Timestamps of recent attempts for one key."""

    timestamps: list[float] = field(default_factory=list)

    def prune_old(self, window_seconds: int) -> None:
        """Remove timestamps older than the window."""
        cutoff = time.time() - window_seconds
        self.timestamps = [ts for ts in self.timestamps if ts > cutoff]

    def seconds_until_available(self, window_seconds: int, max_attempts: int) -> int:
        """Calculate seconds until a new attempt slot is available."""
        if len(self.timestamps) < max_attempts:
            return 0

        oldest_in_window = sorted(self.timestamps)[-max_attempts]
        return max(0, int(oldest_in_window + window_seconds - time.time()) + 1)


class AttemptLimiter:
    """Thread-safe attempt limiter with a background cleanup task."""

    def __init__(self, config: AttemptLimitConfig | None = None) -> None:
        self.config = config or AttemptLimitConfig()
        self._storage: dict[str, AttemptRecord] = defaultdict(AttemptRecord)
        self._lock = Lock()
        self._cleanup_task: asyncio.Task | None = None

    async def start_cleanup_task(self) -> None:
        """Start background cleanup task."""
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info("Attempt limiter cleanup task started")

    async def stop_cleanup_task(self) -> None:
        """Stop background cleanup task."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
            logger.info("Attempt limiter cleanup task stopped")

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.cleanup_interval_seconds)
            count = await self.cleanup()
            if count > 0:
                logger.debug("Attempt limiter cleaned up %d expired entries", count)

    async def check_and_increment(self, key: str) -> tuple[bool, int, int]:
        """Record an attempt for key if the window still has room.

        Args:
            key: Limiter key, e.g. "signin:alice@example.com".

        Returns:
            Tuple of (allowed, remaining_attempts, retry_after_seconds).
        """
        max_attempts = self.config.max_attempts
        window = self.config.window_seconds

        with self._lock:
            record = self._storage[key]
            record.prune_old(window)
            current = len(record.timestamps)

            if current >= max_attempts:
                return (False, 0, record.seconds_until_available(window, max_attempts))

            record.timestamps.append(time.time())
            return (True, max_attempts - current - 1, 0)

    async def reset(self, key: str) -> None:
        """Forget all attempts for key (called after a successful sign-in)."""
        with self._lock:
            self._storage.pop(key, None)

    async def cleanup(self) -> int:
        """Remove keys with no attempts left in the window."""
        window = self.config.window_seconds
        removed = 0

        with self._lock:
            for key in list(self._storage):
                record = self._storage[key]
                record.prune_old(window)
                if not record.timestamps:
                    del self._storage[key]
                    removed += 1

        return removed

    def get_stats(self) -> dict:
        """Get storage statistics for monitoring."""
        with self._lock:
            return {
                "tracked_keys": len(self._storage),
                "config": {
                    "max_attempts": self.config.max_attempts,
                    "window_seconds": self.config.window_seconds,
                },
            }


# Global singleton instance
_attempt_limiter: AttemptLimiter | None = None


def get_attempt_limiter() -> AttemptLimiter:
    """Get or create the global sign-in attempt limiter."""
    global _attempt_limiter
    if _attempt_limiter is None:
        _attempt_limiter = AttemptLimiter(AttemptLimitConfig.from_settings())
    return _attempt_limiter


async def init_attempt_limiter() -> AttemptLimiter:
    """Initialize the limiter with its cleanup task. Call at app startup."""
    limiter = get_attempt_limiter()
    await limiter.start_cleanup_task()
    return limiter


async def shutdown_attempt_limiter() -> None:
    """Stop the limiter cleanup task. Call at app shutdown."""
    if _attempt_limiter:
        await _attempt_limiter.stop_cleanup_task()
