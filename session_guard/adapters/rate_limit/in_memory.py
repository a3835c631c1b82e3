"""In-memory sliding-window store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around the read-modify-write of each record.
- Stale records are purged lazily; fully expired ones are swept every
  ``sweep_interval`` evaluations and an optional LRU cap bounds memory.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable

from session_guard.adapters.rate_limit.base import AbstractWindowStore, RateLimitDecision

logger = logging.getLogger(__name__)


@dataclass
class _WindowRecord:
    timestamps: list[int] = field(default_factory=list)
    window_ms: int = 0

    def is_stale(self, now_ms: int) -> bool:
        return not self.timestamps or max(self.timestamps) <= now_ms - self.window_ms


class InMemorySlidingWindowStore(AbstractWindowStore):
    """Sliding-window counter keeping one timestamp list per identifier.

    Every admitted request appends its timestamp (epoch milliseconds). On each
    evaluation the identifier's list is filtered down to the live window,
    which is the only purge step for that identifier.

    Important:
        This store is per-process only. If the API runs with multiple workers,
        each worker enforces its own independent limits.
    """

    backend = "memory"

    def __init__(
        self,
        *,
        max_identifiers: int | None = 10_000,
        sweep_interval: int = 1_000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            max_identifiers: Maximum number of identifiers tracked at once;
                least recently used identifiers are evicted beyond it.
                None keeps every identifier for the process lifetime.
            sweep_interval: Number of evaluations between sweeps of fully
                expired records.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If max_identifiers or sweep_interval are invalid.
        """
        if max_identifiers is not None and max_identifiers < 1:
            raise ValueError("max_identifiers must be >= 1 or None")
        if sweep_interval < 1:
            raise ValueError("sweep_interval must be >= 1")

        self._max_identifiers = max_identifiers
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._lock = threading.RLock()
        self._records: OrderedDict[str, _WindowRecord] = OrderedDict()
        self._evaluations = 0

    def __len__(self) -> int:
        return len(self._records)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def evaluate(self, identifier: str, capacity: int, window_ms: int) -> RateLimitDecision:
        return self.evaluate_sync(identifier, capacity, window_ms)

    def evaluate_sync(self, identifier: str, capacity: int, window_ms: int) -> RateLimitDecision:
        """Evaluate without an event loop; see ``evaluate``.

        Raises:
            ValueError: If capacity or window_ms are not positive.
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")

        now = self._now_ms()
        window_start = now - window_ms

        with self._lock:
            self._evaluations += 1
            if self._evaluations % self._sweep_interval == 0:
                self._sweep_locked(now)

            record = self._records.get(identifier)
            live = [ts for ts in record.timestamps if ts > window_start] if record else []

            if len(live) >= capacity:
                # Blocked attempts are not recorded, but the purge is kept.
                self._store_locked(identifier, live, window_ms)
                return RateLimitDecision(
                    success=False,
                    limit=capacity,
                    remaining=0,
                    reset=min(live) + window_ms,
                )

            live.append(now)
            self._store_locked(identifier, live, window_ms)
            return RateLimitDecision(
                success=True,
                limit=capacity,
                remaining=max(0, capacity - len(live)),
                reset=now + window_ms,
            )

    def reset(self, identifier: str | None = None) -> None:
        """Forget one identifier, or every identifier when None."""
        with self._lock:
            if identifier is None:
                self._records.clear()
            else:
                self._records.pop(identifier, None)

    def _store_locked(self, identifier: str, live: list[int], window_ms: int) -> None:
        self._records[identifier] = _WindowRecord(timestamps=live, window_ms=window_ms)
        self._records.move_to_end(identifier)
        self._evict_if_over_capacity_locked()

    def _sweep_locked(self, now_ms: int) -> None:
        stale = [key for key, record in self._records.items() if record.is_stale(now_ms)]
        for key in stale:
            del self._records[key]
        if stale:
            logger.debug(
                "rate_limit.memory.swept",
                extra={"removed": len(stale), "size": len(self._records)},
            )

    def _evict_if_over_capacity_locked(self) -> None:
        if self._max_identifiers is None:
            return

        now = self._now_ms()
        while len(self._records) > self._max_identifiers:
            # popitem(last=False) removes the least recently evaluated identifier
            _, record = self._records.popitem(last=False)
            if not record.is_stale(now):
                logger.warning(
                    "rate_limit.memory.evicted_live_record",
                    extra={
                        "max_identifiers": self._max_identifiers,
                        "live_entries": len(record.timestamps),
                    },
                )
