"""Rate limiter interfaces.

Callers depend on this abstraction (not the concrete implementation) so the
in-process store used in development and the shared Redis store used in
production are interchangeable behind the same facade.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single sliding-window evaluation.

    Attributes:
        success: Whether the request is allowed to proceed.
        limit: Configured capacity of the window.
        remaining: Requests left in the window (0 when blocked).
        reset: Epoch milliseconds when quota frees up again.
    """

    success: bool
    limit: int
    remaining: int
    reset: int

    def retry_after_seconds(self, now_ms: int) -> int:
        """Whole seconds until ``reset``, never negative."""
        return max(0, int(math.ceil((self.reset - now_ms) / 1000)))


class AbstractWindowStore(ABC):
    """Interface for sliding-window request counters."""

    backend: str = "abstract"

    @abstractmethod
    async def evaluate(self, identifier: str, capacity: int, window_ms: int) -> RateLimitDecision:
        """Count a request for ``identifier`` against a sliding window.

        Args:
            identifier: Caller key (user id, network address, ...).
            capacity: Maximum requests allowed within the window.
            window_ms: Window length in milliseconds.

        Returns:
            RateLimitDecision describing whether the request was admitted.
            Rejected requests are not recorded.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release any connections held by the store."""
        return None
