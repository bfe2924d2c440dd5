"""
Leaky-bucket rate limiter for outbound requests.

Tokens refill continuously at `refill_amount` per `refill_interval` up to
`max_tokens`. Waiters are served in arrival order.
"""

from __future__ import annotations

import asyncio
import time


class RateLimiter:
    def __init__(
        self,
        max_tokens: int,
        refill_interval: float,
        refill_amount: int = 1,
        tokens: int | None = None,
    ) -> None:
        if max_tokens < 1 or refill_amount < 1 or refill_interval <= 0:
            raise ValueError("rate limiter needs positive capacity and refill")
        self.max_tokens = max_tokens
        self.refill_interval = refill_interval
        self.refill_amount = refill_amount
        self._tokens = max_tokens if tokens is None else min(tokens, max_tokens)
        self._next_refill = time.monotonic() + refill_interval
        # asyncio.Lock wakes waiters FIFO, which gives fair ordering
        self._lock = asyncio.Lock()

    @classmethod
    def per_second(cls, amount: int) -> RateLimiter:
        """`amount` tokens per second, starting full and refilled once a second."""
        return cls(max_tokens=amount, refill_interval=1.0, refill_amount=amount)

    @property
    def tokens(self) -> int:
        self._refill(time.monotonic())
        return self._tokens

    def _refill(self, now: float) -> None:
        if now < self._next_refill:
            return
        periods = int((now - self._next_refill) // self.refill_interval) + 1
        self._tokens = min(self.max_tokens, self._tokens + periods * self.refill_amount)
        self._next_refill += periods * self.refill_interval

    async def acquire_one(self) -> None:
        """
        Wait until a token is available and take it.

        Cancellation while waiting leaves the pool untouched: the token is
        only taken after the last await.
        """
        async with self._lock:
            while True:
                now = time.monotonic()
                self._refill(now)
                if self._tokens >= 1:
                    self._tokens -= 1
                    return
                await asyncio.sleep(max(0.0, self._next_refill - now))
