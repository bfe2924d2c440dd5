"""
Named command cooldown buckets.

This is not meant to be a perfect security boundary (restarts reset state),
but it prevents accidental spam and protects expensive commands.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass, field
from enum import Enum


class BucketName(Enum):
    ALL = "All"
    RENDER = "Render"
    SONGS = "Songs"


@dataclass
class Bucket:
    """
    Per-user cooldowns: a minimum `delay` between uses plus an optional
    sliding window allowing `limit` uses per `time_span` seconds.
    """

    name: BucketName
    delay: float = 0.0
    time_span: float = 0.0
    limit: int = 0
    # user id -> hit timestamps (monotonic seconds)
    _hits: dict[int, list[float]] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def take(self, user_id: int) -> int:
        """
        Seconds until `user_id` may use the bucket again.

        0 means the use is admitted and recorded.
        """
        now = time.monotonic()
        with self._lock:
            hits = self._hits.get(user_id, [])
            horizon = max(self.delay, self.time_span)
            hits = [t for t in hits if t > now - horizon]

            remaining = 0.0
            if hits and self.delay > 0:
                remaining = max(remaining, hits[-1] + self.delay - now)
            if self.time_span > 0 and self.limit > 0:
                window = [t for t in hits if t > now - self.time_span]
                if len(window) >= self.limit:
                    remaining = max(remaining, window[-self.limit] + self.time_span - now)

            if remaining > 0:
                self._hits[user_id] = hits
                return max(1, math.ceil(remaining))

            hits.append(now)
            self._hits[user_id] = hits
            return 0


class BucketRegistry:
    """The fixed set of buckets, created once per context."""

    def __init__(self, buckets: dict[BucketName, Bucket] | None = None):
        self._buckets = buckets or {
            BucketName.ALL: Bucket(BucketName.ALL, delay=2),
            BucketName.RENDER: Bucket(BucketName.RENDER, time_span=30, limit=1),
            BucketName.SONGS: Bucket(BucketName.SONGS, delay=20),
        }

    def get(self, name: BucketName) -> Bucket:
        return self._buckets[name]

    def take(self, name: BucketName, user_id: int) -> int:
        return self._buckets[name].take(user_id)
