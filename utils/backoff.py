"""
Exponential backoff schedule.
"""

from collections.abc import Iterator


def exponential_backoff(
    base: int = 2, factor_ms: int = 500, max_delay_ms: int | None = 10_000
) -> Iterator[float]:
    """
    Yield delays in seconds: factor, factor*base, factor*base^2, ...

    Delays are clamped at `max_delay_ms`.
    """
    current = 1
    while True:
        duration = factor_ms * current
        if max_delay_ms is not None and duration >= max_delay_ms:
            yield max_delay_ms / 1000
            continue
        current *= base
        yield duration / 1000
