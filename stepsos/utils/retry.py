from __future__ import annotations

import random


def compute_backoff(
    attempt: int, base_delay: float = 1.0, factor: float = 2.0, jitter: float = 0.0
) -> float:
    """Compute exponential backoff ``base_delay * factor ** (attempt - 1)``.

    ``attempt`` is 1-based; optional jitter is added on top.
    """
    delay = base_delay * factor ** max(attempt - 1, 0)
    return delay + random.uniform(0, jitter) if jitter else delay
