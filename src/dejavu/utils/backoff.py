from __future__ import annotations

import random
from typing import Iterator

def retry_delays(retries: int, *, initial: float = 0.25, cap: float = 8.0,
                 ratio: float = 0.2) -> Iterator[float]:
    """
    Seconds to sleep between store attempts, one value per retry.
    Base doubles from `initial` and is capped at `cap`; each yielded value is
    the base scaled into [1 - ratio, 1 + ratio] (ratio=0 -> exact base).
    """
    base = initial
    for _ in range(max(0, retries)):
        if ratio:
            yield base * random.uniform(1.0 - ratio, 1.0 + ratio)
        else:
            yield base
        base = min(base * 2.0, cap)
