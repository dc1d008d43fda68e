from __future__ import annotations

import time
from datetime import datetime

# --- wall-clock helpers (epoch milliseconds) ---

def utc_now_ms() -> int:
    """Unix epoch milliseconds (int)."""
    return time.time_ns() // 1_000_000

def epoch_ms(dt: datetime) -> int:
    """Convert aware datetime -> epoch milliseconds."""
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return int(dt.timestamp() * 1000)

def to_epoch_ms(ts):
    """
    Normalise an extracted event timestamp.
    Numbers are taken as epoch ms and aware datetimes are converted.
    Falsy values pass through unchanged so callers can fail closed on them.
    """
    if not ts:
        return ts
    if isinstance(ts, datetime):
        return epoch_ms(ts)
    return ts

def age_ms(occurred_at_ms: float | int, now_ms: float | int) -> float:
    """Milliseconds elapsed since occurred_at_ms (negative for future stamps)."""
    return now_ms - occurred_at_ms
