# src/dejavu/engine/retry.py
from __future__ import annotations

import asyncio
from typing import Hashable

import structlog

from dejavu.engine.errors import StoreError
from dejavu.engine.inspector import DejaVu
from dejavu.utils.backoff import retry_delays

log = structlog.get_logger("dejavu.retry")


async def inspect_with_retry(
    dv: DejaVu,
    event_type: Hashable,
    event,
    *,
    max_retries: int = 5,
    initial_backoff_s: float = 0.25,
    max_backoff_s: float = 8.0,
    jitter_ratio: float = 0.2,
) -> bool:
    """
    Caller-side policy on top of DejaVu.inspect_event: retry StoreError with
    jittered exponential backoff, re-raise the last one when retries run out.
    Configuration errors are not retried.

    A retry after a failed SETEX re-runs the whole check, so an event whose
    mark failed is still reported as new once the store recovers.
    """
    delays = retry_delays(max_retries, initial=initial_backoff_s, cap=max_backoff_s, ratio=jitter_ratio)
    attempt = 1
    while True:
        try:
            return await dv.inspect_event(event_type, event)
        except StoreError as e:
            delay = next(delays, None)
            if delay is None:
                log.error("inspect_give_up_after_retries", type=event_type, attempts=attempt, op=e.op)
                raise
            log.warning("inspect_store_error", type=event_type, op=e.op, key=e.key,
                        attempt=attempt, retry_in_s=round(delay, 3))
            await asyncio.sleep(delay)
            attempt += 1
