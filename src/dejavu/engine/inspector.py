# src/dejavu/engine/inspector.py
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Hashable, Optional

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from dejavu.engine.errors import ConfigurationError, StoreError
from dejavu.engine.registry import EventTypeHandler, HandlerRegistry
from dejavu.utils.time import age_ms, to_epoch_ms, utc_now_ms

log = structlog.get_logger("dejavu")

# what redis.asyncio raises on connectivity / timeout / protocol trouble
_STORE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


@dataclass(slots=True)
class InspectStats:
    new: int = 0
    duplicate: int = 0
    stale: int = 0          # outside the recency window
    undated: int = 0        # timestamp_fn returned nothing
    unidentified: int = 0   # id_fn returned nothing
    store_errors: int = 0


def encode_value(val: Any):
    """redis-py only accepts str/bytes/int/float; anything else is stored as JSON."""
    if isinstance(val, (str, bytes, int, float)) and not isinstance(val, bool):
        return val
    return json.dumps(val, separators=(",", ":"), default=str)


class DejaVu:
    """
    Identifies "original" events of registered types against a shared Redis.

    For each inspect_event(type, event):
      1) _is_new: drop undated events, events older than the handler window,
         and events without an id; then EXISTS {prefix}:{id}.
      2) _mark_as_seen (only if new): SETEX {prefix}:{id} ttl val_fn(event).
      3) True only once the mark has been written.

    Two concurrent calls for the same event can both see the key absent and
    both return True; the check and the mark are separate round trips.
    Pass atomic=True to collapse them into one SET NX EX, where new means
    the set succeeded.

    Redis failures raise StoreError and are never folded into False.
    The connection is owned by the caller and never closed here.
    """

    def __init__(self, redis: Optional[Redis] = None, *, atomic: bool = False):
        if redis is None:
            raise ConfigurationError("Must provide a Redis connection")
        self.redis = redis
        self.atomic = atomic
        self.registry = HandlerRegistry()
        self.stats = InspectStats()

    def _now_ms(self) -> int:
        return utc_now_ms()

    # ---------- registration ----------

    def register_handler(self, event_type: Hashable, **config) -> None:
        """
        Register dedup config for event_type:
        prefix, timestamp_fn, id_fn, val_fn, window (ms) and optional ttl (s).
        Raises DuplicateHandlerError / MissingHandlerFieldError on misuse.
        """
        handler = self.registry.register(event_type, **config)
        log.debug("handler_registered", type=event_type, prefix=handler.prefix,
                  window_ms=handler.window, ttl_s=handler.ttl)

    # ---------- store calls ----------

    async def _exists(self, key: str) -> int:
        try:
            return await self.redis.exists(key)
        except _STORE_ERRORS as e:
            self.stats.store_errors += 1
            log.warning("store_exists_failed", key=key, err=str(e))
            raise StoreError("EXISTS", key, e) from e

    async def _setex(self, key: str, ttl: int, val) -> None:
        try:
            await self.redis.setex(key, ttl, encode_value(val))
        except _STORE_ERRORS as e:
            self.stats.store_errors += 1
            log.warning("store_setex_failed", key=key, ttl=ttl, err=str(e))
            raise StoreError("SETEX", key, e) from e

    async def _set_nx(self, key: str, ttl: int, val) -> bool:
        try:
            created = await self.redis.set(key, encode_value(val), ex=ttl, nx=True)
        except _STORE_ERRORS as e:
            self.stats.store_errors += 1
            log.warning("store_set_nx_failed", key=key, ttl=ttl, err=str(e))
            raise StoreError("SET NX", key, e) from e
        return bool(created)

    # ---------- protocol ----------

    def _eligible_id(self, h: EventTypeHandler, event):
        """
        Window + id gate shared by both modes. Returns the event id, or None
        when the event fails closed (undated, too old, no id).
        """
        now = self._now_ms()
        occurred_at = to_epoch_ms(h.timestamp_fn(event))
        if not occurred_at:
            self.stats.undated += 1
            return None
        if age_ms(occurred_at, now) > h.window:
            self.stats.stale += 1
            return None

        event_id = h.id_fn(event)
        # safety belt
        if not event_id:
            self.stats.unidentified += 1
            return None
        return event_id

    async def _is_new(self, h: EventTypeHandler, event) -> bool:
        event_id = self._eligible_id(h, event)
        if event_id is None:
            return False
        count = await self._exists(h.key(event_id))
        if count != 0:
            self.stats.duplicate += 1
            return False
        return True

    async def _mark_as_seen(self, h: EventTypeHandler, event) -> None:
        event_id = h.id_fn(event)
        # safety belt
        if not event_id:
            return
        await self._setex(h.key(event_id), h.ttl, h.val_fn(event))

    async def _claim(self, h: EventTypeHandler, event) -> bool:
        event_id = self._eligible_id(h, event)
        if event_id is None:
            return False
        if not await self._set_nx(h.key(event_id), h.ttl, h.val_fn(event)):
            self.stats.duplicate += 1
            return False
        return True

    async def inspect_event(self, event_type: Hashable, event) -> bool:
        """
        True if this is the first sighting of the event within its window
        (and it has now been recorded), False otherwise.
        Raises UnknownEventTypeError for unregistered types, StoreError on Redis failure.
        """
        h = self.registry.get(event_type)

        if self.atomic:
            is_new = await self._claim(h, event)
        else:
            is_new = await self._is_new(h, event)
            if is_new:
                await self._mark_as_seen(h, event)

        if is_new:
            self.stats.new += 1
            log.debug("event_new", type=event_type, prefix=h.prefix)
        return is_new
