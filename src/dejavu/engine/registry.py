# src/dejavu/engine/registry.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional

from dejavu.engine.errors import (
    DuplicateHandlerError,
    InvalidHandlerError,
    MissingHandlerFieldError,
    UnknownEventTypeError,
)

Extractor = Callable[[Any], Any]

# (field, message) in validation order; the first missing one is reported
_REQUIRED = (
    ("prefix", "Handler must specify a prefix to namespace events."),
    ("timestamp_fn", "Handler must specify a timestamp_fn."),
    ("id_fn", "Handler must specify an id_fn."),
    ("val_fn", "Handler must specify a val_fn."),
    ("window", "Handler must specify a window."),
)


@dataclass(frozen=True, slots=True)
class EventTypeHandler:
    """
    Per-type dedup configuration.
    - prefix       → key namespace, keys are "{prefix}:{id}"
    - window       → max event age in milliseconds to still count as new
    - ttl          → seconds the seen-marker lives in Redis
    - timestamp_fn → event -> epoch ms (or aware datetime)
    - id_fn        → event -> unique id
    - val_fn       → event -> value stored under the key
    """
    prefix: str
    window: float
    ttl: int
    timestamp_fn: Extractor
    id_fn: Extractor
    val_fn: Extractor

    def key(self, event_id) -> str:
        return f"{self.prefix}:{event_id}"


def build_handler(
    *,
    prefix: Optional[str] = None,
    timestamp_fn: Optional[Extractor] = None,
    id_fn: Optional[Extractor] = None,
    val_fn: Optional[Extractor] = None,
    window: Optional[float] = None,
    ttl: Optional[int] = None,
) -> EventTypeHandler:
    """
    Validate raw handler fields and derive ttl (floor(window / 1000)) when absent.

    Besides the five required fields, the effective ttl must be at least one
    second: a window under 1000 ms with no explicit ttl raises
    InvalidHandlerError here instead of registering a handler whose every
    SETEX would be rejected by Redis (expire time 0).
    """
    given = {
        "prefix": prefix,
        "timestamp_fn": timestamp_fn,
        "id_fn": id_fn,
        "val_fn": val_fn,
        "window": window,
    }
    for name, message in _REQUIRED:
        if not given[name]:
            raise MissingHandlerFieldError(name, message)

    if not ttl:
        ttl = int(window // 1000)
    if ttl < 1:
        raise InvalidHandlerError(f"Handler ttl must be at least 1 second (got {ttl}); raise the window or pass ttl.")

    return EventTypeHandler(
        prefix=prefix,
        window=window,
        ttl=int(ttl),
        timestamp_fn=timestamp_fn,
        id_fn=id_fn,
        val_fn=val_fn,
    )


class HandlerRegistry:
    """
    Append-only mapping of event type -> EventTypeHandler.
    Populate at startup before inspection traffic begins.
    """
    def __init__(self):
        self._handlers: Dict[Hashable, EventTypeHandler] = {}

    def register(self, event_type: Hashable, **config) -> EventTypeHandler:
        if event_type in self._handlers:
            raise DuplicateHandlerError(event_type)
        handler = build_handler(**config)
        self._handlers[event_type] = handler
        return handler

    def get(self, event_type: Hashable) -> EventTypeHandler:
        handler = self._handlers.get(event_type)
        if handler is None:
            raise UnknownEventTypeError(event_type)
        return handler

    def __contains__(self, event_type) -> bool:
        return event_type in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
