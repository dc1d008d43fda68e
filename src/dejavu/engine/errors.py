# src/dejavu/engine/errors.py
from __future__ import annotations

from typing import Optional


class DejaVuError(Exception):
    """Base class for everything raised by the dedup engine."""


class ConfigurationError(DejaVuError):
    """Wiring mistake detected synchronously (missing connection, bad handler, unknown type)."""


class MissingHandlerFieldError(ConfigurationError):
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class InvalidHandlerError(ConfigurationError):
    pass


class DuplicateHandlerError(ConfigurationError):
    def __init__(self, event_type):
        super().__init__("cannot overwrite existing handler")
        self.event_type = event_type


class UnknownEventTypeError(ConfigurationError, KeyError):
    def __init__(self, event_type):
        super().__init__("no such handler for the given event type")
        self.event_type = event_type

    def __str__(self) -> str:
        # KeyError would repr() the message otherwise
        return f"no such handler for the given event type: {self.event_type!r}"


class StoreError(DejaVuError):
    """
    Redis call failed (connectivity, timeout, protocol). Distinct from a
    "not new" result: the outcome of the inspection is unknown.
    """
    def __init__(self, op: str, key: Optional[str], cause: BaseException):
        super().__init__(f"redis {op} failed for key={key!r}: {cause}")
        self.op = op
        self.key = key
