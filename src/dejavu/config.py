# src/dejavu/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from redis.asyncio import Redis

from dejavu.engine.inspector import DejaVu
from dejavu.utils.logs import configure_logging

_TRUE = ("1", "true", "yes", "on")


@dataclass(slots=True)
class StoreConfig:
    redis_url: str = "redis://localhost:6379/0"
    socket_timeout_s: Optional[float] = 2.0     # bounds every EXISTS/SETEX round trip
    connect_timeout_s: Optional[float] = 2.0
    atomic_mark: bool = False                   # SET NX EX instead of EXISTS + SETEX
    log_level: str = "INFO"


def _opt_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    if raw.strip().lower() == "none":
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from e


def config_from_env() -> StoreConfig:
    """Build StoreConfig from the environment (and a .env file if present)."""
    load_dotenv()
    d = StoreConfig()
    return StoreConfig(
        redis_url=os.getenv("REDIS_URL", d.redis_url),
        socket_timeout_s=_opt_float("REDIS_SOCKET_TIMEOUT_S", d.socket_timeout_s),
        connect_timeout_s=_opt_float("REDIS_CONNECT_TIMEOUT_S", d.connect_timeout_s),
        atomic_mark=os.getenv("DEJAVU_ATOMIC_MARK", "0").lower() in _TRUE,
        log_level=os.getenv("LOG_LEVEL", d.log_level).upper(),
    )


def redis_from_config(cfg: StoreConfig) -> Redis:
    return Redis.from_url(
        cfg.redis_url,
        socket_timeout=cfg.socket_timeout_s,
        socket_connect_timeout=cfg.connect_timeout_s,
    )


def engine_from_config(cfg: Optional[StoreConfig] = None, redis: Optional[Redis] = None) -> DejaVu:
    """
    DejaVu wired to a client built from cfg (or the given one), with structlog
    filtered at cfg.log_level. Closing the client is the caller's job.
    """
    cfg = cfg or config_from_env()
    configure_logging(cfg.log_level)
    return DejaVu(redis if redis is not None else redis_from_config(cfg), atomic=cfg.atomic_mark)
