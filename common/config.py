from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_env_file() -> str:
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _read_int(name: str, default: int, *, minimum: int = 0) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _read_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value.strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    database_url: str

    redis_url: str
    realtime_redis_enabled: bool

    push_batch_chunk_size: int
    push_chunk_delay_ms: int
    equipment_cache_ttl_seconds: int
    side_effect_workers: int

    alarm_evaluator_url: Optional[str]
    alarm_evaluator_timeout_seconds: float

    log_level: str
    debug_errors: bool


@lru_cache
def get_settings() -> Settings:
    # El .env es opcional; las variables reales del entorno siempre ganan.
    env_file = os.getenv("MONITORING_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    alarm_url = (os.getenv("ALARM_EVALUATOR_URL") or "").strip() or None

    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./monitoring.db"),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        realtime_redis_enabled=_read_bool("REALTIME_REDIS_ENABLED", False),
        push_batch_chunk_size=_read_int("PUSH_BATCH_CHUNK_SIZE", 100, minimum=1),
        push_chunk_delay_ms=_read_int("PUSH_CHUNK_DELAY_MS", 10),
        equipment_cache_ttl_seconds=_read_int("EQUIPMENT_CACHE_TTL_SECONDS", 3600, minimum=1),
        side_effect_workers=_read_int("SIDE_EFFECT_WORKERS", 4, minimum=1),
        alarm_evaluator_url=alarm_url,
        alarm_evaluator_timeout_seconds=_read_float("ALARM_EVALUATOR_TIMEOUT_SECONDS", 5.0),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        debug_errors=_read_bool("INGEST_DEBUG_ERRORS", False),
    )
