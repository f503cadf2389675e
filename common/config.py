from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _default_env_file() -> str:
    # Same .env the dashboard server reads, so credentials are not duplicated.
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


@dataclass(frozen=True)
class Settings:
    db_host: str
    db_port: int
    db_user: str
    db_password: str
    db_name: str
    database_url: str | None

    redis_url: str
    pulse_transport: str
    rt_pulse_url: str

    pulse_poll_seconds: float
    feed_timeout_seconds: float
    feed_tail_lines: int
    feed_retry_attempts: int
    pulse_buffer_size: int
    entry_cache_size: int

    calc_interval_seconds: float
    extract_interval_seconds: float
    equipment_timeout_seconds: float
    sigma_threshold: float

    shift_table: str | None
    log_level: str


def _positive_int(name: str, default: str) -> int:
    value = int(os.getenv(name, default))
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")
    return value


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("CT_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "vsm_admin"),
        db_password=os.getenv("DB_PASSWORD", ""),
        db_name=os.getenv("DB_NAME", "vsm_production"),
        database_url=os.getenv("DATABASE_URL") or None,
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        # "redis" publica a stream + canal; "http" hace POST al endpoint interno del dashboard
        pulse_transport=os.getenv("PULSE_TRANSPORT", "redis").strip().lower(),
        rt_pulse_url=os.getenv("RT_PULSE_URL", "http://localhost:3000/api/internal/rt-pulse"),
        pulse_poll_seconds=float(os.getenv("PULSE_POLL_SECONDS", "5")),
        feed_timeout_seconds=float(os.getenv("FEED_TIMEOUT_SECONDS", "4")),
        feed_tail_lines=_positive_int("FEED_TAIL_LINES", "50"),
        feed_retry_attempts=int(os.getenv("FEED_RETRY_ATTEMPTS", "3")),
        pulse_buffer_size=int(os.getenv("PULSE_BUFFER_SIZE", "30")),
        entry_cache_size=int(os.getenv("ENTRY_CACHE_SIZE", "100")),
        calc_interval_seconds=float(os.getenv("CALC_INTERVAL_SECONDS", "60")),
        extract_interval_seconds=float(os.getenv("EXTRACT_INTERVAL_SECONDS", "30")),
        equipment_timeout_seconds=float(os.getenv("EQUIPMENT_TIMEOUT_SECONDS", "20")),
        sigma_threshold=float(os.getenv("SIGMA_THRESHOLD", "2")),
        shift_table=os.getenv("SHIFT_TABLE") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
