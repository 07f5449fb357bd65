from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_env_file() -> str:
    # .env en la raíz del repo; las variables reales del entorno tienen prioridad.
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Bounded History Store
    history_capacity: int
    query_default_limit: int
    query_max_limit: int
    store_backend: str
    redis_url: str
    redis_readings_key: str
    store_timeout_seconds: float

    # Liveness / alertas
    offline_threshold_ms: int
    connected_threshold_ms: int
    alert_debounce_ms: int
    critical_multiplier: float
    alert_history_limit: int

    # Polling Reconciler
    poll_interval_seconds: float
    poll_fetch_limit: int
    poll_history_limit: int
    poll_timeout_seconds: float
    monitor_enabled: bool
    api_base_url: str

    # Notificador
    notify_webhook_url: Optional[str]
    notify_timeout_seconds: float

    channels_file: Optional[str]
    log_level: str

    # Servidor HTTP
    api_host: str
    api_port: int


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("SAFEWARD_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    return Settings(
        history_capacity=int(os.getenv("HISTORY_CAPACITY", "500")),
        query_default_limit=int(os.getenv("QUERY_DEFAULT_LIMIT", "100")),
        query_max_limit=int(os.getenv("QUERY_MAX_LIMIT", "500")),
        store_backend=os.getenv("STORE_BACKEND", "memory").strip().lower(),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        redis_readings_key=os.getenv("REDIS_READINGS_KEY", "safeward:readings"),
        store_timeout_seconds=float(os.getenv("STORE_TIMEOUT_SECONDS", "3.0")),
        offline_threshold_ms=int(os.getenv("OFFLINE_THRESHOLD_MS", "15000")),
        connected_threshold_ms=int(os.getenv("CONNECTED_THRESHOLD_MS", "10000")),
        alert_debounce_ms=int(os.getenv("ALERT_DEBOUNCE_MS", "10000")),
        critical_multiplier=float(os.getenv("CRITICAL_MULTIPLIER", "1.2")),
        alert_history_limit=int(os.getenv("ALERT_HISTORY_LIMIT", "10")),
        poll_interval_seconds=float(os.getenv("POLL_INTERVAL_SECONDS", "3.0")),
        poll_fetch_limit=int(os.getenv("POLL_FETCH_LIMIT", "50")),
        poll_history_limit=int(os.getenv("POLL_HISTORY_LIMIT", "100")),
        poll_timeout_seconds=float(os.getenv("POLL_TIMEOUT_SECONDS", "5.0")),
        monitor_enabled=_env_bool("MONITOR_ENABLED", "1"),
        api_base_url=os.getenv("API_BASE_URL", "http://localhost:8000"),
        notify_webhook_url=os.getenv("NOTIFY_WEBHOOK_URL") or None,
        notify_timeout_seconds=float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "5.0")),
        channels_file=os.getenv("CHANNELS_FILE") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        api_host=os.getenv("API_HOST", "0.0.0.0"),
        api_port=int(os.getenv("API_PORT", "8000")),
    )
