"""API de telemetría: ingesta, consulta, estado y alertas.

``create_app`` arma los componentes (store, ledger, reconciliador) y los
deja en ``app.state``; nada vive como singleton de módulo salvo la propia
``app`` que sirve uvicorn.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional, Sequence, Tuple

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from common.config import Settings, get_settings
from monitor.reconciler import PollingReconciler
from monitor.sources import StoreReadingsSource

from .alerts.ledger import AlertLedger
from .alerts.notifier import build_notifier
from .core.classification.thresholds import ThresholdEvaluator
from .core.domain.channels import ChannelConfig, load_channel_configs
from .core.errors import AlertNotFound, InvalidPayload, StoreUnavailable
from .core.redis.connection import RedisConnection
from .core.store.backends import RedisHistoryBackend
from .core.store.history_store import BoundedHistoryStore
from .core.validation.reading_validator import ReadingValidator
from .endpoints import alerts_router, health_router, readings_router, status_router
from .schemas import ErrorResult

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> Tuple[BoundedHistoryStore, Optional[RedisConnection]]:
    """Store según STORE_BACKEND (memory | redis)."""
    connection = None
    backend = None
    if settings.store_backend == "redis":
        connection = RedisConnection(settings.redis_url, timeout_seconds=settings.store_timeout_seconds)
        backend = RedisHistoryBackend(connection, key=settings.redis_readings_key)
        logger.info("[STORE] Using Redis backend %s key=%s", connection.safe_url, settings.redis_readings_key)
    elif settings.store_backend != "memory":
        raise ValueError(f"Unknown STORE_BACKEND: {settings.store_backend}")
    else:
        logger.info("[STORE] Using in-memory backend capacity=%d", settings.history_capacity)

    store = BoundedHistoryStore(
        backend=backend,
        capacity=settings.history_capacity,
        default_limit=settings.query_default_limit,
        max_limit=settings.query_max_limit,
    )
    return store, connection


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResult(error=message).model_dump())


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[BoundedHistoryStore] = None,
    ledger: Optional[AlertLedger] = None,
    channels: Optional[Sequence[ChannelConfig]] = None,
    reconciler: Optional[PollingReconciler] = None,
    start_monitor: Optional[bool] = None,
) -> FastAPI:
    settings = settings or get_settings()
    channels = tuple(channels) if channels is not None else load_channel_configs(settings.channels_file)

    connection: Optional[RedisConnection] = None
    if store is None:
        store, connection = build_store(settings)

    notifier = None
    if ledger is None:
        notifier = build_notifier(settings.notify_webhook_url, settings.notify_timeout_seconds)
        ledger = AlertLedger(
            debounce_ms=settings.alert_debounce_ms,
            notifier=notifier,
            history_limit=settings.alert_history_limit,
        )

    if reconciler is None:
        reconciler = PollingReconciler(
            source=StoreReadingsSource(store),
            channels=channels,
            ledger=ledger,
            evaluator=ThresholdEvaluator(
                critical_multiplier=settings.critical_multiplier,
                offline_threshold_ms=settings.offline_threshold_ms,
            ),
            fetch_limit=settings.poll_fetch_limit,
            history_limit=settings.poll_history_limit,
            offline_threshold_ms=settings.offline_threshold_ms,
            connected_threshold_ms=settings.connected_threshold_ms,
            fetch_timeout=settings.poll_timeout_seconds,
        )

    if start_monitor is None:
        start_monitor = settings.monitor_enabled

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        stop = asyncio.Event()
        task = None
        if start_monitor:
            task = asyncio.create_task(reconciler.run(settings.poll_interval_seconds, stop))
        else:
            logger.info("[RECONCILER] Disabled (MONITOR_ENABLED=0)")
        try:
            yield
        finally:
            stop.set()
            if task is not None:
                await task
            if notifier is not None and hasattr(notifier, "close"):
                notifier.close()
            if connection is not None:
                connection.disconnect()

    app = FastAPI(title="Safeward Telemetry API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.validator = ReadingValidator()
    app.state.ledger = ledger
    app.state.channels = channels
    app.state.reconciler = reconciler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidPayload)
    async def _invalid_payload(request: Request, exc: InvalidPayload):
        logger.info("[INGEST] Rejected payload path=%s: %s", request.url.path, exc.message)
        return _error_response(400, exc.message)

    @app.exception_handler(StoreUnavailable)
    async def _store_unavailable(request: Request, exc: StoreUnavailable):
        logger.error("[STORE] %s path=%s", exc, request.url.path)
        return _error_response(503, str(exc))

    @app.exception_handler(AlertNotFound)
    async def _alert_not_found(request: Request, exc: AlertNotFound):
        return _error_response(404, str(exc))

    app.include_router(health_router)
    app.include_router(readings_router)
    app.include_router(alerts_router)
    app.include_router(status_router)
    return app


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port)


app = create_app()


if __name__ == "__main__":
    run()
