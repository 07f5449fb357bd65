"""Health, readiness y métricas Prometheus."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..core.store.history_store import BoundedHistoryStore
from ..dependencies import get_store

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health")
def health():
    """Liveness probe - siempre ok si el proceso está vivo."""
    return {"status": "ok"}


@router.get("/ready")
async def ready(store: BoundedHistoryStore = Depends(get_store)):
    """Readiness probe - verifica el backend del store."""
    available = await asyncio.to_thread(store.is_available)
    if not available:
        logger.warning("[HEALTH] Store backend not available")
        raise HTTPException(status_code=503, detail="not ready")
    return {"status": "ready"}


@router.get("/metrics")
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
