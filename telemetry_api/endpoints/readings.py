"""Endpoints de ingesta y consulta de lecturas."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, Request

from ..core.errors import InvalidPayload, StoreUnavailable
from ..core.monitoring import metrics
from ..core.store.history_store import BoundedHistoryStore
from ..core.validation.reading_validator import ReadingValidator
from ..dependencies import get_store, get_validator
from ..schemas import ErrorResult, ReadingsResult, ReceiveResult

router = APIRouter(prefix="/api", tags=["readings"])
logger = logging.getLogger(__name__)


def _parse_int(raw: Optional[str]) -> Optional[int]:
    # Parámetros no numéricos se ignoran en vez de rechazar la consulta.
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        return None


@router.post(
    "/receive",
    response_model=ReceiveResult,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResult}, 503: {"model": ErrorResult}},
)
async def receive_reading(
    request: Request,
    store: BoundedHistoryStore = Depends(get_store),
    validator: ReadingValidator = Depends(get_validator),
):
    """Ingesta de una lectura desde un nodo sensor."""
    received_at = int(time.time() * 1000)
    try:
        data = await request.json()
    except ValueError as e:
        metrics.READINGS_INGESTED.labels(status="rejected").inc()
        raise InvalidPayload("Request body must be valid JSON") from e

    try:
        reading = validator.validate(data, received_at)
    except InvalidPayload:
        metrics.READINGS_INGESTED.labels(status="rejected").inc()
        raise

    try:
        await asyncio.to_thread(store.append, reading)
    except StoreUnavailable:
        metrics.READINGS_INGESTED.labels(status="store_error").inc()
        raise

    metrics.READINGS_INGESTED.labels(status="accepted").inc()
    logger.info(
        "[INGEST] Reading received device=%s location=%s ts=%d error=%s",
        reading.device_id,
        reading.location,
        reading.timestamp,
        reading.error,
    )
    return ReceiveResult(reading=reading.to_dict())


@router.get(
    "/readings",
    response_model=ReadingsResult,
    response_model_exclude_none=True,
    responses={503: {"model": ErrorResult}},
)
async def query_readings(
    location: Optional[str] = None,
    since: Optional[str] = None,
    limit: Optional[str] = None,
    store: BoundedHistoryStore = Depends(get_store),
):
    """Lecturas más recientes, en orden ascendente de timestamp."""
    readings = await asyncio.to_thread(
        store.query,
        location or None,
        _parse_int(since),
        _parse_int(limit),
    )
    return ReadingsResult(count=len(readings), readings=[r.to_dict() for r in readings])
