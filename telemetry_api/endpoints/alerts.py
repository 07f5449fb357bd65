"""Endpoints del Alert Ledger."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from ..alerts.ledger import AlertLedger
from ..dependencies import get_ledger
from ..schemas import AcknowledgeResult, AlertsResult, ErrorResult

router = APIRouter(prefix="/api/alerts", tags=["alerts"])
logger = logging.getLogger(__name__)


@router.get("", response_model=AlertsResult)
def active_alerts(ledger: AlertLedger = Depends(get_ledger)):
    """Alertas activas: CRITICAL primero, luego las más recientes."""
    alerts = ledger.active()
    return AlertsResult(count=len(alerts), alerts=[a.to_dict() for a in alerts])


@router.get("/history", response_model=AlertsResult)
def alert_history(limit: Optional[int] = None, ledger: AlertLedger = Depends(get_ledger)):
    """Alertas reconocidas, más recientes primero."""
    alerts = ledger.history(limit)
    return AlertsResult(count=len(alerts), alerts=[a.to_dict() for a in alerts])


@router.post(
    "/{channel_id}/{created_at}/acknowledge",
    response_model=AcknowledgeResult,
    responses={404: {"model": ErrorResult}},
)
def acknowledge_alert(channel_id: str, created_at: int, ledger: AlertLedger = Depends(get_ledger)):
    """Reconoce una alerta (idempotente). AlertNotFound -> 404."""
    alert = ledger.acknowledge(channel_id, created_at)
    return AcknowledgeResult(alert=alert.to_dict())
