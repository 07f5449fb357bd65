"""Endpoints de configuración, estado de canales y analítica."""

from __future__ import annotations

from typing import Tuple

from fastapi import APIRouter, Depends

from monitor.reconciler import PollingReconciler

from .. import analytics
from ..core.domain.channels import ChannelConfig
from ..dependencies import get_channels, get_reconciler
from ..schemas import AnalyticsResult, ChannelsResult, StatusResult

router = APIRouter(prefix="/api", tags=["status"])


@router.get("/channels", response_model=ChannelsResult)
def list_channels(channels: Tuple[ChannelConfig, ...] = Depends(get_channels)):
    return ChannelsResult(count=len(channels), channels=[c.to_dict() for c in channels])


@router.get("/status", response_model=StatusResult)
def status(reconciler: PollingReconciler = Depends(get_reconciler)):
    """Liveness por canal + indicador agregado "connected"."""
    statuses = reconciler.channel_statuses()
    return StatusResult(
        connected=reconciler.connected,
        active_alerts=len(reconciler.ledger.active()),
        channels=[s.to_dict() for s in statuses],
        reconciler=reconciler.stats,
    )


@router.get("/analytics", response_model=AnalyticsResult)
def analytics_summary(reconciler: PollingReconciler = Depends(get_reconciler)):
    summary = analytics.summarize(reconciler.ledger.all(), reconciler.entries)
    return AnalyticsResult(**summary)
