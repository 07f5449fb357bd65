"""Dependencias FastAPI: componentes inyectados en ``app.state`` por create_app."""

from __future__ import annotations

from typing import Tuple

from fastapi import Request

from monitor.reconciler import PollingReconciler

from .alerts.ledger import AlertLedger
from .core.domain.channels import ChannelConfig
from .core.store.history_store import BoundedHistoryStore
from .core.validation.reading_validator import ReadingValidator


def get_store(request: Request) -> BoundedHistoryStore:
    return request.app.state.store


def get_validator(request: Request) -> ReadingValidator:
    return request.app.state.validator


def get_ledger(request: Request) -> AlertLedger:
    return request.app.state.ledger


def get_reconciler(request: Request) -> PollingReconciler:
    return request.app.state.reconciler


def get_channels(request: Request) -> Tuple[ChannelConfig, ...]:
    return request.app.state.channels
