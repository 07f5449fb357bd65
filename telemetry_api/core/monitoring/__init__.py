"""Monitoring layer - Métricas y observabilidad."""

from . import metrics

__all__ = ["metrics"]
