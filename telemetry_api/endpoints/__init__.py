"""Módulo de endpoints HTTP.

Contiene los endpoints de la API de telemetría organizados por función.
"""

from .alerts import router as alerts_router
from .health import router as health_router
from .readings import router as readings_router
from .status import router as status_router

__all__ = [
    "alerts_router",
    "health_router",
    "readings_router",
    "status_router",
]
