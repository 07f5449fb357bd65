"""Core module - Motor de ingesta y alertas de telemetría.

Estructura:
- domain/          → Lecturas, canales y alertas
- validation/      → Validación de registros de ingesta
- store/           → Bounded History Store (memoria / Redis)
- redis/           → Conexión a Redis
- classification/  → Liveness y evaluación de umbrales
- monitoring/      → Métricas Prometheus
"""
