"""API de telemetría ambiental con evaluación de umbrales y alertas."""
