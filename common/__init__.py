"""Utilidades compartidas: configuración del proceso."""
