"""Servicio de ingesta de monitoreo para equipos de a bordo."""
