"""Dependencias compartidas por los endpoints."""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, WebSocket

from ..container import ServiceContainer
from ..core.domain.errors import (
    EquipmentNotFoundError,
    IngestError,
    InvalidTimeRangeError,
    MonitoringPointError,
)

logger = logging.getLogger(__name__)


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_ws_container(websocket: WebSocket) -> ServiceContainer:
    return websocket.app.state.container


def to_http_error(exc: IngestError, *, debug_errors: bool) -> HTTPException:
    """Traduce errores de dominio a HTTP (404 / 400 / 500)."""
    if isinstance(exc, EquipmentNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (MonitoringPointError, InvalidTimeRangeError)):
        return HTTPException(status_code=400, detail=str(exc))

    # No se exponen detalles de almacenamiento salvo en modo debug.
    detail = f"Storage error: {type(exc).__name__}"
    if debug_errors:
        detail = f"{detail}: {exc}"
    return HTTPException(status_code=500, detail=detail)
