"""Health, readiness y métricas Prometheus."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from common.db import ping

from ..container import ServiceContainer
from .deps import get_container

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness probe: ok mientras el proceso esté vivo."""
    return {"status": "ok"}


@router.get("/ready")
def ready(container: ServiceContainer = Depends(get_container)):
    """Readiness probe: verifica conectividad con la BD."""
    try:
        ping(container.engine)
    except Exception:
        logger.exception("[HEALTH] Readiness check failed")
        raise HTTPException(status_code=503, detail="not ready")
    return {"status": "ready", "equipmentCache": container.code_cache.stats()}


@router.get("/metrics")
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
