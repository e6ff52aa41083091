"""Módulo de endpoints HTTP / WebSocket."""

from .health import router as health_router
from .metric_ranges import router as metric_ranges_router
from .monitoring_data import router as monitoring_data_router
from .realtime_ws import router as realtime_ws_router

__all__ = [
    "health_router",
    "metric_ranges_router",
    "monitoring_data_router",
    "realtime_ws_router",
]
