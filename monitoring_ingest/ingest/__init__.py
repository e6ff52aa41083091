"""Módulo de ingesta: resolución de puntos, orquestación y efectos desacoplados."""

from .monitoring_points import MonitoringPointResolver
from .orchestrator import IngestionOrchestrator
from .side_effects import DetachedTaskRunner, InlineTaskRunner

__all__ = [
    "MonitoringPointResolver",
    "IngestionOrchestrator",
    "DetachedTaskRunner",
    "InlineTaskRunner",
]
