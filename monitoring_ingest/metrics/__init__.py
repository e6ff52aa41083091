"""Métricas Prometheus."""

from .ingestion_metrics import (
    BATCHES_INGESTED,
    READINGS_BY_QUALITY,
    READINGS_INGESTED,
    REALTIME_DROPPED,
    REALTIME_MESSAGES,
    SIDE_EFFECT_FAILURES,
)

__all__ = [
    "BATCHES_INGESTED",
    "READINGS_BY_QUALITY",
    "READINGS_INGESTED",
    "REALTIME_DROPPED",
    "REALTIME_MESSAGES",
    "SIDE_EFFECT_FAILURES",
]
