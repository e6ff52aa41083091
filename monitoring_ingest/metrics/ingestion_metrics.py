"""Métricas Prometheus del servicio de ingesta.

Solo contadores agregados; se exponen en /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter

READINGS_INGESTED = Counter(
    "monitoring_readings_ingested_total",
    "Readings processed by the ingestion pipeline",
    ["path", "outcome"],  # path: single|batch, outcome: stored|rejected|failed
)

BATCHES_INGESTED = Counter(
    "monitoring_batches_ingested_total",
    "Batch ingestion requests",
    ["outcome"],  # committed|rolled_back
)

READINGS_BY_QUALITY = Counter(
    "monitoring_readings_quality_total",
    "Stored readings by quality tier",
    ["quality"],
)

REALTIME_MESSAGES = Counter(
    "monitoring_realtime_messages_total",
    "Messages handed to the realtime channel",
    ["event"],
)

REALTIME_DROPPED = Counter(
    "monitoring_realtime_dropped_total",
    "Realtime pushes dropped before delivery",
    ["reason"],  # unknown_equipment|lookup_failed|send_failed|ws_timeout
)

SIDE_EFFECT_FAILURES = Counter(
    "monitoring_side_effect_failures_total",
    "Detached side-effect tasks that raised",
    ["task"],
)
