"""Clasificador de calidad de lecturas.

Función pura sobre (metric_type, value, timestamp, unit). Reglas en orden,
acumulando warnings/errors sin cortar (salvo el chequeo numérico):

1. Valor NaN / infinito → ABNORMAL inválido, no se evalúa nada más.
2. Rango por métrica: fuera → error; dentro pero en la franja del 5% → warning.
3. Timestamp vs "ahora" de ingesta:
   - > 5 min en el futuro → error
   - > 1 año en el pasado → error
   - entre 1 hora y 1 año → warning "possible backfill" (camino aceptado
     para datos históricos / importados)
4. Unidad distinta de la canónica → solo warning.

Calidad final: ABNORMAL si hay errores, SUSPICIOUS si hay warnings, si no NORMAL.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from ..core.domain.reading import DataQuality, MetricType, ensure_utc
from .range_config import MetricRangeStore

logger = logging.getLogger(__name__)

FUTURE_TOLERANCE = timedelta(minutes=5)
BACKFILL_AFTER = timedelta(hours=1)
MAX_AGE = timedelta(days=365)


@dataclass
class QualityCheckResult:
    valid: bool = True
    quality: DataQuality = DataQuality.NORMAL
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def reasons(self) -> List[str]:
        return [*self.errors, *self.warnings]


@dataclass(frozen=True)
class QualityCheckInput:
    metric_type: MetricType
    value: float
    timestamp: datetime
    unit: Optional[str] = None


class QualityClassifier:
    """Clasifica lecturas en NORMAL / SUSPICIOUS / ABNORMAL."""

    def __init__(self, ranges: Optional[MetricRangeStore] = None) -> None:
        self._ranges = ranges or MetricRangeStore()

    @property
    def ranges(self) -> MetricRangeStore:
        return self._ranges

    def classify(
        self,
        metric_type: MetricType,
        value: float,
        timestamp: datetime,
        unit: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> QualityCheckResult:
        result = QualityCheckResult()

        if not _is_finite_number(value):
            result.valid = False
            result.quality = DataQuality.ABNORMAL
            result.errors.append(f"invalid numeric value: {value}")
            self._log_result(metric_type, value, result)
            return result

        # Una sola lectura de la tabla por llamada.
        metric_range = self._ranges.get(metric_type)

        if not metric_range.contains(value):
            result.errors.append(
                f"value out of range: {value} "
                f"(expected {metric_range.min_value} ~ {metric_range.max_value} {metric_range.unit})".rstrip()
            )
        elif metric_range.near_boundary(value):
            result.warnings.append(f"value near boundary: {value} {metric_range.unit}".rstrip())

        self._check_timestamp(timestamp, now or datetime.now(timezone.utc), result)

        if unit and unit != metric_range.unit:
            result.warnings.append(
                f"unit mismatch: expected '{metric_range.unit}', got '{unit}'"
            )

        if result.errors:
            result.valid = False
            result.quality = DataQuality.ABNORMAL
        elif result.warnings:
            result.quality = DataQuality.SUSPICIOUS

        self._log_result(metric_type, value, result)
        return result

    def classify_many(
        self,
        items: Iterable[QualityCheckInput],
        *,
        now: Optional[datetime] = None,
    ) -> List[QualityCheckResult]:
        reference = now or datetime.now(timezone.utc)
        return [
            self.classify(i.metric_type, i.value, i.timestamp, i.unit, now=reference)
            for i in items
        ]

    @staticmethod
    def _check_timestamp(timestamp: datetime, now: datetime, result: QualityCheckResult) -> None:
        ts = ensure_utc(timestamp)
        now = ensure_utc(now)

        if ts > now + FUTURE_TOLERANCE:
            result.errors.append(f"timestamp in future: {ts.isoformat()}")
        elif ts < now - MAX_AGE:
            result.errors.append(f"timestamp too old: {ts.isoformat()} (more than 1 year)")
        elif ts < now - BACKFILL_AFTER:
            result.warnings.append(f"possible backfill: {ts.isoformat()}")

    @staticmethod
    def _log_result(metric_type: MetricType, value: float, result: QualityCheckResult) -> None:
        if result.quality is DataQuality.NORMAL:
            return
        logger.warning(
            "[QUALITY] metric=%s value=%s quality=%s reasons=%s",
            metric_type.value,
            value,
            result.quality.value,
            "; ".join(result.reasons),
        )


def _is_finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
