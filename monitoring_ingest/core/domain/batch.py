"""Entradas de ingesta y resultado de lote."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .reading import DataQuality, DataSource, MetricType


@dataclass(frozen=True)
class ReadingInput:
    """Una lectura tal como llega del cliente (sin resolver)."""
    timestamp: datetime
    metric_type: MetricType
    value: float
    monitoring_point: Optional[str] = None
    unit: Optional[str] = None
    quality: Optional[DataQuality] = None
    source: Optional[DataSource] = None


@dataclass(frozen=True)
class BatchError:
    index: int
    reason: str


@dataclass
class BatchResult:
    """Resultado de un lote.

    success_count + failed_count == total_count siempre; `index` apunta
    a la posición en el array original del cliente.
    """
    total_count: int
    success_count: int = 0
    failed_count: int = 0
    errors: List[BatchError] = field(default_factory=list)

    def record_success(self) -> None:
        self.success_count += 1

    def record_failure(self, index: int, reason: str) -> None:
        self.failed_count += 1
        self.errors.append(BatchError(index=index, reason=reason))

    def mark_all_failed(self, reason: str) -> None:
        """La transacción completa falló: ninguna fila es durable."""
        self.success_count = 0
        self.failed_count = self.total_count
        self.errors = [BatchError(index=i, reason=reason) for i in range(self.total_count)]

    def to_dict(self) -> dict:
        return {
            "totalCount": self.total_count,
            "successCount": self.success_count,
            "failedCount": self.failed_count,
            "errors": [{"index": e.index, "reason": e.reason} for e in self.errors],
        }
