"""Consultas de lecturas ya almacenadas: página y estadísticas."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from .reading import MetricType, Reading

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 1000


@dataclass(frozen=True)
class ReadingQuery:
    """Filtro de lecturas de un equipo en [start_time, end_time]."""
    equipment_id: str
    start_time: datetime
    end_time: datetime
    metric_type: Optional[MetricType] = None
    monitoring_point: Optional[str] = None
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class ReadingPage:
    """Página de lecturas, de la más reciente a la más antigua."""
    items: List[Reading]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0

    def to_dict(self) -> dict:
        return {
            "items": [_reading_dict(r) for r in self.items],
            "total": self.total,
            "page": self.page,
            "pageSize": self.page_size,
            "totalPages": self.total_pages,
        }


@dataclass(frozen=True)
class ReadingStatistics:
    metric_type: MetricType
    count: int
    max_value: float
    min_value: float
    avg_value: float
    unit: str

    def to_dict(self) -> dict:
        return {
            "metricType": self.metric_type.value,
            "count": self.count,
            "maxValue": self.max_value,
            "minValue": self.min_value,
            "avgValue": self.avg_value,
            "unit": self.unit,
        }


def _reading_dict(reading: Reading) -> dict:
    return {
        "id": reading.id,
        "equipmentId": reading.equipment_id,
        "timestamp": reading.timestamp.isoformat(),
        "metricType": reading.metric_type.value,
        "monitoringPoint": reading.monitoring_point,
        "value": reading.value,
        "unit": reading.unit,
        "quality": reading.quality.value,
        "source": reading.source.value,
    }
