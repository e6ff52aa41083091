"""Descriptores de monitoring points (propiedad de gestión de equipos)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .reading import MetricType


@dataclass(frozen=True)
class MonitoringPointDescriptor:
    equipment_id: str
    point_name: str
    metric_type: MetricType
    unit: Optional[str] = None

    def has_unit(self) -> bool:
        return self.unit is not None and self.unit.strip() != ""


@dataclass(frozen=True)
class PointValidation:
    """Resultado de validar un nombre de punto en lote."""
    point_name: str
    is_valid: bool
    descriptor: Optional[MonitoringPointDescriptor] = None
