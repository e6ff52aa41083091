"""Tabla de rangos razonables por tipo de métrica.

Los operadores pueden reajustar los rangos en caliente. La tabla se guarda
como un mapping inmutable que se reemplaza entero en cada actualización:
un lector toma la referencia una sola vez y ve la tabla vieja o la nueva,
nunca un rango a medio escribir.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Mapping, Optional

from ..core.domain.reading import MetricType, STANDARD_UNITS

logger = logging.getLogger(__name__)

BOUNDARY_BAND_RATIO = 0.05


@dataclass(frozen=True)
class MetricRange:
    """Rango razonable [min, max] y unidad canónica de una métrica."""

    min_value: float
    max_value: float
    unit: str

    @property
    def span(self) -> float:
        return self.max_value - self.min_value

    def contains(self, value: float) -> bool:
        return self.min_value <= value <= self.max_value

    def near_boundary(self, value: float, ratio: float = BOUNDARY_BAND_RATIO) -> bool:
        """True si el valor cae en la franja del 5% junto a cualquiera de los límites."""
        band = self.span * ratio
        return value < self.min_value + band or value > self.max_value - band

    def to_dict(self) -> dict:
        return {"min": self.min_value, "max": self.max_value, "unit": self.unit}


def _default(min_value: float, max_value: float, metric: MetricType) -> MetricRange:
    return MetricRange(min_value=min_value, max_value=max_value, unit=STANDARD_UNITS[metric])


DEFAULT_RANGES: Mapping[MetricType, MetricRange] = MappingProxyType(
    {
        MetricType.VIBRATION: _default(0, 100, MetricType.VIBRATION),
        MetricType.TEMPERATURE: _default(-50, 200, MetricType.TEMPERATURE),
        MetricType.PRESSURE: _default(0, 50, MetricType.PRESSURE),
        MetricType.HUMIDITY: _default(0, 100, MetricType.HUMIDITY),
        MetricType.SPEED: _default(0, 10000, MetricType.SPEED),
        MetricType.CURRENT: _default(0, 1000, MetricType.CURRENT),
        MetricType.VOLTAGE: _default(0, 1000, MetricType.VOLTAGE),
        MetricType.POWER: _default(0, 10000, MetricType.POWER),
        MetricType.FREQUENCY: _default(0, 100, MetricType.FREQUENCY),
        MetricType.LEVEL: _default(0, 10000, MetricType.LEVEL),
        MetricType.RESISTANCE: _default(0, 10000, MetricType.RESISTANCE),
        MetricType.SWITCH: _default(0, 1, MetricType.SWITCH),
    }
)


class MetricRangeStore:
    """Almacén thread-safe de la tabla de rangos.

    Lecturas sin lock (una sola lectura de atributo); escrituras
    serializadas con un lock y publicadas con un swap de referencia.
    """

    def __init__(self, initial: Optional[Mapping[MetricType, MetricRange]] = None) -> None:
        table = dict(initial if initial is not None else DEFAULT_RANGES)
        missing = [m.value for m in MetricType if m not in table]
        if missing:
            raise ValueError(f"Range table missing metric types: {', '.join(missing)}")
        self._table: Mapping[MetricType, MetricRange] = MappingProxyType(table)
        self._write_lock = threading.Lock()

    def get(self, metric_type: MetricType) -> MetricRange:
        return self._table[metric_type]

    def snapshot(self) -> Mapping[MetricType, MetricRange]:
        return self._table

    def update(
        self,
        metric_type: MetricType,
        *,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        unit: Optional[str] = None,
    ) -> MetricRange:
        """Reajusta el rango de una métrica y publica la tabla nueva."""
        with self._write_lock:
            current = self._table[metric_type]
            changes: dict = {}
            if min_value is not None:
                changes["min_value"] = float(min_value)
            if max_value is not None:
                changes["max_value"] = float(max_value)
            if unit is not None:
                changes["unit"] = unit
            updated = replace(current, **changes)
            if updated.min_value >= updated.max_value:
                raise ValueError(
                    f"Invalid range for {metric_type.value}: "
                    f"min {updated.min_value} must be lower than max {updated.max_value}"
                )

            table = dict(self._table)
            table[metric_type] = updated
            self._table = MappingProxyType(table)

        logger.info(
            "[RANGES] Updated metric=%s min=%s max=%s unit=%s",
            metric_type.value,
            updated.min_value,
            updated.max_value,
            updated.unit,
        )
        return updated
