"""Modelo de dominio para lecturas de monitoreo."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class MetricType(str, Enum):
    """Tipos de métrica soportados (conjunto cerrado)."""
    VOLTAGE = "voltage"
    CURRENT = "current"
    TEMPERATURE = "temperature"
    PRESSURE = "pressure"
    HUMIDITY = "humidity"
    VIBRATION = "vibration"
    SPEED = "speed"
    POWER = "power"
    FREQUENCY = "frequency"
    LEVEL = "level"
    RESISTANCE = "resistance"
    SWITCH = "switch"


class DataQuality(str, Enum):
    NORMAL = "normal"
    ABNORMAL = "abnormal"
    SUSPICIOUS = "suspicious"


class DataSource(str, Enum):
    SENSOR_UPLOAD = "sensor-upload"
    FILE_IMPORT = "file-import"
    MANUAL_ENTRY = "manual-entry"


HISTORY_SOURCES = frozenset({DataSource.FILE_IMPORT, DataSource.MANUAL_ENTRY})


def _enum_keyed(values: Mapping[MetricType, str]) -> Mapping[MetricType, str]:
    missing = [m.value for m in MetricType if m not in values]
    if missing:
        raise RuntimeError(f"Missing metric types in table: {', '.join(missing)}")
    return MappingProxyType(dict(values))


STANDARD_UNITS: Mapping[MetricType, str] = _enum_keyed(
    {
        MetricType.VIBRATION: "mm/s",
        MetricType.TEMPERATURE: "°C",
        MetricType.PRESSURE: "MPa",
        MetricType.HUMIDITY: "%",
        MetricType.SPEED: "rpm",
        MetricType.CURRENT: "A",
        MetricType.VOLTAGE: "V",
        MetricType.POWER: "kW",
        MetricType.FREQUENCY: "Hz",
        MetricType.LEVEL: "mm",
        MetricType.RESISTANCE: "Ω/V",
        MetricType.SWITCH: "",
    }
)


def standard_unit(metric_type: MetricType) -> str:
    """Unidad canónica del tipo de métrica."""
    return STANDARD_UNITS[metric_type]


def ensure_utc(value: datetime) -> datetime:
    """Normaliza un datetime a UTC; los naive se asumen UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Reading:
    """Lectura de monitoreo - modelo canónico de dominio.

    Es inmutable: unit y quality se resuelven una sola vez al escribir.
    `id` es None hasta que la persistencia lo asigna.
    """
    equipment_id: str
    timestamp: datetime
    metric_type: MetricType
    value: float
    unit: str
    quality: DataQuality
    source: DataSource = DataSource.SENSOR_UPLOAD
    monitoring_point: Optional[str] = None
    id: Optional[int] = None

    def with_id(self, reading_id: int) -> "Reading":
        return replace(self, id=int(reading_id))

    @property
    def is_history(self) -> bool:
        return self.source in HISTORY_SOURCES

    def to_message(self, equipment_code: str) -> dict:
        """Payload de canal en tiempo real (9 campos fijos)."""
        return {
            "id": self.id,
            "equipmentId": equipment_code,
            "timestamp": self.timestamp.isoformat(),
            "metricType": self.metric_type.value,
            "monitoringPoint": self.monitoring_point,
            "value": self.value,
            "unit": self.unit,
            "quality": self.quality.value,
            "source": self.source.value,
        }
