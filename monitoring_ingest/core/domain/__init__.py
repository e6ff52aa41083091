"""Domain layer - Modelos y contratos."""

from .alarm import Alarm
from .batch import BatchError, BatchResult, ReadingInput
from .errors import (
    EquipmentNotFoundError,
    IngestError,
    InvalidTimeRangeError,
    MetricTypeConflictError,
    MonitoringPointError,
    MonitoringPointNotFoundError,
    PersistenceError,
)
from .monitoring_point import MonitoringPointDescriptor, PointValidation
from .query import ReadingPage, ReadingQuery, ReadingStatistics
from .reading import (
    STANDARD_UNITS,
    DataQuality,
    DataSource,
    MetricType,
    Reading,
    ensure_utc,
    standard_unit,
)

__all__ = [
    "Alarm",
    "BatchError",
    "BatchResult",
    "ReadingInput",
    "EquipmentNotFoundError",
    "IngestError",
    "InvalidTimeRangeError",
    "MetricTypeConflictError",
    "MonitoringPointError",
    "MonitoringPointNotFoundError",
    "PersistenceError",
    "MonitoringPointDescriptor",
    "PointValidation",
    "ReadingPage",
    "ReadingQuery",
    "ReadingStatistics",
    "STANDARD_UNITS",
    "DataQuality",
    "DataSource",
    "MetricType",
    "Reading",
    "ensure_utc",
    "standard_unit",
]
