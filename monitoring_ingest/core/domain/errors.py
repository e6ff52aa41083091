"""Errores de dominio del pipeline de ingesta.

Los endpoints los traducen a códigos HTTP:
- EquipmentNotFoundError → 404
- MonitoringPointError (no declarado / tipo distinto) → 400
- InvalidTimeRangeError (consultas) → 400
- PersistenceError → 500
"""

from __future__ import annotations


class IngestError(Exception):
    """Base de todos los errores de ingesta."""


class EquipmentNotFoundError(IngestError):
    def __init__(self, equipment_id: str) -> None:
        super().__init__(f"Equipment not found: {equipment_id}")
        self.equipment_id = equipment_id


class MonitoringPointError(IngestError):
    """Fallo de validación del monitoring point declarado."""


class MonitoringPointNotFoundError(MonitoringPointError):
    def __init__(self, equipment_id: str, point_name: str) -> None:
        super().__init__(
            f"Monitoring point '{point_name}' is not declared for equipment {equipment_id}"
        )
        self.equipment_id = equipment_id
        self.point_name = point_name


class MetricTypeConflictError(MonitoringPointError):
    def __init__(self, point_name: str, expected: str, declared: str) -> None:
        super().__init__(
            f"Monitoring point '{point_name}' metric type mismatch: "
            f"expected {expected}, declared {declared}"
        )
        self.point_name = point_name
        self.expected = expected
        self.declared = declared


class PersistenceError(IngestError):
    """Fallo al escribir en el almacenamiento."""


class InvalidTimeRangeError(IngestError):
    def __init__(self, start_time: object, end_time: object) -> None:
        super().__init__(f"Invalid time range: start {start_time} does not precede end {end_time}")
        self.start_time = start_time
        self.end_time = end_time
