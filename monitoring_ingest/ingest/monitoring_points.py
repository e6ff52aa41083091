"""Resolución de monitoring points declarados por equipo.

El punto identifica *dónde* se midió (p. ej. "coolant" vs "exhaust" con el
mismo metric_type). Aquí solo se valida que exista y que el tipo de métrica
coincida; la unidad declarada se usa para completar lecturas sin unidad.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..core.domain.errors import (
    MetricTypeConflictError,
    MonitoringPointNotFoundError,
    PersistenceError,
)
from ..core.domain.monitoring_point import MonitoringPointDescriptor, PointValidation
from ..core.domain.reading import MetricType

logger = logging.getLogger(__name__)

_FIND_POINT = text(
    "SELECT point_name, metric_type, unit FROM monitoring_points "
    "WHERE equipment_id = :equipment_id AND point_name = :point_name"
)

_FIND_POINTS = text(
    "SELECT point_name, metric_type, unit FROM monitoring_points "
    "WHERE equipment_id = :equipment_id AND point_name IN :point_names"
).bindparams(bindparam("point_names", expanding=True))


class MonitoringPointResolver:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def resolve(
        self,
        equipment_id: str,
        point_name: str,
        expected_metric_type: Optional[MetricType] = None,
    ) -> MonitoringPointDescriptor:
        """Devuelve el descriptor del punto o lanza MonitoringPointError.

        Raises:
            MonitoringPointNotFoundError: el punto no está declarado.
            MetricTypeConflictError: el punto existe con otro metric_type.
            PersistenceError: fallo de la query.
        """
        try:
            with self._engine.connect() as conn:
                row = conn.execute(
                    _FIND_POINT,
                    {"equipment_id": equipment_id, "point_name": point_name},
                ).first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Monitoring point lookup failed: {e}") from e

        if row is None:
            raise MonitoringPointNotFoundError(equipment_id, point_name)

        descriptor = _to_descriptor(equipment_id, row)
        if expected_metric_type is not None and descriptor.metric_type != expected_metric_type:
            logger.warning(
                "[POINTS] Metric type mismatch equipment_id=%s point=%s expected=%s declared=%s",
                equipment_id,
                point_name,
                expected_metric_type.value,
                descriptor.metric_type.value,
            )
            raise MetricTypeConflictError(
                point_name,
                expected=expected_metric_type.value,
                declared=descriptor.metric_type.value,
            )
        return descriptor

    def resolve_many(self, equipment_id: str, point_names: Iterable[str]) -> List[PointValidation]:
        """Valida varios nombres con una sola query.

        Respeta el orden de entrada y colapsa duplicados. No compara
        metric_type: eso queda para el paso por fila.
        """
        names = [n for n in dict.fromkeys(point_names) if n]
        if not names:
            return []

        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    _FIND_POINTS,
                    {"equipment_id": equipment_id, "point_names": names},
                ).fetchall()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Monitoring point batch lookup failed: {e}") from e

        found = {str(r[0]): _to_descriptor(equipment_id, r) for r in rows}
        return [
            PointValidation(point_name=n, is_valid=n in found, descriptor=found.get(n))
            for n in names
        ]


def _to_descriptor(equipment_id: str, row) -> MonitoringPointDescriptor:  # type: ignore[no-untyped-def]
    return MonitoringPointDescriptor(
        equipment_id=equipment_id,
        point_name=str(row[0]),
        metric_type=MetricType(row[1]),
        unit=row[2],
    )
