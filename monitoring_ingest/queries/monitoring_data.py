"""Consultas de lecturas almacenadas por equipo.

Validan equipo y rango antes de tocar la tabla de lecturas. Sin datos en el
rango, las estadísticas vuelven en cero con la unidad canónica de la métrica.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..core.domain.errors import EquipmentNotFoundError, InvalidTimeRangeError
from ..core.domain.query import ReadingPage, ReadingQuery, ReadingStatistics
from ..core.domain.reading import MetricType, ensure_utc, standard_unit
from ..infrastructure.persistence.reading_repository import ReadingRepository

logger = logging.getLogger(__name__)


class MonitoringDataQueries:
    def __init__(self, repository: ReadingRepository) -> None:
        self._repository = repository

    def query_monitoring_data(self, query: ReadingQuery) -> ReadingPage:
        """Página de lecturas del equipo, la más reciente primero.

        Raises:
            EquipmentNotFoundError: el equipo no existe.
            InvalidTimeRangeError: start_time posterior a end_time.
        """
        self._require_equipment(query.equipment_id)
        if ensure_utc(query.start_time) > ensure_utc(query.end_time):
            raise InvalidTimeRangeError(query.start_time, query.end_time)

        page = self._repository.find_page(query)
        logger.debug(
            "[QUERY] Readings equipment_id=%s total=%d page=%d",
            query.equipment_id,
            page.total,
            page.page,
        )
        return page

    def get_data_statistics(
        self,
        equipment_id: str,
        metric_type: MetricType,
        start_time: datetime,
        end_time: datetime,
    ) -> ReadingStatistics:
        # Aquí el rango debe ser estricto: start == end se rechaza.
        self._require_equipment(equipment_id)
        if ensure_utc(start_time) >= ensure_utc(end_time):
            raise InvalidTimeRangeError(start_time, end_time)

        stats = self._repository.statistics(equipment_id, metric_type, start_time, end_time)
        if stats is None:
            return ReadingStatistics(
                metric_type=metric_type,
                count=0,
                max_value=0.0,
                min_value=0.0,
                avg_value=0.0,
                unit=standard_unit(metric_type),
            )
        return stats

    def _require_equipment(self, equipment_id: str) -> None:
        if not self._repository.equipment_exists(equipment_id):
            logger.warning("[QUERY] Equipment not found equipment_id=%s", equipment_id)
            raise EquipmentNotFoundError(equipment_id)
