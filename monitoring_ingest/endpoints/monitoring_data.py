"""Endpoints de ingesta y consulta de lecturas de monitoreo."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ..container import ServiceContainer
from ..core.domain.errors import IngestError
from ..core.domain.query import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, ReadingQuery
from ..core.domain.reading import MetricType
from ..schemas import (
    BatchResultOut,
    IngestAck,
    MonitoringBatchIn,
    MonitoringDataIn,
    ReadingPageOut,
    ReadingStatisticsOut,
)
from .deps import get_container, to_http_error

router = APIRouter(prefix="/api/monitoring", tags=["monitoring"])
logger = logging.getLogger(__name__)


@router.post("/data", response_model=IngestAck, response_model_by_alias=True)
def ingest_monitoring_data(
    payload: MonitoringDataIn,
    container: ServiceContainer = Depends(get_container),
):
    """Ingesta de una lectura. Alarmas y push corren después, sin esperar."""
    try:
        stored = container.orchestrator.ingest_reading(str(payload.equipment_id), payload.to_input())
    except IngestError as e:
        raise to_http_error(e, debug_errors=container.settings.debug_errors)

    return IngestAck(data_id=stored.id, received=True)


@router.post("/data/batch", response_model=BatchResultOut, response_model_by_alias=True)
def ingest_monitoring_batch(
    payload: MonitoringBatchIn,
    container: ServiceContainer = Depends(get_container),
):
    """Ingesta en lote (1..1000 filas) con resultado parcial por fila.

    Equipo inexistente es el único error que rechaza el lote entero.
    """
    items = [row.to_input() for row in payload.data]
    try:
        result = container.orchestrator.ingest_batch(str(payload.equipment_id), items)
    except IngestError as e:
        raise to_http_error(e, debug_errors=container.settings.debug_errors)

    return result.to_dict()


@router.get("/data", response_model=ReadingPageOut, response_model_by_alias=True)
def query_monitoring_data(
    equipment_id: UUID = Query(..., alias="equipmentId"),
    start_time: datetime = Query(..., alias="startTime"),
    end_time: datetime = Query(..., alias="endTime"),
    metric_type: Optional[MetricType] = Query(None, alias="metricType"),
    monitoring_point: Optional[str] = Query(None, alias="monitoringPoint", max_length=100),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, alias="pageSize", ge=1, le=MAX_PAGE_SIZE),
    container: ServiceContainer = Depends(get_container),
):
    """Lecturas de un equipo en [startTime, endTime], más recientes primero."""
    query = ReadingQuery(
        equipment_id=str(equipment_id),
        start_time=start_time,
        end_time=end_time,
        metric_type=metric_type,
        monitoring_point=monitoring_point or None,
        page=page,
        page_size=page_size,
    )
    try:
        result = container.queries.query_monitoring_data(query)
    except IngestError as e:
        raise to_http_error(e, debug_errors=container.settings.debug_errors)

    return result.to_dict()


@router.get("/data/statistics", response_model=ReadingStatisticsOut, response_model_by_alias=True)
def get_data_statistics(
    equipment_id: UUID = Query(..., alias="equipmentId"),
    metric_type: MetricType = Query(..., alias="metricType"),
    start_time: datetime = Query(..., alias="startTime"),
    end_time: datetime = Query(..., alias="endTime"),
    container: ServiceContainer = Depends(get_container),
):
    try:
        stats = container.queries.get_data_statistics(
            str(equipment_id), metric_type, start_time, end_time
        )
    except IngestError as e:
        raise to_http_error(e, debug_errors=container.settings.debug_errors)

    return stats.to_dict()
