"""Consulta y reajuste en caliente de la tabla de rangos por métrica."""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException

from ..container import ServiceContainer
from ..core.domain.reading import MetricType
from ..schemas import MetricRangeOut, MetricRangeUpdateIn
from .deps import get_container

router = APIRouter(prefix="/api/monitoring/metric-ranges", tags=["metric-ranges"])
logger = logging.getLogger(__name__)


@router.get("", response_model=Dict[str, MetricRangeOut])
def list_metric_ranges(container: ServiceContainer = Depends(get_container)):
    table = container.ranges.snapshot()
    return {metric.value: r.to_dict() for metric, r in table.items()}


@router.put("/{metric_type}", response_model=MetricRangeOut)
def update_metric_range(
    metric_type: MetricType,
    payload: MetricRangeUpdateIn,
    container: ServiceContainer = Depends(get_container),
):
    try:
        updated = container.ranges.update(
            metric_type,
            min_value=payload.min,
            max_value=payload.max,
            unit=payload.unit,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return updated.to_dict()
