from __future__ import annotations

import math
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .core.domain.batch import ReadingInput
from .core.domain.reading import DataQuality, DataSource, MetricType

MAX_ABS_VALUE = 999999.99
MAX_BATCH_ITEMS = 1000


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class BatchReadingIn(_CamelModel):
    timestamp: datetime
    metric_type: MetricType = Field(..., alias="metricType")
    monitoring_point: Optional[str] = Field(None, alias="monitoringPoint", max_length=100)
    value: float = Field(..., ge=-MAX_ABS_VALUE, le=MAX_ABS_VALUE)
    unit: Optional[str] = Field(None, max_length=20)
    quality: Optional[DataQuality] = None

    @field_validator("value")
    @classmethod
    def _finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("value must be a finite number")
        return v

    def to_input(self) -> ReadingInput:
        return ReadingInput(
            timestamp=self.timestamp,
            metric_type=self.metric_type,
            value=self.value,
            monitoring_point=self.monitoring_point or None,
            unit=self.unit or None,
            quality=self.quality,
        )


class MonitoringDataIn(BatchReadingIn):
    equipment_id: UUID = Field(..., alias="equipmentId")
    source: Optional[DataSource] = None

    def to_input(self) -> ReadingInput:
        return ReadingInput(
            timestamp=self.timestamp,
            metric_type=self.metric_type,
            value=self.value,
            monitoring_point=self.monitoring_point or None,
            unit=self.unit or None,
            quality=self.quality,
            source=self.source,
        )


class MonitoringBatchIn(_CamelModel):
    equipment_id: UUID = Field(..., alias="equipmentId")
    data: List[BatchReadingIn] = Field(..., min_length=1, max_length=MAX_BATCH_ITEMS)


class IngestAck(_CamelModel):
    data_id: int = Field(..., alias="dataId")
    received: bool = True


class BatchErrorOut(_CamelModel):
    index: int
    reason: str


class BatchResultOut(_CamelModel):
    total_count: int = Field(..., alias="totalCount")
    success_count: int = Field(..., alias="successCount")
    failed_count: int = Field(..., alias="failedCount")
    errors: List[BatchErrorOut] = Field(default_factory=list)


class MetricRangeOut(_CamelModel):
    min: float
    max: float
    unit: str


class MetricRangeUpdateIn(_CamelModel):
    min: Optional[float] = None
    max: Optional[float] = None
    unit: Optional[str] = Field(None, max_length=20)


class ReadingOut(_CamelModel):
    id: int
    equipment_id: str = Field(..., alias="equipmentId")
    timestamp: datetime
    metric_type: MetricType = Field(..., alias="metricType")
    monitoring_point: Optional[str] = Field(None, alias="monitoringPoint")
    value: float
    unit: str
    quality: DataQuality
    source: DataSource


class ReadingPageOut(_CamelModel):
    items: List[ReadingOut]
    total: int
    page: int
    page_size: int = Field(..., alias="pageSize")
    total_pages: int = Field(..., alias="totalPages")


class ReadingStatisticsOut(_CamelModel):
    metric_type: MetricType = Field(..., alias="metricType")
    count: int
    max_value: float = Field(..., alias="maxValue")
    min_value: float = Field(..., alias="minValue")
    avg_value: float = Field(..., alias="avgValue")
    unit: str
