"""Clasificación de calidad de lecturas."""

from .quality_classifier import QualityCheckInput, QualityCheckResult, QualityClassifier
from .range_config import DEFAULT_RANGES, MetricRange, MetricRangeStore

__all__ = [
    "QualityCheckInput",
    "QualityCheckResult",
    "QualityClassifier",
    "DEFAULT_RANGES",
    "MetricRange",
    "MetricRangeStore",
]
