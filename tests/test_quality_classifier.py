"""Tests del clasificador de calidad."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone

import pytest

from monitoring_ingest.classification import (
    MetricRangeStore,
    QualityCheckInput,
    QualityClassifier,
)
from monitoring_ingest.core.domain import DataQuality, MetricType

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def classifier() -> QualityClassifier:
    return QualityClassifier(MetricRangeStore())


def _classify(classifier, value, *, metric=MetricType.TEMPERATURE, ts=NOW, unit=None):
    return classifier.classify(metric, value, ts, unit, now=NOW)


def test_in_range_value_is_normal(classifier):
    result = _classify(classifier, 75.5, unit="°C")

    assert result.valid is True
    assert result.quality is DataQuality.NORMAL
    assert result.warnings == []
    assert result.errors == []


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_non_finite_value_short_circuits(classifier, value):
    # Timestamp futuro y unidad incorrecta: no deben evaluarse.
    result = _classify(classifier, value, ts=NOW + timedelta(days=1), unit="°F")

    assert result.valid is False
    assert result.quality is DataQuality.ABNORMAL
    assert len(result.errors) == 1
    assert "invalid numeric value" in result.errors[0]
    assert result.warnings == []


def test_out_of_range_is_abnormal(classifier):
    result = _classify(classifier, 250.0)

    assert result.valid is False
    assert result.quality is DataQuality.ABNORMAL
    assert "value out of range" in result.errors[0]


@pytest.mark.parametrize("value", [-45.0, 195.0])
def test_boundary_band_is_suspicious(classifier, value):
    # temperature -50..200: franja de 12.5 en cada extremo
    result = _classify(classifier, value)

    assert result.valid is True
    assert result.quality is DataQuality.SUSPICIOUS
    assert any("value near boundary" in w for w in result.warnings)


def test_range_limits_are_inclusive(classifier):
    result = _classify(classifier, 200.0)

    assert result.valid is True
    assert result.quality is DataQuality.SUSPICIOUS


def test_two_hours_old_is_possible_backfill(classifier):
    result = _classify(classifier, 75.5, ts=NOW - timedelta(hours=2))

    assert result.valid is True
    assert result.quality is DataQuality.SUSPICIOUS
    assert any("possible backfill" in w for w in result.warnings)


def test_six_minutes_in_future_is_invalid(classifier):
    result = _classify(classifier, 75.5, ts=NOW + timedelta(minutes=6))

    assert result.valid is False
    assert result.quality is DataQuality.ABNORMAL
    assert any("timestamp in future" in e for e in result.errors)


def test_small_clock_skew_is_tolerated(classifier):
    result = _classify(classifier, 75.5, ts=NOW + timedelta(minutes=4))

    assert result.quality is DataQuality.NORMAL


def test_older_than_a_year_is_invalid(classifier):
    result = _classify(classifier, 75.5, ts=NOW - timedelta(days=400))

    assert result.valid is False
    assert any("timestamp too old" in e for e in result.errors)
    assert not any("possible backfill" in w for w in result.warnings)


def test_unit_mismatch_only_warns(classifier):
    result = _classify(classifier, 75.5, unit="°F")

    assert result.valid is True
    assert result.quality is DataQuality.SUSPICIOUS
    assert any("unit mismatch" in w for w in result.warnings)


def test_switch_has_empty_canonical_unit(classifier):
    result = _classify(classifier, 0.5, metric=MetricType.SWITCH, unit="")

    assert result.quality is DataQuality.NORMAL


def test_naive_timestamp_is_treated_as_utc(classifier):
    result = _classify(classifier, 75.5, ts=NOW.replace(tzinfo=None))

    assert result.quality is DataQuality.NORMAL


def test_errors_and_warnings_accumulate(classifier):
    result = _classify(classifier, 250.0, ts=NOW - timedelta(hours=3), unit="K")

    assert result.quality is DataQuality.ABNORMAL
    assert len(result.errors) == 1
    assert len(result.warnings) == 2


def test_classifier_sees_range_updates():
    store = MetricRangeStore()
    classifier = QualityClassifier(store)
    assert _classify(classifier, 75.5).quality is DataQuality.NORMAL

    store.update(MetricType.TEMPERATURE, max_value=80)

    # -50..80: franja de 6.5, 75.5 queda cerca del máximo
    assert _classify(classifier, 75.5).quality is DataQuality.SUSPICIOUS


def test_classify_many_keeps_order(classifier):
    items = [
        QualityCheckInput(MetricType.TEMPERATURE, 75.5, NOW),
        QualityCheckInput(MetricType.VIBRATION, 500.0, NOW),
        QualityCheckInput(MetricType.PRESSURE, 25.0, NOW - timedelta(hours=2)),
    ]

    results = classifier.classify_many(items, now=NOW)

    assert [r.quality for r in results] == [
        DataQuality.NORMAL,
        DataQuality.ABNORMAL,
        DataQuality.SUSPICIOUS,
    ]


def test_non_normal_result_is_logged(classifier, caplog):
    with caplog.at_level(logging.WARNING, logger="monitoring_ingest.classification.quality_classifier"):
        _classify(classifier, 250.0)
        _classify(classifier, 75.5)

    records = [r for r in caplog.records if "[QUALITY]" in r.getMessage()]
    assert len(records) == 1
    assert "abnormal" in records[0].getMessage()
