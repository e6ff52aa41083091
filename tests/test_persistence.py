"""Tests de persistencia SQL: repositorios, savepoints y resolución de puntos."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from monitoring_ingest.core.domain import (
    MetricType,
    MetricTypeConflictError,
    MonitoringPointNotFoundError,
    PersistenceError,
)
from monitoring_ingest.infrastructure.persistence import (
    EquipmentRepository,
    ReadingRepository,
    ensure_schema,
)
from monitoring_ingest.ingest import MonitoringPointResolver

from tests.factories import (
    DELETED_EQUIPMENT_ID,
    EQUIPMENT_CODE,
    EQUIPMENT_ID,
    UNKNOWN_EQUIPMENT_ID,
    count_rows,
    make_reading,
)


def _unsaved(**overrides):
    return dataclasses.replace(make_reading(), id=None, **overrides)


class TestReadingRepository:
    def test_equipment_exists_skips_soft_deleted(self, seeded_engine):
        repo = ReadingRepository(seeded_engine)

        assert repo.equipment_exists(EQUIPMENT_ID) is True
        assert repo.equipment_exists(DELETED_EQUIPMENT_ID) is False
        assert repo.equipment_exists(UNKNOWN_EQUIPMENT_ID) is False

    def test_insert_assigns_id_and_stores_row(self, seeded_engine):
        repo = ReadingRepository(seeded_engine)

        first = repo.insert(_unsaved())
        second = repo.insert(_unsaved(value=43.0))

        assert first.id is not None
        assert second.id > first.id
        with seeded_engine.connect() as conn:
            row = conn.execute(
                text("SELECT metric_type, value, unit, quality, source, monitoring_point "
                     "FROM time_series_data WHERE id = :id"),
                {"id": first.id},
            ).one()
        assert tuple(row) == ("temperature", 42.0, "°C", "normal", "sensor-upload", "coolant")

    def test_insert_failure_is_wrapped(self, seeded_engine):
        repo = ReadingRepository(seeded_engine)

        with pytest.raises(PersistenceError):
            repo.insert(_unsaved(unit=None))

    def test_batch_row_failure_does_not_poison_transaction(self, seeded_engine):
        repo = ReadingRepository(seeded_engine)
        stored = []

        with repo.transaction() as writer:
            stored.append(writer.insert(_unsaved(value=1.0)))
            with pytest.raises(PersistenceError):
                writer.insert(_unsaved(unit=None))
            stored.append(writer.insert(_unsaved(value=3.0)))

        assert [r.value for r in stored] == [1.0, 3.0]
        assert count_rows(seeded_engine) == 2

    def test_batch_transaction_rolls_back_on_escape(self, seeded_engine):
        repo = ReadingRepository(seeded_engine)

        with pytest.raises(RuntimeError):
            with repo.transaction() as writer:
                writer.insert(_unsaved())
                raise RuntimeError("boom")

        assert count_rows(seeded_engine) == 0

    def test_lost_connection_aborts_batch(self):
        error = OperationalError("INSERT", {}, Exception("server closed the connection"))
        error.connection_invalidated = True
        conn = MagicMock()
        conn.execute.side_effect = error
        engine = MagicMock()
        engine.begin.return_value.__enter__.return_value = conn

        repo = ReadingRepository(engine)
        with pytest.raises(PersistenceError, match="Batch transaction failed"):
            with repo.transaction() as writer:
                writer.insert(_unsaved())


class TestEquipmentRepository:
    def test_find_device_code(self, seeded_engine):
        repo = EquipmentRepository(seeded_engine)

        assert repo.find_device_code(EQUIPMENT_ID) == EQUIPMENT_CODE
        assert repo.find_device_code(DELETED_EQUIPMENT_ID) is None

    def test_find_device_codes_single_query(self, seeded_engine):
        repo = EquipmentRepository(seeded_engine)

        codes = repo.find_device_codes([EQUIPMENT_ID, UNKNOWN_EQUIPMENT_ID, EQUIPMENT_ID])

        assert codes == {EQUIPMENT_ID: EQUIPMENT_CODE}
        assert repo.find_device_codes([]) == {}


class TestMonitoringPointResolver:
    def test_resolve_declared_point(self, seeded_engine):
        resolver = MonitoringPointResolver(seeded_engine)

        descriptor = resolver.resolve(EQUIPMENT_ID, "coolant", MetricType.TEMPERATURE)

        assert descriptor.metric_type is MetricType.TEMPERATURE
        assert descriptor.unit == "°C"
        assert descriptor.has_unit()

    def test_resolve_without_expected_type(self, seeded_engine):
        resolver = MonitoringPointResolver(seeded_engine)

        descriptor = resolver.resolve(EQUIPMENT_ID, "exhaust")

        assert descriptor.has_unit() is False

    def test_undeclared_point(self, seeded_engine):
        resolver = MonitoringPointResolver(seeded_engine)

        with pytest.raises(MonitoringPointNotFoundError, match="ghost"):
            resolver.resolve(EQUIPMENT_ID, "ghost", MetricType.TEMPERATURE)

    def test_metric_type_mismatch_names_both_types(self, seeded_engine):
        resolver = MonitoringPointResolver(seeded_engine)

        with pytest.raises(MetricTypeConflictError) as exc_info:
            resolver.resolve(EQUIPMENT_ID, "coolant", MetricType.VIBRATION)

        message = str(exc_info.value)
        assert "expected vibration" in message
        assert "declared temperature" in message

    def test_resolve_many_keeps_order_and_collapses_duplicates(self, seeded_engine):
        resolver = MonitoringPointResolver(seeded_engine)

        results = resolver.resolve_many(EQUIPMENT_ID, ["bearing", "ghost", "coolant", "bearing", ""])

        assert [r.point_name for r in results] == ["bearing", "ghost", "coolant"]
        assert [r.is_valid for r in results] == [True, False, True]
        assert results[0].descriptor.metric_type is MetricType.VIBRATION
        assert results[1].descriptor is None

    def test_points_are_scoped_to_equipment(self, seeded_engine):
        resolver = MonitoringPointResolver(seeded_engine)

        results = resolver.resolve_many(UNKNOWN_EQUIPMENT_ID, ["coolant"])

        assert results[0].is_valid is False


def test_ensure_schema_is_idempotent(engine):
    ensure_schema(engine)
    ensure_schema(engine)

    with engine.connect() as conn:
        conn.execute(text("SELECT COUNT(*) FROM monitoring_points")).scalar_one()


def test_stored_timestamp_round_trips(seeded_engine):
    repo = ReadingRepository(seeded_engine)
    ts = datetime(2026, 10, 18, 8, 30, 15, tzinfo=timezone.utc)

    stored = repo.insert(_unsaved(timestamp=ts))

    with seeded_engine.connect() as conn:
        raw = conn.execute(
            text("SELECT timestamp FROM time_series_data WHERE id = :id"), {"id": stored.id}
        ).scalar_one()
    assert str(raw).startswith("2026-10-18 08:30:15")
