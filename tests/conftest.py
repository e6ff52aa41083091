"""Fixtures compartidas: engine SQLite en memoria con datos de ejemplo."""

from __future__ import annotations

from typing import Iterator

import pytest
from sqlalchemy import text
from sqlalchemy.engine import Engine

from common.config import Settings
from common.db import create_db_engine
from monitoring_ingest.infrastructure.persistence import ensure_schema

from tests.factories import DELETED_EQUIPMENT_ID, EQUIPMENT_CODE, EQUIPMENT_ID


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite:///:memory:",
        redis_url="redis://localhost:6379/0",
        realtime_redis_enabled=False,
        push_batch_chunk_size=100,
        push_chunk_delay_ms=0,
        equipment_cache_ttl_seconds=3600,
        side_effect_workers=2,
        alarm_evaluator_url=None,
        alarm_evaluator_timeout_seconds=1.0,
        log_level="DEBUG",
        debug_errors=True,
    )


@pytest.fixture
def engine() -> Iterator[Engine]:
    eng = create_db_engine("sqlite:///:memory:")
    ensure_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def seeded_engine(engine: Engine) -> Engine:
    """Equipo con puntos: coolant (temperature, °C), bearing (vibration, mm/s),
    exhaust (temperature, sin unidad). Más un equipo dado de baja."""
    with engine.begin() as conn:
        conn.execute(
            text("INSERT INTO equipment (id, device_code, name) VALUES (:id, :code, :name)"),
            [
                {"id": EQUIPMENT_ID, "code": EQUIPMENT_CODE, "name": "Main engine"},
            ],
        )
        conn.execute(
            text(
                "INSERT INTO equipment (id, device_code, name, deleted_at) "
                "VALUES (:id, :code, :name, :deleted_at)"
            ),
            {
                "id": DELETED_EQUIPMENT_ID,
                "code": "SHIP-OLD-PUMP",
                "name": "Retired pump",
                "deleted_at": "2025-01-01 00:00:00",
            },
        )
        conn.execute(
            text(
                "INSERT INTO monitoring_points (equipment_id, point_name, metric_type, unit) "
                "VALUES (:equipment_id, :point_name, :metric_type, :unit)"
            ),
            [
                {"equipment_id": EQUIPMENT_ID, "point_name": "coolant", "metric_type": "temperature", "unit": "°C"},
                {"equipment_id": EQUIPMENT_ID, "point_name": "bearing", "metric_type": "vibration", "unit": "mm/s"},
                {"equipment_id": EQUIPMENT_ID, "point_name": "exhaust", "metric_type": "temperature", "unit": None},
            ],
        )
    return engine
