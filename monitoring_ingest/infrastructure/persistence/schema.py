"""Esquema de tablas del servicio de monitoreo.

- equipment: registro de equipos (propiedad de gestión de equipos; aquí
  solo se lee id → device_code).
- monitoring_points: puntos declarados por equipo.
- time_series_data: lecturas ingestadas (solo append).

`ensure_schema` es idempotente; se puede llamar en cada arranque.
"""

from __future__ import annotations

import logging

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    func,
)
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()

equipment = Table(
    "equipment",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("device_code", String(50), nullable=False, unique=True),
    Column("name", String(100), nullable=False),
    Column("deleted_at", DateTime(timezone=True), nullable=True),
)

monitoring_points = Table(
    "monitoring_points",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("equipment_id", String(36), ForeignKey("equipment.id"), nullable=False),
    Column("point_name", String(100), nullable=False),
    Column("metric_type", String(20), nullable=False),
    Column("unit", String(20), nullable=True),
    UniqueConstraint("equipment_id", "point_name", name="uq_monitoring_points_equipment_point"),
)

time_series_data = Table(
    "time_series_data",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("equipment_id", String(36), ForeignKey("equipment.id"), nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Column("metric_type", String(20), nullable=False),
    Column("monitoring_point", String(100), nullable=True),
    Column("value", Float, nullable=False),
    Column("unit", String(20), nullable=False),
    Column("quality", String(20), nullable=False),
    Column("source", String(20), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Index("ix_time_series_equipment_metric_ts", "equipment_id", "metric_type", "timestamp"),
)


def ensure_schema(engine: Engine) -> None:
    """Crea las tablas si no existen."""
    logger.info("[DB] Ensuring monitoring schema exists")
    try:
        metadata.create_all(engine, checkfirst=True)
    except Exception as e:
        logger.exception("[DB] Schema creation failed: %s", e)
        raise
