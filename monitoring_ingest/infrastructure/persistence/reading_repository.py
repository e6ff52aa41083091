"""Persistencia de lecturas en time_series_data.

Dos modos de escritura:

- `insert(reading)`: transacción propia, para el camino de una lectura.
- `transaction()`: una transacción para todo un lote. Cada `insert` del
  `BatchWriter` corre dentro de un SAVEPOINT; si la fila falla se hace
  rollback solo de ese savepoint y la transacción sigue usable.

Lectura: `find_page(query)` pagina de la más reciente a la más antigua y
`statistics(...)` agrega count/max/min/avg de una métrica en un rango.

Los errores de SQLAlchemy se traducen a PersistenceError.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from ...core.domain.errors import PersistenceError
from ...core.domain.query import ReadingPage, ReadingQuery, ReadingStatistics
from ...core.domain.reading import DataQuality, DataSource, MetricType, Reading, ensure_utc

logger = logging.getLogger(__name__)

_INSERT_READING = text(
    """
    INSERT INTO time_series_data
        (equipment_id, timestamp, metric_type, monitoring_point,
         value, unit, quality, source, created_at)
    VALUES
        (:equipment_id, :timestamp, :metric_type, :monitoring_point,
         :value, :unit, :quality, :source, :created_at)
    RETURNING id
    """
).bindparams(
    bindparam("timestamp", type_=DateTime(timezone=True)),
    bindparam("created_at", type_=DateTime(timezone=True)),
)

_EQUIPMENT_EXISTS = text(
    "SELECT 1 FROM equipment WHERE id = :equipment_id AND deleted_at IS NULL"
)

_READING_COLUMNS = (
    "id, equipment_id, timestamp, metric_type, monitoring_point, "
    "value, unit, quality, source"
)

_STATISTICS = text(
    """
    SELECT COUNT(id) AS reading_count, MAX(value) AS max_value, MIN(value) AS min_value,
           AVG(value) AS avg_value, unit
    FROM time_series_data
    WHERE equipment_id = :equipment_id
      AND metric_type = :metric_type
      AND timestamp BETWEEN :start_time AND :end_time
    GROUP BY unit
    ORDER BY COUNT(id) DESC, unit
    LIMIT 1
    """
).bindparams(
    bindparam("start_time", type_=DateTime(timezone=True)),
    bindparam("end_time", type_=DateTime(timezone=True)),
)


def _reading_params(reading: Reading) -> dict:
    return {
        "equipment_id": reading.equipment_id,
        "timestamp": ensure_utc(reading.timestamp),
        "metric_type": reading.metric_type.value,
        "monitoring_point": reading.monitoring_point,
        "value": float(reading.value),
        "unit": reading.unit,
        "quality": reading.quality.value,
        "source": reading.source.value,
        "created_at": datetime.now(timezone.utc),
    }


def _describe(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def _filter_clause(query: ReadingQuery) -> tuple:
    """WHERE y parámetros del filtro; metric_type y punto solo si vienen."""
    conditions = [
        "equipment_id = :equipment_id",
        "timestamp >= :start_time",
        "timestamp <= :end_time",
    ]
    params = {
        "equipment_id": query.equipment_id,
        "start_time": ensure_utc(query.start_time),
        "end_time": ensure_utc(query.end_time),
    }
    if query.metric_type is not None:
        conditions.append("metric_type = :metric_type")
        params["metric_type"] = query.metric_type.value
    if query.monitoring_point:
        conditions.append("monitoring_point = :monitoring_point")
        params["monitoring_point"] = query.monitoring_point
    return " AND ".join(conditions), params


def _typed(sql: str):  # type: ignore[no-untyped-def]
    return text(sql).bindparams(
        bindparam("start_time", type_=DateTime(timezone=True)),
        bindparam("end_time", type_=DateTime(timezone=True)),
    )


def _row_to_reading(row) -> Reading:  # type: ignore[no-untyped-def]
    return Reading(
        id=int(row.id),
        equipment_id=str(row.equipment_id),
        timestamp=ensure_utc(row.timestamp),
        metric_type=MetricType(row.metric_type),
        value=float(row.value),
        unit=str(row.unit),
        quality=DataQuality(row.quality),
        source=DataSource(row.source),
        monitoring_point=row.monitoring_point,
    )


class BatchWriter:
    """Escritor de filas dentro de una transacción de lote abierta."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn
        self.inserted = 0

    def insert(self, reading: Reading) -> Reading:
        try:
            with self._conn.begin_nested():
                new_id = self._conn.execute(_INSERT_READING, _reading_params(reading)).scalar_one()
        except DBAPIError as e:
            if e.connection_invalidated:
                # Conexión perdida: no es un error de fila, aborta el lote.
                raise
            raise PersistenceError(f"Failed to store reading: {_describe(e)}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to store reading: {_describe(e)}") from e

        self.inserted += 1
        return reading.with_id(new_id)


class ReadingRepository:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def equipment_exists(self, equipment_id: str) -> bool:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(_EQUIPMENT_EXISTS, {"equipment_id": equipment_id}).first()
        except SQLAlchemyError as e:
            logger.exception("[DB] Equipment lookup failed equipment_id=%s", equipment_id)
            raise PersistenceError(f"Equipment lookup failed: {_describe(e)}") from e
        return row is not None

    def insert(self, reading: Reading) -> Reading:
        try:
            with self._engine.begin() as conn:
                new_id = conn.execute(_INSERT_READING, _reading_params(reading)).scalar_one()
        except SQLAlchemyError as e:
            logger.exception(
                "[DB] Insert failed equipment_id=%s metric=%s",
                reading.equipment_id,
                reading.metric_type.value,
            )
            raise PersistenceError(f"Failed to store reading: {_describe(e)}") from e
        return reading.with_id(new_id)

    @contextmanager
    def transaction(self) -> Iterator[BatchWriter]:
        """Transacción de lote: commit al salir, rollback si algo escapa."""
        try:
            with self._engine.begin() as conn:
                writer = BatchWriter(conn)
                yield writer
        except SQLAlchemyError as e:
            logger.exception("[DB] Batch transaction failed, rolled back")
            raise PersistenceError(f"Batch transaction failed: {_describe(e)}") from e
        logger.debug("[DB] Batch transaction committed rows=%d", writer.inserted)

    def find_page(self, query: ReadingQuery) -> ReadingPage:
        where, params = _filter_clause(query)
        count_sql = _typed(f"SELECT COUNT(id) FROM time_series_data WHERE {where}")
        page_sql = _typed(
            f"SELECT {_READING_COLUMNS} FROM time_series_data WHERE {where} "
            "ORDER BY timestamp DESC, id DESC LIMIT :limit OFFSET :offset"
        ).columns(timestamp=DateTime(timezone=True))
        try:
            with self._engine.connect() as conn:
                total = int(conn.execute(count_sql, params).scalar_one())
                rows = conn.execute(
                    page_sql,
                    {**params, "limit": query.page_size, "offset": query.offset},
                ).fetchall()
        except SQLAlchemyError as e:
            logger.exception("[DB] Reading query failed equipment_id=%s", query.equipment_id)
            raise PersistenceError(f"Reading query failed: {_describe(e)}") from e

        return ReadingPage(
            items=[_row_to_reading(r) for r in rows],
            total=total,
            page=query.page,
            page_size=query.page_size,
        )

    def statistics(
        self,
        equipment_id: str,
        metric_type: MetricType,
        start_time: datetime,
        end_time: datetime,
    ) -> Optional[ReadingStatistics]:
        """Agregado de la unidad con más lecturas en el rango; None si no hay datos."""
        try:
            with self._engine.connect() as conn:
                row = conn.execute(
                    _STATISTICS,
                    {
                        "equipment_id": equipment_id,
                        "metric_type": metric_type.value,
                        "start_time": ensure_utc(start_time),
                        "end_time": ensure_utc(end_time),
                    },
                ).first()
        except SQLAlchemyError as e:
            logger.exception("[DB] Statistics query failed equipment_id=%s", equipment_id)
            raise PersistenceError(f"Statistics query failed: {_describe(e)}") from e

        if row is None or not row.reading_count:
            return None
        return ReadingStatistics(
            metric_type=metric_type,
            count=int(row.reading_count),
            max_value=float(row.max_value),
            min_value=float(row.min_value),
            avg_value=float(row.avg_value),
            unit=str(row.unit),
        )
