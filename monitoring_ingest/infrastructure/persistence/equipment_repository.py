"""Lectura de equipos: UUID interno → código externo (device_code)."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ...core.domain.errors import PersistenceError

logger = logging.getLogger(__name__)

_FIND_CODE = text(
    "SELECT device_code FROM equipment "
    "WHERE id = :equipment_id AND deleted_at IS NULL"
)

_FIND_CODES = text(
    "SELECT id, device_code FROM equipment "
    "WHERE id IN :equipment_ids AND deleted_at IS NULL"
).bindparams(bindparam("equipment_ids", expanding=True))


class EquipmentRepository:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def find_device_code(self, equipment_id: str) -> Optional[str]:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(_FIND_CODE, {"equipment_id": equipment_id}).first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Equipment code lookup failed: {e}") from e
        return str(row[0]) if row else None

    def find_device_codes(self, equipment_ids: Iterable[str]) -> Dict[str, str]:
        """Resuelve varios ids en una sola query; los inexistentes se omiten."""
        ids = list(dict.fromkeys(equipment_ids))
        if not ids:
            return {}
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(_FIND_CODES, {"equipment_ids": ids}).fetchall()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Equipment code lookup failed: {e}") from e

        logger.debug("[DB] Equipment codes resolved requested=%d found=%d", len(ids), len(rows))
        return {str(r[0]): str(r[1]) for r in rows}
