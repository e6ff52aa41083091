"""Persistence infrastructure (SQLAlchemy Core)."""

from .equipment_repository import EquipmentRepository
from .reading_repository import BatchWriter, ReadingRepository
from .schema import ensure_schema, metadata

__all__ = [
    "BatchWriter",
    "EquipmentRepository",
    "ReadingRepository",
    "ensure_schema",
    "metadata",
]
