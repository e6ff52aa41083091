"""Caché UUID de equipo → código externo (device_code).

Los suscriptores se unen a la sala por código de equipo, no por UUID, así
que cada push necesita traducir. Hot path O(1) en memoria con TTL; los
misses se resuelven en bloque con una sola query. `resolve_many` barre las
entradas vencidas como mucho una vez por `PURGE_INTERVAL_SECONDS`.

Sin locks: las escrituras son idempotentes (último en escribir gana) y dos
misses concurrentes del mismo id pueden consultar la BD los dos.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Iterable, Optional, Tuple

from ..infrastructure.persistence.equipment_repository import EquipmentRepository

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600
PURGE_INTERVAL_SECONDS = 60


class EquipmentCodeCache:
    def __init__(
        self,
        repository: EquipmentRepository,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._repository = repository
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._hits = 0
        self._misses = 0
        self._next_purge = clock() + PURGE_INTERVAL_SECONDS

    def lookup(self, equipment_id: str) -> Optional[str]:
        """Solo memoria: None en miss (el llamador resuelve en bloque)."""
        entry = self._entries.get(equipment_id)
        if entry is None:
            self._misses += 1
            return None

        code, expires_at = entry
        if expires_at <= self._clock():
            self._entries.pop(equipment_id, None)
            self._misses += 1
            return None

        self._hits += 1
        return code

    def resolve_many(self, equipment_ids: Iterable[str]) -> Dict[str, str]:
        """Traduce varios ids; los que no existen se omiten del resultado."""
        if self._clock() >= self._next_purge:
            self.purge_expired()

        result: Dict[str, str] = {}
        missing = []
        for equipment_id in dict.fromkeys(equipment_ids):
            code = self.lookup(equipment_id)
            if code is None:
                missing.append(equipment_id)
            else:
                result[equipment_id] = code

        if not missing:
            return result

        found = self._repository.find_device_codes(missing)
        for equipment_id, code in found.items():
            self._store(equipment_id, code)
            result[equipment_id] = code

        logger.debug(
            "[CACHE] resolve_many hits=%d queried=%d found=%d",
            len(result) - len(found),
            len(missing),
            len(found),
        )
        return result

    def resolve_one(self, equipment_id: str) -> Optional[str]:
        code = self.lookup(equipment_id)
        if code is not None:
            return code

        code = self._repository.find_device_code(equipment_id)
        if code is not None:
            self._store(equipment_id, code)
        return code

    def purge_expired(self) -> int:
        """Elimina las entradas vencidas y devuelve cuántas había."""
        now = self._clock()
        self._next_purge = now + PURGE_INTERVAL_SECONDS
        expired = [k for k, (_, expires_at) in list(self._entries.items()) if expires_at <= now]
        for equipment_id in expired:
            self._entries.pop(equipment_id, None)
        if expired:
            logger.debug("[CACHE] Purged %d expired entries", len(expired))
        return len(expired)

    def invalidate(self, equipment_id: str) -> None:
        self._entries.pop(equipment_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict:
        return {"size": len(self._entries), "hits": self._hits, "misses": self._misses}

    def _store(self, equipment_id: str, code: str) -> None:
        self._entries[equipment_id] = (code, self._clock() + self._ttl)
