"""Publicador en tiempo real de lecturas y alarmas.

Eventos por sala `equipment:{code}`:

- `monitoring:new-data`  → una lectura (9 campos fijos)
- `monitoring:batch-data` → lote troceado en chunks de tamaño fijo
- `alarm:push`           → alarma disparada por el evaluador

Best-effort: nada de aquí lanza hacia el llamador. Si el equipo no se
puede traducir a código, el push se descarta con un log.
"""

from __future__ import annotations

import logging
import math
import time
import uuid
from typing import Callable, Dict, List, Optional, Sequence

from ..core.domain.alarm import Alarm
from ..core.domain.reading import Reading
from ..metrics.ingestion_metrics import REALTIME_DROPPED, REALTIME_MESSAGES
from .gateway import ChannelGateway
from .identifier_cache import EquipmentCodeCache

logger = logging.getLogger(__name__)

EVENT_NEW_DATA = "monitoring:new-data"
EVENT_BATCH_DATA = "monitoring:batch-data"
EVENT_ALARM = "alarm:push"

DEFAULT_CHUNK_SIZE = 100
DEFAULT_CHUNK_DELAY_SECONDS = 0.01


class RealtimePublisher:
    def __init__(
        self,
        gateway: ChannelGateway,
        cache: EquipmentCodeCache,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_delay_seconds: float = DEFAULT_CHUNK_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self._gateway = gateway
        self._cache = cache
        self._chunk_size = chunk_size
        self._chunk_delay = chunk_delay_seconds
        self._sleep = sleep

    def push_one(self, reading: Reading) -> bool:
        code = self._translate_one(reading.equipment_id, EVENT_NEW_DATA)
        if code is None:
            return False
        return self._send(code, EVENT_NEW_DATA, reading.to_message(code))

    def push_alarm(self, alarm: Alarm) -> bool:
        code = self._translate_one(alarm.equipment_id, EVENT_ALARM)
        if code is None:
            return False
        sent = self._send(code, EVENT_ALARM, alarm.to_message(code))
        if sent:
            logger.info(
                "[PUSH] Alarm pushed alarm_id=%s equipment=%s severity=%s",
                alarm.id,
                code,
                alarm.severity,
            )
        return sent

    def push_batch(self, readings: Sequence[Reading]) -> int:
        """Empuja un lote agrupado por equipo. Devuelve la cantidad de chunks enviados.

        Chunks de un mismo equipo salen en serie, en orden de índice, con
        una pausa corta entre uno y otro (no después del último).
        """
        if not readings:
            return 0

        groups: Dict[str, List[Reading]] = {}
        for reading in readings:
            groups.setdefault(reading.equipment_id, []).append(reading)

        try:
            codes = self._cache.resolve_many(list(groups))
        except Exception as e:
            REALTIME_DROPPED.labels(reason="lookup_failed").inc(len(groups))
            logger.warning("[PUSH] Batch equipment lookup failed, dropping push: %s", e)
            return 0

        batch_id = str(uuid.uuid4())
        sent_chunks = 0

        for equipment_id, group in groups.items():
            code = codes.get(equipment_id)
            if code is None:
                REALTIME_DROPPED.labels(reason="unknown_equipment").inc()
                logger.warning(
                    "[PUSH] Skipping batch push, equipment not found equipment_id=%s rows=%d",
                    equipment_id,
                    len(group),
                )
                continue

            is_history = group[0].is_history
            total_chunks = math.ceil(len(group) / self._chunk_size)

            for index in range(total_chunks):
                chunk = group[index * self._chunk_size:(index + 1) * self._chunk_size]
                payload = {
                    "batchId": batch_id,
                    "equipmentId": code,
                    "data": [r.to_message(code) for r in chunk],
                    "chunkIndex": index + 1,
                    "totalChunks": total_chunks,
                    "isHistory": is_history,
                }
                if self._send(code, EVENT_BATCH_DATA, payload):
                    sent_chunks += 1

                if index + 1 < total_chunks and self._chunk_delay > 0:
                    self._sleep(self._chunk_delay)

            logger.info(
                "[PUSH] Batch pushed batch_id=%s equipment=%s rows=%d chunks=%d history=%s",
                batch_id,
                code,
                len(group),
                total_chunks,
                is_history,
            )

        return sent_chunks

    def _translate_one(self, equipment_id: str, event: str) -> Optional[str]:
        try:
            code = self._cache.resolve_one(equipment_id)
        except Exception as e:
            REALTIME_DROPPED.labels(reason="lookup_failed").inc()
            logger.warning(
                "[PUSH] Equipment lookup failed, dropping event=%s equipment_id=%s: %s",
                event,
                equipment_id,
                e,
            )
            return None

        if code is None:
            REALTIME_DROPPED.labels(reason="unknown_equipment").inc()
            logger.warning(
                "[PUSH] Equipment not found, dropping event=%s equipment_id=%s",
                event,
                equipment_id,
            )
        return code

    def _send(self, code: str, event: str, payload: dict) -> bool:
        try:
            self._gateway.send_to_equipment(code, event, payload)
        except Exception as e:
            REALTIME_DROPPED.labels(reason="send_failed").inc()
            logger.warning("[PUSH] Send failed event=%s equipment=%s: %s", event, code, e)
            return False
        REALTIME_MESSAGES.labels(event=event).inc()
        return True
