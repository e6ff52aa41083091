"""Contrato con el evaluador de umbrales (servicio externo).

La ingesta NO decide si una lectura dispara alarma: solo le pasa la lectura
persistida al evaluador y publica lo que devuelva.

Implementaciones:
- NullAlarmEvaluator: no-op, cuando no hay evaluador configurado.
- HttpAlarmEvaluator: POST JSON al servicio de umbrales.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import requests

from ...core.domain.alarm import Alarm
from ...core.domain.reading import Reading

logger = logging.getLogger(__name__)


class AlarmEvaluator(ABC):
    @abstractmethod
    def evaluate(self, reading: Reading) -> List[Alarm]:
        """Evalúa una lectura persistida y devuelve las alarmas disparadas.

        Puede lanzar: el llamador lo ejecuta dentro de su propio
        límite de errores.
        """

    def close(self) -> None:
        pass


class NullAlarmEvaluator(AlarmEvaluator):
    def evaluate(self, reading: Reading) -> List[Alarm]:
        return []


class HttpAlarmEvaluator(AlarmEvaluator):
    def __init__(
        self,
        url: str,
        timeout_seconds: float = 5.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    def evaluate(self, reading: Reading) -> List[Alarm]:
        payload = {
            "id": reading.id,
            "equipmentId": reading.equipment_id,
            "timestamp": reading.timestamp.isoformat(),
            "metricType": reading.metric_type.value,
            "monitoringPoint": reading.monitoring_point,
            "value": reading.value,
            "unit": reading.unit,
            "quality": reading.quality.value,
            "source": reading.source.value,
        }
        response = self._session.post(self._url, json=payload, timeout=self._timeout)
        response.raise_for_status()

        body = response.json() if response.content else []
        if isinstance(body, dict):
            body = body.get("alarms", [])

        alarms = [Alarm.from_dict(item) for item in body]
        if alarms:
            logger.info(
                "[ALARM] Evaluator triggered %d alarm(s) reading_id=%s equipment_id=%s",
                len(alarms),
                reading.id,
                reading.equipment_id,
            )
        return alarms

    def close(self) -> None:
        self._session.close()


def build_alarm_evaluator(url: Optional[str], timeout_seconds: float = 5.0) -> AlarmEvaluator:
    if not url:
        logger.info("[ALARM] ALARM_EVALUATOR_URL not configured, using NullAlarmEvaluator")
        return NullAlarmEvaluator()
    logger.info("[ALARM] Using HTTP alarm evaluator: %s", url)
    return HttpAlarmEvaluator(url, timeout_seconds=timeout_seconds)
