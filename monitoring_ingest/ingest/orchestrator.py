"""Orquestador de ingesta: una lectura o un lote.

Flujo (una lectura):
  equipo existe? → resolver monitoring point (mismatch = rechazo) →
  unidad (input → punto declarado → canónica) → clasificar calidad →
  persistir → [desacoplado] alarmas + push en tiempo real

Flujo (lote):
  equipo existe? → resolver puntos en bloque (si falla, nombre por nombre,
  siempre antes de abrir la transacción) →
  UNA transacción, SAVEPOINT por fila → BatchResult parcial →
  [desacoplado] barrido de alarmas + push por chunks

La clasificación nunca bloquea la escritura: una lectura inválida se guarda
como ABNORMAL para auditoría. Solo un mismatch del monitoring point impide
persistir.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Union

from ..classification.quality_classifier import QualityClassifier
from ..core.domain.batch import BatchResult, ReadingInput
from ..core.domain.errors import (
    EquipmentNotFoundError,
    IngestError,
    MetricTypeConflictError,
    MonitoringPointNotFoundError,
    PersistenceError,
)
from ..core.domain.monitoring_point import MonitoringPointDescriptor, PointValidation
from ..core.domain.reading import DataSource, Reading, ensure_utc, standard_unit
from ..infrastructure.persistence.reading_repository import ReadingRepository
from ..metrics.ingestion_metrics import BATCHES_INGESTED, READINGS_BY_QUALITY, READINGS_INGESTED
from ..realtime.publisher import RealtimePublisher
from .alarms.evaluator import AlarmEvaluator
from .monitoring_points import MonitoringPointResolver
from .side_effects import DetachedTaskRunner

logger = logging.getLogger(__name__)

# Resultado de resolver un punto antes del lote: validación o fallo de la consulta.
PointLookup = Union[PointValidation, PersistenceError]


class IngestionOrchestrator:
    def __init__(
        self,
        repository: ReadingRepository,
        resolver: MonitoringPointResolver,
        classifier: QualityClassifier,
        alarm_evaluator: AlarmEvaluator,
        publisher: RealtimePublisher,
        runner: DetachedTaskRunner,
    ) -> None:
        self._repository = repository
        self._resolver = resolver
        self._classifier = classifier
        self._alarm_evaluator = alarm_evaluator
        self._publisher = publisher
        self._runner = runner

    # ------------------------------------------------------------------
    # Una lectura
    # ------------------------------------------------------------------

    def ingest_reading(self, equipment_id: str, item: ReadingInput) -> Reading:
        """Persiste una lectura y devuelve la versión con id asignado.

        Raises:
            EquipmentNotFoundError: el equipo no existe.
            MonitoringPointError: punto no declarado o metric_type distinto.
            PersistenceError: fallo de almacenamiento.
        """
        self._require_equipment(equipment_id)

        unit = item.unit
        if item.monitoring_point:
            try:
                descriptor = self._resolver.resolve(
                    equipment_id, item.monitoring_point, item.metric_type
                )
            except IngestError:
                READINGS_INGESTED.labels(path="single", outcome="rejected").inc()
                raise
            if not unit and descriptor.has_unit():
                unit = descriptor.unit
        else:
            logger.info(
                "[INGEST] No monitoringPoint equipment_id=%s metric=%s - alarm matching will be less precise",
                equipment_id,
                item.metric_type.value,
            )

        reading = self._build_reading(equipment_id, item, unit, item.source)

        try:
            stored = self._repository.insert(reading)
        except PersistenceError:
            READINGS_INGESTED.labels(path="single", outcome="failed").inc()
            raise

        READINGS_INGESTED.labels(path="single", outcome="stored").inc()
        READINGS_BY_QUALITY.labels(quality=stored.quality.value).inc()
        logger.debug(
            "[INGEST] Stored reading id=%s equipment_id=%s metric=%s quality=%s",
            stored.id,
            equipment_id,
            stored.metric_type.value,
            stored.quality.value,
        )

        context = _context(stored)
        self._runner.submit("alarm-evaluation", self._evaluate_and_push, stored, context=context)
        self._runner.submit("realtime-push", self._publisher.push_one, stored, context=context)
        return stored

    # ------------------------------------------------------------------
    # Lote
    # ------------------------------------------------------------------

    def ingest_batch(self, equipment_id: str, items: Sequence[ReadingInput]) -> BatchResult:
        """Ingesta un lote con éxito parcial.

        Una fila mala se registra en `errors` y el lote sigue. Si la
        transacción misma falla, ninguna fila es durable y todas se
        reportan fallidas.
        """
        self._require_equipment(equipment_id)

        result = BatchResult(total_count=len(items))
        if not items:
            return result

        points = self._prefetch_points(equipment_id, items)
        saved: List[Reading] = []

        try:
            with self._repository.transaction() as writer:
                for index, item in enumerate(items):
                    try:
                        reading = self._build_batch_reading(equipment_id, item, points)
                        saved.append(writer.insert(reading))
                        result.record_success()
                    except (IngestError, ValueError) as e:
                        result.record_failure(index, str(e))
                        logger.warning(
                            "[INGEST] Batch row failed equipment_id=%s index=%d metric=%s: %s",
                            equipment_id,
                            index,
                            item.metric_type.value,
                            e,
                        )
        except PersistenceError as e:
            BATCHES_INGESTED.labels(outcome="rolled_back").inc()
            READINGS_INGESTED.labels(path="batch", outcome="failed").inc(result.total_count)
            logger.error(
                "[INGEST] Batch rolled back equipment_id=%s rows=%d: %s",
                equipment_id,
                result.total_count,
                e,
            )
            result.mark_all_failed(str(e))
            return result

        BATCHES_INGESTED.labels(outcome="committed").inc()
        if result.success_count:
            READINGS_INGESTED.labels(path="batch", outcome="stored").inc(result.success_count)
        if result.failed_count:
            READINGS_INGESTED.labels(path="batch", outcome="rejected").inc(result.failed_count)
        for reading in saved:
            READINGS_BY_QUALITY.labels(quality=reading.quality.value).inc()

        logger.info(
            "[INGEST] Batch committed equipment_id=%s total=%d success=%d failed=%d",
            equipment_id,
            result.total_count,
            result.success_count,
            result.failed_count,
        )

        if saved:
            context = {"equipment_id": equipment_id, "rows": len(saved)}
            self._runner.submit("batch-alarm-sweep", self._sweep_alarms, saved, context=context)
            self._runner.submit("realtime-batch-push", self._publisher.push_batch, saved, context=context)
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_equipment(self, equipment_id: str) -> None:
        if not self._repository.equipment_exists(equipment_id):
            logger.warning("[INGEST] Equipment not found equipment_id=%s", equipment_id)
            raise EquipmentNotFoundError(equipment_id)

    def _build_reading(
        self,
        equipment_id: str,
        item: ReadingInput,
        unit: Optional[str],
        source: Optional[DataSource],
    ) -> Reading:
        unit = unit or standard_unit(item.metric_type)
        check = self._classifier.classify(item.metric_type, item.value, item.timestamp, unit)
        return Reading(
            equipment_id=equipment_id,
            timestamp=ensure_utc(item.timestamp),
            metric_type=item.metric_type,
            value=item.value,
            unit=unit,
            quality=item.quality or check.quality,
            source=source or DataSource.SENSOR_UPLOAD,
            monitoring_point=item.monitoring_point or None,
        )

    def _prefetch_points(
        self,
        equipment_id: str,
        items: Sequence[ReadingInput],
    ) -> Dict[str, PointLookup]:
        """Resuelve todos los puntos distintos antes de abrir la transacción.

        Si la consulta en bloque falla se resuelve nombre por nombre. Un fallo
        de esa consulta queda guardado y se reporta en las filas que usan el
        punto; nunca se consulta con la transacción del lote abierta.
        """
        names = sorted({i.monitoring_point for i in items if i.monitoring_point})
        if not names:
            return {}
        try:
            validations = self._resolver.resolve_many(equipment_id, names)
        except PersistenceError as e:
            logger.warning(
                "[INGEST] Batch point resolution failed equipment_id=%s, resolving per point: %s",
                equipment_id,
                e,
            )
            return {name: self._lookup_point(equipment_id, name) for name in names}
        return {v.point_name: v for v in validations}

    def _lookup_point(self, equipment_id: str, name: str) -> PointLookup:
        try:
            descriptor = self._resolver.resolve(equipment_id, name)
        except MonitoringPointNotFoundError:
            return PointValidation(point_name=name, is_valid=False)
        except PersistenceError as e:
            return e
        return PointValidation(point_name=name, is_valid=True, descriptor=descriptor)

    def _build_batch_reading(
        self,
        equipment_id: str,
        item: ReadingInput,
        points: Dict[str, PointLookup],
    ) -> Reading:
        unit = item.unit
        if item.monitoring_point:
            descriptor = self._point_for_row(equipment_id, item, points)
            if not unit and descriptor.has_unit():
                unit = descriptor.unit
        # En lote el origen es siempre el sensor.
        return self._build_reading(equipment_id, item, unit, DataSource.SENSOR_UPLOAD)

    def _point_for_row(
        self,
        equipment_id: str,
        item: ReadingInput,
        points: Dict[str, PointLookup],
    ) -> MonitoringPointDescriptor:
        name = item.monitoring_point or ""
        lookup = points.get(name)
        if isinstance(lookup, PersistenceError):
            raise PersistenceError(str(lookup)) from lookup
        if lookup is None or not lookup.is_valid or lookup.descriptor is None:
            raise MonitoringPointNotFoundError(equipment_id, name)

        descriptor = lookup.descriptor
        if descriptor.metric_type != item.metric_type:
            raise MetricTypeConflictError(
                name,
                expected=item.metric_type.value,
                declared=descriptor.metric_type.value,
            )
        return descriptor

    def _evaluate_and_push(self, reading: Reading) -> None:
        alarms = self._alarm_evaluator.evaluate(reading)
        for alarm in alarms:
            self._publisher.push_alarm(alarm)

    def _sweep_alarms(self, readings: Sequence[Reading]) -> None:
        triggered = 0
        failed = 0
        for reading in readings:
            try:
                alarms = self._alarm_evaluator.evaluate(reading)
            except Exception as e:
                failed += 1
                logger.warning(
                    "[ALARM] Evaluation failed reading_id=%s equipment_id=%s metric=%s: %s",
                    reading.id,
                    reading.equipment_id,
                    reading.metric_type.value,
                    e,
                )
                continue
            for alarm in alarms:
                triggered += 1
                self._publisher.push_alarm(alarm)

        logger.info(
            "[ALARM] Batch sweep done evaluated=%d triggered=%d failed=%d",
            len(readings) - failed,
            triggered,
            failed,
        )


def _context(reading: Reading) -> dict:
    return {
        "reading_id": reading.id,
        "equipment_id": reading.equipment_id,
        "metric": reading.metric_type.value,
        "monitoring_point": reading.monitoring_point,
    }
