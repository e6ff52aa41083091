"""Construcción y cableado de los servicios de ingesta.

Un contenedor por proceso, creado en el lifespan de la app y guardado en
`app.state.container`. Los tests construyen el suyo con un engine SQLite
en memoria y colaboradores de prueba.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from common.config import Settings
from common.db import create_db_engine

from .classification.quality_classifier import QualityClassifier
from .classification.range_config import MetricRangeStore
from .infrastructure.persistence.equipment_repository import EquipmentRepository
from .infrastructure.persistence.reading_repository import ReadingRepository
from .infrastructure.persistence.schema import ensure_schema
from .ingest.alarms.evaluator import AlarmEvaluator, build_alarm_evaluator
from .ingest.monitoring_points import MonitoringPointResolver
from .ingest.orchestrator import IngestionOrchestrator
from .ingest.side_effects import DetachedTaskRunner
from .queries.monitoring_data import MonitoringDataQueries
from .realtime.gateway import ChannelGateway, build_gateway
from .realtime.identifier_cache import EquipmentCodeCache
from .realtime.publisher import RealtimePublisher
from .realtime.websocket_hub import WebSocketHub

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    engine: Engine
    ranges: MetricRangeStore
    classifier: QualityClassifier
    readings: ReadingRepository
    equipment: EquipmentRepository
    resolver: MonitoringPointResolver
    code_cache: EquipmentCodeCache
    hub: WebSocketHub
    gateway: ChannelGateway
    publisher: RealtimePublisher
    alarm_evaluator: AlarmEvaluator
    runner: DetachedTaskRunner
    orchestrator: IngestionOrchestrator
    queries: MonitoringDataQueries

    def close(self) -> None:
        self.runner.shutdown(wait_for_pending=True)
        self.gateway.close()
        self.alarm_evaluator.close()
        self.engine.dispose()
        logger.info("[APP] Services stopped")


def build_container(
    settings: Settings,
    *,
    engine: Optional[Engine] = None,
    runner: Optional[DetachedTaskRunner] = None,
    alarm_evaluator: Optional[AlarmEvaluator] = None,
    gateway: Optional[ChannelGateway] = None,
    create_schema: bool = True,
) -> ServiceContainer:
    engine = engine or create_db_engine(settings.database_url)
    if create_schema:
        ensure_schema(engine)

    ranges = MetricRangeStore()
    classifier = QualityClassifier(ranges)
    readings = ReadingRepository(engine)
    equipment = EquipmentRepository(engine)
    resolver = MonitoringPointResolver(engine)
    code_cache = EquipmentCodeCache(equipment, ttl_seconds=settings.equipment_cache_ttl_seconds)

    hub = gateway if isinstance(gateway, WebSocketHub) else WebSocketHub()
    if gateway is None:
        gateway = build_gateway(
            hub,
            redis_enabled=settings.realtime_redis_enabled,
            redis_url=settings.redis_url,
        )

    publisher = RealtimePublisher(
        gateway,
        code_cache,
        chunk_size=settings.push_batch_chunk_size,
        chunk_delay_seconds=settings.push_chunk_delay_ms / 1000.0,
    )
    if alarm_evaluator is None:
        alarm_evaluator = build_alarm_evaluator(
            settings.alarm_evaluator_url,
            timeout_seconds=settings.alarm_evaluator_timeout_seconds,
        )
    runner = runner or DetachedTaskRunner(max_workers=settings.side_effect_workers)

    orchestrator = IngestionOrchestrator(
        repository=readings,
        resolver=resolver,
        classifier=classifier,
        alarm_evaluator=alarm_evaluator,
        publisher=publisher,
        runner=runner,
    )

    logger.info(
        "[APP] Services ready chunk_size=%d chunk_delay_ms=%d cache_ttl=%ds workers=%d",
        settings.push_batch_chunk_size,
        settings.push_chunk_delay_ms,
        settings.equipment_cache_ttl_seconds,
        settings.side_effect_workers,
    )
    return ServiceContainer(
        settings=settings,
        engine=engine,
        ranges=ranges,
        classifier=classifier,
        readings=readings,
        equipment=equipment,
        resolver=resolver,
        code_cache=code_cache,
        hub=hub,
        gateway=gateway,
        publisher=publisher,
        alarm_evaluator=alarm_evaluator,
        runner=runner,
        orchestrator=orchestrator,
        queries=MonitoringDataQueries(readings),
    )
