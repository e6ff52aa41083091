"""Gateways de canal en tiempo real.

Un canal por equipo: `equipment:{code}`. Cada mensaje es un sobre
`{"event": ..., "data": ...}`.

- RedisChannelGateway: PUBLISH a Redis para otros procesos/nodos.
- WebSocketHub (websocket_hub.py): salas en proceso para clientes WS.
- FanOutGateway: entrega a varios gateways, aislando fallos.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

import redis

from ..metrics.ingestion_metrics import REALTIME_DROPPED

logger = logging.getLogger(__name__)


def channel_name(equipment_code: str) -> str:
    return f"equipment:{equipment_code}"


def envelope(event: str, payload: Any) -> dict:
    return {"event": event, "data": payload}


class ChannelGateway(ABC):
    @abstractmethod
    def send_to_equipment(self, equipment_code: str, event: str, payload: Any) -> None:
        """Entrega un evento a la sala del equipo (puede lanzar)."""

    def close(self) -> None:
        pass


class RedisChannelGateway(ChannelGateway):
    def __init__(self, client: "redis.Redis") -> None:
        self._client = client

    @classmethod
    def from_url(cls, redis_url: str) -> "RedisChannelGateway":
        client = redis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=2.0,
            socket_connect_timeout=2.0,
        )
        return cls(client)

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.warning("[REDIS] Ping failed: %s", e)
            return False

    def send_to_equipment(self, equipment_code: str, event: str, payload: Any) -> None:
        message = json.dumps(envelope(event, payload), ensure_ascii=False, default=str)
        receivers = self._client.publish(channel_name(equipment_code), message)
        logger.debug(
            "[REDIS] Published event=%s channel=%s receivers=%s",
            event,
            channel_name(equipment_code),
            receivers,
        )

    def close(self) -> None:
        self._client.close()


class FanOutGateway(ChannelGateway):
    """Reparte el mismo evento a varios gateways; uno caído no frena al resto."""

    def __init__(self, gateways: Sequence[ChannelGateway]) -> None:
        self._gateways: List[ChannelGateway] = list(gateways)

    @property
    def gateways(self) -> List[ChannelGateway]:
        return list(self._gateways)

    def send_to_equipment(self, equipment_code: str, event: str, payload: Any) -> None:
        for gateway in self._gateways:
            try:
                gateway.send_to_equipment(equipment_code, event, payload)
            except Exception as e:
                REALTIME_DROPPED.labels(reason="send_failed").inc()
                logger.warning(
                    "[PUSH] Gateway %s failed event=%s equipment=%s: %s",
                    type(gateway).__name__,
                    event,
                    equipment_code,
                    e,
                )

    def close(self) -> None:
        for gateway in self._gateways:
            gateway.close()


def build_gateway(
    hub: ChannelGateway,
    *,
    redis_enabled: bool,
    redis_url: Optional[str] = None,
) -> ChannelGateway:
    """Hub WS siempre; Redis se suma si está habilitado y responde PING."""
    if not redis_enabled:
        logger.info("[PUSH] Realtime via in-process WebSocket hub only")
        return hub

    try:
        redis_gateway = RedisChannelGateway.from_url(redis_url or "redis://localhost:6379/0")
    except (redis.RedisError, ValueError) as e:
        logger.warning("[PUSH] Redis gateway unavailable (%s), using WebSocket hub only", e)
        return hub

    if not redis_gateway.ping():
        logger.warning("[PUSH] Redis not answering, using WebSocket hub only")
        redis_gateway.close()
        return hub

    logger.info("[PUSH] Realtime via WebSocket hub + Redis pub/sub: %s", (redis_url or "").split("@")[-1])
    return FanOutGateway([hub, redis_gateway])
