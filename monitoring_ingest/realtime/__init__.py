"""Publicación en tiempo real por sala de equipo."""

from .gateway import (
    ChannelGateway,
    FanOutGateway,
    RedisChannelGateway,
    build_gateway,
    channel_name,
)
from .identifier_cache import EquipmentCodeCache
from .publisher import (
    EVENT_ALARM,
    EVENT_BATCH_DATA,
    EVENT_NEW_DATA,
    RealtimePublisher,
)
from .websocket_hub import WebSocketHub

__all__ = [
    "ChannelGateway",
    "FanOutGateway",
    "RedisChannelGateway",
    "build_gateway",
    "channel_name",
    "EquipmentCodeCache",
    "EVENT_ALARM",
    "EVENT_BATCH_DATA",
    "EVENT_NEW_DATA",
    "RealtimePublisher",
    "WebSocketHub",
]
