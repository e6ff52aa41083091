"""Salas WebSocket en proceso, una por código de equipo.

Las salas solo se tocan desde el event loop. Los threads de efectos
secundarios entregan con `run_coroutine_threadsafe` y esperan el envío
hasta `send_timeout_seconds`, así los chunks de un lote salen en serie.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

from ..metrics.ingestion_metrics import REALTIME_DROPPED
from .gateway import ChannelGateway, channel_name, envelope

logger = logging.getLogger(__name__)


class WebSocketHub(ChannelGateway):
    def __init__(self, send_timeout_seconds: float = 2.0) -> None:
        self._send_timeout = send_timeout_seconds
        self._rooms: Dict[str, Set[WebSocket]] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    # --- llamado desde el loop (endpoint WS) ---

    def join(self, equipment_code: str, websocket: WebSocket) -> None:
        self._rooms.setdefault(channel_name(equipment_code), set()).add(websocket)
        logger.debug("[WS] join room=%s", channel_name(equipment_code))

    def leave(self, equipment_code: str, websocket: WebSocket) -> None:
        room = self._rooms.get(channel_name(equipment_code))
        if room is None:
            return
        room.discard(websocket)
        if not room:
            self._rooms.pop(channel_name(equipment_code), None)

    def leave_all(self, websocket: WebSocket) -> None:
        for name in list(self._rooms):
            room = self._rooms[name]
            room.discard(websocket)
            if not room:
                self._rooms.pop(name, None)

    def room_size(self, equipment_code: str) -> int:
        return len(self._rooms.get(channel_name(equipment_code), ()))

    async def broadcast(self, room_name: str, message: dict) -> int:
        delivered = 0
        for websocket in list(self._rooms.get(room_name, ())):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.debug("[WS] Dropping dead socket room=%s: %s", room_name, e)
                self._rooms.get(room_name, set()).discard(websocket)
        return delivered

    # --- llamado desde cualquier thread ---

    def send_to_equipment(self, equipment_code: str, event: str, payload: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("[WS] No event loop bound, skipping event=%s", event)
            return
        room = channel_name(equipment_code)
        future = asyncio.run_coroutine_threadsafe(self.broadcast(room, envelope(event, payload)), loop)
        if _running_on(loop):
            # Desde el propio loop no se puede bloquear esperando.
            return
        try:
            future.result(timeout=self._send_timeout)
        except concurrent.futures.TimeoutError:
            REALTIME_DROPPED.labels(reason="ws_timeout").inc()
            logger.warning(
                "[WS] Broadcast still pending after %.1fs room=%s event=%s",
                self._send_timeout,
                room,
                event,
            )


def _running_on(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False
