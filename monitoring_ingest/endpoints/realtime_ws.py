"""WebSocket de suscripción a salas de equipo.

Protocolo (frames JSON `{"event": ..., "data": ...}`):

- cliente → `subscribe:equipment`   `{"equipmentId": "<code>"}`
- cliente → `unsubscribe:equipment` `{"equipmentId": "<code>"}`
- cliente → `ping`                  → servidor `pong` `{"timestamp": ms}`

El servidor emite en la sala `monitoring:new-data`, `monitoring:batch-data`
y `alarm:push`.
"""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..realtime.gateway import channel_name
from .deps import get_ws_container

router = APIRouter(tags=["realtime"])
logger = logging.getLogger(__name__)


@router.websocket("/ws/monitoring")
async def monitoring_socket(websocket: WebSocket):
    hub = get_ws_container(websocket).hub
    await websocket.accept()
    await websocket.send_json({"event": "connected", "data": {"timestamp": _now_ms()}})

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                await _send_error(websocket, "invalid JSON frame")
                continue

            if not isinstance(message, dict):
                await _send_error(websocket, "frame must be an object")
                continue

            event = message.get("event")
            data = message.get("data") or {}

            if event == "ping":
                await websocket.send_json({"event": "pong", "data": {"timestamp": _now_ms()}})
                continue

            if event in ("subscribe:equipment", "unsubscribe:equipment"):
                code = data.get("equipmentId") if isinstance(data, dict) else None
                if not code:
                    await _send_error(websocket, "equipmentId is required")
                    continue
                code = str(code)
                if event == "subscribe:equipment":
                    hub.join(code, websocket)
                else:
                    hub.leave(code, websocket)
                await websocket.send_json(
                    {"event": event, "data": {"success": True, "room": channel_name(code)}}
                )
                continue

            await _send_error(websocket, f"unknown event: {event}")
    except WebSocketDisconnect:
        logger.debug("[WS] Client disconnected")
    finally:
        hub.leave_all(websocket)


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_json({"event": "error", "data": {"message": message}})


def _now_ms() -> int:
    return int(time.time() * 1000)
