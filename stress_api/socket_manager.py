import logging
from typing import Any, Dict

import socketio

logger = logging.getLogger("stress_api.socket")

NEW_SENSOR_DATA_EVENT = "new_sensor_data"

# Socket.IO Server - live dashboards subscribe here for new readings
sio = socketio.AsyncServer(
    async_mode='asgi',
    cors_allowed_origins='*',
    ping_timeout=60,
    ping_interval=25
)


async def broadcast_reading(payload: Dict[str, Any]) -> None:
    """Pushes an ingestion response to every connected dashboard."""
    await sio.emit(NEW_SENSOR_DATA_EVENT, payload)


@sio.event
async def connect(sid, environ):
    logger.info("Client connected: %s", sid)


@sio.event
async def disconnect(sid):
    logger.info("Client disconnected: %s", sid)
