"""WebSocket endpoint for real-time updates."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import orjson
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel

logger = logging.getLogger(__name__)


def _orjson_dumps(obj: Any) -> str:
    """Serialize object to JSON string using orjson."""
    return orjson.dumps(obj, default=str).decode("utf-8")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class WebSocketMessage(BaseModel):
    """WebSocket message format."""

    type: str  # "price", "prediction", "settlement", "cycle"
    data: dict[str, Any]
    timestamp: datetime

    def to_json(self) -> str:
        """Serialize to JSON string using orjson for performance."""
        return _orjson_dumps(self.model_dump(mode="json"))


class ConnectionManager:
    """Manage WebSocket connections and broadcasts."""

    def __init__(self):
        self._connections: list[WebSocket] = []
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self._connections.append(websocket)
        logger.info(f"WebSocket connected. Total connections: {len(self._connections)}")

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a disconnected WebSocket."""
        async with self._lock:
            if websocket in self._connections:
                self._connections.remove(websocket)
        logger.info(f"WebSocket disconnected. Total connections: {len(self._connections)}")

    async def broadcast(self, message: WebSocketMessage) -> None:
        """Broadcast message to all connected clients."""
        if not self._connections:
            return

        message_text = message.to_json()
        disconnected = []

        async with self._lock:
            for websocket in self._connections:
                try:
                    await websocket.send_text(message_text)
                except Exception as e:
                    logger.warning(f"Failed to send message: {e}")
                    disconnected.append(websocket)

            for ws in disconnected:
                self._connections.remove(ws)

    async def send(self, msg_type: str, data: dict[str, Any]) -> None:
        await self.broadcast(WebSocketMessage(type=msg_type, data=data, timestamp=_now()))

    async def send_price(self, price: float, observed_at: datetime) -> None:
        """Broadcast a live price update."""
        await self.send("price", {"price": price, "observed_at": observed_at.isoformat()})

    async def send_prediction(self, prediction_data: dict) -> None:
        """Broadcast a newly opened prediction."""
        await self.send("prediction", prediction_data)

    async def send_settlement(self, prediction_data: dict) -> None:
        """Broadcast a settled prediction."""
        await self.send("settlement", prediction_data)

    async def send_cycle(self, cycle_data: dict) -> None:
        """Broadcast the result of an analysis cycle."""
        await self.send("cycle", cycle_data)


# Global connection manager
manager = ConnectionManager()


async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Messages sent to clients:
    - price: Live price update
    - prediction: New prediction opened
    - settlement: Prediction settled (correct/wrong, profit)
    - cycle: Analysis cycle result (decision and status)

    Message format:
    {
        "type": "prediction",
        "data": {...},
        "timestamp": "2024-01-01T00:00:00+00:00"
    }
    """
    await manager.connect(websocket)

    try:
        await websocket.send_text(_orjson_dumps({
            "type": "connected",
            "data": {"message": "Connected to BTC prediction simulator"},
            "timestamp": _now().isoformat(),
        }))

        while True:
            try:
                data = await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=60.0,
                )

                try:
                    message = orjson.loads(data)
                    await handle_client_message(websocket, message)
                except orjson.JSONDecodeError:
                    await websocket.send_text(_orjson_dumps({
                        "type": "error",
                        "data": {"message": "Invalid JSON"},
                        "timestamp": _now().isoformat(),
                    }))

            except asyncio.TimeoutError:
                # Send ping to keep connection alive
                await websocket.send_text(_orjson_dumps({
                    "type": "ping",
                    "data": {},
                    "timestamp": _now().isoformat(),
                }))

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        await manager.disconnect(websocket)


async def handle_client_message(websocket: WebSocket, message: dict) -> None:
    """Handle incoming message from client."""
    msg_type = message.get("type", "") if isinstance(message, dict) else ""

    if msg_type == "ping":
        await websocket.send_text(_orjson_dumps({
            "type": "pong",
            "data": {},
            "timestamp": _now().isoformat(),
        }))
    else:
        await websocket.send_text(_orjson_dumps({
            "type": "error",
            "data": {"message": f"Unknown message type: {msg_type}"},
            "timestamp": _now().isoformat(),
        }))
