"""API endpoints."""

from app.api.routes import router, build_cycle_response
from app.api.websocket import manager, websocket_endpoint, ConnectionManager

__all__ = [
    "router",
    "build_cycle_response",
    "manager",
    "websocket_endpoint",
    "ConnectionManager",
]
