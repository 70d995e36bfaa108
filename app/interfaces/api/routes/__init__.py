from fastapi import FastAPI

from app.config import get_settings

from .health import router as health_router
from .notifications import notifications_websocket, router as notifications_router


def register_routes(app: FastAPI) -> None:
    """Register every API router and the realtime channel on ``app``."""

    app.include_router(health_router)
    app.include_router(notifications_router)
    app.add_api_websocket_route(get_settings().websocket_path, notifications_websocket)
