import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.infrastructure.database import engine, initialize_database
from app.infrastructure.notifications import notification_hub
from app.interfaces.api.routes import register_routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the store and the idle sweeper; release resources on shutdown."""

    settings = get_settings()
    initialize_database()
    sweeper = asyncio.create_task(
        notification_hub.run_idle_sweeper(
            settings.idle_sweep_interval_seconds,
            timedelta(seconds=settings.session_idle_timeout_seconds),
        )
    )
    yield
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the notification service application."""

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Notification Relay", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
