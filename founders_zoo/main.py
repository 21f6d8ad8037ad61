import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load env from the package directory
package_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(package_dir, ".env"))

from founders_zoo.core.config import settings, validate_config
from founders_zoo.core.logging import configure_logging
from founders_zoo.core.middleware.request_id import RequestIdMiddleware
from founders_zoo.core.middleware.metrics import MetricsMiddleware
from founders_zoo.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from founders_zoo.api import health, metrics, presence, streaks
from founders_zoo.features.presence.manager import PresenceChannelManager
from founders_zoo.features.presence.player import TriStatePresenceWatcher
from founders_zoo.realtime.hub import InMemoryChannelClient

configure_logging(settings.ENV)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("founders_zoo")
    logger.info("Starting founders-zoo presence service...")
    client = InMemoryChannelClient()
    app.state.channel_client = client
    app.state.presence = PresenceChannelManager(client)
    app.state.player_watcher = TriStatePresenceWatcher(client)
    try:
        yield
    finally:
        # Shutdown is the unload signal: untrack and unsubscribe everything
        await app.state.presence.close()
        await app.state.player_watcher.close()
        logger.info("Stopping founders-zoo presence service...")


app = FastAPI(title="founders-zoo - Presence & Streaks", lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(MetricsMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(streaks.router, tags=["streaks"])
app.include_router(presence.router, tags=["presence"])
app.include_router(health.router)
app.include_router(metrics.router)
