"""Main FastAPI application."""
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from app.core.config import settings
from app.core.dependencies import configure_services
from app.core.logging import log_configuration_warnings, setup_logging
from app.api import calls, health, websocket
from app.api.webhooks import voice


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    configure_services(app.state, settings)
    log_configuration_warnings(settings)
    yield
    # Shutdown
    pass


app = FastAPI(
    title="Call Relay",
    description="Real-time relay between Twilio voice webhooks and WebSocket observers",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router, tags=["health"])
app.include_router(calls.router, tags=["calls"])
app.include_router(voice.router, prefix="/api/twilio", tags=["webhooks"])
app.include_router(websocket.router, tags=["websocket"])


def run() -> None:
    """Start the server with the configured host and port."""
    uvicorn.run("app.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
