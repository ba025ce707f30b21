"""Entry point for the call admission and chat relay service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from api.routes import router as api_router
from config.settings import get_settings
from core.errors import CallRelayError

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    LOGGER.info(
        "Hold loop: pause=%ss max_polls=%s max_seconds=%s",
        settings.hold_pause_seconds,
        settings.hold_max_polls,
        settings.hold_max_seconds,
    )
    yield


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="Call Relay",
    description="Inbound call admission and realtime chat relay for a Twilio front end.",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(CallRelayError)
async def call_relay_error_handler(request: Request, exc: CallRelayError) -> JSONResponse:
    if exc.status_code >= 500:
        LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail, "details": exc.details},
    )


app.include_router(api_router, prefix="/api")
app.mount(
    settings.uploads_url_prefix,
    StaticFiles(directory=settings.uploads_dir),
    name="uploads",
)
