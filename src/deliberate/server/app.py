"""Builds the ASGI application that exposes the reasoning engines over HTTP."""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

logger = logging.getLogger(__name__)

_started_at: float = 0.0

# Local front-end dev servers
DEV_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]


def create_app() -> FastAPI:
    global _started_at
    _started_at = time.time()

    from deliberate import __version__
    from deliberate.server.routes import health, reasoning

    app = FastAPI(
        title="Deliberate",
        description="Structured, auditable reasoning over a text generation service",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=DEV_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for module, tag in ((health, "health"), (reasoning, "reasoning")):
        app.include_router(module.router, prefix="/api", tags=[tag])

    logger.info("Deliberate API ready (version %s)", __version__)
    return app


def get_start_time() -> float:
    """Epoch seconds at which ``create_app`` last ran."""
    return _started_at
