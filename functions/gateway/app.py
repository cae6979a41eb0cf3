"""
FastAPI application entry point for the function gateway.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from gateway.config import get_settings
from gateway.routes import health_router, router


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    app = FastAPI(title="Nos Livres Functions", version="0.1.0")
    app.include_router(health_router)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
