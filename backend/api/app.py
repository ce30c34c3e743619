"""
FastAPI App Factory - Creates and configures the app

Cross-origin access is off unless GCODE_DRIVER_CORS_ORIGINS lists the
allowed origins (comma separated).
"""

import os
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.errors import CommandTimeout, DriverError
from core.logger import log_critical
from .routes import (
    connection_router,
    movement_router,
    tools_router,
)


CORS_ENV = "GCODE_DRIVER_CORS_ORIGINS"


def cors_origins() -> List[str]:
    value = os.environ.get(CORS_ENV, "")
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def create_app(allow_origins: Optional[List[str]] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    if allow_origins is None:
        allow_origins = cors_origins()

    app = FastAPI(
        title="G-code Driver API",
        description="REST API for a line-protocol motion controller and its driver chain",
        version="1.0.0",
    )

    # CORS - must be added first
    if allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allow_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(CommandTimeout)
    async def command_timeout_handler(request: Request, exc: CommandTimeout):
        return JSONResponse(
            status_code=504,
            content={"detail": str(exc), "responses": exc.responses},
        )

    @app.exception_handler(DriverError)
    async def driver_error_handler(request: Request, exc: DriverError):
        log_critical(f"{request.url.path}: {exc}")
        return JSONResponse(
            status_code=502,
            content={"detail": str(exc)},
        )

    # Global exception handler to ensure CORS headers on errors
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc)},
        )

    # Register routers with /api prefix
    app.include_router(connection_router, prefix="/api")
    app.include_router(movement_router, prefix="/api")
    app.include_router(tools_router, prefix="/api")

    return app
