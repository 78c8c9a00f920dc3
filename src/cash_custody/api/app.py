"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cash_custody.api.routes import (
    handovers_router,
    health_router,
    shifts_router,
    stations_router,
)
from cash_custody.database import dispose_db, init_db
from cash_custody.events import AsyncEventEmitter, log_event
from cash_custody.services.errors import HandoverError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    init_db()
    yield
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Cash Custody API",
        description="Cash handover chain for fuel stations",
        version="0.1.0",
        lifespan=lifespan,
    )

    emitter = AsyncEventEmitter()
    emitter.on_all(log_event)
    app.state.emitter = emitter

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(HandoverError)
    async def handover_error_handler(
        request: Request, exc: HandoverError
    ) -> JSONResponse:
        """Translate domain errors to their status and code."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.message,
                "code": exc.code,
                "context": exc.context,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(handovers_router, prefix="/api/v1")
    app.include_router(shifts_router, prefix="/api/v1")
    app.include_router(stations_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
