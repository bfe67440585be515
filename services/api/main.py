from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import MediaTransferError
from core.logging_config import setup_logging
from core.settings import Settings, get_settings
from core.transfer import MediaTransferService
from services.api.exception_handlers import (
    http_exception_handler,
    media_transfer_exception_handler,
    request_validation_exception_handler,
)
from services.api.middleware import RequestLoggingMiddleware
from services.api.routes import SERVICE_NAME, SERVICE_VERSION, router as media_router


def create_app(
    settings: Settings | None = None,
    service: MediaTransferService | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.logger)
    owns_service = service is None
    service = service or MediaTransferService.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        # Injected services belong to the caller.
        if owns_service:
            service.close()
            logger.info("Transfer service closed")

    app = FastAPI(
        title="File Transfer API",
        version=SERVICE_VERSION,
        description="Republishes public media URLs into object storage",
        debug=settings.server.mode == "debug",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.transfer_service = service

    app.add_middleware(RequestLoggingMiddleware)

    # CORS middleware - add LAST so it executes FIRST
    cors_origins = settings.server.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials="*" not in cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", tags=["meta"])
    async def index() -> dict[str, Any]:
        return {
            "service": "File Transfer API",
            "version": SERVICE_VERSION,
            "description": "Transfers files of any type into object storage, with no size limit",
            "endpoints": {
                "health": "GET /api/v1/media/health",
                "transfer": "POST /api/v1/media/transfer",
                "docs": "GET /docs",
            },
        }

    @app.get("/healthz", tags=["meta"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    # Register exception handlers
    app.add_exception_handler(MediaTransferError, media_transfer_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    app.include_router(media_router)

    logger.info(
        "{service} initialised bucket={bucket} endpoint={endpoint} mode={mode}",
        service=SERVICE_NAME,
        bucket=settings.storage.bucket,
        endpoint=settings.storage.endpoint,
        mode=settings.server.mode,
    )
    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.server.port, log_config=None)


if __name__ == "__main__":
    run()


__all__ = ["create_app", "run"]
