"""FastAPI exception handlers for custom exceptions."""

from __future__ import annotations

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import MediaTransferError, TransferError, ValidationError


async def media_transfer_exception_handler(request: Request, exc: MediaTransferError) -> JSONResponse:
    """Handle media-transfer-specific exceptions."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(exc, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST

    details = dict(exc.details)
    if isinstance(exc, TransferError):
        details.setdefault("phase", exc.phase)

    log = logger.warning if status_code < 500 else logger.error
    log(
        "Media transfer error: {type} - {message}",
        type=type(exc).__name__,
        message=exc.message,
        details=details,
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "details": details,
        },
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400 instead of FastAPI's 422."""
    reason = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', '')}"
        for error in exc.errors()
    )
    logger.warning("Invalid request parameters: {reason}", reason=reason)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "ValidationError",
            "message": "Invalid request parameters",
            "details": {"reason": reason},
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "NotFound",
                "message": "Route not found",
                "details": {"reason": "The requested endpoint does not exist"},
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTPException", "message": str(exc.detail), "details": {}},
        headers=getattr(exc, "headers", None),
    )
