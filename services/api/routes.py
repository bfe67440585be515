from __future__ import annotations

import asyncio
import contextlib
import threading

from fastapi import APIRouter, Request
from loguru import logger
from starlette.concurrency import run_in_threadpool

from core.models import TransferRequest
from services.api.schemas import (
    TRANSFER_SUCCESS_MESSAGE,
    HealthResponse,
    MediaTransferRequest,
    MediaTransferResponse,
)


SERVICE_NAME = "media-transfer"
SERVICE_VERSION = "1.0.0"
DISCONNECT_POLL_SECONDS = 0.5

router = APIRouter(prefix="/api/v1/media", tags=["media"])


async def _watch_disconnect(request: Request, cancel_event: threading.Event) -> None:
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.warning("Client disconnected, aborting transfer path={path}", path=request.url.path)
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok", service=SERVICE_NAME, version=SERVICE_VERSION)


@router.post("/transfer", response_model=MediaTransferResponse)
async def transfer_media(payload: MediaTransferRequest, request: Request) -> MediaTransferResponse:
    service = request.app.state.transfer_service
    transfer_request = TransferRequest(
        source_url=payload.url,
        extension_hint=payload.ext,
        identifier=payload.prediction_uuid,
    )
    logger.info(
        "Media transfer requested url={url} ext={ext} prediction_uuid={prediction_uuid}",
        url=transfer_request.source_url,
        ext=transfer_request.extension_hint,
        prediction_uuid=transfer_request.identifier,
    )

    cancel_event = threading.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
    try:
        result = await run_in_threadpool(service.transfer, transfer_request, cancel_event)
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher

    logger.info(
        "Media transfer succeeded url={url} prediction_uuid={prediction_uuid} oss_url={oss_url} "
        "file_size={file_size} content_type={content_type}",
        url=transfer_request.source_url,
        prediction_uuid=transfer_request.identifier,
        oss_url=result.public_url,
        file_size=result.byte_size,
        content_type=result.content_type,
    )
    return MediaTransferResponse(
        success=True,
        message=TRANSFER_SUCCESS_MESSAGE,
        oss_url=result.public_url,
        original_url=transfer_request.source_url,
        file_size=result.byte_size,
        content_type=result.content_type,
    )


__all__ = ["router", "SERVICE_NAME", "SERVICE_VERSION"]
