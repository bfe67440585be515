from __future__ import annotations

import threading
from typing import Any, Protocol

from core.exceptions import DownloadError, TransferCancelledError, TransferError, UploadError
from core.fetcher import HTTPFetcher
from core.logging_config import get_logger
from core.models import FetchedResource, TransferRequest, TransferResult
from core.publisher import Publisher
from core.settings import Settings
from core.storage.s3 import S3Storage
from core.validation import validate_transfer_request


class Fetcher(Protocol):
    def download(self, url: str, cancel_event: threading.Event | None = None) -> FetchedResource:
        ...

    def close(self) -> None:
        ...


class MediaTransferService:
    """Relays one remote file into object storage per call.

    Instances hold no per-request state and may serve concurrent calls.
    """

    def __init__(self, fetcher: Fetcher, publisher: Publisher, *, log: Any = None) -> None:
        self.fetcher = fetcher
        self.publisher = publisher
        self.log = log or get_logger("transfer")

    @classmethod
    def from_settings(cls, settings: Settings) -> "MediaTransferService":
        fetcher = HTTPFetcher(chunk_size=settings.media_transfer.chunk_size)
        publisher = Publisher(
            S3Storage.from_settings(settings.storage),
            key_prefix=settings.storage.key_prefix,
        )
        return cls(fetcher, publisher)

    def close(self) -> None:
        self.fetcher.close()

    def transfer(
        self,
        request: TransferRequest,
        cancel_event: threading.Event | None = None,
    ) -> TransferResult:
        validate_transfer_request(request)
        url = request.source_url

        if cancel_event is not None and cancel_event.is_set():
            raise TransferCancelledError("client disconnected before download", {"url": url})

        try:
            resource = self.fetcher.download(url, cancel_event=cancel_event)
        except DownloadError as exc:
            self.log.error("Download failed url={url} error={error}", url=url, error=exc.message)
            raise

        with resource:
            key = self.publisher.derive_key(
                url,
                resource.content_type,
                request.extension_hint,
                request.identifier,
            )
            try:
                public_url = self.publisher.upload(resource.stream, key, resource.content_type)
            except UploadError as exc:
                self.log.error("Upload failed object_key={object_key} error={error}", object_key=key, error=exc.message)
                raise
            except TransferError as exc:
                # Source-side failures surface while the uploader pulls bytes.
                self.log.error(
                    "Transfer aborted phase={phase} object_key={object_key} error={error}",
                    phase=exc.phase,
                    object_key=key,
                    error=exc.message,
                )
                raise

        return TransferResult(
            public_url=public_url,
            byte_size=resource.size,
            content_type=resource.content_type,
        )


__all__ = ["Fetcher", "MediaTransferService"]
