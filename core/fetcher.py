from __future__ import annotations

import threading
from typing import Any, Iterator

import httpx

from core.exceptions import DownloadError, TransferCancelledError
from core.logging_config import get_logger
from core.models import DEFAULT_CONTENT_TYPE, UNKNOWN_SIZE, FetchedResource


DEFAULT_CHUNK_SIZE = 64 * 1024


class ResponseStream:
    """File-like view over a streamed httpx response body.

    ``read(n)`` keeps pulling chunks until ``n`` bytes are available or the
    body ends, so multipart uploaders never see short parts.
    """

    def __init__(
        self,
        response: httpx.Response,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._response = response
        self._chunks: Iterator[bytes] = response.iter_bytes(chunk_size)
        self._buffer = bytearray()
        self._eof = False
        self._cancel_event = cancel_event
        self.bytes_read = 0
        self.closed = False

    def readable(self) -> bool:
        return True

    def _fill(self, size: int | None) -> None:
        while not self._eof and (size is None or len(self._buffer) < size):
            if self._cancel_event is not None and self._cancel_event.is_set():
                raise TransferCancelledError(
                    "client disconnected during transfer",
                    {"url": str(self._response.request.url)},
                )
            try:
                chunk = next(self._chunks, None)
            except httpx.HTTPError as exc:
                raise DownloadError(
                    f"failed to read response body: {exc}",
                    {"url": str(self._response.request.url)},
                ) from exc
            if chunk is None:
                self._eof = True
            else:
                self._buffer.extend(chunk)

    def read(self, size: int | None = -1) -> bytes:
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        if size is None or size < 0:
            self._fill(None)
            size = len(self._buffer)
        else:
            self._fill(size)
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        self.bytes_read += len(data)
        return data

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._buffer.clear()
        self._response.close()


def _declared_size(response: httpx.Response) -> int:
    raw = response.headers.get("content-length")
    if raw is None:
        return UNKNOWN_SIZE
    try:
        size = int(raw)
    except ValueError:
        return UNKNOWN_SIZE
    return size if size >= 0 else UNKNOWN_SIZE


class HTTPFetcher:
    """Issues the GET for a source URL and exposes the body as a stream.

    No timeout is applied here; an overall deadline belongs to the caller.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        log: Any = None,
    ) -> None:
        self.client = client or httpx.Client(follow_redirects=True, timeout=None)
        self.chunk_size = chunk_size
        self.log = log or get_logger("fetcher")

    def download(self, url: str, cancel_event: threading.Event | None = None) -> FetchedResource:
        url = url.strip()
        try:
            # identity keeps the stored bytes equal to what the origin serves
            request = self.client.build_request("GET", url, headers={"Accept-Encoding": "identity"})
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            raise DownloadError(f"invalid URL format: {exc}", {"url": url}) from exc

        try:
            response = self.client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise DownloadError(f"failed to download file: {exc}", {"url": url}) from exc

        if response.status_code != httpx.codes.OK:
            response.close()
            raise DownloadError(
                f"download failed with status: {response.status_code}",
                {"url": url, "status_code": str(response.status_code)},
            )

        content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        size = _declared_size(response)
        self.log.debug(
            "Source responded url={url} content_type={content_type} size={size}",
            url=url,
            content_type=content_type,
            size=size,
        )
        stream = ResponseStream(response, chunk_size=self.chunk_size, cancel_event=cancel_event)
        return FetchedResource(stream=stream, content_type=content_type, size=size)

    def close(self) -> None:
        self.client.close()


__all__ = ["HTTPFetcher", "ResponseStream"]
