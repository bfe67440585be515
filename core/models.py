from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


DEFAULT_CONTENT_TYPE = "application/octet-stream"
UNKNOWN_SIZE = -1


class ByteStream(Protocol):
    def read(self, size: int = -1) -> bytes:
        ...

    def close(self) -> None:
        ...


@dataclass(frozen=True)
class TransferRequest:
    source_url: str
    extension_hint: str
    identifier: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "source_url", (self.source_url or "").strip())


@dataclass
class FetchedResource:
    """Downloaded body handed from the fetcher to the publisher.

    The stream is single-pass; ``close`` releases it exactly once no matter
    how many exit paths call it.
    """

    stream: ByteStream
    content_type: str = DEFAULT_CONTENT_TYPE
    size: int = UNKNOWN_SIZE
    _released: bool = field(default=False, init=False, repr=False)

    @property
    def released(self) -> bool:
        return self._released

    def close(self) -> None:
        if self._released:
            return
        self._released = True
        self.stream.close()

    def __enter__(self) -> "FetchedResource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@dataclass(frozen=True)
class TransferResult:
    public_url: str
    byte_size: int
    content_type: str


__all__ = [
    "ByteStream",
    "DEFAULT_CONTENT_TYPE",
    "FetchedResource",
    "TransferRequest",
    "TransferResult",
    "UNKNOWN_SIZE",
]
