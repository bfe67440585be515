"""Storage abstraction for S3-compatible object stores."""

from __future__ import annotations

from typing import Protocol

from core.models import ByteStream


PUBLIC_READ = "public-read"


class ObjectStorage(Protocol):
    def put_stream(
        self,
        key: str,
        stream: ByteStream,
        *,
        content_type: str,
        metadata: dict[str, str] | None = None,
        acl: str = PUBLIC_READ,
    ) -> str:  # returns key
        ...

    def public_url(self, key: str) -> str:
        ...


__all__ = ["ObjectStorage", "PUBLIC_READ"]
