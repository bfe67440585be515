from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from core.exceptions import StorageError, UploadError
from core.keys import DEFAULT_KEY_PREFIX, derive_key
from core.logging_config import get_logger
from core.models import ByteStream
from core.storage import PUBLIC_READ, ObjectStorage


class Publisher:
    """Names fetched media and writes it world-readable into object storage."""

    def __init__(
        self,
        storage: ObjectStorage,
        *,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        log: Any = None,
    ) -> None:
        self.storage = storage
        self.key_prefix = key_prefix
        self.log = log or get_logger("publisher")

    def derive_key(self, source_url: str, content_type: str, extension_hint: str, identifier: str) -> str:
        return derive_key(source_url, content_type, extension_hint, identifier, prefix=self.key_prefix)

    def upload(self, stream: ByteStream, key: str, content_type: str) -> str:
        """Stream ``stream`` to ``key`` and return its public URL.

        The stream is not closed here; its owner releases it. Nothing is read
        back to confirm the object exists.
        """
        metadata = {"upload-time": datetime.now(timezone.utc).isoformat(timespec="seconds")}
        try:
            self.storage.put_stream(
                key,
                stream,
                content_type=content_type,
                metadata=metadata,
                acl=PUBLIC_READ,
            )
        except StorageError as exc:
            raise UploadError(exc.message, {"object_key": key, **exc.details}) from exc
        url = self.storage.public_url(key)
        self.log.info("Upload succeeded oss_url={oss_url}", oss_url=url)
        return url


__all__ = ["Publisher"]
