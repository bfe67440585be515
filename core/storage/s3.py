from __future__ import annotations

from typing import Any, Optional

import boto3
from boto3.exceptions import Boto3Error
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from core.exceptions import S3Error
from core.models import ByteStream
from core.settings import StorageSettings
from core.storage import PUBLIC_READ


class S3Storage:
    """S3-compatible bucket addressed as ``https://{bucket}.{endpoint}``."""

    def __init__(
        self,
        bucket: str,
        endpoint: str,
        region: Optional[str] = None,
        access_key_id: Optional[str] = None,
        access_key_secret: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.bucket = bucket
        self.endpoint = endpoint
        if client is None:
            session = boto3.session.Session(
                aws_access_key_id=access_key_id,
                aws_secret_access_key=access_key_secret,
                region_name=region,
            )
            client = session.client(
                "s3",
                endpoint_url=f"https://{endpoint}",
                config=Config(signature_version="s3v4", s3={"addressing_style": "virtual"}),
            )
        self.client = client

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> "S3Storage":
        key_id, secret = settings.credentials
        return cls(
            bucket=settings.bucket,
            endpoint=settings.endpoint,
            region=settings.region,
            access_key_id=key_id,
            access_key_secret=secret,
        )

    def put_stream(
        self,
        key: str,
        stream: ByteStream,
        *,
        content_type: str,
        metadata: dict[str, str] | None = None,
        acl: str = PUBLIC_READ,
    ) -> str:
        extra_args = {
            "ContentType": content_type,
            "ACL": acl,
            "Metadata": metadata or {},
        }
        try:
            self.client.upload_fileobj(stream, self.bucket, key, ExtraArgs=extra_args)
        except (BotoCoreError, ClientError, Boto3Error) as exc:
            raise S3Error(
                f"failed to upload file: {exc}",
                {"bucket": self.bucket, "key": key},
            ) from exc
        return key

    def public_url(self, key: str) -> str:
        return f"https://{self.bucket}.{self.endpoint}/{key}"


__all__ = ["S3Storage"]
