"""Custom exception hierarchy for the media transfer service."""

from __future__ import annotations


class MediaTransferError(Exception):
    """Base exception for all media-transfer-specific errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(MediaTransferError):
    """Raised when configuration is invalid or missing."""
    pass


class ValidationError(MediaTransferError):
    """Raised when a transfer request is malformed."""
    pass


class UnsupportedSchemeError(ValidationError):
    """Raised when the source URL uses a protocol other than HTTP(S)."""
    pass


class TransferError(MediaTransferError):
    """Base class for failures of one transfer phase."""

    phase = "transfer"

    def __str__(self) -> str:
        return f"{self.phase} failed: {self.message}"


class DownloadError(TransferError):
    """Raised when the source cannot be fetched or read."""

    phase = "download"


class UploadError(TransferError):
    """Raised when the storage backend rejects the write."""

    phase = "upload"


class TransferCancelledError(TransferError):
    """Raised when the caller abandoned the request mid-transfer."""

    phase = "cancelled"


class StorageError(MediaTransferError):
    """Raised when storage operations fail."""
    pass


class S3Error(StorageError):
    """Raised when S3-compatible API calls fail."""
    pass
