"""Input checks shared by the transfer service and the HTTP layer."""

from __future__ import annotations

from urllib.parse import urlsplit

from core.exceptions import UnsupportedSchemeError, ValidationError
from core.models import TransferRequest


SUPPORTED_SCHEMES = frozenset({"http", "https"})


def validate_source_url(url: str) -> str:
    """Return the trimmed URL, or raise if it is not an absolute HTTP(S) URL."""
    url = (url or "").strip()
    if not url:
        raise ValidationError("URL cannot be empty")
    try:
        parsed = urlsplit(url)
    except ValueError as exc:
        raise ValidationError("Invalid URL format", {"url": url, "reason": str(exc)}) from exc
    if parsed.scheme not in SUPPORTED_SCHEMES:
        raise UnsupportedSchemeError(
            "Only HTTP and HTTPS protocols are supported",
            {"url": url, "reason": f"Unsupported protocol: {parsed.scheme}"},
        )
    if not parsed.netloc:
        raise ValidationError("Invalid URL format", {"url": url, "reason": "missing host"})
    return url


def validate_transfer_request(request: TransferRequest) -> None:
    validate_source_url(request.source_url)
    if not (request.identifier or "").strip():
        raise ValidationError("PredictionUUID cannot be empty")


__all__ = ["SUPPORTED_SCHEMES", "validate_source_url", "validate_transfer_request"]
