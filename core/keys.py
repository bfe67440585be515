"""Object key derivation for republished media.

Keys have the form ``{prefix}/{identifier}/{filename}``. The filename is the
last path segment of the source URL with its extension chosen by, in order:
the caller's extension hint, an extension already present in the name, or
the declared content type. Derivation never fails.
"""

from __future__ import annotations

from urllib.parse import unquote, urlsplit


DEFAULT_KEY_PREFIX = "outputs"
DEFAULT_FILENAME = "file"

# Matched by substring so parameters such as "; charset=..." are tolerated.
CONTENT_TYPE_EXTENSIONS: tuple[tuple[str, str], ...] = (
    ("image/jpeg", ".jpg"),
    ("image/png", ".png"),
    ("image/gif", ".gif"),
    ("image/webp", ".webp"),
    ("video/mp4", ".mp4"),
    ("video/avi", ".avi"),
    ("video/mov", ".mov"),
    ("audio/mp3", ".mp3"),
    ("audio/wav", ".wav"),
    ("audio/aac", ".aac"),
)


def extension_for_content_type(content_type: str | None) -> str:
    lowered = (content_type or "").lower()
    for mime, ext in CONTENT_TYPE_EXTENSIONS:
        if mime in lowered:
            return ext
    return ""


def filename_from_url(url: str) -> str:
    """Last ``/`` segment of the URL path, ignoring the query string."""
    try:
        path = urlsplit(url).path
    except ValueError:
        segment = url.split("/")[-1]
        return segment.split("?", 1)[0]
    return unquote(path).split("/")[-1]


def apply_extension(filename: str, extension_hint: str, content_type: str | None) -> str:
    if extension_hint:
        ext = extension_hint if extension_hint.startswith(".") else f".{extension_hint}"
        stem, dot, _ = filename.rpartition(".")
        return (stem if dot else filename) + ext
    if "." in filename:
        return filename
    return filename + extension_for_content_type(content_type)


def derive_key(
    source_url: str,
    content_type: str | None,
    extension_hint: str,
    identifier: str,
    *,
    prefix: str = DEFAULT_KEY_PREFIX,
) -> str:
    filename = filename_from_url(source_url) or DEFAULT_FILENAME
    filename = apply_extension(filename, extension_hint or "", content_type)
    return f"{prefix}/{identifier}/{filename}"


__all__ = [
    "CONTENT_TYPE_EXTENSIONS",
    "DEFAULT_FILENAME",
    "DEFAULT_KEY_PREFIX",
    "apply_extension",
    "derive_key",
    "extension_for_content_type",
    "filename_from_url",
]
