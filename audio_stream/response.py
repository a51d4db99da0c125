"""Response metadata for served byte ranges."""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import quote

from .ranges import MB, ByteRange

DEFAULT_CONTENT_TYPE = "audio/mpeg"

MIME_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    "m4a": "audio/mp4",
}

CACHE_SHORT = "public, max-age=7200, stale-while-revalidate=3600"
CACHE_IMMUTABLE = "public, max-age=31536000, immutable"
CACHE_MEDIUM = "public, max-age=86400, stale-while-revalidate=3600"

LARGE_OBJECT_THRESHOLD = 10 * MB

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Disposition": "inline",
}


@dataclass
class ResponseDescriptor:
    status_code: int
    content_type: str
    headers: dict[str, str] = field(default_factory=dict)
    next_range: ByteRange | None = None


def file_extension(file_name: str) -> str:
    return file_name.rsplit(".", 1)[-1].lower()


def resolve_content_type(
    file_extension: str, object_content_type: str | None = None
) -> str:
    mime_type = MIME_TYPES.get(file_extension.lower())
    return mime_type or object_content_type or DEFAULT_CONTENT_TYPE


def select_cache_control(
    is_first_request: bool, object_size: int, is_partial: bool
) -> str:
    if is_first_request:
        # Initial chunks of large files refresh sooner.
        if object_size > LARGE_OBJECT_THRESHOLD:
            return CACHE_SHORT
        return CACHE_MEDIUM
    if is_partial:
        return CACHE_IMMUTABLE
    return CACHE_MEDIUM


def next_chunk(served: ByteRange, object_size: int) -> ByteRange | None:
    """Bounds of the chunk following ``served``, using the same span length."""
    if served.end >= object_size - 1:
        return None
    next_start = served.end + 1
    return ByteRange(
        next_start, min(next_start + served.length - 1, object_size - 1)
    )


def build_response(
    served: ByteRange,
    object_size: int,
    is_first_request: bool,
    object_content_type: str | None,
    file_extension: str,
    *,
    partial: bool | None = None,
    file_name: str | None = None,
    allowed_origin: str = "*",
    stream_path: str = "/stream",
) -> ResponseDescriptor:
    """Assemble status and headers for serving ``served`` out of an object.

    Args:
        served: The span actually sent to the client.
        object_size: Total size of the object in bytes.
        is_first_request: Whether this is the first request of a stream.
        object_content_type: Content type reported by storage, if any.
        file_extension: Extension of the requested file name.
        partial: Force 206 semantics; defaults to whether ``served`` misses
            any byte of the object.
        file_name: Name used in the prefetch ``Link`` reference.
        allowed_origin: Value of ``Access-Control-Allow-Origin``.
        stream_path: Path of the streaming endpoint for the prefetch link.

    Returns:
        ResponseDescriptor with the status code, headers and next range.
    """
    if partial is None:
        partial = served.start > 0 or served.end < object_size - 1

    content_type = resolve_content_type(file_extension, object_content_type)
    headers = {
        "Content-Type": content_type,
        "Content-Length": str(served.length),
        "Accept-Ranges": "bytes",
        "Cache-Control": select_cache_control(
            is_first_request, object_size, partial
        ),
        "Access-Control-Allow-Origin": allowed_origin,
        **SECURITY_HEADERS,
    }

    following = next_chunk(served, object_size) if partial else None
    if following is not None:
        target = stream_path
        if file_name is not None:
            target = f"{stream_path}?file={quote(file_name, safe='')}"
        headers["Link"] = f"<{target}>; rel=prefetch; as=audio"
        headers["X-Next-Range"] = following.header_value()

    if partial:
        headers["Content-Range"] = (
            f"bytes {served.start}-{served.end}/{object_size}"
        )

    return ResponseDescriptor(
        status_code=206 if partial else 200,
        content_type=content_type,
        headers=headers,
        next_range=following,
    )
