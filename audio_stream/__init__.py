"""Adaptive byte-range streaming of audio objects from S3-compatible storage."""

from .handler import StreamHandler
from .ranges import ByteRange, SizeTier, optimize_range, parse_range, plan_range
from .ratelimit import RateLimiter
from .response import build_response
from .settings import StorageSettings, StreamSettings

__all__ = [
    "ByteRange",
    "RateLimiter",
    "SizeTier",
    "StorageSettings",
    "StreamHandler",
    "StreamSettings",
    "build_response",
    "optimize_range",
    "parse_range",
    "plan_range",
]
