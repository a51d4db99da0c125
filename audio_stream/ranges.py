"""Byte-range parsing and chunk sizing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from .errors import UnsatisfiableRange

KB = 1024
MB = 1024 * KB

_RANGE_RE = re.compile(r"bytes=(\d*)-(\d*)")


@dataclass(frozen=True)
class ByteRange:
    """Inclusive, zero-indexed span of an object's bytes."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def header_value(self) -> str:
        return f"bytes={self.start}-{self.end}"


class SizeTier(Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"

    @classmethod
    def for_size(cls, object_size: int) -> SizeTier:
        if object_size < 5 * MB:
            return cls.SMALL
        if object_size < 15 * MB:
            return cls.MEDIUM
        return cls.LARGE

    @property
    def initial_chunk_size(self) -> int:
        """Bytes served on the first request of a stream."""
        return _INITIAL_CHUNK_SIZES[self]

    @property
    def optimal_chunk_size(self) -> int:
        """Smallest span worth a round trip once playback is underway."""
        return _OPTIMAL_CHUNK_SIZES[self]


_INITIAL_CHUNK_SIZES = {
    SizeTier.SMALL: 1 * MB,
    SizeTier.MEDIUM: 2 * MB,
    SizeTier.LARGE: 3 * MB,
}

_OPTIMAL_CHUNK_SIZES = {
    SizeTier.SMALL: 512 * KB,
    SizeTier.MEDIUM: 1 * MB,
    SizeTier.LARGE: 1536 * KB,
}


@dataclass(frozen=True)
class RangePlan:
    requested: ByteRange | None
    served: ByteRange
    is_first_request: bool
    is_partial: bool


def parse_range(header: str, object_size: int) -> ByteRange:
    """Parse a single ``bytes=<start>-<end>`` range against ``object_size``.

    A missing start means 0 and a missing end means the last byte, so
    ``bytes=-500`` is ``0-500`` rather than a suffix range.

    Raises:
        UnsatisfiableRange: if the header is malformed or out of bounds.
    """
    match = _RANGE_RE.search(header)
    if match is None:
        raise UnsatisfiableRange
    start_str, end_str = match.groups()
    start = int(start_str) if start_str else 0
    end = int(end_str) if end_str else object_size - 1

    if start >= object_size or end >= object_size or start > end:
        raise UnsatisfiableRange
    return ByteRange(start, end)


def optimize_range(
    requested: ByteRange, object_size: int, is_first_request: bool
) -> ByteRange:
    """Return the span actually served for ``requested``.

    A first request starting at 0 always gets the tier's initial chunk,
    whatever end the client asked for. Every other request is expanded
    forward to the tier's optimal chunk size when it is smaller and does not
    already reach the end of the object; it is never shrunk.
    """
    tier = SizeTier.for_size(object_size)
    last_byte = object_size - 1

    if is_first_request and requested.start == 0:
        return ByteRange(0, min(tier.initial_chunk_size - 1, last_byte))

    optimal = tier.optimal_chunk_size
    if requested.length < optimal and requested.end < last_byte:
        return ByteRange(
            requested.start, min(requested.start + optimal - 1, last_byte)
        )
    return requested


def plan_range(header: str | None, object_size: int) -> RangePlan:
    """Decide the served span for a request with an optional Range header."""
    if header:
        requested = parse_range(header, object_size)
        is_first_request = requested.start == 0
        served = optimize_range(requested, object_size, is_first_request)
        return RangePlan(
            requested=requested,
            served=served,
            is_first_request=is_first_request,
            is_partial=True,
        )

    served = optimize_range(ByteRange(0, object_size - 1), object_size, True)
    return RangePlan(
        requested=None,
        served=served,
        is_first_request=True,
        is_partial=served.end < object_size - 1,
    )
