from __future__ import annotations

import os
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TYPE_CHECKING, cast

import pytest
from litestar import Request
from litestar.types import HTTPScope

from audio_stream import RateLimiter, StreamHandler, StreamSettings
from audio_stream.ranges import MB
from audio_stream.storage.memory import InMemoryStorageGateway

if TYPE_CHECKING:
    from collections.abc import Generator

    from litestar.response import Response

STORAGE_ENV_KEYS = (
    "AUDIO_STREAM_BUCKET",
    "R2_BUCKET_NAME",
    "AUDIO_STREAM_S3_ENDPOINT",
    "R2_ENDPOINT",
    "AUDIO_STREAM_ACCOUNT_ID",
    "R2_ACCOUNT_ID",
    "AUDIO_STREAM_ACCESS_KEY_ID",
    "R2_ACCESS_KEY_ID",
    "AWS_ACCESS_KEY_ID",
    "AUDIO_STREAM_SECRET_ACCESS_KEY",
    "R2_SECRET_ACCESS_KEY",
    "AWS_SECRET_ACCESS_KEY",
    "AUDIO_STREAM_SESSION_TOKEN",
    "AUDIO_STREAM_REGION",
    "AUDIO_STREAM_ADDRESSING_STYLE",
)

STREAM_ENV_KEYS = (
    "AUDIO_STREAM_PATH",
    "AUDIO_STREAM_ALLOWED_ORIGIN",
    "SITE_URL",
    "AUDIO_STREAM_RATE_LIMIT_REQUESTS",
    "AUDIO_STREAM_RATE_LIMIT_WINDOW",
    "AUDIO_STREAM_SIGNING_SECRET",
    "AUDIO_STREAM_TRUST_FORWARDED_FOR",
    "AUDIO_STREAM_READ_CHUNK_SIZE",
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _set_env(env_vars: dict[str, str]) -> Generator[dict[str, str]]:
    original_values = {}
    for key in (*STORAGE_ENV_KEYS, *STREAM_ENV_KEYS):
        original_values[key] = os.environ.pop(key, None)
    for key, value in env_vars.items():
        original_values.setdefault(key, os.environ.get(key))
        os.environ[key] = value

    yield env_vars

    for key in env_vars:
        os.environ.pop(key, None)
    for key, original_value in original_values.items():
        if original_value is not None:
            os.environ[key] = original_value


@pytest.fixture
def clean_env() -> Generator[dict[str, str]]:
    """Remove every variable the settings classes read."""
    yield from _set_env({})


@pytest.fixture
def storage_env_vars() -> Generator[dict[str, str]]:
    """Set up environment variables for an R2 bucket."""
    yield from _set_env(
        {
            "R2_ACCOUNT_ID": "0123456789abcdef",
            "R2_ACCESS_KEY_ID": "r2-access",
            "R2_SECRET_ACCESS_KEY": "r2-secret",
            "R2_BUCKET_NAME": "podcasts",
        }
    )


@pytest.fixture
def stream_env_vars() -> Generator[dict[str, str]]:
    """Set up environment variables for the streaming endpoint."""
    yield from _set_env(
        {
            "AUDIO_STREAM_PATH": "api/audio/stream/",
            "AUDIO_STREAM_ALLOWED_ORIGIN": "https://player.example.com",
            "AUDIO_STREAM_RATE_LIMIT_REQUESTS": "5",
            "AUDIO_STREAM_RATE_LIMIT_WINDOW": "10",
            "AUDIO_STREAM_SIGNING_SECRET": "s3cret",
            "AUDIO_STREAM_TRUST_FORWARDED_FOR": "true",
        }
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> InMemoryStorageGateway:
    """In-memory gateway holding a few audio objects of different tiers."""
    gateway = InMemoryStorageGateway()
    gateway.put("small.mp3", bytes(range(256)) * (4 * MB // 256), "audio/mpeg")
    gateway.put("large.flac", b"\x01" * (20 * MB), "application/octet-stream")
    gateway.put("tiny.wav", b"RIFF" * 100)
    gateway.put("podcast", b"\x02" * 1000, "audio/x-custom")
    return gateway


@pytest.fixture
def handler(storage: InMemoryStorageGateway, clock: FakeClock) -> StreamHandler:
    return StreamHandler(
        storage=storage,
        rate_limiter=RateLimiter(limit=30, window=60.0, clock=clock),
        settings=StreamSettings(),
    )


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Build a Litestar request from a raw ASGI scope."""

    def factory(
        query_string: bytes = b"",
        headers: list[tuple[bytes, bytes]] | None = None,
        client: tuple[str, int] | None = ("203.0.113.7", 50000),
        path: str = "/stream",
    ) -> Request:
        scope = cast(
            HTTPScope,
            {
                "type": "http",
                "method": "GET",
                "path": path,
                "query_string": query_string,
                "headers": headers or [],
                "client": client,
            },
        )

        async def receive():
            return {"type": "http.request", "body": b""}

        return Request(scope=scope, receive=receive)

    return factory


async def _read_body(response: Response) -> bytes:
    body_chunks = []
    iterator_attr = getattr(response, "iterator", None)
    if callable(iterator_attr):
        iterator_func = cast(Callable[[], AsyncIterator[bytes]], iterator_attr)
        async for chunk in iterator_func():
            body_chunks.append(chunk)
    return b"".join(body_chunks)


@pytest.fixture
def read_body() -> Callable[[Response], Awaitable[bytes]]:
    """Drain the streamed body of a handler response."""
    return _read_body
