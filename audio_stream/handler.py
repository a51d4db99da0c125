from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from anyio import CancelScope, to_thread
from litestar.enums import MediaType
from litestar.response import Response, Stream

from . import signing
from .errors import (
    InvalidInput,
    MetadataUnavailable,
    ObjectNotFound,
    RateExceeded,
    StreamError,
)
from .ranges import plan_range
from .ratelimit import RateLimiter
from .response import build_response, file_extension
from .settings import (
    StreamSettings,
    load_storage_settings_from_env,
    load_stream_settings_from_env,
)
from .storage.s3 import S3StorageGateway

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from litestar import Request

    from .storage import ObjectBody, StorageGateway

LOG = logging.getLogger("audio_stream.handler")


class StreamHandler:
    """Serves ``GET <stream_path>?file=<name>`` with optimised byte ranges."""

    def __init__(
        self,
        storage: StorageGateway,
        rate_limiter: RateLimiter | None = None,
        settings: StreamSettings | None = None,
    ):
        self._settings = settings or StreamSettings()
        self._storage = storage
        if rate_limiter is None:
            rate_limiter = RateLimiter(
                limit=self._settings.rate_limit_requests,
                window=self._settings.rate_limit_window,
            )
        self._rate_limiter = rate_limiter

    @property
    def settings(self) -> StreamSettings:
        return self._settings

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    async def startup(self) -> None:
        describe = getattr(self._storage, "describe", None)
        LOG.info(
            "audio stream ready (path=%s, storage=%s, rate limit=%d/%ss, signing=%s)",
            self._settings.stream_path,
            describe() if callable(describe) else type(self._storage).__name__,
            self._rate_limiter.limit,
            self._rate_limiter.window,
            "enabled" if self._settings.signing_secret else "disabled",
        )

    async def shutdown(self) -> None:
        self._storage.close()

    async def handle(self, request: Request) -> Response:
        try:
            return await self._serve(request)
        except StreamError as error:
            LOG.debug(
                "stream request rejected status=%s reason=%s",
                error.status_code,
                error.message,
            )
            return self._error_response(error)
        except Exception:
            LOG.exception("audio stream error")
            return self._error_response(StreamError())

    def preflight(self) -> Response:
        return Response(
            content=b"",
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": self._settings.allowed_origin,
                "Access-Control-Allow-Methods": "GET, OPTIONS",
                "Access-Control-Allow-Headers": "Content-Type, Range",
                "Access-Control-Max-Age": "86400",
            },
        )

    async def _serve(self, request: Request) -> Response:
        file_name = request.query_params.get("file")
        if not file_name:
            raise InvalidInput

        if self._settings.signing_secret:
            signing.verify(
                file_name,
                request.query_params.get("token"),
                request.query_params.get("expires"),
                self._settings.signing_secret,
            )

        identifier = self._client_identifier(request)
        if not self._rate_limiter.admit(identifier):
            LOG.warning("rate limit exceeded for %s", identifier)
            raise RateExceeded(self._rate_limiter.retry_after(identifier))

        metadata = await self._storage.get_metadata(file_name)
        if metadata is None or not metadata.size:
            raise MetadataUnavailable

        plan = plan_range(request.headers.get("range"), metadata.size)
        LOG.debug(
            "range for %s: requested=%s served=%s-%s of %s first=%s",
            file_name,
            plan.requested,
            plan.served.start,
            plan.served.end,
            metadata.size,
            plan.is_first_request,
        )

        body = await self._storage.get_range(
            file_name, plan.served.start, plan.served.end
        )
        if body is None:
            raise ObjectNotFound

        descriptor = build_response(
            plan.served,
            metadata.size,
            plan.is_first_request,
            metadata.content_type,
            file_extension(file_name),
            partial=plan.is_partial,
            file_name=file_name,
            allowed_origin=self._settings.allowed_origin,
            stream_path=self._settings.stream_path,
        )
        if descriptor.next_range is not None:
            LOG.debug(
                "prefetch hint for %s: %s-%s",
                file_name,
                descriptor.next_range.start,
                descriptor.next_range.end,
            )
        headers = {
            key: value
            for key, value in descriptor.headers.items()
            if key != "Content-Type"
        }
        return Stream(
            content=self._iter_body(body),
            status_code=descriptor.status_code,
            headers=headers,
            media_type=descriptor.content_type,
        )

    def _iter_body(self, body: ObjectBody):
        chunk_size = self._settings.read_chunk_size

        async def iterator() -> AsyncIterator[bytes]:
            try:
                while True:
                    chunk = await to_thread.run_sync(body.read, chunk_size)
                    if not chunk:
                        break
                    yield chunk
            finally:
                # Shielded: on client disconnect the task is already cancelled.
                with CancelScope(shield=True):
                    await to_thread.run_sync(body.close)

        return iterator

    def _client_identifier(self, request: Request) -> str:
        if self._settings.trust_forwarded_for:
            forwarded = request.headers.get("x-forwarded-for")
            if forwarded:
                return forwarded.split(",")[0].strip()
        client = request.client
        if client is not None and client.host:
            return client.host
        return "anonymous"

    def _error_response(self, error: StreamError) -> Response:
        headers: dict[str, str] = {
            "Access-Control-Allow-Origin": self._settings.allowed_origin,
        }
        if isinstance(error, RateExceeded):
            headers["Retry-After"] = str(max(1, math.ceil(error.retry_after)))
        content: Any = {"error": error.message}
        media_type = MediaType.JSON
        if error.status_code == 416:
            content = error.message
            media_type = MediaType.TEXT
        return Response(
            content=content,
            status_code=error.status_code,
            headers=headers,
            media_type=media_type,
        )

    @classmethod
    def from_env(cls) -> StreamHandler:
        """Create a StreamHandler backed by S3 from environment variables.

        Returns:
            StreamHandler configured from environment variables.
        """
        settings = load_stream_settings_from_env()
        return cls(
            storage=S3StorageGateway(load_storage_settings_from_env()),
            settings=settings,
        )
