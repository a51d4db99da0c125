from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING, Any

from anyio import to_thread
from boto3.session import Session
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from audio_stream.storage import ObjectBody, ObjectMetadata, StorageGateway

if TYPE_CHECKING:
    from collections.abc import Callable

    from audio_stream.settings import StorageSettings

LOG = logging.getLogger("audio_stream.storage.s3")

_MISSING_CODES = {"404", "NoSuchKey", "NotFound", "NoSuchBucket"}


async def _run_sync(func: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Any:
    return await to_thread.run_sync(func, *args, **kwargs)


class S3StorageGateway(StorageGateway):
    """Reads audio objects from an S3-compatible bucket (S3, R2, MinIO).

    Backend failures are logged and reported as ``None``; callers decide
    which HTTP error that becomes.
    """

    def __init__(self, settings: StorageSettings, client: Any = None):
        self._settings = settings
        self._client = client if client is not None else self._build_client()

    @property
    def bucket(self) -> str:
        return self._settings.bucket

    def _build_client(self):
        session = Session(
            aws_access_key_id=self._settings.access_key,
            aws_secret_access_key=self._settings.secret_key,
            aws_session_token=self._settings.session_token,
            region_name=self._settings.region,
        )
        return session.client(
            "s3",
            endpoint_url=self._settings.resolved_endpoint,
            config=BotoConfig(
                signature_version="s3v4",
                retries={"max_attempts": 3},
                s3={"addressing_style": self._settings.addressing_style},
            ),
        )

    async def get_metadata(self, name: str) -> ObjectMetadata | None:
        try:
            result = await _run_sync(
                partial(self._client.head_object, Bucket=self.bucket, Key=name)
            )
        except (BotoCoreError, ClientError) as error:
            self._log_failure("metadata", name, error)
            return None
        return ObjectMetadata(
            size=int(result.get("ContentLength") or 0),
            content_type=result.get("ContentType"),
        )

    async def get_range(self, name: str, start: int, end: int) -> ObjectBody | None:
        try:
            result = await _run_sync(
                partial(
                    self._client.get_object,
                    Bucket=self.bucket,
                    Key=name,
                    Range=f"bytes={start}-{end}",
                )
            )
        except (BotoCoreError, ClientError) as error:
            self._log_failure("range", name, error)
            return None
        body = result.get("Body")
        if body is None:
            return None
        if result.get("ContentLength") == 0:
            await _run_sync(body.close)
            return None
        return body

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()

    def _log_failure(self, operation: str, name: str, error: Exception) -> None:
        code = None
        if isinstance(error, ClientError):
            code = error.response.get("Error", {}).get("Code")
        if code in _MISSING_CODES:
            LOG.debug("%s miss for s3://%s/%s", operation, self.bucket, name)
            return
        LOG.warning(
            "%s lookup failed for s3://%s/%s: %s",
            operation,
            self.bucket,
            name,
            error,
        )

    def describe(self) -> str:
        endpoint = self._settings.resolved_endpoint or "aws"
        return f"s3://{self.bucket} via {endpoint} ({self._settings.region})"
