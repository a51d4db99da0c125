from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Configuration for the S3-compatible object store."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    bucket: str = Field(
        default="audio-files",
        validation_alias=AliasChoices("AUDIO_STREAM_BUCKET", "R2_BUCKET_NAME"),
    )
    endpoint: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AUDIO_STREAM_S3_ENDPOINT", "R2_ENDPOINT"),
    )
    account_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AUDIO_STREAM_ACCOUNT_ID", "R2_ACCOUNT_ID"),
    )
    access_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "AUDIO_STREAM_ACCESS_KEY_ID",
            "R2_ACCESS_KEY_ID",
            "AWS_ACCESS_KEY_ID",
        ),
    )
    secret_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "AUDIO_STREAM_SECRET_ACCESS_KEY",
            "R2_SECRET_ACCESS_KEY",
            "AWS_SECRET_ACCESS_KEY",
        ),
    )
    session_token: str | None = Field(
        default=None,
        validation_alias="AUDIO_STREAM_SESSION_TOKEN",
    )
    region: str = Field(
        default="auto",
        validation_alias="AUDIO_STREAM_REGION",
    )
    addressing_style: Literal["auto", "virtual", "path"] = Field(
        default="path",
        validation_alias="AUDIO_STREAM_ADDRESSING_STYLE",
    )

    @property
    def resolved_endpoint(self) -> str | None:
        """Explicit endpoint, else the Cloudflare R2 endpoint for the account."""
        if self.endpoint:
            return self.endpoint
        if self.account_id:
            return f"https://{self.account_id}.r2.cloudflarestorage.com"
        return None


class StreamSettings(BaseSettings):
    """Configuration for the streaming endpoint."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    stream_path: str = Field(
        default="/stream",
        validation_alias="AUDIO_STREAM_PATH",
    )
    allowed_origin: str = Field(
        default="*",
        validation_alias=AliasChoices("AUDIO_STREAM_ALLOWED_ORIGIN", "SITE_URL"),
    )
    rate_limit_requests: int = Field(
        default=30,
        gt=0,
        validation_alias="AUDIO_STREAM_RATE_LIMIT_REQUESTS",
    )
    rate_limit_window: float = Field(
        default=60.0,
        gt=0,
        validation_alias="AUDIO_STREAM_RATE_LIMIT_WINDOW",
    )
    signing_secret: str | None = Field(
        default=None,
        validation_alias="AUDIO_STREAM_SIGNING_SECRET",
    )
    trust_forwarded_for: bool = Field(
        default=False,
        validation_alias="AUDIO_STREAM_TRUST_FORWARDED_FOR",
    )
    read_chunk_size: int = Field(
        default=64 * 1024,
        gt=0,
        validation_alias="AUDIO_STREAM_READ_CHUNK_SIZE",
    )

    @field_validator("stream_path", mode="before")
    @classmethod
    def _normalise_stream_path(cls, value: object) -> str:
        if not isinstance(value, str) or not value.strip():
            msg = "Invalid stream path"
            raise ValueError(msg)
        path = value.strip()
        if not path.startswith("/"):
            path = f"/{path}"
        if path != "/" and path.endswith("/"):
            path = path.rstrip("/") or "/"
        return path


def load_storage_settings_from_env() -> StorageSettings:
    """Load object store settings from environment variables.

    Returns:
        StorageSettings instance populated from environment variables.
    """
    return StorageSettings()


def load_stream_settings_from_env() -> StreamSettings:
    """Load streaming endpoint settings from environment variables.

    Returns:
        StreamSettings instance populated from environment variables.
    """
    return StreamSettings()
