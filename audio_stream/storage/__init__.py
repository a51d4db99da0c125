from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass
class ObjectMetadata:
    size: int
    content_type: str | None = None


class ObjectBody(Protocol):
    """Blocking file-like body, such as botocore's ``StreamingBody``."""

    def read(self, amt: int | None = None) -> bytes: ...

    def close(self) -> None: ...


class StorageGateway(Protocol):
    async def get_metadata(self, name: str) -> ObjectMetadata | None: ...

    async def get_range(self, name: str, start: int, end: int) -> ObjectBody | None: ...

    def close(self) -> None: ...
