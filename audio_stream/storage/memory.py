from __future__ import annotations

import io
from dataclasses import dataclass, field

from audio_stream.storage import ObjectBody, ObjectMetadata, StorageGateway


@dataclass
class StoredObject:
    body: bytes
    content_type: str | None = None


@dataclass
class InMemoryStorageGateway(StorageGateway):
    objects: dict[str, StoredObject] = field(default_factory=dict)

    def put(self, name: str, body: bytes, content_type: str | None = None) -> None:
        self.objects[name] = StoredObject(body=body, content_type=content_type)

    async def get_metadata(self, name: str) -> ObjectMetadata | None:
        obj = self.objects.get(name)
        if obj is None:
            return None
        return ObjectMetadata(size=len(obj.body), content_type=obj.content_type)

    async def get_range(self, name: str, start: int, end: int) -> ObjectBody | None:
        obj = self.objects.get(name)
        if obj is None:
            return None
        data = obj.body[start : end + 1]
        if not data:
            return None
        return io.BytesIO(data)

    def close(self) -> None:
        pass
