"""In-memory storage backend for hostpages.

Holds every object in a dictionary. Nothing survives a restart; used for
tests and throwaway deployments.
"""

import hashlib
import logging
from datetime import datetime, timezone

from hostpages.storage.backend import HttpMetadata, StoredObject

logger = logging.getLogger(__name__)


class MemoryStorageBackend:
    """Storage backend that holds all objects in memory.

    Objects are stored in a dictionary keyed by storage key with values of
    StoredObject (body included).
    """

    def __init__(self) -> None:
        self._objects: dict[str, StoredObject] = {}

    async def init(self) -> None:
        logger.info("Memory storage backend initialized")

    async def close(self) -> None:
        self._objects.clear()

    async def put(
        self, key: str, data: bytes, http_metadata: HttpMetadata | None = None
    ) -> StoredObject:
        obj = StoredObject(
            key=key,
            etag=hashlib.md5(data).hexdigest(),
            size=len(data),
            body=bytes(data),
            http_metadata=http_metadata or HttpMetadata(),
            uploaded=datetime.now(timezone.utc),
        )
        self._objects[key] = obj
        return StoredObject(
            key=key,
            etag=obj.etag,
            size=obj.size,
            http_metadata=obj.http_metadata,
            uploaded=obj.uploaded,
        )

    async def get(self, key: str) -> StoredObject | None:
        return self._objects.get(key)

    async def delete(self, key: str) -> None:
        self._objects.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._objects

    def __len__(self) -> int:
        return len(self._objects)
