"""Abstract storage backend protocol and object model for hostpages."""

from collections.abc import Mapping, MutableMapping
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Protocol

# Request/response header name for each HttpMetadata field
_HEADER_NAMES = {
    "content_type": "Content-Type",
    "content_language": "Content-Language",
    "content_disposition": "Content-Disposition",
    "content_encoding": "Content-Encoding",
    "cache_control": "Cache-Control",
    "expires": "Expires",
}


@dataclass(frozen=True)
class HttpMetadata:
    """HTTP headers stored alongside an object and replayed on read."""

    content_type: str | None = None
    content_language: str | None = None
    content_disposition: str | None = None
    content_encoding: str | None = None
    cache_control: str | None = None
    expires: str | None = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "HttpMetadata":
        """Pick the supported content headers out of a request."""
        return cls(**{attr: headers.get(name) for attr, name in _HEADER_NAMES.items()})

    @classmethod
    def from_dict(cls, data: Mapping[str, str | None]) -> "HttpMetadata":
        return cls(**{attr: data.get(attr) for attr in _HEADER_NAMES})

    def to_dict(self) -> dict[str, str | None]:
        return asdict(self)

    def write_headers(self, headers: MutableMapping[str, str]) -> None:
        """Set every non-empty field on ``headers``."""
        for attr, name in _HEADER_NAMES.items():
            value = getattr(self, attr)
            if value:
                headers[name] = value


@dataclass(frozen=True)
class StoredObject:
    """An object as returned by a storage backend.

    Attributes:
        key: The storage key.
        body: The object bytes (empty for the result of ``put``).
        etag: Hex-encoded MD5 of the body, unquoted.
        size: Body length in bytes.
        http_metadata: Headers replayed on GET.
        uploaded: When the object was written.
    """

    key: str
    etag: str
    size: int
    body: bytes = b""
    http_metadata: HttpMetadata = field(default_factory=HttpMetadata)
    uploaded: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def http_etag(self) -> str:
        """The ETag quoted for use in an HTTP header."""
        return f'"{self.etag}"'

    def write_http_metadata(self, headers: MutableMapping[str, str]) -> None:
        self.http_metadata.write_headers(headers)


class StorageBackend(Protocol):
    """Protocol defining the object storage backend interface.

    All storage backends (memory, local filesystem, AWS S3 / R2) must
    implement this interface. Keys are opaque strings taken from the
    route table.
    """

    async def init(self) -> None:
        """Initialize the storage backend (create directories, connect, etc.)."""
        ...

    async def close(self) -> None:
        """Release resources held by the storage backend."""
        ...

    async def put(
        self, key: str, data: bytes, http_metadata: HttpMetadata | None = None
    ) -> StoredObject:
        """Store an object's bytes, overwriting any existing object.

        Args:
            key: The storage key.
            data: The raw bytes to store.
            http_metadata: Optional headers to replay on GET.

        Returns:
            The stored object's metadata (``body`` left empty).
        """
        ...

    async def get(self, key: str) -> StoredObject | None:
        """Retrieve an object.

        Args:
            key: The storage key.

        Returns:
            The object with its body, or None if it does not exist.
        """
        ...

    async def delete(self, key: str) -> None:
        """Delete an object. Missing keys are not an error.

        Args:
            key: The storage key.
        """
        ...
