"""Routing input validation helpers for hostpages.

These checks run when the route table is loaded from configuration, and
again in the filesystem backend before a key is turned into a path. They
raise ``ValueError`` so Pydantic reports them as validation errors.
"""

_MAX_KEY_BYTES = 1024

# First key segment reserved for the filesystem backend's metadata sidecars
RESERVED_KEY_PREFIX = ".meta"


def validate_route_path(path: str) -> None:
    """Validate a request path used as a route-table or allow-list entry.

    Args:
        path: The URL path, exactly as it appears in requests.

    Raises:
        ValueError: If the path does not start with ``/``.
    """
    if not path.startswith("/"):
        raise ValueError(f"Route path must start with '/': {path!r}")


def validate_storage_key(key: str) -> None:
    """Validate a storage key.

    Keys are relative, non-empty, at most 1024 bytes of UTF-8, and may not
    contain ``.`` or ``..`` segments. The first segment may not be
    ``.meta``, where the filesystem backend keeps object metadata.

    Args:
        key: The storage key string.

    Raises:
        ValueError: If the key violates any of the rules above.
    """
    if not key:
        raise ValueError("Storage key must not be empty")

    if len(key.encode("utf-8")) > _MAX_KEY_BYTES:
        raise ValueError(f"Storage key is longer than {_MAX_KEY_BYTES} bytes")

    if key.startswith("/"):
        raise ValueError(f"Storage key must be relative: {key!r}")

    if any(part in (".", "..") for part in key.split("/")):
        raise ValueError(f"Storage key must not contain '.' or '..' segments: {key!r}")

    if key.split("/", 1)[0] == RESERVED_KEY_PREFIX:
        raise ValueError(f"Storage key uses reserved prefix {RESERVED_KEY_PREFIX!r}: {key!r}")
