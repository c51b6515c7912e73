"""Local filesystem storage backend for hostpages.

Objects are stored under ``{root}/{key}``. HTTP metadata and the ETag are
kept in a JSON sidecar under ``{root}/.meta/{key}.json``.

Crash-only design:
    - Atomic writes via temp-fsync-rename pattern.
    - Never acknowledge before data is fsync'd to disk.
    - Startup cleans orphan temp files.
"""

import hashlib
import json
import logging
import os
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path

from hostpages.storage.backend import HttpMetadata, StoredObject
from hostpages.validation import RESERVED_KEY_PREFIX, validate_storage_key

logger = logging.getLogger(__name__)

_META_DIR = RESERVED_KEY_PREFIX

# Names produced by _atomic_write: "{name}.tmp.{8 hex chars}"
_TEMP_NAME_RE = re.compile(r".+\.tmp\.[0-9a-f]{8}")


def _atomic_write(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via temp file, fsync, rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.tmp.{uuid.uuid4().hex[:8]}")
    try:
        fd = os.open(str(tmp), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o644)
        try:
            os.write(fd, data)
            os.fsync(fd)
        finally:
            os.close(fd)
        tmp.rename(path)
    except Exception:
        try:
            tmp.unlink(missing_ok=True)
        except OSError:
            pass
        raise


class LocalStorageBackend:
    """Storage backend that persists objects on the local filesystem.

    Attributes:
        root: The root directory for all stored data.
    """

    def __init__(self, root: str | Path) -> None:
        """Initialize the local storage backend.

        Args:
            root: Root directory path for object storage.
        """
        self.root = Path(root)

    def _object_path(self, key: str) -> Path:
        """Return the filesystem path for a stored object.

        Raises:
            ValueError: If the key could escape the root, collides with
                the metadata directory, or looks like a temp file.
        """
        validate_storage_key(key)
        if _TEMP_NAME_RE.fullmatch(key.rsplit("/", 1)[-1]):
            raise ValueError(f"Storage key collides with temp file naming: {key!r}")
        return self.root / key

    def _meta_path(self, key: str) -> Path:
        return self.root / _META_DIR / f"{key}.json"

    async def init(self) -> None:
        """Create the root directory and clean up orphan temp files.

        Crash-only design: every startup is a recovery. Remove any
        leftover ``{name}.tmp.{hex}`` files from interrupted writes.
        """
        self.root.mkdir(parents=True, exist_ok=True)
        self._clean_temp_files()
        logger.info("Local storage backend initialized at %s", self.root)

    def _clean_temp_files(self) -> None:
        """Remove orphan temp files left by interrupted atomic writes."""
        count = 0
        for dirpath, _dirnames, filenames in os.walk(self.root):
            for fname in filenames:
                if _TEMP_NAME_RE.fullmatch(fname):
                    try:
                        os.unlink(os.path.join(dirpath, fname))
                        count += 1
                    except OSError:
                        pass
        if count > 0:
            logger.info("Cleaned %d orphan temp files on startup", count)

    async def close(self) -> None:
        """No-op for local filesystem backend."""
        pass

    async def put(
        self, key: str, data: bytes, http_metadata: HttpMetadata | None = None
    ) -> StoredObject:
        """Store an object's bytes and its metadata sidecar.

        The object file is committed before the sidecar, so a crash between
        the two leaves a readable object with default metadata.
        """
        path = self._object_path(key)
        http_metadata = http_metadata or HttpMetadata()
        obj = StoredObject(
            key=key,
            etag=hashlib.md5(data).hexdigest(),
            size=len(data),
            http_metadata=http_metadata,
            uploaded=datetime.now(timezone.utc),
        )

        _atomic_write(path, data)

        sidecar = {
            "etag": obj.etag,
            "size": obj.size,
            "uploaded": obj.uploaded.isoformat(),
            "http_metadata": http_metadata.to_dict(),
        }
        _atomic_write(self._meta_path(key), json.dumps(sidecar).encode("utf-8"))

        return obj

    async def get(self, key: str) -> StoredObject | None:
        """Read an object and its sidecar.

        Objects placed on disk without a sidecar are served with an ETag
        computed from their bytes and the file modification time.
        """
        path = self._object_path(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None

        try:
            sidecar = json.loads(self._meta_path(key).read_text("utf-8"))
        except FileNotFoundError:
            sidecar = None
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt metadata sidecar for %s", key)
            sidecar = None

        if sidecar is None:
            return StoredObject(
                key=key,
                etag=hashlib.md5(data).hexdigest(),
                size=len(data),
                body=data,
                uploaded=datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc),
            )

        return StoredObject(
            key=key,
            etag=sidecar.get("etag") or hashlib.md5(data).hexdigest(),
            size=len(data),
            body=data,
            http_metadata=HttpMetadata.from_dict(sidecar.get("http_metadata") or {}),
            uploaded=datetime.fromisoformat(sidecar["uploaded"])
            if sidecar.get("uploaded")
            else datetime.now(timezone.utc),
        )

    async def delete(self, key: str) -> None:
        """Delete an object and its sidecar.

        Silently ignores missing files (idempotent). Cleans up empty
        parent directories up to the root.
        """
        path = self._object_path(key)
        for target, stop in ((path, self.root), (self._meta_path(key), self.root / _META_DIR)):
            try:
                target.unlink()
            except FileNotFoundError:
                continue
            self._prune_empty_parents(target.parent, stop)

    def _prune_empty_parents(self, parent: Path, stop: Path) -> None:
        while parent != stop and parent != self.root:
            try:
                parent.rmdir()  # Only removes empty dirs
            except OSError:
                break
            parent = parent.parent
