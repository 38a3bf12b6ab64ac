"""
Bin Tracker — Blob Store Adapter
=================================

What:  Stores and streams opaque byte payloads (bin photos) by string key.
How:   BlobStore is the abstract contract; LocalBlobStore keeps each payload
       as a file under the storage root with a JSON metadata sidecar.
Who:   Called by BinService for photo upload and download.

Directory Structure (LocalBlobStore):
    storage/
    └── bins/
        └── A-12/
            ├── 1718000000000.img
            └── 1718000000000.img.meta.json   {"content_type": ..., "cache_control": ...}

    Keys come from BinService and embed the upload time, so earlier photos of
    a bin stay on disk even though only the latest is referenced. Writing an
    existing key replaces it.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

import aiofiles

from bintracker.config import settings
from bintracker.exceptions import BlobStorageError

logger = logging.getLogger(__name__)

META_SUFFIX = ".meta.json"
CHUNK_SIZE = 64 * 1024


@dataclass
class StoredBlob:
    """A payload in the blob store plus its HTTP metadata."""

    key: str
    content_type: Optional[str]
    size: int
    cache_control: Optional[str] = None
    reader: Optional[Callable[[], AsyncIterator[bytes]]] = field(default=None, repr=False)

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """Yields the payload in chunks (used as a StreamingResponse body)."""
        if self.reader is None:
            return
        async for chunk in self.reader():
            yield chunk

    async def read(self) -> bytes:
        return b"".join([chunk async for chunk in self.iter_bytes()])


class BlobStore(ABC):
    """
    Abstract key → bytes store with content-type metadata.

    Contract:
        - put() writes (or overwrites) the payload and its metadata
        - get() returns None when nothing is stored under the key
    """

    @abstractmethod
    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: Optional[str] = None,
    ) -> StoredBlob:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[StoredBlob]:
        ...

    async def is_available(self) -> bool:
        """Lightweight readiness probe used by /health."""
        return True


class LocalBlobStore(BlobStore):
    """BlobStore on the local filesystem, written with aiofiles."""

    def __init__(self, root: Optional[str] = None):
        """
        Args:
            root: Override the storage directory (used in tests).
                  If None, uses settings.blob_storage_root.
        """
        self.root = Path(root or settings.blob_storage_root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info("LocalBlobStore initialized with root=%s", self.root)

    def _path_for(self, key: str) -> Path:
        """
        Resolve a key to a path inside the root.

        Raises:
            BlobStorageError if the key escapes the storage root.
        """
        path = (self.root / key).resolve()
        if path != self.root and self.root not in path.parents:
            raise BlobStorageError(
                message="Invalid photo key",
                context={"key": key},
            )
        return path

    @staticmethod
    def _meta_path(path: Path) -> Path:
        return path.with_name(path.name + META_SUFFIX)

    def _reader(self, path: Path) -> Callable[[], AsyncIterator[bytes]]:
        async def read_chunks() -> AsyncIterator[bytes]:
            async with aiofiles.open(path, "rb") as f:
                while True:
                    chunk = await f.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    yield chunk

        return read_chunks

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: Optional[str] = None,
    ) -> StoredBlob:
        path = self._path_for(key)
        meta = {
            "content_type": content_type,
            "cache_control": cache_control,
            "size": len(data),
            "stored_at": datetime.now(timezone.utc).isoformat(),
        }

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
            async with aiofiles.open(self._meta_path(path), "w", encoding="utf-8") as f:
                await f.write(json.dumps(meta))
        except OSError as e:
            logger.error("Failed to store blob at %s: %s", path, str(e))
            raise BlobStorageError(
                message="Failed to save uploaded photo. Please try again.",
                context={"key": key, "os_error": str(e)},
            )

        logger.info("Blob stored: %s (%d bytes, %s)", key, len(data), content_type)
        return StoredBlob(
            key=key,
            content_type=content_type,
            size=len(data),
            cache_control=cache_control,
            reader=self._reader(path),
        )

    async def get(self, key: str) -> Optional[StoredBlob]:
        path = self._path_for(key)
        if not path.is_file():
            logger.debug("Blob not found: %s", key)
            return None

        meta = {}
        meta_path = self._meta_path(path)
        if meta_path.is_file():
            async with aiofiles.open(meta_path, "r", encoding="utf-8") as f:
                meta = json.loads(await f.read())

        return StoredBlob(
            key=key,
            content_type=meta.get("content_type"),
            size=path.stat().st_size,
            cache_control=meta.get("cache_control"),
            reader=self._reader(path),
        )

    async def is_available(self) -> bool:
        return self.root.is_dir()
