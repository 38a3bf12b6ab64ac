"""
Bin Tracker — Bin Service (Upsert Engine)
==========================================

What:  Business logic behind the bin endpoints: reads, metadata upserts,
       photo upload and photo lookup.
How:   Composes a RowStore and a BlobStore handed in by the caller; holds no
       other state.
Who:   Built per request by bintracker.dependencies; called by route handlers.

Upsert Flow:
    ┌───────────┐    ┌──────────────────┐    ┌──────────────┐    ┌──────────┐
    │  Fetch    │───▶│  Merge fields    │───▶│ Insert or    │───▶│ Re-fetch │
    │  existing │    │  (sent > stored) │    │ update row   │    │ & return │
    └───────────┘    └──────────────────┘    └──────────────┘    └──────────┘

    A field counts as sent when its key is present in `changes`, whatever
    its value. "" and None overwrite; a missing key keeps the stored value.

Photo upload:
    The blob is written first, then photo_key is upserted. If the upsert
    fails the blob stays behind unreferenced.
"""

import logging
import time
from typing import Callable, Mapping, Optional, Tuple
from urllib.parse import quote

from bintracker.config import settings
from bintracker.exceptions import BadRequestError, NotFoundError
from bintracker.models.bin import BIN_FIELDS, Bin
from bintracker.schemas.bin import BinRecord, BinView
from bintracker.services.blob_store import BlobStore, StoredBlob
from bintracker.services.row_store import RowStore

logger = logging.getLogger(__name__)

# Left unescaped in bin ids, as browsers' encodeURIComponent does
URL_SAFE = "!*'()"


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the Unix epoch."""
    return int(time.time() * 1000)


def photo_url(bin_id: str) -> str:
    """Public URL of a bin's latest photo."""
    return f"/bin/{quote(bin_id, safe=URL_SAFE)}/photo"


def photo_key(bin_id: str, timestamp: int) -> str:
    """Blob key for a photo uploaded at `timestamp` (ms)."""
    return f"bins/{quote(bin_id, safe=URL_SAFE)}/{timestamp}.img"


def merge_fields(
    existing: Optional[Bin], changes: Mapping[str, Optional[str]]
) -> dict:
    """
    Resolve every reconciled field from the sent changes and the stored row.

    Keys outside BIN_FIELDS are ignored.
    """
    current = existing.fields() if existing is not None else {}
    return {
        name: changes[name] if name in changes else current.get(name)
        for name in BIN_FIELDS
    }


class BinService:
    """
    Bin operations over injected stores.

    Responsibilities:
        - get_bin(): Row lookup
        - upsert_bin(): Presence-aware merge and write
        - upload_photo(): Store blob, then point the bin at it
        - open_photo(): Resolve a bin's photo blob or raise NotFoundError
    """

    def __init__(
        self,
        rows: RowStore,
        blobs: BlobStore,
        clock: Callable[[], int] = now_ms,
    ):
        self.rows = rows
        self.blobs = blobs
        self.clock = clock

    async def get_bin(self, bin_id: str) -> Optional[Bin]:
        row = await self.rows.get(bin_id)
        if row is None:
            logger.debug("Bin %s not registered", bin_id)
        return row

    async def upsert_bin(
        self, bin_id: str, changes: Mapping[str, Optional[str]]
    ) -> Bin:
        """
        Merge `changes` into the stored bin, creating it if needed.

        Args:
            bin_id: Label identifier of the bin
            changes: Only the fields the client sent (presence matters)

        Returns:
            The row as stored after the write.
        """
        existing = await self.rows.get(bin_id)
        fields = merge_fields(existing, changes)

        updated_at = self.clock()
        if existing is not None and existing.updated_at is not None:
            # never move backwards if the wall clock stepped back
            updated_at = max(updated_at, existing.updated_at)

        if existing is None:
            await self.rows.insert(bin_id, fields, updated_at)
            logger.info("Bin %s created (fields=%s)", bin_id, sorted(changes))
        else:
            await self.rows.update(bin_id, fields, updated_at)
            logger.info("Bin %s updated (fields=%s)", bin_id, sorted(changes))

        return await self.rows.get(bin_id)

    def check_upload_size(
        self, content_length: Optional[int], actual_size: Optional[int] = None
    ) -> None:
        """
        Reject photos above settings.max_upload_size.

        The route calls this with the Content-Length header before reading
        the body; upload_photo() calls it again with the real byte count.

        Raises:
            BadRequestError with the limit in MB
        """
        max_mb = settings.max_upload_size / (1024 * 1024)
        for size in (content_length, actual_size):
            if size is not None and size > settings.max_upload_size:
                raise BadRequestError(
                    message=f"Photo exceeds maximum upload size of {max_mb:.0f}MB.",
                    context={"size": size, "max_size": settings.max_upload_size},
                )

    async def upload_photo(
        self, bin_id: str, data: bytes, content_type: Optional[str] = None
    ) -> Tuple[str, Bin]:
        """
        Store a new photo for the bin and reference it from the row.

        Returns:
            Tuple of (photo_key, resolved bin row).

        Raises:
            BadRequestError: Payload larger than settings.max_upload_size
        """
        self.check_upload_size(None, len(data))

        key = photo_key(bin_id, self.clock())
        await self.blobs.put(
            key,
            data,
            content_type or settings.default_upload_content_type,
            cache_control=settings.photo_cache_control or None,
        )

        row = await self.upsert_bin(bin_id, {"photo_key": key})
        return key, row

    async def open_photo(self, bin_id: str) -> StoredBlob:
        """
        Find the blob referenced by the bin's photo_key.

        Raises:
            NotFoundError: Unknown bin, no photo set, or blob missing
        """
        row = await self.rows.get(bin_id)
        if row is None or not row.photo_key:
            raise NotFoundError(
                message="No photo for this bin",
                resource="photo",
                resource_id=bin_id,
            )

        blob = await self.blobs.get(row.photo_key)
        if blob is None:
            logger.warning("Bin %s references missing blob %s", bin_id, row.photo_key)
            raise NotFoundError(
                message="Photo object not found",
                resource="photo",
                resource_id=bin_id,
                context={"photo_key": row.photo_key},
            )
        return blob


# ── Serialization helpers ─────────────────────────────────────────────────

def to_record(row: Bin) -> BinRecord:
    return BinRecord.model_validate(row)


def to_view(row: Bin) -> BinView:
    """Public JSON view; photo_url is set only when a photo key exists."""
    return BinView(
        bin_id=row.bin_id,
        case_code=row.case_code,
        bin_type=row.bin_type,
        notes=row.notes,
        photo_url=photo_url(row.bin_id) if row.photo_key else None,
        updated_at=row.updated_at,
    )
