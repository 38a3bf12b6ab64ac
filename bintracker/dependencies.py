"""
Bin Tracker — Dependency Providers
===================================

What:  FastAPI `Depends` providers wiring stores into BinService.
How:   The row store wraps the per-request database session; the blob store
       is created once and reused. Route handlers only ever ask for
       `get_bin_service`, so tests swap the whole stack with
       `app.dependency_overrides[get_bin_service]`.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bintracker.database import get_db_session
from bintracker.services.bin_service import BinService
from bintracker.services.blob_store import BlobStore, LocalBlobStore
from bintracker.services.row_store import RowStore, SqlAlchemyRowStore


def get_row_store(db: AsyncSession = Depends(get_db_session)) -> RowStore:
    return SqlAlchemyRowStore(db)


@lru_cache(maxsize=1)
def get_blob_store() -> BlobStore:
    return LocalBlobStore()


def get_bin_service(
    rows: RowStore = Depends(get_row_store),
    blobs: BlobStore = Depends(get_blob_store),
) -> BinService:
    return BinService(rows=rows, blobs=blobs)
