"""
Bin Tracker — Test Configuration (conftest.py)
===============================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixtures (function-scoped):
    ├── row_store / blob_store: In-memory RowStore and BlobStore fakes
    ├── clock: Deterministic millisecond clock (advances 1ms per call)
    ├── bin_service: BinService over the fakes
    ├── db_session: Real AsyncSession on a temporary SQLite file
    ├── sample_image_bytes: Minimal JPEG payload
    └── test_client: HTTPX AsyncClient with get_bin_service overridden
"""

import os
import tempfile

# Settings are read at import time; point them at throwaway locations first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["BLOB_STORAGE_ROOT"] = tempfile.mkdtemp(prefix="bintracker_test_")
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Dict, Mapping, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from bintracker.database import Base
from bintracker.models.bin import Bin
from bintracker.services.bin_service import BinService
from bintracker.services.blob_store import BlobStore, StoredBlob
from bintracker.services.row_store import RowStore


# ══════════════════════════════════════════════════════════════════════════
# In-memory fakes
# ══════════════════════════════════════════════════════════════════════════

class InMemoryRowStore(RowStore):
    """RowStore keeping detached copies of rows in a dict."""

    def __init__(self):
        self.rows: Dict[str, dict] = {}
        self.writes = 0

    async def get(self, bin_id: str) -> Optional[Bin]:
        stored = self.rows.get(bin_id)
        if stored is None:
            return None
        return Bin(bin_id=bin_id, **stored)

    async def insert(self, bin_id: str, fields: Mapping[str, Optional[str]], updated_at: int) -> None:
        assert bin_id not in self.rows
        self.rows[bin_id] = {**fields, "updated_at": updated_at}
        self.writes += 1

    async def update(self, bin_id: str, fields: Mapping[str, Optional[str]], updated_at: int) -> None:
        assert bin_id in self.rows
        self.rows[bin_id] = {**fields, "updated_at": updated_at}
        self.writes += 1


class InMemoryBlobStore(BlobStore):
    """BlobStore keeping (bytes, content_type, cache_control) per key."""

    def __init__(self):
        self.blobs: Dict[str, Tuple[bytes, Optional[str], Optional[str]]] = {}

    def _blob(self, key: str) -> StoredBlob:
        data, content_type, cache_control = self.blobs[key]

        async def reader():
            yield data

        return StoredBlob(
            key=key,
            content_type=content_type,
            size=len(data),
            cache_control=cache_control,
            reader=reader,
        )

    async def put(self, key, data, content_type, cache_control=None) -> StoredBlob:
        self.blobs[key] = (data, content_type, cache_control)
        return self._blob(key)

    async def get(self, key) -> Optional[StoredBlob]:
        if key not in self.blobs:
            return None
        return self._blob(key)


class TickingClock:
    """Millisecond clock that moves forward 1ms on every read."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def row_store():
    return InMemoryRowStore()


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def bin_service(row_store, blob_store, clock):
    return BinService(rows=row_store, blobs=blob_store, clock=clock)


@pytest.fixture
def sample_image_bytes():
    """Minimal JPEG: SOI marker + JFIF header + EOI marker."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest_asyncio.fixture
async def db_session(tmp_path):
    """
    AsyncSession on a fresh SQLite file with the bins table created.

    Each test gets its own database file under pytest's tmp_path.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bins.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def test_client(bin_service):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    Route handlers receive the in-memory BinService; no database or
    disk access happens. App exceptions are turned into 500 responses
    instead of being re-raised into the test.
    """
    from bintracker.dependencies import get_bin_service
    from bintracker.main import app

    app.dependency_overrides[get_bin_service] = lambda: bin_service
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
