"""
Bin Tracker — Row Store Adapter
================================

What:  Reads and writes bin rows by primary key.
How:   RowStore is the abstract contract; SqlAlchemyRowStore implements it on
       a per-request AsyncSession. Tests substitute an in-memory fake.
Who:   Called only by BinService.

Failure model:
    Database errors are not caught here. They propagate to the caller and end
    up in the global 500 handler; the session dependency rolls back.
"""

import logging
from abc import ABC, abstractmethod
from typing import Mapping, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from bintracker.models.bin import Bin

logger = logging.getLogger(__name__)


class RowStore(ABC):
    """
    Abstract persistent key-value table of bins.

    Contract:
        - get() is an exact primary-key lookup, None when absent
        - insert() creates a row; the caller guarantees it does not exist yet
        - update() overwrites the given fields of an existing row
        - `fields` always carries every reconciled field with its resolved value
    """

    @abstractmethod
    async def get(self, bin_id: str) -> Optional[Bin]:
        ...

    @abstractmethod
    async def insert(
        self, bin_id: str, fields: Mapping[str, Optional[str]], updated_at: int
    ) -> None:
        ...

    @abstractmethod
    async def update(
        self, bin_id: str, fields: Mapping[str, Optional[str]], updated_at: int
    ) -> None:
        ...


class SqlAlchemyRowStore(RowStore):
    """RowStore backed by the `bins` table through an async session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, bin_id: str) -> Optional[Bin]:
        # populate_existing: re-read after an UPDATE issued in this session
        return await self.session.get(Bin, bin_id, populate_existing=True)

    async def insert(
        self, bin_id: str, fields: Mapping[str, Optional[str]], updated_at: int
    ) -> None:
        self.session.add(Bin(bin_id=bin_id, updated_at=updated_at, **fields))
        await self.session.flush()
        logger.debug("Inserted bin row %s", bin_id)

    async def update(
        self, bin_id: str, fields: Mapping[str, Optional[str]], updated_at: int
    ) -> None:
        await self.session.execute(
            update(Bin)
            .where(Bin.bin_id == bin_id)
            .values(updated_at=updated_at, **fields)
        )
        await self.session.flush()
        logger.debug("Updated bin row %s", bin_id)
