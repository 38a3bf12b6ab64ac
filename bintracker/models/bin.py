"""
Bin Tracker — Bin SQLAlchemy Model
===================================

What:  ORM model representing the `bins` table.
How:   Inherits from SQLAlchemy's DeclarativeBase; Alembic reads this for migrations.
Who:   Used by SqlAlchemyRowStore and by Alembic for schema management.

Table Design:
    - bin_id: Text primary key assigned outside the system (printed on the
      bin's label). Never changes once the row exists.
    - case_code / bin_type / notes: Free text, all optional.
    - photo_key: Blob store key of the latest photo. The blob may have been
      removed; readers treat a missing blob as 404.
    - updated_at: Milliseconds since the Unix epoch, rewritten on every write.
"""

from typing import Optional

from sqlalchemy import BigInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from bintracker.database import Base

# Metadata fields the upsert engine reconciles, in column order
BIN_FIELDS = ("case_code", "bin_type", "notes", "photo_key")


class Bin(Base):
    """A physical storage bin and its latest metadata."""

    __tablename__ = "bins"

    bin_id: Mapped[str] = mapped_column(
        Text,
        primary_key=True,
        comment="Externally assigned identifier printed on the bin label",
    )

    case_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bin_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    photo_key: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Blob store key of the most recent photo",
    )

    updated_at: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        nullable=True,
        comment="Last write time in milliseconds since the Unix epoch",
    )

    def fields(self) -> dict:
        """Current values of the reconciled metadata fields."""
        return {name: getattr(self, name) for name in BIN_FIELDS}

    def __repr__(self) -> str:
        return f"<Bin(bin_id='{self.bin_id}', updated_at={self.updated_at})>"
