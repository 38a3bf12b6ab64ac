"""Create bins table

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Creates the `bins` table: one row per physical bin, keyed by the
       identifier printed on its label.

Rollback: downgrade() drops the table (all bin metadata lost; photos stay
in blob storage).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "bins",
        sa.Column(
            "bin_id",
            sa.Text(),
            nullable=False,
            comment="Externally assigned identifier printed on the bin label",
        ),
        sa.Column("case_code", sa.Text(), nullable=True),
        sa.Column("bin_type", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "photo_key",
            sa.Text(),
            nullable=True,
            comment="Blob store key of the most recent photo",
        ),
        sa.Column(
            "updated_at",
            sa.BigInteger(),
            nullable=True,
            comment="Last write time in milliseconds since the Unix epoch",
        ),
        sa.PrimaryKeyConstraint("bin_id"),
    )


def downgrade() -> None:
    op.drop_table("bins")
