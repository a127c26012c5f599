"""Create notes and labels tables

Revision ID: 5c2e81f0b7a4
Revises:
Create Date: 2026-09-28 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5c2e81f0b7a4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the note store schema."""
    op.create_table(
        "notes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False, server_default=""),
        sa.Column("note_type", sa.String(20), nullable=False, server_default="text"),
        sa.Column("body", sa.Text(), nullable=False, server_default=""),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("labels", sa.JSON(), nullable=False),
        sa.Column("spans", sa.JSON(), nullable=False),
        sa.Column(
            "continues_from_id",
            sa.Integer(),
            sa.ForeignKey("notes.id"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_notes_title", "notes", ["title"])
    op.create_index("ix_notes_continues_from_id", "notes", ["continues_from_id"])
    op.create_table(
        "labels",
        sa.Column("name", sa.String(255), primary_key=True),
    )


def downgrade() -> None:
    """Drop the note store schema."""
    op.drop_table("labels")
    op.drop_index("ix_notes_continues_from_id")
    op.drop_index("ix_notes_title")
    op.drop_table("notes")
