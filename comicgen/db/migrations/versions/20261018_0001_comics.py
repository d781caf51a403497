"""comics and comic_panels

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "comics",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_prompt", sa.Text(), nullable=False),
        sa.Column("style", sa.String(length=32), nullable=False),
        sa.Column("panel_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_comics_created_at", "comics", ["created_at"], unique=False)

    op.create_table(
        "comic_panels",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "comic_id",
            sa.Integer(),
            sa.ForeignKey("comics.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("panel_number", sa.Integer(), nullable=False),
        sa.Column("script_text", sa.Text(), nullable=False),
        sa.Column("dialogue", sa.Text(), nullable=True),
        sa.Column("mood", sa.String(length=64), nullable=False),
        sa.Column("image_prompt", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("comic_id", "panel_number", name="uq_comic_panels_comic_panel"),
    )
    op.create_index("ix_comic_panels_comic_id", "comic_panels", ["comic_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_comic_panels_comic_id", table_name="comic_panels")
    op.drop_table("comic_panels")
    op.drop_index("ix_comics_created_at", table_name="comics")
    op.drop_table("comics")
