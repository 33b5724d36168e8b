"""postcards and translation jobs

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "postcards",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("english_content", sa.Text(), nullable=False),
        sa.Column("swedish_content", sa.Text(), nullable=False, server_default=""),
        sa.Column("state", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("template", sa.String(length=16), nullable=True),
        sa.Column("scheduled_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("translation_status", sa.String(length=16), nullable=True, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "state IN ('draft', 'approved', 'scheduled', 'published')",
            name="ck_postcards_state",
        ),
        sa.CheckConstraint(
            "template IS NULL OR template IN ('story', 'tool')",
            name="ck_postcards_template",
        ),
        sa.CheckConstraint(
            "translation_status IS NULL OR translation_status IN ('pending', 'processing', 'completed', 'failed')",
            name="ck_postcards_translation_status",
        ),
    )
    op.create_index(
        "ix_postcards_state_created_at",
        "postcards",
        ["state", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_postcards_translation_status",
        "postcards",
        ["translation_status"],
        unique=False,
    )

    op.create_table(
        "translation_jobs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("session_id", sa.String(length=128), nullable=True),
        sa.Column("post_ids_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="queued"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("translated_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("failed_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("error_message", sa.String(length=255), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('queued', 'in_progress', 'done', 'failed')",
            name="ck_translation_jobs_status",
        ),
    )
    op.create_index(
        "ix_translation_jobs_status_created_at",
        "translation_jobs",
        ["status", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_translation_jobs_status_created_at", table_name="translation_jobs")
    op.drop_table("translation_jobs")

    op.drop_index("ix_postcards_translation_status", table_name="postcards")
    op.drop_index("ix_postcards_state_created_at", table_name="postcards")
    op.drop_table("postcards")
