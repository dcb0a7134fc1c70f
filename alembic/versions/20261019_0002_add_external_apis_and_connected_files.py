"""add script_external_apis and script_connected_files; widen script_triggers.trigger_type

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 15:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "script_external_apis",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("script_id", sa.String(length=128), nullable=False),
        sa.Column(
            "url",
            sa.String(length=1024),
            nullable=False,
            comment="Normalized url, trimmed to two path segments",
        ),
        sa.Column("base_url", sa.String(length=1024), nullable=False),
        sa.Column("method", sa.String(length=16), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False),
        sa.Column("code_location", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["script_id"], ["scripts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "script_id",
            "url",
            "method",
            name="uq_script_external_apis_script_id_url_method",
        ),
    )

    op.create_table(
        "script_connected_files",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("script_id", sa.String(length=128), nullable=False),
        sa.Column("file_id", sa.String(length=128), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("file_type", sa.String(length=32), nullable=False, comment="spreadsheet, document, drive"),
        sa.Column("file_url", sa.Text(), nullable=True),
        sa.Column("access_type", sa.String(length=16), nullable=False, comment="read, write, read-write"),
        sa.Column(
            "extracted_from",
            sa.String(length=32),
            nullable=False,
            comment="openById, openByUrl, getFileById, active",
        ),
        sa.Column("code_location", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["script_id"], ["scripts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("script_id", "file_id", name="uq_script_connected_files_script_id_file_id"),
    )

    op.alter_column(
        "script_triggers",
        "trigger_type",
        existing_type=sa.String(length=32),
        type_=sa.String(length=64),
        existing_nullable=False,
    )


def downgrade() -> None:
    op.alter_column(
        "script_triggers",
        "trigger_type",
        existing_type=sa.String(length=64),
        type_=sa.String(length=32),
        existing_nullable=False,
    )
    op.drop_table("script_connected_files")
    op.drop_table("script_external_apis")
