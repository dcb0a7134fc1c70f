"""create scripts, script_files, script_functions, script_triggers and executions tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "scripts",
        sa.Column("id", sa.String(length=128), nullable=False, comment="Apps Script project id"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("parent_file_id", sa.String(length=128), nullable=True),
        sa.Column("parent_file_name", sa.String(length=255), nullable=True),
        sa.Column("parent_file_type", sa.String(length=32), nullable=True),
        sa.Column("owner", sa.String(length=255), nullable=True),
        sa.Column("discovery_source", sa.String(length=32), nullable=True),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_analyzed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("functional_summary", sa.Text(), nullable=True),
        sa.Column("workflow_steps", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("google_services", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("complexity", sa.String(length=16), nullable=True),
        sa.Column("lines_of_code", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scripts_last_synced_at", "scripts", ["last_synced_at"], unique=False)
    op.create_index("ix_scripts_complexity", "scripts", ["complexity"], unique=False)

    op.create_table(
        "script_files",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("script_id", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("file_type", sa.String(length=32), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(["script_id"], ["scripts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("script_id", "name", name="uq_script_files_script_id_name"),
    )

    op.create_table(
        "script_functions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("script_id", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("parameters", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("line_count", sa.Integer(), nullable=True),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["script_id"], ["scripts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("script_id", "name", name="uq_script_functions_script_id_name"),
    )

    op.create_table(
        "script_triggers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("script_id", sa.String(length=128), nullable=False),
        sa.Column("trigger_type", sa.String(length=32), nullable=False),
        sa.Column("function_name", sa.String(length=255), nullable=False),
        sa.Column("schedule", sa.String(length=128), nullable=True),
        sa.Column("schedule_description", sa.String(length=255), nullable=True),
        sa.Column("source_event", sa.String(length=64), nullable=True),
        sa.Column("is_programmatic", sa.Boolean(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.ForeignKeyConstraint(["script_id"], ["scripts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "script_id",
            "function_name",
            "trigger_type",
            name="uq_script_triggers_script_id_function_name_trigger_type",
        ),
    )

    op.create_table(
        "executions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("script_id", sa.String(length=128), nullable=False),
        sa.Column("function_name", sa.String(length=255), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_seconds", sa.Float(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["script_id"], ["scripts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_executions_script_id_started_at",
        "executions",
        ["script_id", "started_at"],
        unique=False,
    )
    op.create_index("ix_executions_status", "executions", ["status"], unique=False)
    op.create_index("ix_executions_started_at", "executions", ["started_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_executions_started_at", table_name="executions")
    op.drop_index("ix_executions_status", table_name="executions")
    op.drop_index("ix_executions_script_id_started_at", table_name="executions")
    op.drop_table("executions")
    op.drop_table("script_triggers")
    op.drop_table("script_functions")
    op.drop_table("script_files")
    op.drop_index("ix_scripts_complexity", table_name="scripts")
    op.drop_index("ix_scripts_last_synced_at", table_name="scripts")
    op.drop_table("scripts")
