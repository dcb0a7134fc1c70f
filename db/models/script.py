"""
db/models/script.py

Script model: one Google Apps Script project mirrored from Google.
All source files, functions, triggers, external APIs, connected files and
executions are scoped to a script.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, PortableJSON, TimestampMixin

if TYPE_CHECKING:
    from db.models.execution import Execution
    from db.models.script_connected_file import ScriptConnectedFile
    from db.models.script_external_api import ScriptExternalApi
    from db.models.script_file import ScriptFile
    from db.models.script_function import ScriptFunction
    from db.models.script_trigger import ScriptTrigger


class ParentFileType:
    SPREADSHEET = "spreadsheet"
    STANDALONE = "standalone"


class DiscoverySource:
    CONFIG = "config"
    DRIVE_API = "drive-api"
    CONTAINER_BOUND = "container-bound"


class Script(Base, TimestampMixin):
    """
    Represents an Apps Script project.

    The primary key is the Apps Script id, so re-syncing the same project
    updates the existing row instead of creating a new one.
    """

    __tablename__ = "scripts"

    id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Apps Script project id",
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    parent_file_id: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
        comment="Container document id for bound scripts",
    )

    parent_file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    parent_file_type: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        comment="spreadsheet, standalone",
    )

    owner: Mapped[str | None] = mapped_column(String(255), nullable=True)

    discovery_source: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        comment="config, drive-api, container-bound",
    )

    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    last_analyzed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    functional_summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    workflow_steps: Mapped[list[str] | None] = mapped_column(PortableJSON, nullable=True)

    google_services: Mapped[list[str] | None] = mapped_column(PortableJSON, nullable=True)

    complexity: Mapped[str | None] = mapped_column(
        String(16),
        nullable=True,
        comment="low, medium, high",
    )

    lines_of_code: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # ── Relationships ──────────────────────────────────────────────────────────

    files: Mapped[list["ScriptFile"]] = relationship(
        "ScriptFile",
        back_populates="script",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    functions: Mapped[list["ScriptFunction"]] = relationship(
        "ScriptFunction",
        back_populates="script",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    triggers: Mapped[list["ScriptTrigger"]] = relationship(
        "ScriptTrigger",
        back_populates="script",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    external_apis: Mapped[list["ScriptExternalApi"]] = relationship(
        "ScriptExternalApi",
        back_populates="script",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    connected_files: Mapped[list["ScriptConnectedFile"]] = relationship(
        "ScriptConnectedFile",
        back_populates="script",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    executions: Mapped[list["Execution"]] = relationship(
        "Execution",
        back_populates="script",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_scripts_last_synced_at", "last_synced_at"),
        Index("ix_scripts_complexity", "complexity"),
    )

    def __repr__(self) -> str:
        return f"<Script id={self.id!r} name={self.name!r}>"
