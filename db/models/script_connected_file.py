"""
db/models/script_connected_file.py

Spreadsheet, document or Drive file a script opens by id or URL.
``file_id`` is ``"active"`` for the container spreadsheet of a bound script.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base

if TYPE_CHECKING:
    from db.models.script import Script


class ScriptConnectedFile(Base):
    __tablename__ = "script_connected_files"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    script_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("scripts.id", ondelete="CASCADE"),
        nullable=False,
    )
    file_id: Mapped[str] = mapped_column(String(128), nullable=False)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="spreadsheet, document, drive",
    )
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    access_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="read, write, read-write",
    )
    extracted_from: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="openById, openByUrl, getFileById, active",
    )
    code_location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    script: Mapped["Script"] = relationship("Script", back_populates="connected_files")

    __table_args__ = (
        UniqueConstraint("script_id", "file_id", name="uq_script_connected_files_script_id_file_id"),
    )
