"""
db/models/script_file.py

Source file belonging to a script (server JS, HTML or the JSON manifest).
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.script import Script


class ScriptFileType:
    SERVER_JS = "SERVER_JS"
    HTML = "HTML"
    JSON = "JSON"


class ScriptFile(Base, TimestampMixin):
    __tablename__ = "script_files"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    script_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("scripts.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="SERVER_JS, HTML, JSON",
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    script: Mapped["Script"] = relationship("Script", back_populates="files")

    __table_args__ = (
        UniqueConstraint("script_id", "name", name="uq_script_files_script_id_name"),
    )
