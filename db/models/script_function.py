"""
db/models/script_function.py

Function declared in a script's source, as found by the analyzer.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, PortableJSON

if TYPE_CHECKING:
    from db.models.script import Script


class ScriptFunction(Base):
    __tablename__ = "script_functions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    script_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("scripts.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    parameters: Mapped[list[str] | None] = mapped_column(PortableJSON, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    line_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    script: Mapped["Script"] = relationship("Script", back_populates="functions")

    __table_args__ = (
        UniqueConstraint("script_id", "name", name="uq_script_functions_script_id_name"),
    )
