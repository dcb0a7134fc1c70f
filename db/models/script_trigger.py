"""
db/models/script_trigger.py

Trigger detected in a script's source (simple triggers, web app entry points
and programmatic time-based triggers).
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base

if TYPE_CHECKING:
    from db.models.script import Script


class ScriptTrigger(Base):
    __tablename__ = "script_triggers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    script_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("scripts.id", ondelete="CASCADE"),
        nullable=False,
    )
    trigger_type: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="time-driven, on-open, on-edit, web-app, ...",
    )
    function_name: Mapped[str] = mapped_column(String(255), nullable=False)
    schedule: Mapped[str | None] = mapped_column(String(128), nullable=True)
    schedule_description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source_event: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_programmatic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="enabled")

    script: Mapped["Script"] = relationship("Script", back_populates="triggers")

    __table_args__ = (
        UniqueConstraint(
            "script_id",
            "function_name",
            "trigger_type",
            name="uq_script_triggers_script_id_function_name_trigger_type",
        ),
    )
