"""
db/models/execution.py

Execution model: one recorded run of a script function, mirrored from the
Apps Script processes API.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base

if TYPE_CHECKING:
    from db.models.script import Script


class ExecutionStatus:
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"


class Execution(Base):
    __tablename__ = "executions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    script_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("scripts.id", ondelete="CASCADE"),
        nullable=False,
    )
    function_name: Mapped[str] = mapped_column(String(255), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="success, error, warning",
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    script: Mapped["Script"] = relationship("Script", back_populates="executions")

    __table_args__ = (
        Index("ix_executions_script_id_started_at", "script_id", "started_at"),
        Index("ix_executions_status", "status"),
        Index("ix_executions_started_at", "started_at"),
    )
