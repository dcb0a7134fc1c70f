"""
db/models/script_external_api.py

External HTTP endpoint referenced by a script (``UrlFetchApp`` targets and
hardcoded API URLs).
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base

if TYPE_CHECKING:
    from db.models.script import Script


class ScriptExternalApi(Base):
    __tablename__ = "script_external_apis"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    script_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("scripts.id", ondelete="CASCADE"),
        nullable=False,
    )
    url: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="Normalized url, trimmed to two path segments",
    )
    base_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    method: Mapped[str] = mapped_column(String(16), nullable=False, default="GET")
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    code_location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    script: Mapped["Script"] = relationship("Script", back_populates="external_apis")

    __table_args__ = (
        UniqueConstraint("script_id", "url", "method", name="uq_script_external_apis_script_id_url_method"),
    )
