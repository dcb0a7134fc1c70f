"""
db/repositories/script_repository.py

Persistence layer for scripts and their analyzed children (files,
functions, triggers, external APIs, connected files).

The caller controls commit/rollback; this repository never commits on its own.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from db.models.execution import Execution
from db.models.script import Script
from db.models.script_connected_file import ScriptConnectedFile
from db.models.script_external_api import ScriptExternalApi
from db.models.script_file import ScriptFile
from db.models.script_function import ScriptFunction
from db.models.script_trigger import ScriptTrigger


class ScriptRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def upsert_script(
        self,
        *,
        script_id: str,
        name: str,
        parent_file_id: str | None,
        parent_file_name: str | None,
        parent_file_type: str | None,
        discovery_source: str | None,
        owner: str | None = None,
        synced_at: datetime | None = None,
    ) -> Script:
        """
        Insert or update the script row keyed by its Apps Script id.
        """

        now = synced_at or datetime.now(timezone.utc)
        script = self._session.get(Script, script_id)
        if script is None:
            script = Script(id=script_id, name=name)
            self._session.add(script)

        script.name = name
        script.parent_file_id = parent_file_id
        script.parent_file_name = parent_file_name
        script.parent_file_type = parent_file_type
        script.discovery_source = discovery_source
        if owner is not None:
            script.owner = owner
        script.last_synced_at = now
        return script

    def replace_children(
        self,
        script: Script,
        *,
        files: Sequence[ScriptFile],
        functions: Sequence[ScriptFunction] | None = None,
        triggers: Sequence[ScriptTrigger] | None = None,
        external_apis: Sequence[ScriptExternalApi] | None = None,
        connected_files: Sequence[ScriptConnectedFile] | None = None,
    ) -> None:
        """
        Replace the child collections of ``script``.

        Files are always replaced; ``None`` leaves any other collection
        untouched.

        Old rows are flushed away before new ones are added so the unique
        constraints on each child table never see both generations.
        """

        replacements = [
            (collection, rows)
            for collection, rows in (
                (script.files, files),
                (script.functions, functions),
                (script.triggers, triggers),
                (script.external_apis, external_apis),
                (script.connected_files, connected_files),
            )
            if rows is not None
        ]

        for collection, _ in replacements:
            collection.clear()
        self._session.flush()

        for collection, rows in replacements:
            collection.extend(rows)
        self._session.flush()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_script(self, script_id: str, *, with_children: bool = False) -> Script | None:
        if not with_children:
            return self._session.get(Script, script_id)
        stmt = (
            select(Script)
            .where(Script.id == script_id)
            .options(
                selectinload(Script.files),
                selectinload(Script.functions),
                selectinload(Script.triggers),
                selectinload(Script.external_apis),
                selectinload(Script.connected_files),
            )
        )
        return self._session.scalars(stmt).first()

    def list_scripts(self, *, limit: int | None = None) -> list[Script]:
        stmt = select(Script).options(selectinload(Script.triggers)).order_by(Script.name.asc())
        if limit is not None:
            stmt = stmt.limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def list_script_refs(self) -> list[tuple[str, str]]:
        """
        (id, name) pairs of every stored script.
        """

        rows = self._session.execute(select(Script.id, Script.name).order_by(Script.name.asc())).all()
        return [(row.id, row.name) for row in rows]

    def count_scripts(self) -> int:
        return int(self._session.scalar(select(func.count()).select_from(Script)) or 0)

    def last_synced_at(self) -> datetime | None:
        return self._session.scalar(select(func.max(Script.last_synced_at)))

    def complexity_distribution(self) -> dict[str, int]:
        rows = self._session.execute(
            select(Script.complexity, func.count())
            .where(Script.complexity.is_not(None))
            .group_by(Script.complexity)
        ).all()
        distribution = {"low": 0, "medium": 0, "high": 0}
        for complexity, count in rows:
            distribution[str(complexity)] = int(count)
        return distribution

    def latest_execution_statuses(self) -> dict[str, str | None]:
        """
        Status of the most recent execution per script (None when never run).
        """

        latest_status = (
            select(Execution.status)
            .where(Execution.script_id == Script.id)
            .order_by(Execution.started_at.desc())
            .limit(1)
            .correlate(Script)
            .scalar_subquery()
        )
        rows = self._session.execute(select(Script.id, latest_status)).all()
        return {script_id: status for script_id, status in rows}

    def execution_counts(self) -> dict[str, int]:
        rows = self._session.execute(
            select(Execution.script_id, func.count()).group_by(Execution.script_id)
        ).all()
        return {script_id: int(count) for script_id, count in rows}
