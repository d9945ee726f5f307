# src/store/sqlite_store.py — v1
"""SQLite-based artifact store (ARTIFACT_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. The version check is part
of the UPDATE statement, so compare-and-swap is atomic.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

from pydantic import ValidationError

from ridecoach.core.errors import ArtifactConflictError, ArtifactWriteError
from ridecoach.core.models import GeneratedArtifact
from ridecoach.store.base_artifact_store import BaseArtifactStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS artifacts (
    source_plan_id TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    version INTEGER NOT NULL,
    generated_at TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteArtifactStore(BaseArtifactStore):
    """SQLite-backed artifact store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get_artifact(self, source_plan_id: str) -> GeneratedArtifact | None:
        row = self._conn.execute(
            "SELECT data, version FROM artifacts WHERE source_plan_id = ?",
            (source_plan_id,),
        ).fetchone()
        if row is None:
            return None
        try:
            artifact = GeneratedArtifact.model_validate(json.loads(row[0]))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Failed to deserialize artifact %s: %s", source_plan_id, e)
            return None
        return artifact.model_copy(update={"version": row[1]})

    async def save_artifact(
        self,
        source_plan_id: str,
        artifact: GeneratedArtifact,
        expected_version: int | None = None,
    ) -> GeneratedArtifact:
        try:
            with self._conn:
                current = self._current_version(source_plan_id)
                if expected_version is not None and current != expected_version:
                    raise ArtifactConflictError(source_plan_id, expected_version, current)

                stored = artifact.model_copy(update={"version": current + 1})
                params = (
                    stored.model_dump_json(),
                    stored.version,
                    stored.generated_at.isoformat(),
                    source_plan_id,
                )
                if current == 0:
                    self._conn.execute(
                        """INSERT INTO artifacts (data, version, generated_at, source_plan_id)
                           VALUES (?, ?, ?, ?)""",
                        params,
                    )
                else:
                    cursor = self._conn.execute(
                        """UPDATE artifacts
                           SET data = ?, version = ?, generated_at = ?,
                               updated_at = CURRENT_TIMESTAMP
                           WHERE source_plan_id = ? AND version = ?""",
                        (*params, current),
                    )
                    if cursor.rowcount != 1:
                        raise ArtifactConflictError(
                            source_plan_id, current, self._current_version(source_plan_id)
                        )
        except sqlite3.IntegrityError as e:
            # Another writer inserted first
            raise ArtifactConflictError(
                source_plan_id, expected_version or 0, self._current_version(source_plan_id)
            ) from e
        except sqlite3.Error as e:
            raise ArtifactWriteError(
                f"Failed to save artifact for '{source_plan_id}': {e}"
            ) from e

        logger.info("Saved artifact for %s (version %d)", source_plan_id, stored.version)
        return stored

    async def delete_artifact(self, source_plan_id: str) -> None:
        """Remove an artifact (cascade from deleting the owning plan)."""
        with self._conn:
            self._conn.execute(
                "DELETE FROM artifacts WHERE source_plan_id = ?", (source_plan_id,)
            )

    def _current_version(self, source_plan_id: str) -> int:
        row = self._conn.execute(
            "SELECT version FROM artifacts WHERE source_plan_id = ?",
            (source_plan_id,),
        ).fetchone()
        return int(row[0]) if row else 0

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
