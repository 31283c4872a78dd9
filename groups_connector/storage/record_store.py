"""Local SQLite store of directory groups with soft deletes."""

import sqlite3
from datetime import datetime
from typing import Iterable

import structlog
from pydantic import BaseModel, Field

from groups_connector.models.group import SourceRecord, ensure_utc

log = structlog.stdlib.get_logger()

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS groups (
    id TEXT PRIMARY KEY NOT NULL,
    display_name TEXT,
    description TEXT,
    updated_at TEXT NOT NULL,
    deleted_at TEXT
)
"""


class RefreshResult(BaseModel):
    """Counts produced by mirroring a directory snapshot into the store."""

    added: int = Field(default=0, ge=0)
    updated: int = Field(default=0, ge=0)
    unchanged: int = Field(default=0, ge=0)
    deleted: int = Field(default=0, ge=0)


class GroupRecordStore:
    """Keeps the last seen content of every group and when it last changed.

    Rows are never removed. Deleting a group sets ``deleted_at`` and leaves the
    row in place so the next incremental pass can push the delete. Reads come
    in two flavours: ``list_live`` hides tombstones, ``list_all`` does not.
    """

    def __init__(self, database_path: str = "groups.db"):
        self._database_path = database_path
        self._connection = sqlite3.connect(database_path)
        self._connection.row_factory = sqlite3.Row
        with self._connection:
            self._connection.execute(SCHEMA_SQL)
        log.info("record_store_initialized", database_path=database_path)

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "GroupRecordStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get(self, record_id: str) -> SourceRecord | None:
        row = self._connection.execute(
            "SELECT * FROM groups WHERE id = ?", (record_id,)
        ).fetchone()
        return _row_to_record(row) if row else None

    def upsert(self, record: SourceRecord, updated_at: datetime) -> None:
        """Insert or replace a group's content and clear any tombstone."""
        with self._connection:
            self._connection.execute(
                """
                INSERT INTO groups (id, display_name, description, updated_at, deleted_at)
                VALUES (?, ?, ?, ?, NULL)
                ON CONFLICT(id) DO UPDATE SET
                    display_name = excluded.display_name,
                    description = excluded.description,
                    updated_at = excluded.updated_at,
                    deleted_at = NULL
                """,
                (record.id, record.display_name, record.description, _to_text(updated_at)),
            )

    def soft_delete(self, record_id: str, deleted_at: datetime) -> bool:
        """Tombstone a live group.

        Returns:
            False if the group is unknown or already deleted
        """
        with self._connection:
            cursor = self._connection.execute(
                "UPDATE groups SET deleted_at = ? WHERE id = ? AND deleted_at IS NULL",
                (_to_text(deleted_at), record_id),
            )
        return cursor.rowcount > 0

    def list_live(self) -> list[SourceRecord]:
        rows = self._connection.execute(
            "SELECT * FROM groups WHERE deleted_at IS NULL ORDER BY id"
        ).fetchall()
        return [_row_to_record(row) for row in rows]

    def list_all(self) -> list[SourceRecord]:
        rows = self._connection.execute("SELECT * FROM groups ORDER BY id").fetchall()
        return [_row_to_record(row) for row in rows]

    def list_all_records(self) -> list[SourceRecord]:
        """Snapshot for sync planning, tombstones included."""
        return self.list_all()

    def refresh(self, groups: Iterable[SourceRecord], observed_at: datetime) -> RefreshResult:
        """
        Mirror a snapshot of live directory groups into the store.

        New groups and groups whose indexed content changed are stamped with
        ``observed_at``; unchanged groups keep their previous stamp. Live rows
        missing from the snapshot are tombstoned at ``observed_at``, and
        tombstoned groups that show up again are revived.

        Args:
            groups: Live groups currently in the directory
            observed_at: Time the snapshot was taken

        Returns:
            RefreshResult with per-outcome counts
        """
        result = RefreshResult()
        existing = {record.id: record for record in self.list_all()}
        seen: set[str] = set()

        for group in groups:
            seen.add(group.id)
            stored = existing.get(group.id)
            if stored is None:
                self.upsert(group, observed_at)
                result.added += 1
            elif stored.is_deleted or not stored.has_same_content(group):
                self.upsert(group, observed_at)
                result.updated += 1
            else:
                result.unchanged += 1

        for record_id, stored in existing.items():
            if record_id not in seen and not stored.is_deleted:
                self.soft_delete(record_id, observed_at)
                result.deleted += 1

        log.info(
            "record_store_refreshed",
            added=result.added,
            updated=result.updated,
            unchanged=result.unchanged,
            deleted=result.deleted,
        )
        return result


def _to_text(value: datetime) -> str:
    return ensure_utc(value).isoformat()


def _row_to_record(row: sqlite3.Row) -> SourceRecord:
    return SourceRecord(
        id=row["id"],
        display_name=row["display_name"],
        description=row["description"],
        created_at=datetime.fromisoformat(row["updated_at"]),
        deleted_at=datetime.fromisoformat(row["deleted_at"]) if row["deleted_at"] else None,
    )
