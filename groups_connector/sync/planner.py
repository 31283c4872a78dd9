"""Decides which groups to push to and remove from the search index."""

from datetime import datetime
from typing import Iterable

import structlog

from groups_connector.models.group import SourceRecord, ensure_utc
from groups_connector.sync.models import SyncPlan

log = structlog.stdlib.get_logger()


class SyncPlanner:
    """Turns a group snapshot and a watermark into a SyncPlan.

    Pure: no I/O, and the same inputs always give the same plan.
    """

    def plan(
        self,
        records: Iterable[SourceRecord],
        watermark: datetime | None,
        full_sync: bool,
    ) -> SyncPlan:
        """
        Compute upserts and deletes for one pass.

        A full sync upserts every live record and never deletes. An
        incremental sync upserts live records modified strictly after the
        watermark and deletes tombstones deleted strictly after it. A missing
        watermark means nothing has been synced yet, so every record counts
        as newer.

        Args:
            records: Snapshot of live and deleted records, any order. On
                duplicate IDs the last one wins.
            watermark: Time of the last fully successful pass, or None
            full_sync: Push everything instead of only changes

        Returns:
            SyncPlan with both ID lists sorted
        """
        latest: dict[str, SourceRecord] = {}
        for record in records:
            latest[record.id] = record

        watermark = ensure_utc(watermark)
        to_upsert: list[str] = []
        to_delete: list[str] = []

        for record_id in sorted(latest):
            record = latest[record_id]
            if record.is_deleted:
                if not full_sync and _is_newer(record.deleted_at, watermark):
                    to_delete.append(record_id)
            elif full_sync or _is_newer(record.created_at, watermark):
                to_upsert.append(record_id)

        log.info(
            "sync_planned",
            full_sync=full_sync,
            watermark=watermark.isoformat() if watermark else None,
            record_count=len(latest),
            to_upsert=len(to_upsert),
            to_delete=len(to_delete),
        )
        return SyncPlan(to_upsert=to_upsert, to_delete=to_delete)


def _is_newer(timestamp: datetime | None, watermark: datetime | None) -> bool:
    if watermark is None:
        return True
    if timestamp is None:
        return False
    return timestamp > watermark
