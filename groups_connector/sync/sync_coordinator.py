"""Synchronization coordinator for pushing directory groups to the search index."""

import sqlite3
from datetime import datetime, timezone
from typing import Callable

import requests
import structlog

from groups_connector.graph.errors import AuthenticationError, GraphServiceError
from groups_connector.graph.graph_client import GraphClient, external_item_from_record
from groups_connector.models.group import SourceRecord
from groups_connector.storage.record_store import GroupRecordStore
from groups_connector.sync.models import SyncPlan, SyncReport
from groups_connector.sync.planner import SyncPlanner
from groups_connector.sync.watermark_store import WatermarkError, WatermarkStore

log = structlog.stdlib.get_logger()

REMOTE_ERRORS = (GraphServiceError, AuthenticationError, requests.RequestException)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SyncCoordinator:
    """Runs sync passes: fetch groups, plan, apply, then commit the watermark."""

    def __init__(
        self,
        graph_client: GraphClient,
        watermark_store: WatermarkStore,
        record_store: GroupRecordStore | None = None,
        planner: SyncPlanner | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize sync coordinator.

        Args:
            graph_client: Client for both the search index and the directory
            watermark_store: Where the last successful pass time is kept
            record_store: Optional local store. When given, directory groups are
                mirrored into it first and the snapshot is read back from it,
                so only groups whose content changed look modified.
            planner: Optional planner (a default SyncPlanner if None)
            clock: Source of the pass start time
        """
        self._graph_client = graph_client
        self._watermark_store = watermark_store
        self._record_store = record_store
        self._planner = planner or SyncPlanner()
        self._clock = clock

    def sync(self, connection_id: str, full_sync: bool = False) -> SyncReport:
        """
        Run one synchronization pass against a connection.

        The start time is captured before groups are fetched and becomes the
        new watermark only if every upsert and delete succeeded. Any failure
        leaves the watermark alone so the next pass retries the same window.

        Args:
            connection_id: Connection whose index receives the items
            full_sync: Push every live group instead of changes since the watermark

        Returns:
            SyncReport with per-outcome counts and errors
        """
        start_time = self._clock()
        log.info(
            "sync_started",
            connection_id=connection_id,
            full_sync=full_sync,
            start_time=start_time.isoformat(),
        )

        report = SyncReport(
            connection_id=connection_id,
            full_sync=full_sync,
            start_time=start_time,
            end_time=start_time,
        )

        try:
            watermark = self._watermark_store.read()
            records = self._fetch_records(start_time)
        except (WatermarkError, sqlite3.Error, *REMOTE_ERRORS) as e:
            report.errors.append(f"Failed to load groups: {e}")
            log.error("sync_fetch_failed", connection_id=connection_id, error=str(e))
            return self._finish(report)

        plan = self._planner.plan(records, watermark, full_sync)
        log.info(
            "sync_plan_ready",
            connection_id=connection_id,
            since=watermark.isoformat() if watermark and not full_sync else None,
            upserts=len(plan.to_upsert),
            deletes=len(plan.to_delete),
            total_changes=plan.total_changes,
        )

        if plan.has_changes:
            self.apply_plan(
                connection_id, plan, {record.id: record for record in records}, report
            )
        else:
            log.info("no_changes_detected", connection_id=connection_id)

        if report.success:
            try:
                self._watermark_store.write(start_time)
                report.watermark_advanced = True
            except WatermarkError as e:
                report.errors.append(str(e))
        else:
            log.warning(
                "watermark_not_advanced",
                connection_id=connection_id,
                failed_items=report.items_failed,
            )

        return self._finish(report)

    def apply_plan(
        self,
        connection_id: str,
        plan: SyncPlan,
        records_by_id: dict[str, SourceRecord],
        report: SyncReport,
    ) -> None:
        """
        Push every planned upsert and delete, continuing past failures.

        Outcomes are accumulated on ``report``. A 404 on delete means the item
        is already gone and counts as success.
        """
        for record_id in plan.to_upsert:
            record = records_by_id[record_id]
            try:
                self._graph_client.upsert_item(connection_id, external_item_from_record(record))
                report.items_upserted += 1
                log.info("group_uploaded", group_id=record_id, display_name=record.display_name)
            except REMOTE_ERRORS as e:
                report.items_failed += 1
                report.errors.append(f"Failed to upload group {record_id}: {e}")
                log.error("failed_to_upload_group", group_id=record_id, error=str(e))

        for record_id in plan.to_delete:
            try:
                self._graph_client.delete_item(connection_id, record_id)
                report.items_deleted += 1
                log.info("group_deleted", group_id=record_id)
            except GraphServiceError as e:
                if e.is_not_found:
                    report.items_not_found += 1
                    log.warning("group_not_found_for_deletion", group_id=record_id)
                    continue
                report.items_failed += 1
                report.errors.append(f"Failed to delete group {record_id}: {e}")
                log.error("failed_to_delete_group", group_id=record_id, error=str(e))
            except (AuthenticationError, requests.RequestException) as e:
                report.items_failed += 1
                report.errors.append(f"Failed to delete group {record_id}: {e}")
                log.error("failed_to_delete_group", group_id=record_id, error=str(e))

    def _fetch_records(self, observed_at: datetime) -> list[SourceRecord]:
        if self._record_store is None:
            return self._graph_client.list_all_records()

        groups = self._graph_client.list_groups()
        self._record_store.refresh(groups, observed_at)
        return self._record_store.list_all_records()

    def _finish(self, report: SyncReport) -> SyncReport:
        report.end_time = self._clock()
        report.duration_seconds = max((report.end_time - report.start_time).total_seconds(), 0.0)
        log.info(
            "sync_completed",
            connection_id=report.connection_id,
            full_sync=report.full_sync,
            items_upserted=report.items_upserted,
            items_deleted=report.items_deleted,
            items_not_found=report.items_not_found,
            items_failed=report.items_failed,
            total_changes=report.total_changes,
            watermark_advanced=report.watermark_advanced,
            duration_seconds=report.duration_seconds,
            success=report.success,
        )
        return report
