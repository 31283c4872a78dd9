"""Property-based tests for sync planning.

Feature: groups-connector
"""

from datetime import datetime, timedelta, timezone

import pytest
import structlog
from hypothesis import given, settings
from hypothesis import strategies as st

from groups_connector.models.group import SourceRecord
from groups_connector.sync.models import SyncPlan
from groups_connector.sync.planner import SyncPlanner

log = structlog.stdlib.get_logger()

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
T1 = T0 + timedelta(hours=1)
T2 = T0 + timedelta(hours=2)


def utc_datetimes() -> st.SearchStrategy[datetime]:
    # Generate naive timestamps first, then attach UTC
    return st.datetimes(
        min_value=datetime(2020, 1, 1), max_value=datetime(2025, 12, 31)
    ).map(lambda value: value.replace(tzinfo=timezone.utc))


@st.composite
def record_strategy(draw: st.DrawFn, record_id: str) -> SourceRecord:
    """Generate a live or tombstoned record with the given ID."""
    deleted = draw(st.booleans())
    return SourceRecord(
        id=record_id,
        display_name=draw(st.one_of(st.none(), st.text(max_size=30))),
        description=draw(st.one_of(st.none(), st.text(max_size=60))),
        created_at=draw(st.one_of(st.none(), utc_datetimes())),
        deleted_at=draw(utc_datetimes()) if deleted else None,
    )


@st.composite
def snapshot_strategy(draw: st.DrawFn) -> list[SourceRecord]:
    """Generate a snapshot of records with unique IDs in random order."""
    ids = draw(
        st.lists(
            st.text(min_size=1, max_size=8, alphabet="abcdef0123456789-"),
            unique=True,
            max_size=25,
        )
    )
    records = [draw(record_strategy(record_id)) for record_id in ids]
    return draw(st.permutations(records))


class TestFullSync:
    """Property: a full sync upserts exactly the live records and never deletes."""

    @given(records=snapshot_strategy(), watermark=st.one_of(st.none(), utc_datetimes()))
    @settings(max_examples=100)
    def test_full_sync_upserts_all_live_records(
        self, records: list[SourceRecord], watermark: datetime | None
    ) -> None:
        plan = SyncPlanner().plan(records, watermark, full_sync=True)

        live_ids = sorted(record.id for record in records if not record.is_deleted)
        assert plan.to_upsert == live_ids
        assert plan.to_delete == []


class TestIncrementalSync:
    """Property: incremental plans contain exactly the records changed after the watermark."""

    @given(records=snapshot_strategy(), watermark=utc_datetimes())
    @settings(max_examples=100)
    def test_incremental_selects_strictly_newer_records(
        self, records: list[SourceRecord], watermark: datetime
    ) -> None:
        plan = SyncPlanner().plan(records, watermark, full_sync=False)

        expected_upserts = sorted(
            record.id
            for record in records
            if not record.is_deleted
            and record.created_at is not None
            and record.created_at > watermark
        )
        expected_deletes = sorted(
            record.id for record in records if record.is_deleted and record.deleted_at > watermark
        )

        assert plan.to_upsert == expected_upserts
        assert plan.to_delete == expected_deletes
        assert not set(plan.to_upsert) & set(plan.to_delete)

    @given(records=snapshot_strategy())
    @settings(max_examples=50)
    def test_missing_watermark_includes_everything(self, records: list[SourceRecord]) -> None:
        plan = SyncPlanner().plan(records, None, full_sync=False)

        assert plan.to_upsert == sorted(r.id for r in records if not r.is_deleted)
        assert plan.to_delete == sorted(r.id for r in records if r.is_deleted)

    @given(records=snapshot_strategy(), watermark=utc_datetimes())
    @settings(max_examples=50)
    def test_planning_twice_gives_identical_plan(
        self, records: list[SourceRecord], watermark: datetime
    ) -> None:
        """Property: a retried pass (watermark not advanced) plans the same work."""
        planner = SyncPlanner()

        first = planner.plan(records, watermark, full_sync=False)
        second = planner.plan(list(reversed(records)), watermark, full_sync=False)

        assert first == second

    def test_boundary_is_exclusive(self) -> None:
        records = [
            SourceRecord(id="equal-update", created_at=T0),
            SourceRecord(id="equal-delete", created_at=None, deleted_at=T0),
            SourceRecord(id="newer-update", created_at=T0 + timedelta(microseconds=1)),
        ]

        plan = SyncPlanner().plan(records, T0, full_sync=False)

        assert plan.to_upsert == ["newer-update"]
        assert plan.to_delete == []

    def test_naive_watermark_is_treated_as_utc(self) -> None:
        records = [SourceRecord(id="a", created_at=T1)]

        plan = SyncPlanner().plan(records, T0.replace(tzinfo=None), full_sync=False)

        assert plan.to_upsert == ["a"]

    def test_duplicate_ids_last_write_wins(self) -> None:
        records = [
            SourceRecord(id="a", created_at=T1),
            SourceRecord(id="a", created_at=T1, deleted_at=T2),
        ]

        plan = SyncPlanner().plan(records, T0, full_sync=False)

        assert plan.to_upsert == []
        assert plan.to_delete == ["a"]


class TestScenarios:
    """Worked examples with T0 < T1 < T2."""

    @pytest.fixture
    def records(self) -> list[SourceRecord]:
        return [
            SourceRecord(id="a", created_at=T1),
            SourceRecord(id="b", created_at=T0),
            SourceRecord(id="c", created_at=None, deleted_at=T2),
        ]

    def test_incremental_scenario(self, records: list[SourceRecord]) -> None:
        plan = SyncPlanner().plan(records, T0, full_sync=False)

        assert plan == SyncPlan(to_upsert=["a"], to_delete=["c"])

    def test_full_scenario(self, records: list[SourceRecord]) -> None:
        plan = SyncPlanner().plan(records, T0, full_sync=True)

        assert plan == SyncPlan(to_upsert=["a", "b"], to_delete=[])


def test_sync_plan_rejects_overlapping_ids() -> None:
    with pytest.raises(ValueError):
        SyncPlan(to_upsert=["a"], to_delete=["a"])
