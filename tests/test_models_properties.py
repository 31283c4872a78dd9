"""Property-based tests for data models.

Feature: groups-connector
"""

from datetime import datetime, timedelta, timezone

from hypothesis import given
from hypothesis import strategies as st

from groups_connector.models.group import (
    ConnectionOperation,
    OperationStatus,
    Schema,
    SourceRecord,
    group_schema,
)


@given(
    st.datetimes(
        min_value=datetime(2000, 1, 1),
        max_value=datetime(2100, 1, 1),
        timezones=st.sampled_from([timezone(timedelta(hours=h)) for h in (-8, 0, 5, 9)]),
    )
)
def test_timestamps_normalized_to_utc(value: datetime):
    """Property: any aware timestamp is stored as the same instant in UTC."""
    record = SourceRecord(id="g1", created_at=value, deleted_at=value)

    assert record.created_at == value
    assert record.created_at.utcoffset() == timedelta(0)
    assert record.deleted_at.utcoffset() == timedelta(0)


def test_naive_timestamps_are_utc():
    record = SourceRecord(id="g1", created_at=datetime(2024, 1, 1, 12, 0))

    assert record.created_at == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_tombstone_state():
    assert not SourceRecord(id="g1").is_deleted
    assert SourceRecord(id="g1", deleted_at=datetime(2024, 1, 1)).is_deleted


def test_external_item_properties_match_schema():
    record = SourceRecord(id="g1", display_name="HR", description="People team")

    properties = record.as_external_item_properties()

    assert properties == {"id": "g1", "displayName": "HR", "description": "People team"}
    assert set(properties) == {prop.name for prop in group_schema().properties}


def test_group_schema_flags():
    flags = {
        prop.name: (prop.is_queryable, prop.is_searchable, prop.is_retrievable)
        for prop in group_schema().properties
    }

    assert flags == {
        "id": (True, False, True),
        "displayName": (True, True, True),
        "description": (False, True, True),
    }


def test_schema_graph_round_trip_keeps_flags():
    schema = group_schema()

    assert Schema.from_graph(schema.to_graph()) == schema


@given(st.text(max_size=20))
def test_unknown_operation_status_is_pending(value: str):
    status = OperationStatus.parse(value)

    if value.lower() in ("completed", "failed"):
        assert not status.is_pending
    else:
        assert status.is_pending


def test_operation_error_fields():
    operation = ConnectionOperation.from_graph(
        {"id": "op", "status": "failed", "error": {"errorCode": "E1", "message": "broken"}}
    )

    assert operation.status == OperationStatus.FAILED
    assert (operation.error_code, operation.error_message) == ("E1", "broken")
