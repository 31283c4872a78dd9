"""Local persistence for directory groups."""

from groups_connector.storage.record_store import GroupRecordStore, RefreshResult

__all__ = ["GroupRecordStore", "RefreshResult"]
