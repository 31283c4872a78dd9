"""Synchronization components for pushing groups to the search index."""

from groups_connector.sync.models import SyncPlan, SyncReport
from groups_connector.sync.planner import SyncPlanner
from groups_connector.sync.sync_coordinator import SyncCoordinator
from groups_connector.sync.watermark_store import WatermarkError, WatermarkStore

__all__ = [
    "SyncCoordinator",
    "SyncPlan",
    "SyncPlanner",
    "SyncReport",
    "WatermarkError",
    "WatermarkStore",
]
