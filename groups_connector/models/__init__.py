"""Data models for the groups connector."""

from groups_connector.models.config import (
    AppConfig,
    GraphConfig,
    LoggingConfig,
    SyncConfig,
)
from groups_connector.models.group import (
    ConnectionOperation,
    ExternalConnection,
    OperationStatus,
    Schema,
    SchemaProperty,
    SourceRecord,
    group_schema,
)

__all__ = [
    "SourceRecord",
    "ExternalConnection",
    "Schema",
    "SchemaProperty",
    "ConnectionOperation",
    "OperationStatus",
    "group_schema",
    "AppConfig",
    "GraphConfig",
    "LoggingConfig",
    "SyncConfig",
]
