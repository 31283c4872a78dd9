"""Pydantic models for directory groups and Microsoft Search resources."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


def ensure_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime, treating naive values as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SourceRecord(BaseModel):
    """A directory group as seen from the source system.

    ``created_at`` carries "last modified" semantics: it is bumped whenever
    the group's content changes, not only when the group is first created.
    A record with ``deleted_at`` set is a tombstone.
    """

    id: str = Field(default=..., min_length=1, description="Stable group identifier")
    display_name: str | None = Field(default=None, description="Group display name")
    description: str | None = Field(default=None, description="Group description")
    created_at: datetime | None = Field(
        default=None, description="Last time the group was created or modified"
    )
    deleted_at: datetime | None = Field(
        default=None, description="Time the group was removed, None while live"
    )

    @field_validator("created_at", "deleted_at")
    @classmethod
    def normalize_timestamp(cls, v: datetime | None) -> datetime | None:
        """Store timestamps as timezone-aware UTC."""
        return ensure_utc(v)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def as_external_item_properties(self) -> dict[str, Any]:
        """Properties pushed to the search index, matching the connector schema."""
        return {
            "id": self.id,
            "displayName": self.display_name,
            "description": self.description,
        }

    def has_same_content(self, other: "SourceRecord") -> bool:
        """True when the indexed fields of both records are equal."""
        return (
            self.display_name == other.display_name and self.description == other.description
        )

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "02bd9fd6-8f93-4758-87c3-1fb73740a315",
                "display_name": "HR Taskforce",
                "description": "Marketing campaigns for the HR department",
                "created_at": "2024-01-15T14:30:00Z",
                "deleted_at": None,
            }
        }
    }


class ExternalConnection(BaseModel):
    """A Microsoft Search external connection."""

    id: str = Field(default=..., description="Connection identifier")
    name: str = Field(default=..., description="Display name")
    description: str | None = Field(default=None, description="Connection description")
    state: str | None = Field(default=None, description="Provisioning state reported by Graph")

    @classmethod
    def from_graph(cls, payload: dict[str, Any]) -> "ExternalConnection":
        return cls(
            id=payload["id"],
            name=payload.get("name") or payload["id"],
            description=payload.get("description"),
            state=payload.get("state"),
        )


class SchemaProperty(BaseModel):
    """One searchable field of a connection schema."""

    name: str
    type: str = "string"
    is_queryable: bool = False
    is_searchable: bool = False
    is_retrievable: bool = False

    def to_graph(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "isQueryable": self.is_queryable,
            "isSearchable": self.is_searchable,
            "isRetrievable": self.is_retrievable,
        }

    @classmethod
    def from_graph(cls, payload: dict[str, Any]) -> "SchemaProperty":
        return cls(
            name=payload["name"],
            type=payload.get("type", "string"),
            is_queryable=bool(payload.get("isQueryable", False)),
            is_searchable=bool(payload.get("isSearchable", False)),
            is_retrievable=bool(payload.get("isRetrievable", False)),
        )


class Schema(BaseModel):
    """Schema registered on an external connection."""

    base_type: str = "microsoft.graph.externalItem"
    properties: list[SchemaProperty] = Field(default_factory=list)

    def to_graph(self) -> dict[str, Any]:
        return {
            "baseType": self.base_type,
            "properties": [prop.to_graph() for prop in self.properties],
        }

    @classmethod
    def from_graph(cls, payload: dict[str, Any]) -> "Schema":
        return cls(
            base_type=payload.get("baseType", "microsoft.graph.externalItem"),
            properties=[SchemaProperty.from_graph(p) for p in payload.get("properties", [])],
        )


def group_schema() -> Schema:
    """Schema describing the group fields the connector indexes."""
    return Schema(
        properties=[
            SchemaProperty(
                name="id", is_queryable=True, is_searchable=False, is_retrievable=True
            ),
            SchemaProperty(
                name="displayName", is_queryable=True, is_searchable=True, is_retrievable=True
            ),
            SchemaProperty(
                name="description", is_queryable=False, is_searchable=True, is_retrievable=True
            ),
        ]
    )


class OperationStatus(str, Enum):
    """Status values of a long-running connection operation."""

    UNSPECIFIED = "unspecified"
    IN_PROGRESS = "inprogress"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def parse(cls, value: str | None) -> "OperationStatus":
        # Graph may add values (e.g. unknownFutureValue); anything unknown is still pending
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.UNSPECIFIED

    @property
    def is_pending(self) -> bool:
        return self not in (OperationStatus.COMPLETED, OperationStatus.FAILED)


class ConnectionOperation(BaseModel):
    """State of an asynchronous operation such as schema registration."""

    id: str
    status: OperationStatus = OperationStatus.UNSPECIFIED
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def from_graph(cls, payload: dict[str, Any]) -> "ConnectionOperation":
        error = payload.get("error") or {}
        return cls(
            id=payload.get("id", ""),
            status=OperationStatus.parse(payload.get("status")),
            error_code=error.get("errorCode") or error.get("code"),
            error_message=error.get("message"),
        )
