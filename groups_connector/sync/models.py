"""Data models for synchronization passes."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class SyncPlan(BaseModel):
    """Identifiers to push to and remove from the search index."""

    to_upsert: list[str] = Field(
        default_factory=list, description="IDs of live groups to create or replace"
    )
    to_delete: list[str] = Field(
        default_factory=list, description="IDs of deleted groups to remove"
    )

    @model_validator(mode="after")
    def check_disjoint(self) -> "SyncPlan":
        overlap = set(self.to_upsert) & set(self.to_delete)
        if overlap:
            raise ValueError(f"IDs planned for both upsert and delete: {sorted(overlap)}")
        return self

    @property
    def has_changes(self) -> bool:
        return bool(self.to_upsert or self.to_delete)

    @property
    def total_changes(self) -> int:
        return len(self.to_upsert) + len(self.to_delete)


class SyncReport(BaseModel):
    """Report of one synchronization pass."""

    connection_id: str = Field(..., description="Connection that was synced")
    full_sync: bool = Field(default=False, description="True for a full push")
    items_upserted: int = Field(default=0, ge=0, description="Items created or replaced")
    items_deleted: int = Field(default=0, ge=0, description="Items removed from the index")
    items_not_found: int = Field(
        default=0, ge=0, description="Deletes for items the index no longer had"
    )
    items_failed: int = Field(default=0, ge=0, description="Upserts or deletes that failed")
    duration_seconds: float = Field(default=0.0, ge=0.0, description="Pass duration in seconds")
    start_time: datetime = Field(..., description="Pass start timestamp")
    end_time: datetime = Field(..., description="Pass end timestamp")
    watermark_advanced: bool = Field(
        default=False, description="Whether the pass start time was committed"
    )
    errors: list[str] = Field(
        default_factory=list, description="List of errors encountered during the pass"
    )

    @property
    def total_changes(self) -> int:
        return self.items_upserted + self.items_deleted + self.items_not_found

    @property
    def success(self) -> bool:
        """Check if the pass completed without errors."""
        return len(self.errors) == 0
