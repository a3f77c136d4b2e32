"""
Data models for soft delete operations.

These models define the retention policy, the trash listing returned to the
admin back office and the report produced by the purge sweep.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel

from ..clock import as_utc, utcnow


class RetentionPolicy(BaseModel):
    """Retention windows for deleted content.

    Regular items stay restorable for ``regular_days`` after deletion,
    protected items for ``protected_days``. Once the window has elapsed the
    item is eligible for permanent purge.
    """

    regular_days: int = Field(30, description="Window for regular content", gt=0)
    protected_days: int = Field(60, description="Window for protected content", gt=0)

    @field_validator("protected_days")
    @classmethod
    def validate_protected_window(cls, v: int, info: ValidationInfo) -> int:
        """Protected content must not expire before regular content."""
        regular = info.data.get("regular_days")
        if regular is not None and v < regular:
            raise ValueError(
                "Protected retention window cannot be shorter than the regular one"
            )
        return v

    def window(self, protected: bool) -> timedelta:
        """Retention window for an item with the given protection flag."""
        return timedelta(days=self.protected_days if protected else self.regular_days)

    def deadline(self, deleted_at: datetime, protected: bool) -> datetime:
        """
        Moment an item becomes eligible for purge.

        Args:
            deleted_at: When the item was soft deleted
            protected: Whether the item is protected

        Returns:
            ``deleted_at`` plus the applicable retention window, in UTC
        """
        return as_utc(deleted_at) + self.window(protected)

    def is_expired(
        self, deleted_at: datetime, protected: bool, now: datetime
    ) -> bool:
        """
        Check if a deleted item can be permanently purged.

        Args:
            deleted_at: When the item was soft deleted
            protected: Whether the item is protected
            now: Reference time of the sweep

        Returns:
            True once ``now`` has reached the retention deadline
        """
        return as_utc(now) >= self.deadline(deleted_at, protected)

    def earliest_cutoff(self, now: datetime) -> datetime:
        """Items deleted after this moment cannot be expired at ``now``."""
        return as_utc(now) - timedelta(days=min(self.regular_days, self.protected_days))


class TrashItem(BaseModel):
    """A deleted item as shown in the trash view."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    title: str
    deleted_at: datetime = Field(..., description="When the item was deleted")
    deleted_by: str = Field(..., description="Display identity of the deleting actor")
    deleted_by_id: str = Field(..., description="Identifier of the deleting actor")
    protected: bool = False
    purge_after: datetime = Field(..., description="Earliest permanent purge time")

    @field_validator("deleted_at", "purge_after")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        """Stores without timezone support hand back naive UTC values."""
        return as_utc(v)


class TrashListing(BaseModel):
    """Deleted items grouped by content type, most recently deleted first."""

    groups: Dict[str, List[TrashItem]] = Field(default_factory=dict)

    def __getitem__(self, content_type: str) -> List[TrashItem]:
        return self.groups[content_type]

    @property
    def content_types(self) -> List[str]:
        """Content types in listing order."""
        return list(self.groups)

    @property
    def total(self) -> int:
        """Number of items in the trash across all types."""
        return sum(len(items) for items in self.groups.values())

    def to_response(self) -> Dict[str, List[Dict[str, object]]]:
        """JSON body for the admin trash endpoint."""
        return {
            content_type: [
                item.model_dump(mode="json", by_alias=True) for item in items
            ]
            for content_type, items in self.groups.items()
        }


class PurgedFile(BaseModel):
    """A stored file left behind by a purged row."""

    content_type: str
    entity_id: int
    url: str


class PurgeReport(BaseModel):
    """Outcome of a purge sweep."""

    run_at: datetime = Field(default_factory=utcnow)
    dry_run: bool = False
    purged: Dict[str, int] = Field(
        default_factory=dict, description="Removed rows by content type"
    )
    orphaned_files: List[PurgedFile] = Field(
        default_factory=list, description="File URLs of removed rows"
    )

    @property
    def total(self) -> int:
        """Total rows removed."""
        return sum(self.purged.values())

    def add_purged(
        self, content_type: str, entity_id: int, file_url: Optional[str] = None
    ) -> None:
        """Add a removed row to the report statistics."""
        self.purged[content_type] = self.purged.get(content_type, 0) + 1
        if file_url:
            self.orphaned_files.append(
                PurgedFile(content_type=content_type, entity_id=entity_id, url=file_url)
            )
