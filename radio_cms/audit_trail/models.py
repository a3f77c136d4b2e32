"""
Data models for audit trail functionality.

Every lifecycle transition of a content item (delete, restore, purge,
protection change) produces one immutable audit entry.
"""

import hashlib
import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..clock import as_utc, utcnow


class AuditAction(str, Enum):
    """Audited trash actions."""

    DELETE = "DELETE"
    RESTORE = "RESTORE"
    PURGE = "PURGE"
    PROTECT = "PROTECT"
    UNPROTECT = "UNPROTECT"


class AuditEntry(BaseModel):
    """
    Immutable audit trail entry.

    Captures who did what to which item, when, and whether it succeeded.
    """

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(..., description="Unique identifier for the audit entry")
    timestamp: datetime = Field(
        default_factory=utcnow, description="UTC timestamp of the action"
    )
    user_id: str = Field(..., description="ID of the acting user or job")
    action: AuditAction = Field(..., description="Type of action performed")
    entity_type: Optional[str] = Field(None, description="Content type affected")
    entity_id: Optional[str] = Field(None, description="ID of item affected")
    application: str = Field(..., description="Application name")
    details: Optional[Dict[str, Any]] = Field(
        None, description="Additional context-specific details"
    )
    success: bool = Field(True, description="Whether the action succeeded")
    checksum: Optional[str] = Field(
        None, description="Checksum of the entry for integrity verification"
    )

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return as_utc(v)

    def calculate_checksum(self) -> str:
        """
        Calculate a sha256 checksum over the identifying fields.

        Returns:
            Hex digest of the checksum
        """
        data = {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "user_id": self.user_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "details": self.details,
            "success": self.success,
        }
        json_str = json.dumps(data, sort_keys=True, default=str)
        return hashlib.sha256(json_str.encode()).hexdigest()

    def verify_checksum(self, expected_checksum: Optional[str] = None) -> bool:
        """
        Verify the integrity of the audit entry.

        Args:
            expected_checksum: Checksum to compare against (stored one if omitted)

        Returns:
            True if checksum matches
        """
        expected = expected_checksum or self.checksum
        return expected is not None and self.calculate_checksum() == expected


class AuditQuery(BaseModel):
    """Filters for searching the audit trail."""

    actions: Optional[List[AuditAction]] = None
    entity_types: Optional[List[str]] = None
    entity_ids: Optional[List[str]] = None
    user_ids: Optional[List[str]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: int = Field(100, gt=0, le=10000)
    offset: int = Field(0, ge=0)
