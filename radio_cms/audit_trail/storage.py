"""
Storage for audit trail data.

Entries are written through the caller's SQLAlchemy session so that an audit
record commits or rolls back together with the transition it describes.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, String, and_, desc
from sqlalchemy.orm import Mapped, Session, mapped_column

from ..database import Base
from .models import AuditEntry, AuditQuery


class AuditEntryRecord(Base):
    """SQLAlchemy model for audit entries."""

    __tablename__ = "audit_trail"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_type: Mapped[Optional[str]] = mapped_column(String(100))
    entity_id: Mapped[Optional[str]] = mapped_column(String(100))
    application: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    checksum: Mapped[str] = mapped_column(String(128), nullable=False)

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_user_timestamp", "user_id", "timestamp"),
    )

    @classmethod
    def from_entry(cls, entry: AuditEntry) -> "AuditEntryRecord":
        if entry.checksum is None:
            raise ValueError("Audit entries must be checksummed before storage")
        return cls(
            id=entry.id,
            timestamp=entry.timestamp,
            user_id=entry.user_id,
            action=str(entry.action),
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            application=entry.application,
            details=entry.details,
            success=entry.success,
            checksum=entry.checksum,
        )

    def to_entry(self) -> AuditEntry:
        return AuditEntry(
            id=self.id,
            timestamp=self.timestamp,
            user_id=self.user_id,
            action=self.action,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            application=self.application,
            details=self.details,
            success=self.success,
            checksum=self.checksum,
        )


class AuditStorage:
    """Audit storage bound to a SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    def store(self, entry: AuditEntry) -> None:
        """
        Add an audit entry to the current transaction.

        Args:
            entry: Checksummed audit entry
        """
        self.session.add(AuditEntryRecord.from_entry(entry))

    def query(self, query: AuditQuery) -> List[AuditEntry]:
        """
        Query audit entries, newest first.

        Args:
            query: Query parameters

        Returns:
            List of matching audit entries
        """
        conditions = []
        if query.actions:
            conditions.append(
                AuditEntryRecord.action.in_([str(a.value) for a in query.actions])
            )
        if query.entity_types:
            conditions.append(AuditEntryRecord.entity_type.in_(query.entity_types))
        if query.entity_ids:
            conditions.append(AuditEntryRecord.entity_id.in_(query.entity_ids))
        if query.user_ids:
            conditions.append(AuditEntryRecord.user_id.in_(query.user_ids))
        if query.start_date:
            conditions.append(AuditEntryRecord.timestamp >= query.start_date)
        if query.end_date:
            conditions.append(AuditEntryRecord.timestamp <= query.end_date)

        db_query = self.session.query(AuditEntryRecord)
        if conditions:
            db_query = db_query.filter(and_(*conditions))

        records = (
            db_query.order_by(desc(AuditEntryRecord.timestamp))
            .limit(query.limit)
            .offset(query.offset)
            .all()
        )
        return [record.to_entry() for record in records]

    def verify_integrity(self) -> List[str]:
        """
        Recalculate checksums of all stored entries.

        Returns:
            IDs of entries whose checksum no longer matches
        """
        return [
            record.id
            for record in self.session.query(AuditEntryRecord).all()
            if not record.to_entry().verify_checksum()
        ]
