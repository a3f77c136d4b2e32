"""
Core audit logger implementation.

Provides the AuditLogger class used by the trash service to record lifecycle
transitions.
"""

import logging
import uuid
from typing import Any, Callable, Dict, Optional, Union

from sqlalchemy.orm import Session

from ..clock import utcnow
from ..config import get_config
from .models import AuditAction, AuditEntry
from .storage import AuditStorage

audit_log = logging.getLogger("radio_cms.audit")


class AuditLogger:
    """Audit logger for trash lifecycle transitions.

    Entries are checksummed, added to the caller's session (so they commit
    with the transition) and mirrored to the ``radio_cms.audit`` logger.

    Example:
        >>> audit = AuditLogger()
        >>> audit.log_activity(
        ...     session,
        ...     action=AuditAction.RESTORE,
        ...     user_id="editor@example.com",
        ...     entity_type="articles",
        ...     entity_id="42",
        ... )
    """

    def __init__(
        self,
        application_name: Optional[str] = None,
        enabled: Optional[bool] = None,
        clock: Optional[Callable[[], Any]] = None,
    ):
        """Initialize the audit logger.

        Args:
            application_name: Name recorded on every entry. Defaults to the
                configured application name.
            enabled: Whether entries are persisted. Defaults to the
                ``audit_enabled`` setting. The stdlib log line is always emitted.
            clock: Time source for entry timestamps.
        """
        config = get_config()
        self.application_name = application_name or config.application_name
        self.enabled = config.audit_enabled if enabled is None else enabled
        self.clock = clock or utcnow

    def log_activity(
        self,
        session: Session,
        action: Union[str, AuditAction],
        user_id: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        success: bool = True,
    ) -> AuditEntry:
        """
        Log an audit trail entry.

        Args:
            session: Session of the transaction being audited
            action: Action performed
            user_id: Acting user or job
            entity_type: Content type affected
            entity_id: ID of item affected
            details: Additional context
            success: Whether the action succeeded

        Returns:
            The stored audit entry
        """
        entry = AuditEntry(
            id=str(uuid.uuid4()),
            timestamp=self.clock(),
            user_id=user_id,
            action=action if isinstance(action, AuditAction) else AuditAction(action),
            entity_type=entity_type,
            entity_id=entity_id,
            application=self.application_name,
            details=details,
            success=success,
        )
        entry.checksum = entry.calculate_checksum()

        if self.enabled:
            AuditStorage(session).store(entry)

        audit_log.info(
            "%s %s/%s by %s",
            entry.action,
            entity_type,
            entity_id,
            user_id,
            extra={"audit_id": entry.id, "audit_details": details or {}},
        )
        return entry
