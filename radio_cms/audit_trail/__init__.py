"""
Audit Trail Module - record of trash lifecycle transitions.

Every delete, restore, purge and protection change is stored with a
checksum in the same transaction as the change itself.
"""

from .logger import AuditLogger
from .models import AuditAction, AuditEntry, AuditQuery
from .storage import AuditEntryRecord, AuditStorage

__all__ = [
    # Logger
    "AuditLogger",
    # Models
    "AuditAction",
    "AuditEntry",
    "AuditQuery",
    # Storage
    "AuditEntryRecord",
    "AuditStorage",
]
