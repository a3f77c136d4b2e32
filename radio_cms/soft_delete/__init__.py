"""
Soft Delete Module - trash and recovery for station content.

Provides the lifecycle mixin, the content type registry, the retention
policy and the service that moves items between Active, Deleted and Purged.
"""

from .exceptions import (
    AlreadyActiveError,
    AlreadyDeletedError,
    ItemNotFoundError,
    ProtectedContentError,
    SoftDeleteError,
    StoreUnavailableError,
    UnknownContentTypeError,
)
from .identity import IdentityResolver, UserDirectory
from .mixins import SoftDeleteMixin, register_soft_delete_listeners
from .models import PurgedFile, PurgeReport, RetentionPolicy, TrashItem, TrashListing
from .registry import ContentTypeDescriptor, ContentTypeRegistry, default_registry
from .services import SoftDeleteService

__all__ = [
    # Mixins
    "SoftDeleteMixin",
    "register_soft_delete_listeners",
    # Services
    "SoftDeleteService",
    # Registry
    "ContentTypeDescriptor",
    "ContentTypeRegistry",
    "default_registry",
    # Identity
    "IdentityResolver",
    "UserDirectory",
    # Models
    "RetentionPolicy",
    "TrashItem",
    "TrashListing",
    "PurgeReport",
    "PurgedFile",
    # Exceptions
    "SoftDeleteError",
    "UnknownContentTypeError",
    "ItemNotFoundError",
    "AlreadyActiveError",
    "AlreadyDeletedError",
    "ProtectedContentError",
    "StoreUnavailableError",
]
