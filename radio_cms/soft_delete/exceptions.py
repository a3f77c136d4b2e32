"""Exceptions for soft delete operations."""

from typing import Any, Dict, Optional


class SoftDeleteError(Exception):
    """Base exception for soft delete operations."""

    status_code = 500
    error_code = "SOFT_DELETE_ERROR"

    def __init__(
        self,
        message: str,
        content_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ):
        self.message = message
        self.content_type = content_type
        self.entity_id = entity_id
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to the JSON body returned by the admin API."""
        details: Dict[str, Any] = {}
        if self.content_type is not None:
            details["contentType"] = self.content_type
        if self.entity_id is not None:
            details["id"] = self.entity_id
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": details,
            }
        }


class UnknownContentTypeError(SoftDeleteError):
    """Raised when a content type tag is not registered."""

    status_code = 404
    error_code = "UNKNOWN_CONTENT_TYPE"

    def __init__(self, content_type: str):
        super().__init__(
            f"Unknown content type '{content_type}'", content_type=content_type
        )


class ItemNotFoundError(SoftDeleteError):
    """Raised when no item exists in the state an operation expects."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, content_type: str, entity_id: Any, message: Optional[str] = None):
        super().__init__(
            message or f"{content_type} item {entity_id} not found",
            content_type=content_type,
            entity_id=str(entity_id),
        )


class AlreadyActiveError(ItemNotFoundError):
    """Raised when restoring an item that is not in the trash.

    Subclasses ItemNotFoundError: a retried restore that already succeeded
    reports "no such deleted item", which callers may treat as success.
    """

    status_code = 409
    error_code = "ALREADY_ACTIVE"

    def __init__(self, content_type: str, entity_id: Any):
        super().__init__(
            content_type,
            entity_id,
            message=(
                f"{content_type} item {entity_id} is not deleted and cannot be restored"
            ),
        )


class AlreadyDeletedError(SoftDeleteError):
    """Raised when attempting to delete an already deleted item."""

    status_code = 409
    error_code = "ALREADY_DELETED"

    def __init__(self, content_type: str, entity_id: Any):
        super().__init__(
            f"{content_type} item {entity_id} is already deleted "
            "and cannot be deleted again",
            content_type=content_type,
            entity_id=str(entity_id),
        )


class ProtectedContentError(SoftDeleteError):
    """Raised when the caller may not delete protected content."""

    status_code = 403
    error_code = "PROTECTED_CONTENT"

    def __init__(self, content_type: str, entity_id: Any):
        super().__init__(
            "Cannot delete protected content. "
            "Only administrators can delete protected items.",
            content_type=content_type,
            entity_id=str(entity_id),
        )


class StoreUnavailableError(SoftDeleteError):
    """Raised when the persistence layer fails."""

    status_code = 503
    error_code = "STORE_UNAVAILABLE"

    def __init__(self, message: str = "Content store unavailable"):
        super().__init__(message)
