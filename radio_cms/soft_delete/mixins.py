"""
SQLAlchemy mixins for soft delete functionality.

Every content table carries the same three lifecycle columns. The mixin owns
them and the shared predicates used by every listing, so the "not deleted"
filter is written exactly once.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Type

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ColumnElement,
    DateTime,
    Index,
    String,
    event,
    false,
    text,
)
from sqlalchemy.orm import Mapped, Query, Session, declared_attr, mapped_column

# Lifecycle columns owned by the recovery manager
LIFECYCLE_FIELDS = ("deleted_at", "deleted_by", "protected")


class SoftDeleteMixin:
    """
    Mixin to add soft delete functionality to SQLAlchemy models.

    Provides:
    - Lifecycle fields (deleted_at, deleted_by, protected)
    - A CHECK constraint keeping deleted_at and deleted_by paired
    - A partial index on active rows and an index on deleted_at
    - The shared active/deleted predicates

    Usage:
        class Article(Base, SoftDeleteMixin):
            __tablename__ = 'articles'
            id = mapped_column(Integer, primary_key=True)
            title = mapped_column(String(255))

    Extra table-level constraints go in ``__extra_table_args__``.
    """

    __extra_table_args__: Tuple[Any, ...] = ()

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    deleted_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    protected: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )

    @declared_attr.directive
    def __table_args__(cls) -> Tuple[Any, ...]:
        """Add deletion consistency constraint and lifecycle indexes."""
        table_name = getattr(cls, "__tablename__", cls.__name__.lower())

        constraint = CheckConstraint(
            "(deleted_at IS NULL AND deleted_by IS NULL) OR "
            "(deleted_at IS NOT NULL AND deleted_by IS NOT NULL)",
            name=f"ck_{table_name}_deletion_consistency",
        )
        active_index = Index(
            f"idx_{table_name}_active",
            "id",
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        )
        deleted_index = Index(f"idx_{table_name}_deleted_at", "deleted_at")

        return tuple(cls.__extra_table_args__) + (
            constraint,
            active_index,
            deleted_index,
        )

    @property
    def is_deleted(self) -> bool:
        """Whether the item is currently in the trash."""
        return self.deleted_at is not None

    @classmethod
    def active_filter(cls) -> ColumnElement[bool]:
        """Predicate selecting active rows; used by every default listing."""
        return cls.deleted_at.is_(None)

    @classmethod
    def deleted_filter(cls) -> ColumnElement[bool]:
        """Predicate selecting rows in the trash."""
        return cls.deleted_at.is_not(None)

    @classmethod
    def query_active(cls, session: Session) -> Query[Any]:
        """
        Return query for active (non-deleted) records only.

        Args:
            session: SQLAlchemy session

        Returns:
            Query filtered to exclude deleted records
        """
        return session.query(cls).filter(cls.active_filter())

    @classmethod
    def query_deleted(cls, session: Session) -> Query[Any]:
        """
        Return query for deleted records only.

        Args:
            session: SQLAlchemy session

        Returns:
            Query filtered to include only deleted records
        """
        return session.query(cls).filter(cls.deleted_filter())

    @classmethod
    def query_all(cls, session: Session) -> Query[Any]:
        """Return query for all records including deleted."""
        return session.query(cls)

    def to_dict(self, include_lifecycle_fields: bool = True) -> Dict[str, Any]:
        """
        Convert model to dictionary representation.

        Args:
            include_lifecycle_fields: Whether to include soft delete fields

        Returns:
            Dictionary representation of the model
        """
        result: Dict[str, Any] = {}

        table = getattr(self, "__table__", None)
        if table is None:
            return result

        for column in table.columns:
            value = getattr(self, column.key, None)
            if isinstance(value, datetime):
                value = value.isoformat()
            result[column.key] = value

        if not include_lifecycle_fields:
            for field in LIFECYCLE_FIELDS:
                result.pop(field, None)

        return result


def prevent_hard_delete(mapper: Any, connection: Any, target: Any) -> None:
    """
    Prevent ORM hard deletes on models with SoftDeleteMixin.

    Permanent removal only happens through the purge sweep, which issues
    its own DELETE statements and does not pass through this hook.
    """
    if isinstance(target, SoftDeleteMixin):
        raise RuntimeError(
            f"Hard delete attempted on {target.__class__.__name__}. "
            "Use the trash (soft delete) instead."
        )


def register_soft_delete_listeners(base_class: Type[Any]) -> None:
    """
    Register SQLAlchemy event listeners for soft delete functionality.

    Args:
        base_class: The declarative base class
    """
    for mapper in base_class.registry.mappers:
        if issubclass(mapper.class_, SoftDeleteMixin) and not event.contains(
            mapper.class_, "before_delete", prevent_hard_delete
        ):
            event.listen(mapper.class_, "before_delete", prevent_hard_delete)
