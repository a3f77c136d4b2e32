"""
Service layer for soft delete operations.

Owns the lifecycle of content items: Active -> Deleted -> (Active | Purged).
Every transition is a single conditional statement against the store, so a
transition either happens completely or not at all, and two racing callers
cannot both win.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from sqlalchemy import and_, delete, or_, update
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from ..audit_trail import AuditAction, AuditLogger
from ..clock import as_utc, utcnow
from ..config import get_config
from .exceptions import (
    AlreadyActiveError,
    AlreadyDeletedError,
    ItemNotFoundError,
    ProtectedContentError,
    SoftDeleteError,
    StoreUnavailableError,
)
from .identity import IdentityResolver, UserDirectory
from .models import PurgeReport, RetentionPolicy, TrashItem, TrashListing
from .registry import ContentTypeDescriptor, ContentTypeRegistry, default_registry

logger = logging.getLogger(__name__)

# Actor recorded on audit entries written by the purge sweep
PURGE_ACTOR = "system:purge"


class SoftDeleteService:
    """
    Soft-delete and recovery manager for all registered content types.

    Handles deletion, trash listing, restoration, protection toggling and the
    retention purge sweep. The acting user is always passed in explicitly.
    """

    def __init__(
        self,
        session: Session,
        registry: Optional[ContentTypeRegistry] = None,
        policy: Optional[RetentionPolicy] = None,
        audit_logger: Optional[AuditLogger] = None,
        identity_resolver: Optional[IdentityResolver] = None,
        clock: Optional[Callable[[], datetime]] = None,
        batch_size: Optional[int] = None,
    ):
        """
        Initialize the soft delete service.

        Args:
            session: SQLAlchemy database session
            registry: Content types to manage (the five station types if omitted)
            policy: Retention policy (built from configuration if omitted)
            audit_logger: Optional audit logger; transitions are audited when set
            identity_resolver: Maps actor ids to display identities
            clock: Time source for deletion timestamps
            batch_size: Rows removed per purge transaction
        """
        config = get_config()
        self.session = session
        self.registry = registry if registry is not None else default_registry()
        self.policy = policy or RetentionPolicy(
            regular_days=config.retention_days,
            protected_days=config.protected_retention_days,
        )
        self.audit_logger = audit_logger
        self.identity_resolver = identity_resolver or UserDirectory(session)
        self.clock = clock or utcnow
        self.batch_size = batch_size or config.purge_batch_size
        self.default_trash_limit = config.trash_listing_limit

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Commit on success; roll back and translate store failures."""
        try:
            yield
            self.session.commit()
        except SoftDeleteError:
            self.session.rollback()
            raise
        except (OperationalError, InterfaceError, PoolTimeoutError) as e:
            self.session.rollback()
            logger.error(f"Content store failure: {e}")
            raise StoreUnavailableError(f"Content store unavailable: {e}") from e
        except Exception:
            self.session.rollback()
            raise

    @contextmanager
    def _reading(self) -> Iterator[None]:
        """Translate store failures during reads; the session is left as is."""
        try:
            yield
        except (OperationalError, InterfaceError, PoolTimeoutError) as e:
            logger.error(f"Content store failure: {e}")
            raise StoreUnavailableError(f"Content store unavailable: {e}") from e

    def _audit(
        self,
        action: AuditAction,
        actor_id: str,
        content_type: str,
        item_id: Any,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.audit_logger is not None:
            self.audit_logger.log_activity(
                self.session,
                action=action,
                user_id=actor_id,
                entity_type=content_type,
                entity_id=str(item_id),
                details=details,
            )

    def _exists(self, descriptor: ContentTypeDescriptor, item_id: Any) -> bool:
        model = descriptor.model
        return (
            self.session.query(model.id).filter(model.id == item_id).first()
            is not None
        )

    def _reload(self, descriptor: ContentTypeDescriptor, item_id: Any) -> Any:
        model = descriptor.model
        with self._reading():
            return (
                self.session.query(model)
                .populate_existing()
                .filter(model.id == item_id)
                .one_or_none()
            )

    def soft_delete(
        self,
        content_type: str,
        item_id: Any,
        actor_id: str,
        *,
        can_delete_protected: bool = True,
    ) -> Any:
        """
        Move an active item to the trash.

        Args:
            content_type: Registered content type tag
            item_id: ID of the item
            actor_id: Identifier of the acting user
            can_delete_protected: Whether the actor may delete protected items

        Returns:
            The deleted item

        Raises:
            UnknownContentTypeError: Content type is not registered
            ItemNotFoundError: No item with that ID
            AlreadyDeletedError: Item is already in the trash
            ProtectedContentError: Item is protected and the actor may not delete it
            ValueError: Actor ID is empty
        """
        if not actor_id or not str(actor_id).strip():
            raise ValueError("Actor ID is required for deletion")
        actor_id = str(actor_id).strip()

        descriptor = self.registry.get(content_type)
        model = descriptor.model

        with self._transaction():
            item = self._reload(descriptor, item_id)
            if item is None:
                raise ItemNotFoundError(content_type, item_id)
            if item.deleted_at is not None:
                raise AlreadyDeletedError(content_type, item_id)
            if item.protected and not can_delete_protected:
                logger.warning(
                    f"Rejected delete of protected {descriptor.label} {item_id} "
                    f"by {actor_id}"
                )
                raise ProtectedContentError(content_type, item_id)

            now = self.clock()
            conditions = [model.id == item_id, model.active_filter()]
            if not can_delete_protected:
                conditions.append(model.protected.is_(False))

            result = self.session.execute(
                update(model)
                .where(*conditions)
                .values(deleted_at=now, deleted_by=actor_id, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # A concurrent delete got there first
                raise AlreadyDeletedError(content_type, item_id)

            self._audit(
                AuditAction.DELETE,
                actor_id,
                content_type,
                item_id,
                details={"title": item.title, "protected": item.protected},
            )

        logger.info(
            f"Soft deleted {descriptor.label} {item_id}",
            extra={
                "content_type": content_type,
                "content_id": str(item_id),
                "actor_id": actor_id,
                "protected": item.protected,
            },
        )
        return self._reload(descriptor, item_id)

    def restore(
        self, content_type: str, item_id: Any, actor_id: Optional[str] = None
    ) -> Any:
        """
        Restore an item from the trash.

        Clears ``deleted_at`` and ``deleted_by`` in one statement that only
        matches while the item is still deleted.

        Args:
            content_type: Registered content type tag
            item_id: ID of the item
            actor_id: Identifier of the acting user, recorded in the audit trail

        Returns:
            The restored item

        Raises:
            UnknownContentTypeError: Content type is not registered
            AlreadyActiveError: Item exists but is not in the trash
            ItemNotFoundError: No such item (never existed or purged)
        """
        descriptor = self.registry.get(content_type)
        model = descriptor.model

        with self._transaction():
            previous = (
                self.session.query(model.deleted_at, model.deleted_by)
                .filter(model.id == item_id, model.deleted_filter())
                .first()
            )
            result = None
            if previous is not None:
                result = self.session.execute(
                    update(model)
                    .where(model.id == item_id, model.deleted_filter())
                    .values(deleted_at=None, deleted_by=None, updated_at=self.clock())
                    .execution_options(synchronize_session=False)
                )

            if result is None or result.rowcount != 1:
                if self._exists(descriptor, item_id):
                    raise AlreadyActiveError(content_type, item_id)
                raise ItemNotFoundError(
                    content_type,
                    item_id,
                    message=f"Deleted {descriptor.label} {item_id} not found",
                )

            self._audit(
                AuditAction.RESTORE,
                actor_id or "unknown",
                content_type,
                item_id,
                details={
                    "original_deleted_by": previous.deleted_by,
                    "original_deleted_at": as_utc(previous.deleted_at).isoformat(),
                },
            )

        logger.info(
            f"Restored {descriptor.label} {item_id}",
            extra={
                "content_type": content_type,
                "content_id": str(item_id),
                "actor_id": actor_id,
            },
        )
        return self._reload(descriptor, item_id)

    def set_protection(
        self, content_type: str, item_id: Any, protected: bool, actor_id: str
    ) -> Any:
        """
        Mark an active item as protected or remove the mark.

        Protected items keep the longer retention window once deleted.

        Raises:
            UnknownContentTypeError: Content type is not registered
            ItemNotFoundError: No active item with that ID
        """
        descriptor = self.registry.get(content_type)
        model = descriptor.model

        with self._transaction():
            result = self.session.execute(
                update(model)
                .where(model.id == item_id, model.active_filter())
                .values(protected=protected, updated_at=self.clock())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ItemNotFoundError(content_type, item_id)

            self._audit(
                AuditAction.PROTECT if protected else AuditAction.UNPROTECT,
                actor_id,
                content_type,
                item_id,
            )

        logger.info(
            f"{'Protected' if protected else 'Unprotected'} "
            f"{descriptor.label} {item_id}",
            extra={"content_type": content_type, "actor_id": actor_id},
        )
        return self._reload(descriptor, item_id)

    def get_item(
        self, content_type: str, item_id: Any, include_deleted: bool = False
    ) -> Any:
        """
        Fetch a single item.

        Raises:
            ItemNotFoundError: No such item, or the item is deleted and
                ``include_deleted`` is False
        """
        descriptor = self.registry.get(content_type)
        item = self._reload(descriptor, item_id)
        if item is None or (item.is_deleted and not include_deleted):
            raise ItemNotFoundError(content_type, item_id)
        return item

    def list_active(
        self, content_type: str, limit: Optional[int] = None, offset: int = 0
    ) -> List[Any]:
        """
        Default listing of a content type: active items, newest first.

        Uses the shared active predicate, like every public listing.
        """
        model = self.registry.get(content_type).model
        query = (
            model.query_active(self.session)
            .populate_existing()
            .order_by(model.created_at.desc(), model.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        if offset:
            query = query.offset(offset)
        with self._reading():
            return query.all()

    def list_trash(self, limit: Optional[int] = None) -> TrashListing:
        """
        List deleted items grouped by content type.

        Args:
            limit: Maximum items per content type (configured default if omitted)

        Returns:
            Trash listing with every registered type present, each group
            ordered by deletion time, most recent first
        """
        if limit is None:
            limit = self.default_trash_limit
        rows_by_type: Dict[str, Sequence[Any]] = {}

        with self._reading():
            for descriptor in self.registry:
                model = descriptor.model
                query = (
                    model.query_deleted(self.session)
                    .populate_existing()
                    .order_by(model.deleted_at.desc(), model.id.desc())
                )
                if limit is not None:
                    query = query.limit(limit)
                rows_by_type[descriptor.tag] = query.all()

            actor_ids = {
                row.deleted_by for rows in rows_by_type.values() for row in rows
            }
            display_names = self.identity_resolver(actor_ids) if actor_ids else {}

        listing = TrashListing()
        for tag, rows in rows_by_type.items():
            listing.groups[tag] = [
                TrashItem(
                    id=row.id,
                    title=row.title,
                    deleted_at=row.deleted_at,
                    deleted_by=display_names.get(row.deleted_by, row.deleted_by),
                    deleted_by_id=row.deleted_by,
                    protected=row.protected,
                    purge_after=self.policy.deadline(row.deleted_at, row.protected),
                )
                for row in rows
            ]
        return listing

    def purge_expired(
        self, now: Optional[datetime] = None, dry_run: bool = False
    ) -> PurgeReport:
        """
        Permanently remove deleted items whose retention window has elapsed.

        Runs per content type in batches of ``batch_size`` rows, one
        transaction per batch. Each DELETE re-checks the deletion timestamp,
        so an item restored (or re-deleted) during the sweep is left alone.
        Instances of purged rows are expunged from the session; other
        instances and pending work in the session are left untouched.

        Args:
            now: Reference time of the sweep (current time if omitted)
            dry_run: Report what would be purged without removing anything

        Returns:
            Purge report with counts per content type
        """
        now = as_utc(now or self.clock())
        report = PurgeReport(run_at=now, dry_run=dry_run)
        cutoff = self.policy.earliest_cutoff(now)

        logger.info(f"Starting trash purge (cutoff {now.isoformat()})")

        for descriptor in self.registry:
            model = descriptor.model
            report.purged.setdefault(descriptor.tag, 0)

            with self._reading():
                candidates = (
                    self.session.query(model)
                    .populate_existing()
                    .filter(model.deleted_filter(), model.deleted_at <= cutoff)
                    .order_by(model.deleted_at)
                    .all()
                )
            expired = [
                (row.id, row.deleted_at, descriptor.file_url(row))
                for row in candidates
                if self.policy.is_expired(row.deleted_at, row.protected, now)
            ]

            if dry_run:
                for item_id, _, file_url in expired:
                    report.add_purged(descriptor.tag, item_id, file_url)
                continue

            for start in range(0, len(expired), self.batch_size):
                batch = expired[start : start + self.batch_size]
                self._purge_batch(descriptor, batch, report)

        logger.info(
            f"Trash purge completed: {report.total} item(s) removed",
            extra={"purged": report.purged, "dry_run": dry_run},
        )
        return report

    def _purge_batch(
        self,
        descriptor: ContentTypeDescriptor,
        batch: List[Any],
        report: PurgeReport,
    ) -> None:
        model = descriptor.model
        purged: List[Any] = []

        with self._transaction():
            for item_id, deleted_at, file_url in batch:
                result = self.session.execute(
                    delete(model)
                    .where(
                        model.id == item_id,
                        model.deleted_filter(),
                        model.deleted_at == deleted_at,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    logger.info(
                        f"Skipped purge of {descriptor.label} {item_id}: "
                        "no longer in the trash"
                    )
                    continue

                purged.append((item_id, file_url))
                self._audit(
                    AuditAction.PURGE,
                    PURGE_ACTOR,
                    descriptor.tag,
                    item_id,
                    details={
                        "deleted_at": as_utc(deleted_at).isoformat(),
                        "file_url": file_url,
                    },
                )

        for item_id, file_url in purged:
            # Purged rows are gone; detach their instances from the session
            instance = self.session.identity_map.get(identity_key(model, item_id))
            if instance is not None:
                self.session.expunge(instance)
            report.add_purged(descriptor.tag, item_id, file_url)
            logger.info(
                f"Permanently deleted {descriptor.label} {item_id}",
                extra={"content_type": descriptor.tag, "content_id": str(item_id)},
            )

    def check_integrity(self) -> Dict[str, int]:
        """
        Count rows violating the deletion consistency invariant.

        Returns:
            Mapping of content type to the number of rows where exactly one
            of ``deleted_at`` and ``deleted_by`` is set
        """
        violations: Dict[str, int] = {}
        with self._reading():
            for descriptor in self.registry:
                model = descriptor.model
                violations[descriptor.tag] = (
                    self.session.query(model)
                    .filter(
                        or_(
                            and_(
                                model.deleted_at.is_(None),
                                model.deleted_by.is_not(None),
                            ),
                            and_(
                                model.deleted_at.is_not(None),
                                model.deleted_by.is_(None),
                            ),
                        )
                    )
                    .count()
                )
        return violations
