#!/usr/bin/env python3
"""
Trash Walkthrough - Radio CMS

Demonstration script showing the lifecycle of station content:
- Deleting an article into the trash
- Listing the trash with resolved actor identities
- Protected content and the longer retention window
- Restoring, and the daily purge sweep

Runs against an in-memory SQLite database.
"""

from datetime import timedelta

from radio_cms.audit_trail import AuditLogger, AuditQuery, AuditStorage
from radio_cms.clock import utcnow
from radio_cms.content.models import AdminUser
from radio_cms.database import create_db_engine, create_session_factory, init_db
from radio_cms.soft_delete import (
    ProtectedContentError,
    SoftDeleteService,
    default_registry,
)


def main() -> None:
    engine = create_db_engine(url="sqlite://")
    init_db(engine)
    session = create_session_factory(engine)()
    registry = default_registry()

    print("=== Radio CMS Trash Walkthrough ===\n")

    session.add_all(
        [
            AdminUser(id="u1", email="editor@station.org", role="content_manager"),
            AdminUser(id="admin-1", email="chief@station.org", role="administrator"),
            registry.build("articles", id=42, title="Station News"),
            registry.build("resources", id=7, title="Constitution", protected=True),
        ]
    )
    session.commit()

    trash = SoftDeleteService(session, registry=registry, audit_logger=AuditLogger())

    # 1. Delete an article
    print("1. Editor deletes article 42")
    trash.soft_delete("articles", 42, "u1")
    print(f"   Public articles: {[a.id for a in trash.list_active('articles')]}")

    # 2. Protected content
    print("\n2. Editor tries to delete the constitution")
    try:
        trash.soft_delete("resources", 7, "u1", can_delete_protected=False)
    except ProtectedContentError as e:
        print(f"   ✗ {e.message}")
    trash.soft_delete("resources", 7, "admin-1")
    print("   ✓ Administrator deleted it instead")

    # 3. Trash listing
    print("\n3. Trash view")
    listing = trash.list_trash()
    for content_type in listing.content_types:
        for item in listing[content_type]:
            print(
                f"   {content_type:<10} #{item.id:<3} {item.title:<15} "
                f"by {item.deleted_by:<20} purge after {item.purge_after:%Y-%m-%d}"
            )

    # 4. Restore
    print("\n4. Editor restores article 42")
    trash.restore("articles", 42, actor_id="u1")
    print(f"   Public articles: {[a.id for a in trash.list_active('articles')]}")

    # 5. Purge sweep
    print("\n5. Purge sweep")
    for days in (31, 61):
        report = trash.purge_expired(now=utcnow() + timedelta(days=days))
        print(f"   After {days} days: {report.purged}")

    # 6. Audit trail
    print("\n6. Audit trail")
    for entry in reversed(AuditStorage(session).query(AuditQuery())):
        print(f"   {entry.action:<8} {entry.entity_type}/{entry.entity_id} by {entry.user_id}")

    session.close()
    engine.dispose()


if __name__ == "__main__":
    main()
