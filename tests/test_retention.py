"""
Tests for the retention policy and the purge sweep.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from radio_cms.audit_trail import AuditAction, AuditQuery, AuditStorage
from radio_cms.content.models import Article, Episode, Show
from radio_cms.soft_delete import (
    ItemNotFoundError,
    PurgeReport,
    RetentionPolicy,
    SoftDeleteService,
)
from radio_cms.soft_delete.services import PURGE_ACTOR

DELETED_AT = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestRetentionPolicy:
    """Pure retention window arithmetic."""

    def test_default_windows(self):
        policy = RetentionPolicy()
        assert policy.window(False) == timedelta(days=30)
        assert policy.window(True) == timedelta(days=60)

    @pytest.mark.parametrize(
        "protected,days",
        [(False, 30), (True, 60)],
    )
    def test_expiry_boundary(self, protected, days):
        policy = RetentionPolicy()
        deadline = DELETED_AT + timedelta(days=days)

        assert policy.deadline(DELETED_AT, protected) == deadline
        assert not policy.is_expired(
            DELETED_AT, protected, deadline - timedelta(microseconds=1)
        )
        assert policy.is_expired(DELETED_AT, protected, deadline)
        assert policy.is_expired(DELETED_AT, protected, deadline + timedelta(days=1))

    def test_naive_timestamps_are_utc(self):
        policy = RetentionPolicy()
        naive = DELETED_AT.replace(tzinfo=None)
        assert policy.deadline(naive, False) == DELETED_AT + timedelta(days=30)
        assert policy.is_expired(naive, False, DELETED_AT + timedelta(days=30))

    def test_custom_windows(self):
        policy = RetentionPolicy(regular_days=7, protected_days=14)
        assert policy.is_expired(DELETED_AT, False, DELETED_AT + timedelta(days=7))
        assert not policy.is_expired(DELETED_AT, True, DELETED_AT + timedelta(days=7))

    def test_protected_window_cannot_be_shorter(self):
        with pytest.raises(ValidationError):
            RetentionPolicy(regular_days=30, protected_days=10)

    def test_windows_must_be_positive(self):
        with pytest.raises(ValidationError):
            RetentionPolicy(regular_days=0)

    def test_earliest_cutoff(self):
        policy = RetentionPolicy()
        now = DELETED_AT + timedelta(days=45)
        assert policy.earliest_cutoff(now) == now - timedelta(days=30)


class TestPurgeSweep:
    """Permanent removal of expired trash."""

    def test_regular_item_boundary(self, service, make_item, clock, db_session):
        article_id = make_item().id
        service.soft_delete("articles", article_id, "u1")
        deleted_at = clock.now

        report = service.purge_expired(
            now=deleted_at + timedelta(days=30) - timedelta(seconds=1)
        )
        assert report.total == 0
        assert service.get_item("articles", article_id, include_deleted=True)

        report = service.purge_expired(now=deleted_at + timedelta(days=30))
        assert report.purged["articles"] == 1
        assert db_session.get(Article, article_id) is None

    def test_held_instance_of_purged_item_stays_readable(
        self, service, make_item, clock, db_session
    ):
        gone = make_item(title="Yesterday's schedule")
        kept = make_item(title="Today's schedule")
        service.soft_delete("articles", gone.id, "u1")

        service.purge_expired(now=clock.now + timedelta(days=30))

        assert gone not in db_session
        assert gone.title == "Yesterday's schedule"
        assert kept in db_session
        assert kept.title == "Today's schedule"

    def test_protected_item_boundary(self, service, make_item, clock):
        resource_id = make_item("resources", protected=True).id
        service.soft_delete("resources", resource_id, "admin-1")
        deleted_at = clock.now

        report = service.purge_expired(now=deleted_at + timedelta(days=59))
        assert report.total == 0

        report = service.purge_expired(now=deleted_at + timedelta(days=60))
        assert report.purged["resources"] == 1
        with pytest.raises(ItemNotFoundError):
            service.get_item("resources", resource_id, include_deleted=True)

    def test_active_items_are_never_purged(self, service, make_item, clock):
        article = make_item()
        report = service.purge_expired(now=clock.now + timedelta(days=3650))
        assert report.total == 0
        assert service.get_item("articles", article.id)

    def test_restored_item_survives_sweep(self, service, make_item, clock):
        article = make_item()
        service.soft_delete("articles", article.id, "u1")
        service.restore("articles", article.id)

        report = service.purge_expired(now=clock.now + timedelta(days=31))
        assert report.total == 0
        assert service.get_item("articles", article.id).is_deleted is False

    def test_uses_clock_when_now_omitted(self, service, make_item, clock):
        article = make_item()
        service.soft_delete("articles", article.id, "u1")

        assert service.purge_expired().total == 0
        clock.advance(days=30)
        assert service.purge_expired().total == 1

    def test_report_lists_every_type(self, service, registry):
        report = service.purge_expired()
        assert isinstance(report, PurgeReport)
        assert report.purged == {tag: 0 for tag in registry.tags}
        assert report.orphaned_files == []

    def test_dry_run_removes_nothing(self, service, make_item, clock):
        article = make_item()
        service.soft_delete("articles", article.id, "u1")

        report = service.purge_expired(
            now=clock.now + timedelta(days=31), dry_run=True
        )

        assert report.dry_run is True
        assert report.purged["articles"] == 1
        assert service.list_trash()["articles"][0].id == article.id

    def test_orphaned_files_reported(self, service, make_item, clock):
        show = make_item("shows", cover_image_url="https://cdn.example/cover.png")
        episode = make_item(
            "episodes", show_id=show.id, audio_url="https://cdn.example/ep1.mp3"
        )
        event = make_item("events")
        for tag, item in (("episodes", episode), ("events", event)):
            service.soft_delete(tag, item.id, "u1")

        report = service.purge_expired(now=clock.now + timedelta(days=30))

        assert report.purged["episodes"] == 1
        assert report.purged["events"] == 1
        assert [(f.content_type, f.url) for f in report.orphaned_files] == [
            ("episodes", "https://cdn.example/ep1.mp3")
        ]

    def test_purging_show_detaches_its_episodes(
        self, service, make_item, clock, db_session
    ):
        show_id = make_item("shows", title="Late Night Jazz").id
        episode = make_item("episodes", show_id=show_id)
        service.soft_delete("shows", show_id, "u1")

        service.purge_expired(now=clock.now + timedelta(days=30))

        assert db_session.get(Show, show_id) is None
        db_session.refresh(episode)
        assert episode.show_id is None

    def test_small_batches(self, db_session, registry, make_item, clock):
        service = SoftDeleteService(
            db_session, registry=registry, clock=clock, batch_size=2
        )
        for _ in range(5):
            service.soft_delete("articles", make_item().id, "u1")

        report = service.purge_expired(now=clock.now + timedelta(days=30))

        assert report.purged["articles"] == 5
        assert Article.query_all(db_session).count() == 0

    def test_sweep_uses_custom_policy(
        self, db_session, registry, make_item, clock
    ):
        service = SoftDeleteService(
            db_session,
            registry=registry,
            clock=clock,
            policy=RetentionPolicy(regular_days=1, protected_days=2),
        )
        article = make_item()
        service.soft_delete("articles", article.id, "u1")
        assert service.purge_expired(now=clock.now + timedelta(days=1)).total == 1

    def test_purge_is_audited(self, service, make_item, clock, db_session):
        article_id = make_item(featured_image_url="https://cdn.example/a.jpg").id
        service.soft_delete("articles", article_id, "u1")
        service.purge_expired(now=clock.now + timedelta(days=30))

        (entry,) = AuditStorage(db_session).query(
            AuditQuery(actions=[AuditAction.PURGE])
        )
        assert entry.user_id == PURGE_ACTOR
        assert entry.entity_id == str(article_id)
        assert entry.details["file_url"] == "https://cdn.example/a.jpg"

    def test_sweep_keeps_pending_work_of_the_session(
        self, service, make_item, clock, db_session
    ):
        expired_id = make_item().id
        service.soft_delete("articles", expired_id, "u1")
        db_session.add(Article(title="Drafted during the sweep"))
        db_session.flush()

        service.purge_expired(now=clock.now + timedelta(days=1))
        db_session.commit()
        assert Article.query_all(db_session).count() == 2

        service.purge_expired(now=clock.now + timedelta(days=30))
        db_session.commit()
        titles = [a.title for a in Article.query_all(db_session)]
        assert titles == ["Drafted during the sweep"]
