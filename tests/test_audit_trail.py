"""
Tests for the audit trail of trash transitions.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from radio_cms.audit_trail import (
    AuditAction,
    AuditEntry,
    AuditEntryRecord,
    AuditLogger,
    AuditQuery,
    AuditStorage,
)

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_entry(**overrides):
    data = {
        "id": "entry-1",
        "timestamp": T0,
        "user_id": "u1",
        "action": AuditAction.DELETE,
        "entity_type": "articles",
        "entity_id": "42",
        "application": "Radio CMS",
    }
    data.update(overrides)
    return AuditEntry(**data)


class TestAuditEntry:
    def test_checksum_round_trip(self):
        entry = make_entry(details={"title": "Station News"})
        entry.checksum = entry.calculate_checksum()

        assert entry.verify_checksum()
        assert len(entry.checksum) == 64

    def test_checksum_detects_tampering(self):
        entry = make_entry()
        entry.checksum = entry.calculate_checksum()
        entry.user_id = "someone-else"
        assert not entry.verify_checksum()

    def test_unchecksummed_entry_does_not_verify(self):
        assert not make_entry().verify_checksum()

    def test_naive_timestamp_is_utc(self):
        entry = make_entry(timestamp=T0.replace(tzinfo=None))
        assert entry.timestamp == T0

    def test_unknown_action_rejected(self):
        with pytest.raises(ValidationError):
            make_entry(action="ARCHIVE")


class TestAuditLogger:
    def test_log_activity_stores_entry(self, db_session, clock):
        audit = AuditLogger(clock=clock)

        entry = audit.log_activity(
            db_session,
            action=AuditAction.RESTORE,
            user_id="u1",
            entity_type="articles",
            entity_id="42",
        )
        db_session.commit()

        (stored,) = AuditStorage(db_session).query(AuditQuery())
        assert stored.id == entry.id
        assert stored.action == "RESTORE"
        assert stored.timestamp == clock.now
        assert stored.application == "Radio CMS"
        assert stored.verify_checksum()

    def test_accepts_action_names(self, db_session):
        entry = AuditLogger().log_activity(db_session, "PURGE", "system:purge")
        assert entry.action == "PURGE"

    def test_disabled_logger_stores_nothing(self, db_session):
        AuditLogger(enabled=False).log_activity(db_session, AuditAction.DELETE, "u1")
        db_session.commit()
        assert AuditStorage(db_session).query(AuditQuery()) == []

    def test_entries_roll_back_with_transaction(self, db_session):
        AuditLogger().log_activity(db_session, AuditAction.DELETE, "u1")
        db_session.rollback()
        assert AuditStorage(db_session).query(AuditQuery()) == []

    def test_mirrored_to_audit_logger(self, db_session, caplog):
        caplog.set_level("INFO", logger="radio_cms.audit")
        AuditLogger().log_activity(
            db_session, AuditAction.DELETE, "u1", entity_type="events", entity_id="7"
        )
        assert "DELETE events/7 by u1" in caplog.text


class TestAuditStorage:
    @pytest.fixture
    def populated(self, db_session, clock):
        audit = AuditLogger(clock=clock)
        for action, user, entity_id in [
            (AuditAction.DELETE, "u1", "1"),
            (AuditAction.DELETE, "u2", "2"),
            (AuditAction.RESTORE, "u1", "1"),
        ]:
            audit.log_activity(db_session, action, user, "articles", entity_id)
            clock.advance(minutes=1)
        db_session.commit()
        return AuditStorage(db_session)

    def test_newest_first(self, populated):
        actions = [e.action for e in populated.query(AuditQuery())]
        assert actions == ["RESTORE", "DELETE", "DELETE"]

    def test_filters(self, populated, clock):
        assert len(populated.query(AuditQuery(user_ids=["u1"]))) == 2
        assert len(populated.query(AuditQuery(actions=[AuditAction.RESTORE]))) == 1
        assert len(populated.query(AuditQuery(entity_ids=["2"]))) == 1
        recent = AuditQuery(start_date=clock.now - timedelta(minutes=1, seconds=30))
        assert len(populated.query(recent)) == 1

    def test_limit_and_offset(self, populated):
        page = populated.query(AuditQuery(limit=1, offset=1))
        assert [e.user_id for e in page] == ["u2"]

    def test_verify_integrity(self, populated, db_session):
        assert populated.verify_integrity() == []

        record = db_session.query(AuditEntryRecord).filter_by(user_id="u2").one()
        record.user_id = "intruder"
        db_session.commit()

        assert populated.verify_integrity() == [record.id]

    def test_unchecksummed_entry_cannot_be_stored(self, db_session):
        with pytest.raises(ValueError, match="checksummed"):
            AuditStorage(db_session).store(make_entry())
