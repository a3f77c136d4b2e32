"""
Races between transitions running in separate sessions.

Two engines point at the same SQLite file. A hook on the second engine runs
a competing transition on the first one right before the second engine's
write statement, which reproduces the interleaving deterministically.
"""

from datetime import timedelta

import pytest
from sqlalchemy import event

from radio_cms.database import create_db_engine, create_session_factory, init_db
from radio_cms.soft_delete import (
    AlreadyActiveError,
    AlreadyDeletedError,
    ItemNotFoundError,
    SoftDeleteService,
    default_registry,
)


@pytest.fixture
def engines(tmp_path):
    url = f"sqlite:///{tmp_path / 'race.db'}"
    first = create_db_engine(url=url)
    second = create_db_engine(url=url)
    init_db(first)
    yield first, second
    first.dispose()
    second.dispose()


@pytest.fixture
def services(engines, clock):
    registry = default_registry()
    sessions = [create_session_factory(engine)() for engine in engines]
    yield [SoftDeleteService(s, registry=registry, clock=clock) for s in sessions]
    for session in sessions:
        session.close()


def run_before_write(engine, statement_prefix, action):
    """Run ``action`` once, just before ``engine`` sends a matching statement."""
    calls = []

    @event.listens_for(engine, "before_cursor_execute")
    def interleave(conn, cursor, statement, parameters, context, executemany):
        if not calls and statement.lstrip().upper().startswith(statement_prefix):
            calls.append(action())

    return calls


def create_article(service, title="Contested"):
    item = service.registry.build("articles", title=title)
    service.session.add(item)
    service.session.commit()
    return item.id


class TestConcurrentTransitions:
    def test_only_one_concurrent_restore_succeeds(self, engines, services):
        first, second = services
        item_id = create_article(first)
        first.soft_delete("articles", item_id, "u1")

        calls = run_before_write(
            engines[1],
            "UPDATE",
            lambda: first.restore("articles", item_id, actor_id="u-first"),
        )

        with pytest.raises(ItemNotFoundError) as exc_info:
            second.restore("articles", item_id, actor_id="u-second")

        assert len(calls) == 1
        assert isinstance(exc_info.value, AlreadyActiveError)
        assert first.get_item("articles", item_id).is_deleted is False

    def test_only_one_concurrent_delete_succeeds(self, engines, services):
        first, second = services
        item_id = create_article(first)

        calls = run_before_write(
            engines[1],
            "UPDATE",
            lambda: first.soft_delete("articles", item_id, "u-first"),
        )

        with pytest.raises(AlreadyDeletedError):
            second.soft_delete("articles", item_id, "u-second")

        assert len(calls) == 1
        item = first.get_item("articles", item_id, include_deleted=True)
        assert item.deleted_by == "u-first"

    def test_restore_during_purge_wins(self, engines, services, clock):
        first, second = services
        item_id = create_article(first)
        first.soft_delete("articles", item_id, "u1")

        calls = run_before_write(
            engines[1],
            "DELETE",
            lambda: first.restore("articles", item_id, actor_id="u1"),
        )

        report = second.purge_expired(now=clock.now + timedelta(days=30))

        assert len(calls) == 1
        assert report.purged["articles"] == 0
        assert first.get_item("articles", item_id).is_deleted is False
