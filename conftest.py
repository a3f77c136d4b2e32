"""Pytest configuration for Radio CMS."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.pool import StaticPool

from radio_cms.audit_trail import AuditLogger
from radio_cms.config import CMSConfig, set_config
from radio_cms.content.models import AdminUser
from radio_cms.database import create_db_engine, create_session_factory, init_db
from radio_cms.soft_delete import SoftDeleteService, default_registry


def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line("markers", "api: tests of the HTTP boundary")
    config.addinivalue_line("markers", "cli: tests of the command line tool")


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def cms_config():
    """Isolated configuration for every test."""
    config = CMSConfig(
        environment="test",
        database_url="sqlite://",
        jwt_secret="test-secret-0123456789abcdef0123456789",
    )
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine():
    """In-memory SQLite database shared by all connections of the test."""
    engine = create_db_engine(url="sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def users(db_session):
    """Back-office accounts known to the identity provider."""
    accounts = [
        AdminUser(id="u1", email="editor@station.org", role="content_manager"),
        AdminUser(id="admin-1", email="chief@station.org", role="administrator"),
    ]
    db_session.add_all(accounts)
    db_session.commit()
    return {account.id: account for account in accounts}


@pytest.fixture
def service(db_session, registry, clock):
    """Trash service with a frozen clock and auditing enabled."""
    return SoftDeleteService(
        db_session,
        registry=registry,
        audit_logger=AuditLogger(clock=clock),
        clock=clock,
    )


@pytest.fixture
def make_item(db_session, registry):
    """Factory creating and committing an active content item."""

    def _make(content_type: str = "articles", **fields):
        fields.setdefault("title", f"Sample {content_type}")
        item = registry.build(content_type, **fields)
        db_session.add(item)
        db_session.commit()
        return item

    return _make
