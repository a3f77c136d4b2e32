"""
Radio CMS - back-office trash and recovery for a community radio station.

Editors delete articles, shows, episodes, events and resources into a trash
instead of removing them. Deleted items stay restorable for a retention
window (30 days, 60 for protected content) and are then purged by a
scheduled sweep.

Quick Start
-----------
>>> from radio_cms import SoftDeleteService, create_db_engine, init_db
>>> from radio_cms.database import create_session_factory
>>>
>>> engine = create_db_engine(url="sqlite:///radio.db")
>>> init_db(engine)
>>> session = create_session_factory(engine)()
>>>
>>> trash = SoftDeleteService(session)
>>> trash.soft_delete("articles", 42, actor_id="u1")
>>> trash.list_trash()["articles"][0].deleted_by
'editor@station.org'
>>> trash.restore("articles", 42, actor_id="u1")

Surfaces
--------
* ``radio_cms.api`` - FastAPI admin routes (trash, delete, restore, protect)
* ``radio-cms`` - command line tool, including the daily purge sweep
"""

__version__ = "1.0.0"

from .audit_trail import AuditLogger
from .config import CMSConfig, configure, get_config
from .database import Base, create_db_engine, init_db
from .soft_delete import (
    PurgeReport,
    RetentionPolicy,
    SoftDeleteMixin,
    SoftDeleteService,
    TrashListing,
)

__all__ = [
    # Soft Delete
    "SoftDeleteMixin",
    "SoftDeleteService",
    "RetentionPolicy",
    "TrashListing",
    "PurgeReport",
    # Audit Trail
    "AuditLogger",
    # Database
    "Base",
    "create_db_engine",
    "init_db",
    # Configuration
    "CMSConfig",
    "configure",
    "get_config",
]
