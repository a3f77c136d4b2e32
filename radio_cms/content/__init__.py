"""
Content Module - the station's content tables.

Articles, shows, episodes, events and resources, each carrying the soft
delete lifecycle columns, plus the back-office user table.
"""

from .migrations import downgrade_schema, stamp_schema, upgrade_schema
from .models import AdminUser, Article, Episode, Event, Resource, Show

__all__ = [
    "AdminUser",
    "Article",
    "Episode",
    "Event",
    "Resource",
    "Show",
    "downgrade_schema",
    "stamp_schema",
    "upgrade_schema",
]
