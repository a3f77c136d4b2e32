"""
Actor identity resolution.

The trash stores only the deleting actor's identifier. Display identities
come from the identity provider at listing time; here that is the ``users``
table, but any callable with the same signature can be plugged in.
"""

from typing import Callable, Dict, Iterable

from sqlalchemy.orm import Session

IdentityResolver = Callable[[Iterable[str]], Dict[str, str]]


class UserDirectory:
    """Resolve actor ids to email addresses from the users table."""

    def __init__(self, session: Session):
        self.session = session

    def __call__(self, actor_ids: Iterable[str]) -> Dict[str, str]:
        """
        Map actor ids to display identities.

        Args:
            actor_ids: Identifiers stored in ``deleted_by``

        Returns:
            Mapping of every requested id to an email, or to the id itself
            when the provider does not know the actor
        """
        from ..content.models import AdminUser

        wanted = {actor_id for actor_id in actor_ids if actor_id}
        if not wanted:
            return {}

        rows = (
            self.session.query(AdminUser.id, AdminUser.email)
            .filter(AdminUser.id.in_(wanted))
            .all()
        )
        resolved = {actor_id: actor_id for actor_id in wanted}
        resolved.update({user_id: email for user_id, email in rows})
        return resolved
