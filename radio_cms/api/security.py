"""
Admin session tokens.

Tokens are issued by the external login flow and verified here with PyJWT.
The payload carries ``userId``, ``email`` and ``role``.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

import jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..clock import utcnow
from ..config import CMSConfig, get_config


class Role(str, Enum):
    """Back-office roles."""

    USER = "user"
    CONTENT_MANAGER = "content_manager"
    ADMINISTRATOR = "administrator"


# Roles allowed to use the trash
TRASH_ROLES = frozenset({Role.CONTENT_MANAGER, Role.ADMINISTRATOR})


class Actor(BaseModel):
    """Authenticated user behind a request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str = Field(..., min_length=1)
    email: str
    role: Role

    @property
    def is_administrator(self) -> bool:
        return self.role == Role.ADMINISTRATOR

    @property
    def can_manage_trash(self) -> bool:
        return self.role in TRASH_ROLES


def create_session_token(
    actor: Actor,
    config: Optional[CMSConfig] = None,
    expires_delta: Optional[timedelta] = None,
    issued_at: Optional[datetime] = None,
) -> str:
    """
    Encode a session token for an actor.

    Args:
        actor: User the token identifies
        config: Configuration holding the signing secret
        expires_delta: Token lifetime (session maximum age if omitted)
        issued_at: Issue time (now if omitted)

    Returns:
        Encoded JWT
    """
    config = config or get_config()
    issued_at = issued_at or utcnow()
    expires_delta = expires_delta or timedelta(hours=config.session_max_age_hours)

    payload: Dict[str, Any] = actor.model_dump(by_alias=True, mode="json")
    payload.update({"iat": issued_at, "exp": issued_at + expires_delta})
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_session_token(token: str, config: Optional[CMSConfig] = None) -> Actor:
    """
    Verify a session token and return its actor.

    Raises:
        ValueError: If the token is expired, tampered with or malformed
    """
    config = config or get_config()
    try:
        payload = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[config.jwt_algorithm],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise ValueError("Session has expired") from None
    except jwt.InvalidTokenError as e:
        raise ValueError(f"Invalid session token: {e}") from e

    issued_at = payload.get("iat")
    if issued_at is not None:
        age = utcnow().timestamp() - float(issued_at)
        if age > config.session_max_age_hours * 3600:
            raise ValueError("Session has expired")

    try:
        return Actor.model_validate(payload)
    except ValidationError as e:
        raise ValueError("Invalid session payload") from e
