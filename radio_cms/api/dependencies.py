"""
Dependencies for the admin API route handlers.

Type aliases keep handler signatures short:

    @router.get("/trash")
    def list_trash(service: TrashService, actor: TrashActor):
        ...
"""

from typing import Annotated, Iterator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..config import CMSConfig
from ..soft_delete import SoftDeleteService
from .errors import AuthenticationError, AuthorizationError
from .security import Actor, decode_session_token

# Errors are raised by get_current_actor so they share the API error shape
bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> CMSConfig:
    return request.app.state.config


def get_db(request: Request) -> Iterator[Session]:
    """Session for the duration of one request."""
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


DbSession = Annotated[Session, Depends(get_db)]
Settings = Annotated[CMSConfig, Depends(get_settings)]


def get_trash_service(request: Request, session: DbSession) -> SoftDeleteService:
    """Trash service bound to the request's session."""
    return SoftDeleteService(
        session,
        registry=request.app.state.registry,
        audit_logger=request.app.state.audit_logger,
    )


TrashService = Annotated[SoftDeleteService, Depends(get_trash_service)]


def get_current_actor(
    settings: Settings,
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)
    ] = None,
) -> Actor:
    """
    Resolve the actor from the Bearer token.

    Raises:
        AuthenticationError: If the token is missing or invalid
    """
    if credentials is None:
        raise AuthenticationError("Authorization header required")
    try:
        return decode_session_token(credentials.credentials, settings)
    except ValueError as e:
        raise AuthenticationError(str(e)) from e


CurrentActor = Annotated[Actor, Depends(get_current_actor)]


def require_trash_access(actor: CurrentActor) -> Actor:
    """Content managers and administrators may use the trash."""
    if not actor.can_manage_trash:
        raise AuthorizationError(
            "Content manager or administrator role required",
            details={"role": actor.role.value},
        )
    return actor


def require_administrator(actor: CurrentActor) -> Actor:
    """Only administrators may change protection."""
    if not actor.is_administrator:
        raise AuthorizationError(
            "Administrator role required", details={"role": actor.role.value}
        )
    return actor


TrashActor = Annotated[Actor, Depends(require_trash_access)]
Administrator = Annotated[Actor, Depends(require_administrator)]
