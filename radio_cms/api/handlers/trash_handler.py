"""
Trash Handler

Admin endpoints of the recovery manager:

    GET    /admin/trash                        deleted items, grouped by type
    DELETE /admin/{content_type}/{id}          move an item to the trash
    POST   /admin/{content_type}/{id}/restore  bring an item back
    PATCH  /admin/{content_type}/{id}/protect  mark as protected
    PATCH  /admin/{content_type}/{id}/unprotect

Handlers only translate HTTP to service calls; every rule lives in
SoftDeleteService.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, Response, status

from ..dependencies import Administrator, TrashActor, TrashService
from .serializers import serialize_item

router = APIRouter()


@router.get("/trash")
def list_trash(
    service: TrashService,
    actor: TrashActor,
    limit: Optional[int] = Query(None, gt=0, le=1000),
) -> Dict[str, List[Dict[str, Any]]]:
    """
    List deleted items of every content type.

    Each group is ordered by deletion time, most recent first.
    """
    return service.list_trash(limit=limit).to_response()


@router.delete("/{content_type}/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    content_type: str, item_id: int, service: TrashService, actor: TrashActor
) -> Response:
    """Soft delete an item. Protected items require an administrator."""
    service.soft_delete(
        content_type,
        item_id,
        actor.user_id,
        can_delete_protected=actor.is_administrator,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{content_type}/{item_id}/restore")
def restore_item(
    content_type: str, item_id: int, service: TrashService, actor: TrashActor
) -> Dict[str, Any]:
    """Restore an item from the trash and return it."""
    item = service.restore(content_type, item_id, actor_id=actor.user_id)
    return serialize_item(item)


@router.patch("/{content_type}/{item_id}/protect")
def protect_item(
    content_type: str, item_id: int, service: TrashService, actor: Administrator
) -> Dict[str, Any]:
    item = service.set_protection(content_type, item_id, True, actor.user_id)
    return serialize_item(item)


@router.patch("/{content_type}/{item_id}/unprotect")
def unprotect_item(
    content_type: str, item_id: int, service: TrashService, actor: Administrator
) -> Dict[str, Any]:
    item = service.set_protection(content_type, item_id, False, actor.user_id)
    return serialize_item(item)
