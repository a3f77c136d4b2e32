"""
Content Handler

Public listings of the station site. Only active items are ever returned;
the trash is reachable through the admin routes alone.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Query

from ..dependencies import TrashService
from .serializers import serialize_item

router = APIRouter()


@router.get("/{content_type}")
def list_content(
    content_type: str,
    service: TrashService,
    limit: int = Query(20, gt=0, le=100),
    offset: int = Query(0, ge=0),
) -> Dict[str, List[Dict[str, Any]]]:
    items = service.list_active(content_type, limit=limit, offset=offset)
    return {
        "items": [
            serialize_item(item, include_lifecycle_fields=False) for item in items
        ]
    }


@router.get("/{content_type}/{item_id}")
def get_content(content_type: str, item_id: int, service: TrashService) -> Dict[str, Any]:
    item = service.get_item(content_type, item_id)
    return serialize_item(item, include_lifecycle_fields=False)
