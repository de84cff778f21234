r"""backend\app\api\v1\notifications.py"""

from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter, Depends

from ...models import schemas
from ...services.inventory_service import InventoryStore
from ..deps import get_current_user, get_store

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get("/notifications", response_model=List[schemas.Notification])
def list_notifications(
    unread_only: bool = False,
    store: InventoryStore = Depends(get_store),
) -> List[schemas.Notification]:
    """Return notifications, newest first."""

    return store.list_notifications(unread_only=unread_only)


@router.post("/notifications/read-all")
def mark_all_read(store: InventoryStore = Depends(get_store)) -> Dict[str, int]:
    return {"updated": store.mark_all_notifications_read()}


@router.post("/notifications/{notification_id}/read", response_model=schemas.Notification)
def mark_read(
    notification_id: str,
    store: InventoryStore = Depends(get_store),
) -> schemas.Notification:
    return store.mark_notification_read(notification_id)
