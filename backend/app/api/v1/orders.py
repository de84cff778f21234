r"""backend\app\api\v1\orders.py

Customer order endpoints.  Placing an order takes its quantities out of stock."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, status

from ...core.security import WRITE_ROLES
from ...models import schemas
from ...services.inventory_service import InventoryStore
from ..deps import get_current_user, get_store, require_roles

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_writer = require_roles(*WRITE_ROLES)


@router.get("/orders", response_model=List[schemas.Order])
def list_orders(
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(get_current_user),
) -> List[schemas.Order]:
    """Return all orders, newest first."""

    return store.list_orders()


@router.post("/orders", response_model=schemas.Order, status_code=status.HTTP_201_CREATED)
def create_order(
    body: schemas.OrderCreate,
    store: InventoryStore = Depends(get_store),
    user: schemas.UserProfile = Depends(_writer),
) -> schemas.Order:
    order = store.add_order(body)
    LOGGER.info("Order %s recorded by uid=%s total=%.2f", order.id, user.uid, order.total_amount)
    return order


@router.patch("/orders/{order_id}/status", response_model=schemas.Order)
def update_order_status(
    order_id: str,
    body: schemas.OrderStatusUpdate,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(_writer),
) -> schemas.Order:
    return store.update_order_status(order_id, body.status)
