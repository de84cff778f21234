r"""backend\app\api\v1\purchase_orders.py

Purchase orders raised against suppliers.  Receiving a purchase order adds
its quantities to stock and records them in each product's history."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, status

from ...core.security import WRITE_ROLES
from ...models import schemas
from ...services.inventory_service import InventoryStore
from ..deps import get_store, require_roles

LOGGER = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_roles(*WRITE_ROLES))])


@router.get("/purchase-orders", response_model=List[schemas.PurchaseOrder])
def list_purchase_orders(store: InventoryStore = Depends(get_store)) -> List[schemas.PurchaseOrder]:
    return store.list_purchase_orders()


@router.post(
    "/purchase-orders",
    response_model=schemas.PurchaseOrder,
    status_code=status.HTTP_201_CREATED,
)
def create_purchase_order(
    body: schemas.PurchaseOrderCreate,
    store: InventoryStore = Depends(get_store),
) -> schemas.PurchaseOrder:
    return store.add_purchase_order(body)


@router.post("/purchase-orders/{po_id}/receive", response_model=schemas.PurchaseOrder)
def receive_purchase_order(
    po_id: str,
    store: InventoryStore = Depends(get_store),
) -> schemas.PurchaseOrder:
    """Mark the purchase order received and restock its products."""

    po = store.receive_purchase_order(po_id)
    LOGGER.info("Purchase order %s received (%d lines)", po_id, len(po.items))
    return po
