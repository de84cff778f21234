r"""backend\app\api\v1\suppliers.py"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response, status

from ...core.security import WRITE_ROLES
from ...models import schemas
from ...services.inventory_service import InventoryStore
from ..deps import get_current_user, get_store, require_roles

router = APIRouter()

_writer = require_roles(*WRITE_ROLES)


@router.get("/suppliers", response_model=List[schemas.Supplier])
def list_suppliers(
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(get_current_user),
) -> List[schemas.Supplier]:
    return store.list_suppliers()


@router.post("/suppliers", response_model=schemas.Supplier, status_code=status.HTTP_201_CREATED)
def create_supplier(
    body: schemas.SupplierCreate,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(_writer),
) -> schemas.Supplier:
    return store.add_supplier(body)


@router.patch("/suppliers/{supplier_id}", response_model=schemas.Supplier)
def update_supplier(
    supplier_id: str,
    body: schemas.SupplierUpdate,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(_writer),
) -> schemas.Supplier:
    return store.update_supplier(supplier_id, body)


@router.delete("/suppliers/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier(
    supplier_id: str,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(_writer),
) -> Response:
    store.delete_supplier(supplier_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
