r"""backend\app\api\v1\products.py

Product catalogue and stock adjustment endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic.alias_generators import to_camel, to_snake

from ...core.security import WRITE_ROLES
from ...models import schemas
from ...services.inventory_service import InventoryStore
from ..deps import get_current_user, get_store, require_roles

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_writer = require_roles(*WRITE_ROLES)


@router.get("/products")
def list_products(
    fields: Optional[str] = Query(
        None, description="Comma-separated camelCase fields to return (id is always included)"
    ),
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    """Return all products, optionally projected to a subset of fields."""

    if fields:
        wanted = [to_snake(name.strip()) for name in fields.split(",") if name.strip()]
        docs = store.list("products", fields=wanted)
        return [{to_camel(key): value for key, value in doc.items()} for doc in docs]
    return [product.model_dump(mode="json", by_alias=True) for product in store.list_products()]


@router.post("/products", response_model=schemas.Product, status_code=status.HTTP_201_CREATED)
def create_product(
    body: schemas.ProductCreate,
    store: InventoryStore = Depends(get_store),
    user: schemas.UserProfile = Depends(_writer),
) -> schemas.Product:
    product = store.add_product(body)
    LOGGER.info("Product %s created by uid=%s", product.id, user.uid)
    return product


@router.post("/products/bulk", response_model=schemas.BulkAddResult, status_code=status.HTTP_201_CREATED)
def bulk_add_products(
    body: List[schemas.ProductCreate],
    store: InventoryStore = Depends(get_store),
    user: schemas.UserProfile = Depends(_writer),
) -> schemas.BulkAddResult:
    """Create many products at once (the CSV upload path)."""

    products = store.bulk_add_products(body)
    LOGGER.info("Bulk-added %d products by uid=%s", len(products), user.uid)
    return schemas.BulkAddResult(count=len(products), products=products)


@router.post("/products/bulk-delete")
def bulk_delete_products(
    body: schemas.BulkDeleteRequest,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(_writer),
) -> Dict[str, int]:
    return {"deleted": store.delete_products(body.product_ids)}


@router.post("/products/bulk-assign")
def bulk_assign_products(
    body: schemas.BulkAssignRequest,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(_writer),
) -> Dict[str, Any]:
    """Add the selected products to a deal or festival."""

    promotion = store.add_products_to_promotion(body.target, body.target_id, body.product_ids)
    return promotion.model_dump(mode="json", by_alias=True)


@router.get("/products/{product_id}", response_model=schemas.Product)
def get_product(
    product_id: str,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(get_current_user),
) -> schemas.Product:
    return store.get_product(product_id)


@router.patch("/products/{product_id}", response_model=schemas.Product)
def update_product(
    product_id: str,
    body: schemas.ProductUpdate,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(_writer),
) -> schemas.Product:
    return store.update_product(product_id, body)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: str,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(_writer),
) -> Response:
    store.delete_product(product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/products/{product_id}/stock", response_model=schemas.Product)
def update_stock(
    product_id: str,
    body: schemas.StockUpdate,
    store: InventoryStore = Depends(get_store),
    user: schemas.UserProfile = Depends(_writer),
) -> schemas.Product:
    """Set the on-hand stock level and append it to the product's history."""

    product = store.set_stock(product_id, body.stock, as_of=body.as_of)
    LOGGER.info("Stock for product %s set to %d by uid=%s", product_id, body.stock, user.uid)
    return product
