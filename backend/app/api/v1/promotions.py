r"""backend\app\api\v1\promotions.py

Festival and deal campaigns.  Anyone signed in can browse them; writers
create, edit and delete them."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status

from ...core.security import WRITE_ROLES
from ...models import schemas
from ...services.inventory_service import InventoryStore
from ..deps import get_current_user, get_store, require_roles

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_writer = require_roles(*WRITE_ROLES)


@router.get("/festivals", response_model=List[schemas.Festival])
def list_festivals(
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(get_current_user),
) -> List[schemas.Festival]:
    """Active festivals first, newest start date first."""

    return store.list_promotions("festival")


@router.post("/festivals", response_model=schemas.Festival, status_code=status.HTTP_201_CREATED)
def create_festival(
    body: schemas.FestivalCreate,
    store: InventoryStore = Depends(get_store),
    user: schemas.UserProfile = Depends(_writer),
) -> schemas.Festival:
    festival = store.add_promotion("festival", body)
    LOGGER.info("Festival %s created by uid=%s", festival.id, user.uid)
    return festival


@router.get("/festivals/{festival_id}", response_model=schemas.Festival)
def get_festival(
    festival_id: str,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(get_current_user),
) -> schemas.Festival:
    return store.get_promotion("festival", festival_id)


@router.patch("/festivals/{festival_id}", response_model=schemas.Festival)
def update_festival(
    festival_id: str,
    body: schemas.FestivalUpdate,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(_writer),
) -> schemas.Festival:
    return store.update_promotion("festival", festival_id, body)


@router.delete("/festivals/{festival_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_festival(
    festival_id: str,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(_writer),
) -> Response:
    store.delete_promotion("festival", festival_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/deals", response_model=List[schemas.Deal])
def list_deals(
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(get_current_user),
) -> List[schemas.Deal]:
    return store.list_promotions("deal")


@router.post("/deals", response_model=schemas.Deal, status_code=status.HTTP_201_CREATED)
def create_deal(
    body: schemas.DealCreate,
    store: InventoryStore = Depends(get_store),
    user: schemas.UserProfile = Depends(_writer),
) -> schemas.Deal:
    deal = store.add_promotion("deal", body)
    LOGGER.info("Deal %s created by uid=%s", deal.id, user.uid)
    return deal


@router.get("/deals/{deal_id}", response_model=schemas.Deal)
def get_deal(
    deal_id: str,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(get_current_user),
) -> schemas.Deal:
    return store.get_promotion("deal", deal_id)


@router.patch("/deals/{deal_id}", response_model=schemas.Deal)
def update_deal(
    deal_id: str,
    body: schemas.DealUpdate,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(_writer),
) -> schemas.Deal:
    return store.update_promotion("deal", deal_id, body)


@router.delete("/deals/{deal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_deal(
    deal_id: str,
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(_writer),
) -> Response:
    store.delete_promotion("deal", deal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
