r"""backend\app\api\v1\users.py

User profile endpoints.  Everyone may read and edit their own contact
details; only administrators can list users or change roles and status."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends

from ...core.errors import InvalidInputError
from ...core.security import ADMIN_ROLES
from ...models import schemas
from ...services.inventory_service import InventoryStore
from ..deps import get_current_user, get_store, require_roles

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_admin = require_roles(*ADMIN_ROLES)


@router.get("/users/me", response_model=schemas.UserProfile)
def get_own_profile(user: schemas.UserProfile = Depends(get_current_user)) -> schemas.UserProfile:
    return user


@router.patch("/users/me", response_model=schemas.UserProfile)
def update_own_profile(
    body: schemas.OwnProfileUpdate,
    store: InventoryStore = Depends(get_store),
    user: schemas.UserProfile = Depends(get_current_user),
) -> schemas.UserProfile:
    return store.update_own_profile(user.uid, body)


@router.get("/users", response_model=List[schemas.UserProfile])
def list_users(
    store: InventoryStore = Depends(get_store),
    _: schemas.UserProfile = Depends(_admin),
) -> List[schemas.UserProfile]:
    return store.list_users()


@router.patch("/users/{uid}", response_model=schemas.UserProfile)
def update_user(
    uid: str,
    body: schemas.AdminUserUpdate,
    store: InventoryStore = Depends(get_store),
    admin: schemas.UserProfile = Depends(_admin),
) -> schemas.UserProfile:
    """Update another user's profile, role or status."""

    if uid == admin.uid and (body.role not in (None, "admin") or body.status == "inactive"):
        raise InvalidInputError("Administrators cannot demote or deactivate themselves.")
    updated = store.update_user(uid, body)
    LOGGER.info("User %s updated by admin uid=%s role=%s status=%s", uid, admin.uid, updated.role, updated.status)
    return updated
