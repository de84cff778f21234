r"""backend\app\api\deps.py

FastAPI dependencies shared by the versioned routers.

Services are built once in the application lifespan and stored on
``app.state``; routes receive them through these dependencies.
"""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, Header, Request

from ..core.config import Settings
from ..core.errors import AuthenticationError, PermissionDeniedError
from ..core.security import IdentityProvider, parse_bearer
from ..models.schemas import Role, UserProfile
from ..services.content_service import ContentGenerationService
from ..services.forecasting_service import StockForecastingService
from ..services.inventory_service import InventoryStore


def error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> InventoryStore:
    return request.app.state.store


def get_forecasting_service(request: Request) -> StockForecastingService:
    return request.app.state.forecasting_service


def get_content_service(request: Request) -> ContentGenerationService:
    return request.app.state.content_service


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> UserProfile:
    """Resolve the bearer token to an active user profile."""

    identity: IdentityProvider = request.app.state.identity
    uid = identity.verify(parse_bearer(authorization))
    request.state.uid = uid
    user = get_store(request).find_user(uid)
    if user is None:
        raise AuthenticationError("User profile not found.")
    if user.status != "active":
        raise PermissionDeniedError("Your account is inactive.")
    return user


def require_roles(*roles: Role) -> Callable[..., UserProfile]:
    """Dependency factory allowing only users whose profile role is in ``roles``."""

    def _dependency(user: UserProfile = Depends(get_current_user)) -> UserProfile:
        if user.role not in roles:
            raise PermissionDeniedError("You do not have permission to perform this action.")
        return user

    return _dependency
