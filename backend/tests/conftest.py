r"""backend/tests/conftest.py"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type

import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.core.config import Settings  # noqa: E402
from backend.app.core.security import IdentityProvider  # noqa: E402
from backend.app.main import create_app  # noqa: E402
from backend.app.models.schemas import UserProfile  # noqa: E402
from backend.app.services.inventory_service import InventoryStore  # noqa: E402

TOKENS = {
    "admin": "admin-token",
    "inventory-manager": "manager-token",
    "viewer": "viewer-token",
}


class StubGenerationClient:
    """Structured-generation stub returning canned replies per output model."""

    def __init__(self, replies: Optional[Dict[Type[BaseModel], Any]] = None) -> None:
        self.replies: Dict[Type[BaseModel], Any] = dict(replies or {})
        self.error: Optional[Exception] = None
        self.calls: List[Tuple[str, Type[BaseModel]]] = []

    async def generate(self, instruction: str, output_schema: Type[BaseModel]) -> BaseModel:
        self.calls.append((instruction, output_schema))
        if self.error is not None:
            raise self.error
        reply = self.replies[output_schema]
        if isinstance(reply, BaseModel):
            return reply
        return output_schema.model_validate(reply)


class StubImageClient:
    """Image-generation stub returning a fixed data URI."""

    def __init__(self, image_url: str = "data:image/png;base64,aW1n") -> None:
        self.image_url = image_url
        self.error: Optional[Exception] = None
        self.prompts: List[str] = []

    async def generate_image(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.image_url


def auth(role: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {TOKENS[role]}"}


def make_identity() -> IdentityProvider:
    profiles = [
        UserProfile(uid="u-admin", name="Asha Admin", email="admin@example.com", role="admin"),
        UserProfile(
            uid="u-manager", name="Ravi Manager", email="manager@example.com", role="inventory-manager"
        ),
        UserProfile(uid="u-viewer", name="Vee Viewer", email="viewer@example.com", role="viewer"),
    ]
    tokens = {
        TOKENS["admin"]: "u-admin",
        TOKENS["inventory-manager"]: "u-manager",
        TOKENS["viewer"]: "u-viewer",
    }
    return IdentityProvider(tokens, profiles)


@pytest.fixture()
def stub_client() -> StubGenerationClient:
    return StubGenerationClient()


@pytest.fixture()
def image_client() -> StubImageClient:
    return StubImageClient()


@pytest.fixture()
def store() -> InventoryStore:
    return InventoryStore(None, default_low_stock_threshold=5)


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        store_path=None,
        gemini_api_key=None,
        rate_limit_per_min=0,
        generation_timeout_seconds=5.0,
        identities_path="does-not-exist.yaml",
    )


@pytest.fixture()
def client(
    test_settings: Settings,
    store: InventoryStore,
    stub_client: StubGenerationClient,
    image_client: StubImageClient,
) -> Iterator[TestClient]:
    app = create_app(
        test_settings,
        store=store,
        generation_client=stub_client,
        identity=make_identity(),
        image_client=image_client,
    )
    with TestClient(app) as test_client:
        yield test_client
