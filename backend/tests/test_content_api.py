from __future__ import annotations

import json

from fastapi.testclient import TestClient

from backend.app.core.errors import GenerationError
from backend.app.models.schemas import (
    BusinessInsightsOutput,
    ProductCategoryOutput,
    ProductDescriptionOutput,
    ProductNameOutput,
)

from conftest import StubGenerationClient, StubImageClient, auth


def test_product_description_includes_keywords(client: TestClient, stub_client: StubGenerationClient) -> None:
    stub_client.replies[ProductDescriptionOutput] = {"description": "Rich, aromatic ghee."}

    response = client.post(
        "/api/v1/ai/product-description",
        json={"productName": "Desi Ghee", "category": "Oils & Ghee", "keywords": "pure, cow"},
        headers=auth("inventory-manager"),
    )

    assert response.status_code == 200
    assert response.json() == {"description": "Rich, aromatic ghee."}
    prompt = stub_client.calls[0][0]
    assert "Product Name: Desi Ghee" in prompt
    assert "Keywords to include: pure, cow" in prompt


def test_product_category(client: TestClient, stub_client: StubGenerationClient) -> None:
    stub_client.replies[ProductCategoryOutput] = {"category": "Apparel", "subcategory": "Tops"}

    response = client.post(
        "/api/v1/ai/product-category", json={"productName": "Classic T-Shirt"}, headers=auth("admin")
    )

    assert response.json() == {"category": "Apparel", "subcategory": "Tops"}


def test_product_name_is_trimmed_of_quotes(client: TestClient, stub_client: StubGenerationClient) -> None:
    stub_client.replies[ProductNameOutput] = {"productName": ' "Golden Harvest Ghee" '}

    response = client.post(
        "/api/v1/ai/product-name",
        json={"category": "Oils & Ghee"},
        headers=auth("admin"),
    )

    assert response.status_code == 200
    assert response.json() == {"productName": "Golden Harvest Ghee"}
    assert "Description:" not in stub_client.calls[0][0]


def test_business_insights_use_store_data(client: TestClient, stub_client: StubGenerationClient) -> None:
    client.post(
        "/api/v1/products",
        json={"name": "Desi Ghee", "stock": 40, "price": 12.5},
        headers=auth("admin"),
    )
    stub_client.replies[BusinessInsightsOutput] = {
        "businessSummary": "Early days.",
        "topPerformingProducts": [{"productName": "Desi Ghee", "reason": "Only product"}],
        "recommendations": ["Add stock", "Run a promotion", "Bundle with rice"],
    }

    response = client.post("/api/v1/ai/business-insights", headers=auth("admin"))

    assert response.status_code == 200
    assert response.json()["topPerformingProducts"][0]["productName"] == "Desi Ghee"
    prompt = stub_client.calls[0][0]
    product_json = prompt.split("Product Data:\n", 1)[1].split("\n", 1)[0]
    assert json.loads(product_json)[0]["name"] == "Desi Ghee"
    assert "historical_data" not in product_json


def test_generation_failure_is_bad_gateway(client: TestClient, stub_client: StubGenerationClient) -> None:
    stub_client.error = GenerationError("quota exceeded")

    response = client.post(
        "/api/v1/ai/product-category", json={"productName": "Classic T-Shirt"}, headers=auth("admin")
    )

    assert response.status_code == 502
    assert response.json()["detail"] == {"error": "generation_failed", "message": "quota exceeded"}


def test_blank_inputs_are_rejected_before_generation(client: TestClient, stub_client: StubGenerationClient) -> None:
    response = client.post(
        "/api/v1/ai/product-category", json={"productName": "   "}, headers=auth("admin")
    )

    assert response.status_code == 400
    assert stub_client.calls == []


def test_viewers_cannot_generate_content(client: TestClient, stub_client: StubGenerationClient) -> None:
    response = client.post(
        "/api/v1/ai/product-category", json={"productName": "Classic T-Shirt"}, headers=auth("viewer")
    )

    assert response.status_code == 403
    assert stub_client.calls == []


def test_product_image_returns_data_uri(client: TestClient, image_client: StubImageClient) -> None:
    response = client.post(
        "/api/v1/ai/product-image",
        json={"productName": "Desi Ghee", "category": "Oils & Ghee"},
        headers=auth("inventory-manager"),
    )

    assert response.status_code == 200
    assert response.json() == {"imageUrl": "data:image/png;base64,aW1n"}
    assert '"Desi Ghee"' in image_client.prompts[0]
    assert "white background" in image_client.prompts[0]


def test_product_image_failure_is_bad_gateway(client: TestClient, image_client: StubImageClient) -> None:
    image_client.error = GenerationError("Image generation failed to produce an image.")

    response = client.post(
        "/api/v1/ai/product-image",
        json={"productName": "Desi Ghee", "category": "Oils & Ghee"},
        headers=auth("admin"),
    )

    assert response.status_code == 502
    assert response.json()["detail"]["error"] == "generation_failed"
