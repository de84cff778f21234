from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import auth

DIWALI = {
    "title": "Diwali Dhamaka",
    "startDate": "2024-10-25",
    "endDate": "2024-11-05",
    "urlSlug": "diwali-dhamaka",
}


def _product(client: TestClient, name: str) -> str:
    response = client.post("/api/v1/products", json={"name": name, "stock": 40}, headers=auth("admin"))
    return response.json()["id"]


def test_festival_lifecycle(client: TestClient) -> None:
    created = client.post("/api/v1/festivals", json=DIWALI, headers=auth("inventory-manager"))

    assert created.status_code == 201
    festival = created.json()
    assert festival["isActive"] is True
    assert festival["productIds"] == []

    patched = client.patch(
        f"/api/v1/festivals/{festival['id']}", json={"isActive": False}, headers=auth("admin")
    )
    assert patched.json()["isActive"] is False
    assert patched.json()["urlSlug"] == "diwali-dhamaka"

    listed = client.get("/api/v1/festivals", headers=auth("viewer")).json()
    assert [row["id"] for row in listed] == [festival["id"]]

    removed = client.delete(f"/api/v1/festivals/{festival['id']}", headers=auth("admin"))
    assert removed.status_code == 204
    assert client.get(f"/api/v1/festivals/{festival['id']}", headers=auth("viewer")).status_code == 404


def test_festival_validation(client: TestClient) -> None:
    bad_slug = client.post(
        "/api/v1/festivals", json={**DIWALI, "urlSlug": "Diwali Sale"}, headers=auth("admin")
    )
    assert bad_slug.status_code == 422

    reversed_dates = client.post(
        "/api/v1/festivals", json={**DIWALI, "endDate": "2024-10-01"}, headers=auth("admin")
    )
    assert reversed_dates.status_code == 400
    assert reversed_dates.json()["detail"]["error"] == "invalid_input"


def test_viewers_cannot_create_deals(client: TestClient) -> None:
    response = client.post("/api/v1/deals", json=DIWALI, headers=auth("viewer"))

    assert response.status_code == 403


def test_bulk_assign_products_to_deal(client: TestClient) -> None:
    ghee = _product(client, "Desi Ghee")
    rice = _product(client, "Basmati Rice")
    deal = client.post(
        "/api/v1/deals",
        json={**DIWALI, "urlSlug": "ghee-fest", "discountPercentage": 10, "productIds": [ghee]},
        headers=auth("inventory-manager"),
    ).json()

    response = client.post(
        "/api/v1/products/bulk-assign",
        json={"productIds": [rice, ghee], "target": "deal", "targetId": deal["id"]},
        headers=auth("inventory-manager"),
    )

    assert response.status_code == 200
    assert response.json()["productIds"] == [ghee, rice]
    fetched = client.get(f"/api/v1/deals/{deal['id']}", headers=auth("viewer")).json()
    assert fetched["productIds"] == [ghee, rice]
    assert fetched["discountPercentage"] == 10


def test_bulk_assign_to_missing_festival_is_not_found(client: TestClient) -> None:
    ghee = _product(client, "Desi Ghee")

    response = client.post(
        "/api/v1/products/bulk-assign",
        json={"productIds": [ghee], "target": "festival", "targetId": "missing"},
        headers=auth("admin"),
    )

    assert response.status_code == 404
