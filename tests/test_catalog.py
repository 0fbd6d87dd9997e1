"""Tests for salon services, products and product usage."""
from __future__ import annotations

import pytest

from spahub.extensions import db
from spahub.models import Salon, Service

HAIRCUT = {"name": "Haircut", "code": "HC-01", "price_cents": 2500, "tax_rate": "0.08", "duration_minutes": 45}
SHAMPOO = {
    "name": "Shampoo",
    "code": "SH-1",
    "sale_price_cents": 1500,
    "unit_of_measure": "bottle",
    "stock_quantity": 2,
    "minimum_stock_level": 5,
}


def _replace(path: str, value) -> list[dict[str, object]]:
    return [{"op": "replace", "path": path, "value": value}]


@pytest.fixture
def service_id(client, salon, owner_headers) -> int:
    response = client.post(f"/salons/{salon.salon_id}/services", json=HAIRCUT, headers=owner_headers)
    return response.get_json()["service"]["id"]


@pytest.fixture
def product_id(client, salon, owner_headers) -> int:
    response = client.post(f"/salons/{salon.salon_id}/products", json=SHAMPOO, headers=owner_headers)
    return response.get_json()["product"]["id"]


# --- Services ---


def test_create_service(client, salon, owner, owner_headers) -> None:
    owner_id = owner.user_id

    response = client.post(f"/salons/{salon.salon_id}/services", json=HAIRCUT, headers=owner_headers)

    assert response.status_code == 201
    service = response.get_json()["service"]
    assert service["price_with_tax_cents"] == 2700
    assert service["is_active"] is True
    assert service["created_by_user_id"] == owner_id


def test_create_service_duplicate_code(client, salon, service_id, owner_headers) -> None:
    response = client.post(
        f"/salons/{salon.salon_id}/services", json=dict(HAIRCUT, code="hc-01"), headers=owner_headers
    )

    assert response.status_code == 409


def test_create_service_validation(client, salon, owner_headers) -> None:
    payload = dict(HAIRCUT, price_cents=-1, tax_rate="1.5", duration_minutes=600, img_url="not a url")

    response = client.post(f"/salons/{salon.salon_id}/services", json=payload, headers=owner_headers)

    assert response.status_code == 400
    errors = response.get_json()["errors"]
    assert errors["price_cents"] == ["Price must be greater than or equal to 0."]
    assert errors["tax_rate"] == ["Tax rate must be between 0 and 1."]
    assert errors["duration_minutes"] == ["Duration must be between 1 and 480 minutes."]
    assert errors["img_url"] == ["Image URL must be a valid absolute URL."]


def test_list_services_filters(client, salon, service_id, owner_headers) -> None:
    salon_id = salon.salon_id
    client.post(
        f"/salons/{salon_id}/services",
        json={"name": "Massage", "code": "MS-01", "price_cents": 4000, "duration_minutes": 60, "is_active": False},
        headers=owner_headers,
    )

    everything = client.get(f"/salons/{salon_id}/services", headers=owner_headers).get_json()["services"]
    assert [item["name"] for item in everything] == ["Haircut", "Massage"]

    by_name = client.get(f"/salons/{salon_id}/services?name=hair", headers=owner_headers).get_json()["services"]
    assert [item["id"] for item in by_name] == [service_id]

    active = client.get(f"/salons/{salon_id}/services?active=true", headers=owner_headers).get_json()["services"]
    assert [item["code"] for item in active] == ["HC-01"]

    bad_flag = client.get(f"/salons/{salon_id}/services?active=maybe", headers=owner_headers)
    assert bad_flag.status_code == 400


def test_patch_service(client, owner, service_id, owner_headers) -> None:
    owner_id = owner.user_id

    response = client.patch(f"/services/{service_id}", json=_replace("/price_cents", 3000), headers=owner_headers)

    assert response.status_code == 200
    service = db.session.get(Service, service_id)
    assert service.price_cents == 3000
    assert service.updated_by_user_id == owner_id

    unchanged = client.patch(f"/services/{service_id}", json=_replace("/price_cents", 3000), headers=owner_headers)
    assert unchanged.status_code == 400
    assert unchanged.get_json()["error"] == "no_changes"


def test_patch_service_by_unrelated_admin(client, service_id, make_user, auth_headers) -> None:
    other = make_user("other@example.com")

    response = client.patch(
        f"/services/{service_id}", json=_replace("/price_cents", 1), headers=auth_headers(other)
    )

    assert response.status_code == 403


# --- Products ---


def test_create_product_and_low_stock_filter(client, salon, product_id, owner_headers) -> None:
    salon_id = salon.salon_id
    client.post(
        f"/salons/{salon_id}/products",
        json={"name": "Conditioner", "code": "CO-1", "sale_price_cents": 1800, "unit_of_measure": "bottle", "stock_quantity": 10, "minimum_stock_level": 2},
        headers=owner_headers,
    )

    product = client.get(f"/products/{product_id}", headers=owner_headers).get_json()["product"]
    assert product["is_low_stock"] is True

    low_stock = client.get(f"/salons/{salon_id}/products?low_stock=true", headers=owner_headers).get_json()["products"]
    assert [item["code"] for item in low_stock] == ["SH-1"]


def test_create_product_validation(client, salon, owner_headers) -> None:
    response = client.post(
        f"/salons/{salon.salon_id}/products", json={"name": "Gel", "code": "bad code!"}, headers=owner_headers
    )

    assert response.status_code == 400
    errors = response.get_json()["errors"]
    assert "code" in errors
    assert errors["unit_of_measure"] == ["Unit of measure is required."]
    assert errors["sale_price_cents"] == ["Sale price is required."]


def test_patch_product_stock(client, product_id, owner_headers) -> None:
    response = client.patch(f"/products/{product_id}", json=_replace("/stock_quantity", 20), headers=owner_headers)

    assert response.status_code == 200
    product = client.get(f"/products/{product_id}", headers=owner_headers).get_json()["product"]
    assert product["stock_quantity"] == 20
    assert product["is_low_stock"] is False


# --- Product usage ---


def test_add_product_usage(client, service_id, product_id, owner_headers) -> None:
    url = f"/services/{service_id}/product-usages"

    response = client.post(url, json={"product_id": product_id, "quantity_used": "0.5"}, headers=owner_headers)
    assert response.status_code == 201
    assert response.get_json()["product_usage"]["product_name"] == "Shampoo"

    duplicate = client.post(url, json={"product_id": product_id, "quantity_used": "1"}, headers=owner_headers)
    assert duplicate.status_code == 409

    detail = client.get(f"/services/{service_id}", headers=owner_headers).get_json()["service"]
    assert [usage["product_id"] for usage in detail["product_usages"]] == [product_id]


def test_add_product_usage_from_another_salon(client, owner, service_id, owner_headers) -> None:
    other_salon = Salon(user_id=owner.user_id, name="Second Spa", email="second@example.com", phone_number="123456789")
    db.session.add(other_salon)
    db.session.commit()
    other_product = client.post(
        f"/salons/{other_salon.salon_id}/products", json=SHAMPOO, headers=owner_headers
    ).get_json()["product"]["id"]

    response = client.post(
        f"/services/{service_id}/product-usages",
        json={"product_id": other_product, "quantity_used": "1"},
        headers=owner_headers,
    )

    assert response.status_code == 400
    assert response.get_json()["message"] == "Product does not belong to the same salon as the service."


def test_add_product_usage_requires_positive_quantity(client, service_id, product_id, owner_headers) -> None:
    response = client.post(
        f"/services/{service_id}/product-usages",
        json={"product_id": product_id, "quantity_used": "0"},
        headers=owner_headers,
    )

    assert response.status_code == 400
    assert response.get_json()["errors"]["quantity_used"] == ["Quantity used must be greater than 0."]
