"""Tests for salon management, opening hours and addresses."""
from __future__ import annotations

from spahub.extensions import db
from spahub.models import ROLE_EMPLOYEE, Salon

SALON = {"name": "Glow Spa", "email": "Spa@Example.com", "phone_number": "123456789"}
ADDRESS = {
    "country": "USA",
    "region": "NJ",
    "city": "Newark",
    "postal_code": "07102",
    "street": "Main St",
    "building_number": "12",
}


def _replace(path: str, value) -> list[dict[str, object]]:
    return [{"op": "replace", "path": path, "value": value}]


def test_create_salon(client, owner, owner_headers) -> None:
    owner_id = owner.user_id

    response = client.post("/salons", json=SALON, headers=owner_headers)

    assert response.status_code == 201
    data = response.get_json()["salon"]
    assert data["user_id"] == owner_id
    assert data["email"] == "spa@example.com"
    assert data["address"] is None
    assert data["opening_hours"] == []


def test_create_salon_requires_admin(client, make_user, auth_headers) -> None:
    staff = make_user("staff@example.com", roles=(ROLE_EMPLOYEE,))

    response = client.post("/salons", json=SALON, headers=auth_headers(staff))

    assert response.status_code == 403


def test_create_salon_validation(client, owner_headers) -> None:
    response = client.post("/salons", json={"name": "G", "email": "bad", "phone_number": ""}, headers=owner_headers)

    assert response.status_code == 400
    errors = response.get_json()["errors"]
    assert errors["name"] == ["Salon name must be between 2 and 30 characters."]
    assert errors["email"] == ["Invalid email address."]
    assert errors["phone_number"] == ["Phone number is required."]


def test_list_and_get_salons(client, salon, owner_headers) -> None:
    salon_id = salon.salon_id

    listed = client.get("/salons", headers=owner_headers)
    assert [item["id"] for item in listed.get_json()["salons"]] == [salon_id]

    detail = client.get(f"/salons/{salon_id}", headers=owner_headers)
    assert detail.status_code == 200
    assert detail.get_json()["salon"]["name"] == "Glow Spa"

    missing = client.get("/salons/9999", headers=owner_headers)
    assert missing.status_code == 404
    assert missing.get_json()["message"] == "Salon not found."


def test_patch_salon(client, salon, owner_headers) -> None:
    salon_id = salon.salon_id
    document = _replace("/name", "Glow Studio") + _replace("/description", "Day spa")

    response = client.patch(f"/salons/{salon_id}", json=document, headers=owner_headers)

    assert response.status_code == 200
    assert response.get_json()["message"] == "The salon has been updated successfully."
    updated = db.session.get(Salon, salon_id)
    assert updated.name == "Glow Studio"
    assert updated.description == "Day spa"


def test_patch_salon_no_changes_and_invalid(client, salon, owner_headers) -> None:
    salon_id = salon.salon_id

    unchanged = client.patch(f"/salons/{salon_id}", json=_replace("/name", "Glow Spa"), headers=owner_headers)
    assert unchanged.status_code == 400
    assert unchanged.get_json()["error"] == "no_changes"

    invalid = client.patch(f"/salons/{salon_id}", json=_replace("/phone_number", "abc"), headers=owner_headers)
    assert invalid.status_code == 400
    assert invalid.get_json()["error"] == "validation_failed"
    assert db.session.get(Salon, salon_id).phone_number == "123456789"


def test_patch_salon_by_other_admin(client, salon, make_user, auth_headers) -> None:
    other = make_user("other@example.com")

    response = client.patch(
        f"/salons/{salon.salon_id}", json=_replace("/name", "Taken Over"), headers=auth_headers(other)
    )

    assert response.status_code == 403
    assert response.get_json()["message"] == "You do not own this salon."


def test_delete_salon(client, salon, owner_headers) -> None:
    salon_id = salon.salon_id

    response = client.delete(f"/salons/{salon_id}", headers=owner_headers)

    assert response.status_code == 204
    assert db.session.get(Salon, salon_id) is None


# --- Opening hours ---


def test_add_opening_hours(client, salon, owner_headers) -> None:
    url = f"/salons/{salon.salon_id}/opening-hours"
    payload = {"day_of_week": 1, "opening_time": "09:00", "closing_time": "17:00"}

    response = client.post(url, json=payload, headers=owner_headers)
    assert response.status_code == 201
    assert response.get_json()["opening_hours"] == {
        "day_of_week": 1,
        "opening_time": "09:00",
        "closing_time": "17:00",
        "is_closed": False,
    }

    duplicate = client.post(url, json=payload, headers=owner_headers)
    assert duplicate.status_code == 409


def test_add_opening_hours_validation(client, salon, owner_headers) -> None:
    url = f"/salons/{salon.salon_id}/opening-hours"

    backwards = client.post(
        url, json={"day_of_week": 2, "opening_time": "17:00", "closing_time": "09:00"}, headers=owner_headers
    )
    assert backwards.status_code == 400
    assert backwards.get_json()["errors"]["request"] == ["Closing time must be after opening time."]

    bad_day = client.post(
        url, json={"day_of_week": 7, "opening_time": "09:00", "closing_time": "17:00"}, headers=owner_headers
    )
    assert bad_day.status_code == 400
    assert "day_of_week" in bad_day.get_json()["errors"]


def test_replace_opening_hours(client, salon, owner_headers) -> None:
    url = f"/salons/{salon.salon_id}/opening-hours"
    for day in (1, 3):
        client.post(url, json={"day_of_week": day, "opening_time": "09:00", "closing_time": "17:00"}, headers=owner_headers)

    response = client.put(
        url,
        json={
            "opening_hours": [
                {"day_of_week": 1, "opening_time": "10:00", "closing_time": "18:00"},
                {"day_of_week": 2, "opening_time": "08:00", "closing_time": "12:00"},
            ]
        },
        headers=owner_headers,
    )

    assert response.status_code == 200
    hours = response.get_json()["opening_hours"]
    assert [entry["day_of_week"] for entry in hours] == [1, 2]
    assert hours[0]["opening_time"] == "10:00"


def test_replace_opening_hours_rejects_repeated_days(client, salon, owner_headers) -> None:
    entry = {"day_of_week": 1, "opening_time": "10:00", "closing_time": "18:00"}

    response = client.put(
        f"/salons/{salon.salon_id}/opening-hours", json={"opening_hours": [entry, entry]}, headers=owner_headers
    )

    assert response.status_code == 400
    assert response.get_json()["errors"]["opening_hours"] == ["Each day of week can only appear once."]


def test_remove_opening_hours(client, salon, owner_headers) -> None:
    url = f"/salons/{salon.salon_id}/opening-hours"
    client.post(url, json={"day_of_week": 5, "opening_time": "09:00", "closing_time": "17:00"}, headers=owner_headers)

    assert client.delete(f"{url}/5", headers=owner_headers).status_code == 204
    assert client.delete(f"{url}/5", headers=owner_headers).status_code == 409


# --- Address ---


def test_create_and_patch_address(client, salon, owner_headers) -> None:
    salon_id = salon.salon_id
    url = f"/salons/{salon_id}/address"

    created = client.post(url, json=ADDRESS, headers=owner_headers)
    assert created.status_code == 201
    assert created.get_json()["address"]["city"] == "Newark"

    duplicate = client.post(url, json=ADDRESS, headers=owner_headers)
    assert duplicate.status_code == 409

    patched = client.patch(url, json=_replace("/city", "Trenton"), headers=owner_headers)
    assert patched.status_code == 200

    detail = client.get(f"/salons/{salon_id}", headers=owner_headers).get_json()["salon"]
    assert detail["address"]["city"] == "Trenton"


def test_create_address_reports_missing_fields(client, salon, owner_headers) -> None:
    response = client.post(f"/salons/{salon.salon_id}/address", json={"country": "USA"}, headers=owner_headers)

    assert response.status_code == 400
    errors = response.get_json()["errors"]
    assert errors["city"] == ["City is required."]
    assert errors["building_number"] == ["Building number is required."]


def test_patch_missing_address(client, salon, owner_headers) -> None:
    response = client.patch(
        f"/salons/{salon.salon_id}/address", json=_replace("/city", "Trenton"), headers=owner_headers
    )

    assert response.status_code == 404
