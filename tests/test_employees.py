"""Tests for hiring employees and maintaining their records."""
from __future__ import annotations

from spahub.extensions import db
from spahub.models import ROLE_EMPLOYEE, ROLE_MANAGER, Employee, User


def _employee_payload(user_id: int, code: str = "EMP1", **overrides) -> dict[str, object]:
    payload = {
        "user_id": user_id,
        "position": "Stylist",
        "code": code,
        "hire_date": "2020-01-15",
        "color": "#A1B2C3",
        "first_name": "Emma",
        "last_name": "Stone",
        "gender": "female",
        "date_of_birth": "1992-03-04",
        "email": "emma@example.com",
        "phone_number": "987654321",
    }
    payload.update(overrides)
    return payload


def _replace(path: str, value) -> list[dict[str, object]]:
    return [{"op": "replace", "path": path, "value": value}]


def _hire(client, salon_id: int, headers, user_id: int, code: str = "EMP1"):
    return client.post(f"/salons/{salon_id}/employees", json=_employee_payload(user_id, code), headers=headers)


def test_add_employee_grants_employee_role(client, salon, make_user, owner_headers) -> None:
    user = make_user("emma@example.com", roles=())
    user_id = user.user_id

    response = _hire(client, salon.salon_id, owner_headers, user_id)

    assert response.status_code == 201
    employee = response.get_json()["employee"]
    assert employee["code"] == "EMP1"
    assert employee["employment_status"] == "active"
    assert employee["profile"]["first_name"] == "Emma"
    assert db.session.get(User, user_id).role_names == [ROLE_EMPLOYEE]


def test_add_employee_keeps_manager_role(client, salon, make_user, owner_headers) -> None:
    manager = make_user("manager@example.com", roles=(ROLE_MANAGER,))
    manager_id = manager.user_id

    assert _hire(client, salon.salon_id, owner_headers, manager_id).status_code == 201
    assert db.session.get(User, manager_id).role_names == [ROLE_MANAGER]


def test_add_employee_conflicts(client, salon, make_user, owner_headers) -> None:
    first = make_user("emma@example.com", roles=())
    second = make_user("liam@example.com", roles=())
    salon_id = salon.salon_id
    _hire(client, salon_id, owner_headers, first.user_id)

    same_user = _hire(client, salon_id, owner_headers, first.user_id, code="EMP9")
    assert same_user.status_code == 409
    assert same_user.get_json()["message"] == "User is already an employee of this salon."

    same_code = _hire(client, salon_id, owner_headers, second.user_id, code="emp1")
    assert same_code.status_code == 409


def test_add_employee_unknown_user(client, salon, owner_headers) -> None:
    response = _hire(client, salon.salon_id, owner_headers, 9999)

    assert response.status_code == 404
    assert response.get_json()["message"] == "User not found."


def test_add_employee_validation(client, salon, make_user, owner_headers) -> None:
    user = make_user("kid@example.com", roles=())
    payload = _employee_payload(user.user_id, date_of_birth="2020-01-01", employment_status="retired")

    response = client.post(f"/salons/{salon.salon_id}/employees", json=payload, headers=owner_headers)

    assert response.status_code == 400
    errors = response.get_json()["errors"]
    assert errors["date_of_birth"] == ["Must be at least 16 years old."]
    assert "employment_status" in errors


def test_add_employee_to_someone_elses_salon(client, salon, make_user, auth_headers) -> None:
    other_admin = make_user("other@example.com")
    user = make_user("emma@example.com", roles=())

    response = _hire(client, salon.salon_id, auth_headers(other_admin), user.user_id)

    assert response.status_code == 403


def test_list_and_filter_employees(client, salon, make_user, owner_headers) -> None:
    salon_id = salon.salon_id
    _hire(client, salon_id, owner_headers, make_user("emma@example.com", roles=()).user_id, "EMP1")
    client.post(
        f"/salons/{salon_id}/employees",
        json=_employee_payload(
            make_user("liam@example.com", roles=()).user_id, "EMP2", first_name="Liam", email="liam@example.com"
        ),
        headers=owner_headers,
    )

    everyone = client.get(f"/salons/{salon_id}/employees", headers=owner_headers)
    assert [item["code"] for item in everyone.get_json()["employees"]] == ["EMP1", "EMP2"]

    filtered = client.get(f"/salons/{salon_id}/employees?first_name=li", headers=owner_headers)
    assert [item["code"] for item in filtered.get_json()["employees"]] == ["EMP2"]


def test_get_employee_by_code_and_id(client, salon, make_user, owner_headers) -> None:
    salon_id = salon.salon_id
    employee_id = _hire(client, salon_id, owner_headers, make_user("emma@example.com", roles=()).user_id).get_json()[
        "employee"
    ]["id"]

    by_code = client.get(f"/salons/{salon_id}/employees/code/emp1?details=true", headers=owner_headers)
    assert by_code.status_code == 200
    assert by_code.get_json()["employee"]["profile"]["last_name"] == "Stone"

    by_id = client.get(f"/employees/{employee_id}", headers=owner_headers)
    assert by_id.status_code == 200
    assert "profile" not in by_id.get_json()["employee"]

    missing = client.get(f"/salons/{salon_id}/employees/code/NOPE", headers=owner_headers)
    assert missing.status_code == 404


def test_employee_reads_own_record(client, salon, make_user, owner_headers, auth_headers) -> None:
    user = make_user("emma@example.com", roles=())
    user_id = user.user_id
    _hire(client, salon.salon_id, owner_headers, user_id)

    response = client.get("/employees/me", headers=auth_headers(db.session.get(User, user_id)))

    assert response.status_code == 200
    assert response.get_json()["employee"]["user_id"] == user_id


def test_patch_employee(client, salon, make_user, owner_headers) -> None:
    employee_id = _hire(client, salon.salon_id, owner_headers, make_user("emma@example.com", roles=()).user_id).get_json()[
        "employee"
    ]["id"]

    response = client.patch(
        f"/employees/{employee_id}", json=_replace("/position", "Senior Stylist"), headers=owner_headers
    )

    assert response.status_code == 200
    assert db.session.get(Employee, employee_id).position == "Senior Stylist"

    unchanged = client.patch(
        f"/employees/{employee_id}", json=_replace("/hire_date", "2020-01-15"), headers=owner_headers
    )
    assert unchanged.status_code == 400
    assert unchanged.get_json()["error"] == "no_changes"


def test_patch_employee_code_conflict(client, salon, make_user, owner_headers) -> None:
    salon_id = salon.salon_id
    _hire(client, salon_id, owner_headers, make_user("emma@example.com", roles=()).user_id, "EMP1")
    second_id = _hire(client, salon_id, owner_headers, make_user("liam@example.com", roles=()).user_id, "EMP2").get_json()[
        "employee"
    ]["id"]

    response = client.patch(f"/employees/{second_id}", json=_replace("/code", "emp1"), headers=owner_headers)

    assert response.status_code == 409
    assert db.session.get(Employee, second_id).code == "EMP2"


def test_patch_employee_profile(client, salon, make_user, owner_headers) -> None:
    employee_id = _hire(client, salon.salon_id, owner_headers, make_user("emma@example.com", roles=()).user_id).get_json()[
        "employee"
    ]["id"]

    response = client.patch(
        f"/employees/{employee_id}/profile", json=_replace("/phone_number", "111222333"), headers=owner_headers
    )

    assert response.status_code == 200
    assert db.session.get(Employee, employee_id).profile.phone_number == "111222333"

    invalid = client.patch(
        f"/employees/{employee_id}/profile", json=_replace("/email", "not-an-email"), headers=owner_headers
    )
    assert invalid.status_code == 400
    assert invalid.get_json()["errors"]["email"] == ["Invalid email address."]


def test_patch_employee_profile_failing_entity_rules_is_rolled_back(client, salon, make_user, owner_headers) -> None:
    employee_id = _hire(client, salon.salon_id, owner_headers, make_user("emma@example.com", roles=()).user_id).get_json()[
        "employee"
    ]["id"]
    original_birthday = db.session.get(Employee, employee_id).profile.date_of_birth

    response = client.patch(
        f"/employees/{employee_id}/profile", json=_replace("/date_of_birth", "1900-01-01"), headers=owner_headers
    )

    assert response.status_code == 400
    data = response.get_json()
    assert data["error"] == "domain_validation_failed"
    assert data["message"] == "Invalid employee profile data."
    assert data["errors"]["entity"] == ["Employee age must be between 16 and 100 years."]
    assert db.session.get(Employee, employee_id).profile.date_of_birth == original_birthday
