"""Salon, opening hours, address and employee routes."""
from __future__ import annotations

from flask import Blueprint, jsonify

from .models import ROLE_ADMIN, ROLE_EMPLOYEE, ROLE_MANAGER
from .responses import json_payload, patch_response, query_bool, query_str
from .schemas import (
    AddressRequest,
    CreateEmployeeRequest,
    CreateSalonRequest,
    OpeningHoursRequest,
    UpdateSalonOpeningHoursRequest,
    parse_request,
)
from .security import auth_required, current_user_id
from .services import EmployeeService, SalonService

bp = Blueprint("salons", __name__)


def _employee_body(employee, details: bool) -> dict[str, object]:
    return employee.to_details_dict() if details else employee.to_dict()


@bp.post("/salons")
@auth_required(ROLE_ADMIN)
def create_salon() -> tuple[dict[str, object], int]:
    """Create a salon owned by the signed-in admin.
    ---
    tags:
      - Salons
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            email:
              type: string
            phone_number:
              type: string
    responses:
      201:
        description: Salon created
      400:
        description: Validation failed
      403:
        description: Admin role required
    """
    data = parse_request(CreateSalonRequest, json_payload())
    salon = SalonService().create_salon(current_user_id(), data)
    return jsonify({"salon": salon.to_details_dict()}), 201


@bp.get("/salons")
@auth_required(ROLE_ADMIN)
def list_my_salons() -> tuple[dict[str, object], int]:
    salons = SalonService().get_salons_for_user(current_user_id())
    return jsonify({"salons": [salon.to_dict() for salon in salons]}), 200


@bp.get("/salons/<int:salon_id>")
@auth_required()
def get_salon(salon_id: int) -> tuple[dict[str, object], int]:
    """Return salon details with address and opening hours.
    ---
    tags:
      - Salons
    parameters:
      - name: salon_id
        in: path
        type: integer
        required: true
    responses:
      200:
        description: Salon details
      404:
        description: Salon not found
    """
    salon = SalonService().get_salon(salon_id)
    return jsonify({"salon": salon.to_details_dict()}), 200


@bp.patch("/salons/<int:salon_id>")
@auth_required(ROLE_ADMIN)
def update_salon(salon_id: int) -> tuple[dict[str, object], int]:
    """Patch salon details (name, email, phone_number, description).
    ---
    tags:
      - Salons
    security:
      - Bearer: []
    responses:
      200:
        description: Salon updated
      400:
        description: Invalid patch, validation failure or no changes
      403:
        description: Not the salon owner
      404:
        description: Salon not found
    """
    result = SalonService().update_salon(salon_id, current_user_id(), json_payload())
    return patch_response(result)


@bp.delete("/salons/<int:salon_id>")
@auth_required(ROLE_ADMIN)
def delete_salon(salon_id: int) -> tuple[str, int]:
    SalonService().delete_salon(salon_id, current_user_id())
    return "", 204


@bp.post("/salons/<int:salon_id>/opening-hours")
@auth_required(ROLE_ADMIN)
def add_opening_hours(salon_id: int) -> tuple[dict[str, object], int]:
    """Add opening hours for one day of the week (0 = Sunday).
    ---
    tags:
      - Salons
    security:
      - Bearer: []
    responses:
      201:
        description: Opening hours added
      400:
        description: Validation failed
      409:
        description: Day already has opening hours
    """
    data = parse_request(OpeningHoursRequest, json_payload())
    hours = SalonService().add_opening_hours(salon_id, current_user_id(), data)
    return jsonify({"opening_hours": hours.to_dict()}), 201


@bp.put("/salons/<int:salon_id>/opening-hours")
@auth_required(ROLE_ADMIN)
def replace_opening_hours(salon_id: int) -> tuple[dict[str, object], int]:
    data = parse_request(UpdateSalonOpeningHoursRequest, json_payload())
    salon = SalonService().update_opening_hours(salon_id, current_user_id(), data)
    return jsonify({"opening_hours": [hours.to_dict() for hours in salon.opening_hours]}), 200


@bp.delete("/salons/<int:salon_id>/opening-hours/<int:day_of_week>")
@auth_required(ROLE_ADMIN)
def remove_opening_hours(salon_id: int, day_of_week: int) -> tuple[str, int]:
    SalonService().remove_opening_hours(salon_id, current_user_id(), day_of_week)
    return "", 204


@bp.post("/salons/<int:salon_id>/address")
@auth_required(ROLE_ADMIN)
def create_address(salon_id: int) -> tuple[dict[str, object], int]:
    data = parse_request(AddressRequest, json_payload())
    address = SalonService().create_address(salon_id, current_user_id(), data)
    return jsonify({"address": address.to_dict()}), 201


@bp.patch("/salons/<int:salon_id>/address")
@auth_required(ROLE_ADMIN)
def update_address(salon_id: int) -> tuple[dict[str, object], int]:
    result = SalonService().update_address(salon_id, current_user_id(), json_payload())
    return patch_response(result)


# --- Employees ---


@bp.post("/salons/<int:salon_id>/employees")
@auth_required(ROLE_ADMIN)
def add_employee(salon_id: int) -> tuple[dict[str, object], int]:
    """Hire an existing user into the salon.
    ---
    tags:
      - Employees
    security:
      - Bearer: []
    parameters:
      - name: salon_id
        in: path
        type: integer
        required: true
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            user_id:
              type: integer
            position:
              type: string
            code:
              type: string
            employment_status:
              type: string
              enum: [active, on_leave, terminated]
            hire_date:
              type: string
              format: date
            first_name:
              type: string
            last_name:
              type: string
            gender:
              type: string
            date_of_birth:
              type: string
              format: date
            email:
              type: string
            phone_number:
              type: string
    responses:
      201:
        description: Employee created
      400:
        description: Validation failed
      404:
        description: Salon or user not found
      409:
        description: User already employed or code in use
    """
    data = parse_request(CreateEmployeeRequest, json_payload())
    employee = EmployeeService().add_employee(salon_id, current_user_id(), data)
    return jsonify({"employee": employee.to_details_dict()}), 201


@bp.get("/salons/<int:salon_id>/employees")
@auth_required(ROLE_ADMIN, ROLE_MANAGER)
def list_employees(salon_id: int) -> tuple[dict[str, object], int]:
    employees = EmployeeService().list_employees(
        salon_id,
        current_user_id(),
        code=query_str("code"),
        first_name=query_str("first_name"),
        last_name=query_str("last_name"),
        status=query_str("status"),
    )
    return jsonify({"employees": [employee.to_details_dict() for employee in employees]}), 200


@bp.get("/salons/<int:salon_id>/employees/code/<string:code>")
@auth_required(ROLE_ADMIN, ROLE_MANAGER)
def get_employee_by_code(salon_id: int, code: str) -> tuple[dict[str, object], int]:
    employee = EmployeeService().get_employee_by_code(salon_id, current_user_id(), code)
    return jsonify({"employee": _employee_body(employee, bool(query_bool("details")))}), 200


@bp.get("/employees/me")
@auth_required(ROLE_MANAGER, ROLE_EMPLOYEE)
def get_my_employee_record() -> tuple[dict[str, object], int]:
    employee = EmployeeService().get_employee_for_user(current_user_id())
    return jsonify({"employee": _employee_body(employee, bool(query_bool("details")))}), 200


@bp.get("/employees/<int:employee_id>")
@auth_required(ROLE_ADMIN, ROLE_MANAGER)
def get_employee(employee_id: int) -> tuple[dict[str, object], int]:
    """Return an employee, with the profile when ``details=true``.
    ---
    tags:
      - Employees
    security:
      - Bearer: []
    parameters:
      - name: employee_id
        in: path
        type: integer
        required: true
      - name: details
        in: query
        type: boolean
    responses:
      200:
        description: Employee found
      403:
        description: No access to the employee's salon
      404:
        description: Employee not found
    """
    employee = EmployeeService().get_accessible_employee(employee_id, current_user_id())
    return jsonify({"employee": _employee_body(employee, bool(query_bool("details")))}), 200


@bp.patch("/employees/<int:employee_id>")
@auth_required(ROLE_ADMIN, ROLE_MANAGER)
def update_employee(employee_id: int) -> tuple[dict[str, object], int]:
    result = EmployeeService().update_employee(employee_id, current_user_id(), json_payload())
    return patch_response(result)


@bp.patch("/employees/<int:employee_id>/profile")
@auth_required(ROLE_ADMIN, ROLE_MANAGER)
def update_employee_profile(employee_id: int) -> tuple[dict[str, object], int]:
    result = EmployeeService().update_employee_profile(employee_id, current_user_id(), json_payload())
    return patch_response(result)
