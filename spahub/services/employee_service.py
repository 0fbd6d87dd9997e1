"""Employee hiring, lookup and updates."""
from __future__ import annotations

from typing import Any

from flask import current_app

from ..exceptions import ConflictError, DomainValidationError, NotFoundError
from ..models import ROLE_EMPLOYEE, ROLE_MANAGER, Employee, EmployeeProfile
from ..patching import OperationResult, apply_patch_update
from ..repositories import EmployeeRepository, RoleRepository, UserRepository
from ..schemas import CreateEmployeeRequest, UpdateEmployeeProfileRequest, UpdateEmployeeRequest
from ..specifications import EmployeeProfileSpecification, EmployeeSpecification
from .salon_service import SalonService


class EmployeeService:
    def __init__(
        self,
        employees: EmployeeRepository | None = None,
        users: UserRepository | None = None,
        roles: RoleRepository | None = None,
        salon_service: SalonService | None = None,
    ) -> None:
        self.employees = employees or EmployeeRepository()
        self.users = users or UserRepository()
        self.roles = roles or RoleRepository()
        self.salon_service = salon_service or SalonService(employees=self.employees)
        self.specification = EmployeeSpecification()
        self.profile_specification = EmployeeProfileSpecification()

    def add_employee(self, salon_id: int, owner_id: int, request: CreateEmployeeRequest) -> Employee:
        salon = self.salon_service.get_owned_salon(salon_id, owner_id)
        user = self.users.get_or_raise(request.user_id, "User not found.")

        if self.employees.get_by_user_and_salon(user.user_id, salon.salon_id) is not None:
            raise ConflictError("User is already an employee of this salon.")
        if self.employees.is_code_taken(salon.salon_id, request.code):
            raise ConflictError(f"Employee code '{request.code}' is already in use.")

        employee = Employee(
            salon_id=salon.salon_id,
            user_id=user.user_id,
            position=request.position,
            code=request.code,
            employment_status=request.employment_status,
            color=request.color,
            hire_date=request.hire_date,
            notes=request.notes,
        )
        employee.profile = EmployeeProfile(
            first_name=request.first_name,
            last_name=request.last_name,
            gender=request.gender,
            date_of_birth=request.date_of_birth,
            email=request.email,
            phone_number=request.phone_number,
        )

        errors = self.specification.is_satisfied_by(employee).errors
        errors += self.profile_specification.is_satisfied_by(employee.profile).errors
        if errors:
            raise DomainValidationError("Invalid employee data.", errors)

        if not (user.has_role(ROLE_EMPLOYEE) or user.has_role(ROLE_MANAGER)):
            user.add_role(self.roles.ensure_roles([ROLE_EMPLOYEE])[0])

        self.employees.create(employee)
        self.employees.save_changes()
        current_app.logger.info("Added employee %s to salon %s", employee.employee_id, salon.salon_id)
        return employee

    def get_employee(self, employee_id: int) -> Employee:
        employee = self.employees.get_with_profile_by_id(employee_id)
        if employee is None:
            raise NotFoundError("Employee not found.")
        return employee

    def get_employee_for_user(self, user_id: int) -> Employee:
        employee = self.employees.get_by_user_id(user_id)
        if employee is None:
            raise NotFoundError("Employee not found.")
        return employee

    def get_employee_by_code(self, salon_id: int, user_id: int, code: str) -> Employee:
        self.salon_service.get_accessible_salon(salon_id, user_id)
        employee = self.employees.get_by_code(salon_id, code)
        if employee is None:
            raise NotFoundError(f"Employee with code '{code}' not found.")
        return employee

    def get_accessible_employee(self, employee_id: int, user_id: int) -> Employee:
        employee = self.get_employee(employee_id)
        self.salon_service.get_accessible_salon(employee.salon_id, user_id)
        return employee

    def list_employees(
        self,
        salon_id: int,
        user_id: int,
        code: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
        status: str | None = None,
    ) -> list[Employee]:
        self.salon_service.get_accessible_salon(salon_id, user_id)
        return self.employees.get_employees(salon_id, code, first_name, last_name, status)

    def update_employee(self, employee_id: int, user_id: int, document: Any) -> OperationResult:
        employee = self.get_accessible_employee(employee_id, user_id)

        def ensure_unique_code(request: UpdateEmployeeRequest, entity: Employee) -> None:
            if self.employees.is_code_taken(entity.salon_id, request.code, exclude_id=entity.employee_id):
                raise ConflictError(f"Employee code '{request.code}' is already in use.")

        return apply_patch_update(
            document,
            employee,
            to_request=lambda entity: {
                "position": entity.position,
                "code": entity.code,
                "employment_status": entity.employment_status,
                "color": entity.color,
                "hire_date": entity.hire_date,
                "notes": entity.notes,
            },
            request_model=UpdateEmployeeRequest,
            update=lambda request, entity: entity.update_employee(
                request.position,
                request.code,
                request.employment_status,
                request.color,
                request.hire_date,
                request.notes,
            ),
            specification=self.specification,
            repository=self.employees,
            entity_label="employee",
            before_update=ensure_unique_code,
        )

    def update_employee_profile(self, employee_id: int, user_id: int, document: Any) -> OperationResult:
        employee = self.get_accessible_employee(employee_id, user_id)
        if employee.profile is None:
            raise NotFoundError("Employee profile not found.")
        return apply_patch_update(
            document,
            employee.profile,
            to_request=lambda entity: {
                "first_name": entity.first_name,
                "last_name": entity.last_name,
                "gender": entity.gender,
                "date_of_birth": entity.date_of_birth,
                "email": entity.email,
                "phone_number": entity.phone_number,
            },
            request_model=UpdateEmployeeProfileRequest,
            update=lambda request, entity: entity.update_employee_profile(**request.model_dump()),
            specification=self.profile_specification,
            repository=self.employees,
            entity_label="employee profile",
        )
