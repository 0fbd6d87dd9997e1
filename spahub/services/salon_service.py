"""Salon profile, opening hours and address operations."""
from __future__ import annotations

from typing import Any

from flask import current_app

from ..exceptions import ConflictError, DomainValidationError, ForbiddenError, NotFoundError
from ..models import OpeningHours, Salon, SalonAddress
from ..patching import OperationResult, apply_patch_update
from ..repositories import EmployeeRepository, SalonRepository
from ..schemas import AddressRequest, CreateSalonRequest, OpeningHoursRequest, UpdateSalonDetailsRequest, UpdateSalonOpeningHoursRequest
from ..specifications import AddressSpecification, SalonSpecification


class SalonService:
    def __init__(
        self,
        salons: SalonRepository | None = None,
        employees: EmployeeRepository | None = None,
    ) -> None:
        self.salons = salons or SalonRepository()
        self.employees = employees or EmployeeRepository()
        self.specification = SalonSpecification()
        self.address_specification = AddressSpecification()

    def get_salon(self, salon_id: int) -> Salon:
        salon = self.salons.get_with_details_by_id(salon_id)
        if salon is None:
            raise NotFoundError("Salon not found.")
        return salon

    def get_salons_for_user(self, user_id: int) -> list[Salon]:
        return self.salons.get_all_by_user_id(user_id)

    def get_owned_salon(self, salon_id: int, user_id: int) -> Salon:
        salon = self.get_salon(salon_id)
        if salon.user_id != user_id:
            raise ForbiddenError("You do not own this salon.")
        return salon

    def get_accessible_salon(self, salon_id: int, user_id: int) -> Salon:
        """Return the salon if the user owns it or is employed there."""
        salon = self.get_salon(salon_id)
        if salon.user_id == user_id:
            return salon
        if self.employees.get_by_user_and_salon(user_id, salon_id) is None:
            raise ForbiddenError("You do not have access to this salon.")
        return salon

    def create_salon(self, user_id: int, request: CreateSalonRequest) -> Salon:
        salon = Salon(
            user_id=user_id,
            name=request.name,
            email=request.email,
            phone_number=request.phone_number,
        )
        result = self.specification.is_satisfied_by(salon)
        if not result.is_valid:
            raise DomainValidationError("Invalid salon data.", result.errors)

        self.salons.create(salon)
        self.salons.save_changes()
        current_app.logger.info("Created salon %s for user %s", salon.salon_id, user_id)
        return salon

    def update_salon(self, salon_id: int, user_id: int, document: Any) -> OperationResult:
        salon = self.get_owned_salon(salon_id, user_id)
        return apply_patch_update(
            document,
            salon,
            to_request=lambda entity: {
                "name": entity.name,
                "email": entity.email,
                "phone_number": entity.phone_number,
                "description": entity.description,
            },
            request_model=UpdateSalonDetailsRequest,
            update=lambda request, entity: entity.update_salon(
                request.name, request.email, request.phone_number, request.description
            ),
            specification=self.specification,
            repository=self.salons,
            entity_label="salon",
        )

    def delete_salon(self, salon_id: int, user_id: int) -> None:
        salon = self.get_owned_salon(salon_id, user_id)
        self.salons.delete(salon)
        self.salons.save_changes()
        current_app.logger.info("Deleted salon %s", salon_id)

    # --- Opening hours ---

    def add_opening_hours(self, salon_id: int, user_id: int, request: OpeningHoursRequest) -> OpeningHours:
        salon = self.get_owned_salon(salon_id, user_id)
        hours = salon.add_opening_hours(
            request.day_of_week, request.opening_time, request.closing_time, request.is_closed
        )
        self.salons.save_changes()
        return hours

    def update_opening_hours(self, salon_id: int, user_id: int, request: UpdateSalonOpeningHoursRequest) -> Salon:
        """Replace the weekly schedule with the days given in ``request``."""
        salon = self.get_owned_salon(salon_id, user_id)
        wanted = {entry.day_of_week: entry for entry in request.opening_hours}

        for hours in list(salon.opening_hours):
            if hours.day_of_week not in wanted:
                salon.remove_opening_hours(hours.day_of_week)
        for day, entry in wanted.items():
            if salon.get_opening_hours(day) is None:
                salon.add_opening_hours(day, entry.opening_time, entry.closing_time, entry.is_closed)
            else:
                salon.update_opening_hours(day, entry.opening_time, entry.closing_time, entry.is_closed)

        self.salons.save_changes()
        return salon

    def remove_opening_hours(self, salon_id: int, user_id: int, day_of_week: int) -> None:
        salon = self.get_owned_salon(salon_id, user_id)
        salon.remove_opening_hours(day_of_week)
        self.salons.save_changes()

    # --- Address ---

    def create_address(self, salon_id: int, user_id: int, request: AddressRequest) -> SalonAddress:
        salon = self.get_owned_salon(salon_id, user_id)
        if salon.address is not None:
            raise ConflictError("Salon already has an address.")

        address = SalonAddress(**request.model_dump())
        result = self.address_specification.is_satisfied_by(address)
        if not result.is_valid:
            raise DomainValidationError("Invalid address data.", result.errors)

        salon.set_address(address)
        self.salons.save_changes()
        return address

    def update_address(self, salon_id: int, user_id: int, document: Any) -> OperationResult:
        salon = self.get_owned_salon(salon_id, user_id)
        if salon.address is None:
            raise NotFoundError("Salon address not found.")
        return apply_patch_update(
            document,
            salon.address,
            to_request=lambda entity: entity.to_dict(),
            request_model=AddressRequest,
            update=lambda request, entity: entity.update_address(**request.model_dump()),
            specification=self.address_specification,
            repository=self.salons,
            entity_label="address",
        )
