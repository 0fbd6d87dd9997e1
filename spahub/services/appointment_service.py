"""Booking appointments and moving them through their lifecycle."""
from __future__ import annotations

from datetime import date

from flask import current_app

from ..exceptions import BadRequestError, NotFoundError
from ..models import Appointment
from ..repositories import AppointmentRepository, CustomerRepository, EmployeeRepository, ServiceRepository
from ..schemas import CreateAppointmentRequest
from .salon_service import SalonService


class AppointmentService:
    def __init__(
        self,
        appointments: AppointmentRepository | None = None,
        employees: EmployeeRepository | None = None,
        customers: CustomerRepository | None = None,
        services: ServiceRepository | None = None,
        salon_service: SalonService | None = None,
    ) -> None:
        self.appointments = appointments or AppointmentRepository()
        self.employees = employees or EmployeeRepository()
        self.customers = customers or CustomerRepository()
        self.services = services or ServiceRepository()
        self.salon_service = salon_service or SalonService(employees=self.employees)

    def create_appointment(self, salon_id: int, user_id: int, request: CreateAppointmentRequest) -> Appointment:
        salon = self.salon_service.get_accessible_salon(salon_id, user_id)

        employee = self.employees.get_or_raise(request.employee_id, "Employee not found.")
        if employee.salon_id != salon.salon_id:
            raise BadRequestError("Employee does not work at this salon.")
        if employee.employment_status != "active":
            raise BadRequestError("Employee is not currently active.")

        customer = self.customers.get_or_raise(request.customer_id, "Customer not found.")
        if customer.salon_id != salon.salon_id:
            raise BadRequestError("Customer does not belong to this salon.")

        services = {service.service_id: service for service in self.services.get_active_by_ids(salon.salon_id, request.service_ids)}
        missing = [service_id for service_id in request.service_ids if service_id not in services]
        if missing:
            raise BadRequestError(f"Services not available at this salon: {', '.join(map(str, missing))}.")

        appointment = Appointment(
            salon_id=salon.salon_id,
            employee_id=employee.employee_id,
            customer_id=customer.customer_id,
            appointment_date=request.appointment_date,
            start_time=request.start_time,
            end_time=request.end_time,
            notes=request.notes,
            status="pending",
        )
        for service_id in request.service_ids:
            appointment.add_service(services[service_id])

        self.appointments.create(appointment)
        self.appointments.save_changes()
        current_app.logger.info("Booked appointment %s in salon %s", appointment.appointment_id, salon.salon_id)
        return appointment

    def get_appointment(self, appointment_id: int, user_id: int) -> Appointment:
        appointment = self.appointments.get_with_details_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found.")
        self.salon_service.get_accessible_salon(appointment.salon_id, user_id)
        return appointment

    def list_appointments(
        self,
        salon_id: int,
        user_id: int,
        date_from: date | None = None,
        date_to: date | None = None,
        employee_id: int | None = None,
        status: str | None = None,
    ) -> list[Appointment]:
        self.salon_service.get_accessible_salon(salon_id, user_id)
        if date_from and date_to and date_from > date_to:
            raise BadRequestError("date_from cannot be after date_to.")
        return self.appointments.get_for_salon(salon_id, date_from, date_to, employee_id, status)

    def change_status(self, appointment_id: int, user_id: int, status: str) -> Appointment:
        appointment = self.get_appointment(appointment_id, user_id)
        previous = appointment.status
        appointment.change_status(status)
        self.appointments.save_changes()
        current_app.logger.info("Appointment %s moved from %s to %s", appointment_id, previous, status)
        return appointment
