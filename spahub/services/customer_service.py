"""Salon customers."""
from __future__ import annotations

from ..exceptions import DomainValidationError
from ..models import Customer
from ..repositories import CustomerRepository
from ..schemas import CreateCustomerRequest
from ..specifications import CustomerSpecification
from .salon_service import SalonService


class CustomerService:
    def __init__(
        self,
        customers: CustomerRepository | None = None,
        salon_service: SalonService | None = None,
    ) -> None:
        self.customers = customers or CustomerRepository()
        self.salon_service = salon_service or SalonService()
        self.specification = CustomerSpecification()

    def create_customer(self, salon_id: int, user_id: int, request: CreateCustomerRequest) -> Customer:
        salon = self.salon_service.get_accessible_salon(salon_id, user_id)
        customer = Customer(salon_id=salon.salon_id, **request.model_dump())
        result = self.specification.is_satisfied_by(customer)
        if not result.is_valid:
            raise DomainValidationError("Invalid customer data.", result.errors)

        self.customers.create(customer)
        self.customers.save_changes()
        return customer

    def get_customer(self, customer_id: int, user_id: int) -> Customer:
        customer = self.customers.get_or_raise(customer_id, "Customer not found.")
        self.salon_service.get_accessible_salon(customer.salon_id, user_id)
        return customer

    def list_customers(self, salon_id: int, user_id: int, search: str | None = None) -> list[Customer]:
        self.salon_service.get_accessible_salon(salon_id, user_id)
        return self.customers.get_customers(salon_id, search)
