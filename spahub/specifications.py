"""Per-entity validation rules checked before an entity is persisted.

Each specification inspects a fully built entity and returns a
:class:`ValidationResult`; callers decide whether a failure is fatal.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Generic, TypeVar
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email

from .models import (
    EMPLOYMENT_STATUSES,
    GENDERS,
    Customer,
    Employee,
    EmployeeProfile,
    Product,
    Salon,
    SalonAddress,
    Service,
)

T = TypeVar("T")

DIGITS_ONLY = re.compile(r"^\d+$")
MAX_SERVICE_DURATION_MINUTES = 8 * 60


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> ValidationResult:
        return cls(is_valid=not errors, errors=list(errors))


class Specification(Generic[T]):
    def is_satisfied_by(self, entity: T) -> ValidationResult:
        errors: list[str] = []
        self.check(entity, errors)
        return ValidationResult.from_errors(errors)

    def check(self, entity: T, errors: list[str]) -> None:
        raise NotImplementedError


def is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def is_valid_email(value: str | None) -> bool:
    if is_blank(value):
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_absolute_url(value: str | None) -> bool:
    if is_blank(value):
        return False
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def _years_between(start: date, end: date) -> int:
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return years


def _check_rate(value: Decimal | None, label: str, errors: list[str]) -> None:
    if value is None or value < 0 or value > 1:
        errors.append(f"{label} must be between 0 and 1.")


class SalonSpecification(Specification[Salon]):
    def check(self, salon: Salon, errors: list[str]) -> None:
        if not salon.user_id:
            errors.append("User ID is required.")
        if is_blank(salon.name):
            errors.append("Salon name is required.")
        if is_blank(salon.phone_number):
            errors.append("Phone number is required.")
        elif not DIGITS_ONLY.match(salon.phone_number):
            errors.append("Phone number must contain only digits.")
        if not is_valid_email(salon.email):
            errors.append("Invalid email format.")
        if salon.description and len(salon.description) > 1000:
            errors.append("Description cannot exceed 1000 characters.")


class AddressSpecification(Specification[SalonAddress]):
    LABELS = {
        "country": "Country",
        "region": "Region",
        "city": "City",
        "postal_code": "Postal code",
        "street": "Street",
        "building_number": "Building number",
    }

    def check(self, address: SalonAddress, errors: list[str]) -> None:
        for field_name, label in self.LABELS.items():
            if is_blank(getattr(address, field_name)):
                errors.append(f"{label} is required.")


class EmployeeSpecification(Specification[Employee]):
    def check(self, employee: Employee, errors: list[str]) -> None:
        if not employee.salon_id:
            errors.append("Salon ID is required.")
        if not employee.user_id:
            errors.append("User ID is required.")
        if is_blank(employee.position):
            errors.append("Position is required.")
        if is_blank(employee.code):
            errors.append("Employee code is required.")
        if employee.employment_status not in EMPLOYMENT_STATUSES:
            errors.append("Invalid employment status.")

        today = date.today()
        if employee.hire_date is None:
            errors.append("Hire date is required.")
        elif employee.hire_date > today:
            errors.append("Hire date cannot be in the future.")
        elif _years_between(employee.hire_date, today) > 50:
            errors.append("Hire date cannot be more than 50 years ago.")

        if employee.notes and len(employee.notes) > 500:
            errors.append("Notes cannot exceed 500 characters.")


class EmployeeProfileSpecification(Specification[EmployeeProfile]):
    def check(self, profile: EmployeeProfile, errors: list[str]) -> None:
        if is_blank(profile.first_name):
            errors.append("First name is required.")
        if is_blank(profile.last_name):
            errors.append("Last name is required.")
        if profile.gender not in GENDERS:
            errors.append("Invalid gender.")

        today = date.today()
        if profile.date_of_birth is None:
            errors.append("Date of birth is required.")
        elif profile.date_of_birth > today:
            errors.append("Date of birth cannot be in the future.")
        else:
            age = _years_between(profile.date_of_birth, today)
            if age < 16 or age > 100:
                errors.append("Employee age must be between 16 and 100 years.")

        if not is_valid_email(profile.email):
            errors.append("Invalid email format.")
        if is_blank(profile.phone_number) or not DIGITS_ONLY.match(profile.phone_number):
            errors.append("Phone number must contain only digits.")


class ServiceSpecification(Specification[Service]):
    def check(self, service: Service, errors: list[str]) -> None:
        if not service.salon_id:
            errors.append("Salon ID is required.")
        if not service.created_by_user_id:
            errors.append("Creator is required.")
        if is_blank(service.name):
            errors.append("Service name is required.")
        if is_blank(service.code):
            errors.append("Service code is required.")
        if service.description and len(service.description) > 1000:
            errors.append("Description cannot exceed 1000 characters.")
        if service.price_cents is None or service.price_cents < 0:
            errors.append("Price must be greater than or equal to 0.")
        _check_rate(service.tax_rate, "Tax rate", errors)
        if not service.duration_minutes or service.duration_minutes <= 0:
            errors.append("Duration must be greater than 0.")
        elif service.duration_minutes > MAX_SERVICE_DURATION_MINUTES:
            errors.append("Duration cannot exceed 8 hours.")
        if service.img_url and not is_absolute_url(service.img_url):
            errors.append("Image URL must be a valid absolute URL.")


class ProductSpecification(Specification[Product]):
    def check(self, product: Product, errors: list[str]) -> None:
        if not product.salon_id:
            errors.append("Salon ID is required.")
        if not product.created_by_user_id:
            errors.append("Creator is required.")
        if is_blank(product.name):
            errors.append("Product name is required.")
        if is_blank(product.code):
            errors.append("Product code is required.")
        if product.description and len(product.description) > 500:
            errors.append("Description cannot exceed 500 characters.")
        if product.purchase_price_cents is None or product.purchase_price_cents < 0:
            errors.append("Purchase price must be greater than or equal to 0.")
        if product.sale_price_cents is None or product.sale_price_cents < 0:
            errors.append("Sale price must be greater than or equal to 0.")
        _check_rate(product.purchase_tax_rate, "Purchase tax rate", errors)
        _check_rate(product.sale_tax_rate, "Sale tax rate", errors)
        if product.stock_quantity is None or product.stock_quantity < 0:
            errors.append("Stock quantity cannot be negative.")
        if product.minimum_stock_level is None or product.minimum_stock_level < 0:
            errors.append("Minimum stock level cannot be negative.")
        if is_blank(product.unit_of_measure):
            errors.append("Unit of measure is required.")
        if product.img_url and not is_absolute_url(product.img_url):
            errors.append("Image URL must be a valid absolute URL.")


class CustomerSpecification(Specification[Customer]):
    def check(self, customer: Customer, errors: list[str]) -> None:
        if not customer.salon_id:
            errors.append("Salon ID is required.")
        if is_blank(customer.first_name):
            errors.append("First name is required.")
        if is_blank(customer.last_name):
            errors.append("Last name is required.")
        if is_blank(customer.phone_number) or not DIGITS_ONLY.match(customer.phone_number):
            errors.append("Phone number must contain only digits.")
        if customer.email and not is_valid_email(customer.email):
            errors.append("Invalid email format.")
