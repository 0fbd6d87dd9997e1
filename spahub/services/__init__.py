"""Business operations used by the route handlers."""
from __future__ import annotations

from .account_service import AccountService
from .appointment_service import AppointmentService
from .catalog_service import CatalogService
from .customer_service import CustomerService
from .employee_service import EmployeeService
from .payment_service import PaymentService
from .salon_service import SalonService
from .user_service import UserService

__all__ = [
    "AccountService",
    "AppointmentService",
    "CatalogService",
    "CustomerService",
    "EmployeeService",
    "PaymentService",
    "SalonService",
    "UserService",
]
