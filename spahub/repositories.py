"""Data access wrappers over the shared SQLAlchemy session."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Generic, Iterable, TypeVar

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload, selectinload

from .exceptions import NotFoundError
from .extensions import db
from .models import (
    ROLES,
    Appointment,
    AppointmentService,
    Customer,
    Employee,
    EmployeeProfile,
    Payment,
    Product,
    RefreshToken,
    Role,
    Salon,
    Service,
    ServiceProductUsage,
    User,
    UserProfile,
)

ModelT = TypeVar("ModelT", bound=db.Model)


class Repository(Generic[ModelT]):
    """Generic CRUD over a single model.

    Writes are staged on the session; nothing reaches the database until
    :meth:`save_changes` commits.
    """

    model: type[ModelT]

    def __init__(self, session=None) -> None:
        self.session = session or db.session

    def get_all(self) -> list[ModelT]:
        return self.session.query(self.model).all()

    def get_by_id(self, entity_id: int) -> ModelT | None:
        return self.session.get(self.model, entity_id)

    def get_or_raise(self, entity_id: int, message: str | None = None) -> ModelT:
        entity = self.get_by_id(entity_id)
        if entity is None:
            raise NotFoundError(message or f"{self.model.__name__} with id {entity_id} was not found.")
        return entity

    def create(self, entity: ModelT) -> ModelT:
        self.session.add(entity)
        return entity

    def update(self, entity: ModelT) -> ModelT:
        self.session.add(entity)
        return entity

    def delete(self, entity: ModelT) -> None:
        self.session.delete(entity)

    def flush(self) -> None:
        self.session.flush()

    def save_changes(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.exception("Failed to save %s changes", self.model.__name__, exc_info=exc)
            raise

    def rollback(self) -> None:
        self.session.rollback()


class UserRepository(Repository[User]):
    model = User

    def get_by_email(self, email: str) -> User | None:
        normalized = (email or "").strip().lower()
        return self.session.query(User).filter(func.lower(User.email) == normalized).first()


class RoleRepository(Repository[Role]):
    model = Role

    def get_by_name(self, name: str) -> Role | None:
        return self.session.query(Role).filter_by(name=name).first()

    def ensure_roles(self, names: Iterable[str] = ROLES) -> list[Role]:
        roles = []
        for name in names:
            role = self.get_by_name(name)
            if role is None:
                role = Role(name=name)
                self.session.add(role)
            roles.append(role)
        return roles


class RefreshTokenRepository(Repository[RefreshToken]):
    model = RefreshToken

    def get_by_token(self, token: str) -> RefreshToken | None:
        return self.session.query(RefreshToken).filter_by(token=token).first()

    def delete_for_user(self, user_id: int) -> int:
        return self.session.query(RefreshToken).filter_by(user_id=user_id).delete(synchronize_session=False)


class UserProfileRepository(Repository[UserProfile]):
    model = UserProfile

    def get_by_user_id(self, user_id: int) -> UserProfile | None:
        return self.session.query(UserProfile).filter_by(user_id=user_id).first()


class SalonRepository(Repository[Salon]):
    model = Salon

    def get_all_by_user_id(self, user_id: int) -> list[Salon]:
        return (
            self.session.query(Salon)
            .filter(Salon.user_id == user_id)
            .order_by(Salon.name.asc())
            .all()
        )

    def get_with_details_by_id(self, salon_id: int) -> Salon | None:
        return (
            self.session.query(Salon)
            .options(joinedload(Salon.address), selectinload(Salon.opening_hours))
            .filter(Salon.salon_id == salon_id)
            .first()
        )


class EmployeeRepository(Repository[Employee]):
    model = Employee

    def _with_profile(self):
        return self.session.query(Employee).options(joinedload(Employee.profile))

    def get_by_user_id(self, user_id: int) -> Employee | None:
        return self._with_profile().filter(Employee.user_id == user_id).first()

    def get_by_user_and_salon(self, user_id: int, salon_id: int) -> Employee | None:
        return (
            self.session.query(Employee)
            .filter(Employee.user_id == user_id, Employee.salon_id == salon_id)
            .first()
        )

    def get_with_profile_by_id(self, employee_id: int) -> Employee | None:
        return self._with_profile().filter(Employee.employee_id == employee_id).first()

    def get_by_code(self, salon_id: int, code: str) -> Employee | None:
        return (
            self._with_profile()
            .filter(Employee.salon_id == salon_id, func.lower(Employee.code) == code.strip().lower())
            .first()
        )

    def is_code_taken(self, salon_id: int, code: str, exclude_id: int | None = None) -> bool:
        query = self.session.query(Employee.employee_id).filter(
            Employee.salon_id == salon_id,
            func.lower(Employee.code) == code.strip().lower(),
        )
        if exclude_id is not None:
            query = query.filter(Employee.employee_id != exclude_id)
        return query.first() is not None

    def get_employees(
        self,
        salon_id: int,
        code: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
        status: str | None = None,
    ) -> list[Employee]:
        query = (
            self.session.query(Employee)
            .outerjoin(EmployeeProfile, EmployeeProfile.employee_id == Employee.employee_id)
            .options(joinedload(Employee.profile))
            .filter(Employee.salon_id == salon_id)
        )
        if code:
            query = query.filter(func.lower(Employee.code) == code.strip().lower())
        if first_name:
            query = query.filter(func.lower(EmployeeProfile.first_name).like(f"%{first_name.strip().lower()}%"))
        if last_name:
            query = query.filter(func.lower(EmployeeProfile.last_name).like(f"%{last_name.strip().lower()}%"))
        if status:
            query = query.filter(Employee.employment_status == status)
        return query.order_by(Employee.code.asc()).all()


class _CatalogRepository(Repository[ModelT]):
    def is_code_taken(self, salon_id: int, code: str, exclude_id: int | None = None) -> bool:
        pk = self.model.__mapper__.primary_key[0]
        query = self.session.query(pk).filter(
            self.model.salon_id == salon_id,
            func.lower(self.model.code) == code.strip().lower(),
        )
        if exclude_id is not None:
            query = query.filter(pk != exclude_id)
        return query.first() is not None

    def _search(self, salon_id: int, code: str | None, name: str | None, is_active: bool | None):
        query = self.session.query(self.model).filter(self.model.salon_id == salon_id)
        if code:
            query = query.filter(func.lower(self.model.code) == code.strip().lower())
        if name:
            query = query.filter(func.lower(self.model.name).like(f"%{name.strip().lower()}%"))
        if is_active is not None:
            query = query.filter(self.model.is_active.is_(is_active))
        return query.order_by(self.model.name.asc())


class ServiceRepository(_CatalogRepository[Service]):
    model = Service

    def get_services(
        self,
        salon_id: int,
        code: str | None = None,
        name: str | None = None,
        is_active: bool | None = None,
    ) -> list[Service]:
        return self._search(salon_id, code, name, is_active).all()

    def get_active_by_ids(self, salon_id: int, service_ids: Iterable[int]) -> list[Service]:
        return (
            self.session.query(Service)
            .filter(Service.salon_id == salon_id, Service.service_id.in_(list(service_ids)), Service.is_active.is_(True))
            .all()
        )


class ProductRepository(_CatalogRepository[Product]):
    model = Product

    def get_products(
        self,
        salon_id: int,
        code: str | None = None,
        name: str | None = None,
        is_active: bool | None = None,
        low_stock: bool = False,
    ) -> list[Product]:
        query = self._search(salon_id, code, name, is_active)
        if low_stock:
            query = query.filter(Product.stock_quantity <= Product.minimum_stock_level)
        return query.all()


class ServiceProductUsageRepository(Repository[ServiceProductUsage]):
    model = ServiceProductUsage

    def get_for_service_and_product(self, service_id: int, product_id: int) -> ServiceProductUsage | None:
        return (
            self.session.query(ServiceProductUsage)
            .filter_by(service_id=service_id, product_id=product_id)
            .first()
        )


class CustomerRepository(Repository[Customer]):
    model = Customer

    def get_customers(self, salon_id: int, search: str | None = None) -> list[Customer]:
        query = self.session.query(Customer).filter(Customer.salon_id == salon_id)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(Customer.first_name).like(pattern),
                    func.lower(Customer.last_name).like(pattern),
                    Customer.phone_number.like(pattern),
                    func.lower(Customer.email).like(pattern),
                )
            )
        return query.order_by(Customer.last_name.asc(), Customer.first_name.asc()).all()


class AppointmentRepository(Repository[Appointment]):
    model = Appointment

    def get_with_details_by_id(self, appointment_id: int) -> Appointment | None:
        return (
            self.session.query(Appointment)
            .options(
                selectinload(Appointment.appointment_services).joinedload(AppointmentService.service),
                selectinload(Appointment.payments),
            )
            .filter(Appointment.appointment_id == appointment_id)
            .first()
        )

    def get_for_salon(
        self,
        salon_id: int,
        date_from: date | None = None,
        date_to: date | None = None,
        employee_id: int | None = None,
        status: str | None = None,
    ) -> list[Appointment]:
        query = self.session.query(Appointment).filter(Appointment.salon_id == salon_id)
        if date_from:
            query = query.filter(Appointment.appointment_date >= date_from)
        if date_to:
            query = query.filter(Appointment.appointment_date <= date_to)
        if employee_id:
            query = query.filter(Appointment.employee_id == employee_id)
        if status:
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.appointment_date.asc(), Appointment.start_time.asc()).all()


class PaymentRepository(Repository[Payment]):
    model = Payment

    def get_for_appointment(self, appointment_id: int) -> list[Payment]:
        return (
            self.session.query(Payment)
            .filter(Payment.appointment_id == appointment_id)
            .order_by(Payment.payment_date.asc())
            .all()
        )

    def get_for_customer(
        self,
        customer_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Payment]:
        query = self.session.query(Payment).filter(Payment.customer_id == customer_id)
        if start_date:
            query = query.filter(Payment.payment_date >= datetime.combine(start_date, time.min))
        if end_date:
            query = query.filter(Payment.payment_date < datetime.combine(end_date + timedelta(days=1), time.min))
        return query.order_by(Payment.payment_date.desc()).all()

    def get_by_gateway_payment_id(self, gateway_payment_id: str) -> Payment | None:
        return self.session.query(Payment).filter_by(gateway_payment_id=gateway_payment_id).first()
