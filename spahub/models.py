"""Database models for the SpaHub backend."""
from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal

from werkzeug.security import check_password_hash, generate_password_hash

from .exceptions import ConflictError, DomainValidationError
from .extensions import db


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes read back from the database as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _with_tax(amount_cents: int, tax_rate: Decimal | None) -> int:
    rate = Decimal(tax_rate or 0)
    gross = Decimal(amount_cents or 0) * (Decimal(1) + rate)
    return int(gross.quantize(Decimal(1), rounding=ROUND_HALF_UP))


GENDERS = ("male", "female", "other")
ROLE_ADMIN = "Admin"
ROLE_MANAGER = "Manager"
ROLE_EMPLOYEE = "Employee"
ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_EMPLOYEE)
EMPLOYMENT_STATUSES = ("active", "on_leave", "terminated")
APPOINTMENT_STATUSES = ("pending", "confirmed", "completed", "cancelled", "no_show")
PAYMENT_STATUSES = ("pending", "completed", "failed", "cancelled", "refunded")
PAYMENT_METHODS = ("cash", "card", "online")

APPOINTMENT_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled", "no_show"},
}
PAYMENT_TRANSITIONS = {
    "pending": {"completed", "failed", "cancelled"},
    "completed": {"refunded"},
}


def parse_gender(value: str | None) -> str:
    """Map free text onto a known gender, falling back to ``other``."""
    normalized = (value or "").strip().lower()
    return normalized if normalized in GENDERS else "other"


def _gender_column() -> db.Column:
    return db.Column(
        db.Enum(*GENDERS, name="gender_type", native_enum=False, validate_strings=True),
        nullable=False,
        server_default="other",
    )


class TimestampMixin:
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    def touch(self) -> None:
        self.updated_at = utc_now()


user_roles = db.Table(
    "user_roles",
    db.Column("user_id", db.Integer, db.ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True),
    db.Column("role_id", db.Integer, db.ForeignKey("roles.role_id", ondelete="CASCADE"), primary_key=True),
)


class Role(db.Model):
    __tablename__ = "roles"

    role_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Role {self.name}>"


class User(TimestampMixin, db.Model):
    __tablename__ = "users"

    user_id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    phone_number = db.Column(db.String(30))
    email_confirmed = db.Column(db.Boolean, nullable=False, default=False)

    roles = db.relationship("Role", secondary=user_roles, lazy="selectin")
    auth_account = db.relationship(
        "AuthAccount", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    profile = db.relationship(
        "UserProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    salons = db.relationship("Salon", back_populates="owner", lazy="dynamic")

    @property
    def role_names(self) -> list[str]:
        return sorted(role.name for role in self.roles)

    def has_role(self, name: str) -> bool:
        return any(role.name == name for role in self.roles)

    def add_role(self, role: Role) -> bool:
        if self.has_role(role.name):
            return False
        self.roles.append(role)
        return True

    def remove_role(self, name: str) -> bool:
        for role in list(self.roles):
            if role.name == name:
                self.roles.remove(role)
                return True
        return False

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.user_id,
            "email": self.email,
            "phone_number": self.phone_number,
            "email_confirmed": bool(self.email_confirmed),
            "roles": self.role_names,
        }


class AuthAccount(TimestampMixin, db.Model):
    __tablename__ = "auth_accounts"

    account_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    security_stamp = db.Column(db.String(64), nullable=False)
    last_login_at = db.Column(db.DateTime)

    user = db.relationship("User", back_populates="auth_account")

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def rotate_security_stamp(self, stamp: str) -> None:
        self.security_stamp = stamp


class RefreshToken(TimestampMixin, db.Model):
    __tablename__ = "refresh_tokens"

    refresh_token_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    token = db.Column(db.String(200), unique=True, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    @property
    def is_expired(self) -> bool:
        return as_utc(self.expires_at) <= utc_now()


class UserProfile(TimestampMixin, db.Model):
    __tablename__ = "user_profiles"

    profile_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), unique=True, nullable=False)
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    gender = _gender_column()
    date_of_birth = db.Column(db.Date, nullable=False)

    user = db.relationship("User", back_populates="profile")

    def update_profile(
        self,
        first_name: str | None,
        last_name: str | None,
        gender: str | None,
        date_of_birth: date | None,
    ) -> bool:
        """Apply the given values and report whether anything changed.

        Blank names are ignored; ``gender`` and ``date_of_birth`` are applied
        whenever they are provided and differ from the stored value.
        """
        changed = False

        if not _is_blank(first_name) and first_name != self.first_name:
            self.first_name = first_name
            changed = True
        if not _is_blank(last_name) and last_name != self.last_name:
            self.last_name = last_name
            changed = True
        if gender is not None and gender != self.gender:
            self.gender = gender
            changed = True
        if date_of_birth is not None and date_of_birth != self.date_of_birth:
            self.date_of_birth = date_of_birth
            changed = True

        if changed:
            self.touch()
        return changed

    def to_dict(self) -> dict[str, object]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "gender": self.gender,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
        }


class Salon(TimestampMixin, db.Model):
    __tablename__ = "salons"

    salon_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(30), nullable=False)
    description = db.Column(db.Text)

    owner = db.relationship("User", back_populates="salons")
    address = db.relationship(
        "SalonAddress", back_populates="salon", uselist=False, cascade="all, delete-orphan"
    )
    opening_hours = db.relationship(
        "OpeningHours",
        back_populates="salon",
        cascade="all, delete-orphan",
        order_by="OpeningHours.day_of_week",
    )
    employees = db.relationship("Employee", back_populates="salon", cascade="all, delete-orphan")
    services = db.relationship("Service", back_populates="salon", cascade="all, delete-orphan")
    products = db.relationship("Product", back_populates="salon", cascade="all, delete-orphan")
    customers = db.relationship("Customer", back_populates="salon", cascade="all, delete-orphan")
    appointments = db.relationship("Appointment", back_populates="salon", cascade="all, delete-orphan")

    def update_salon(
        self,
        name: str | None,
        email: str | None,
        phone_number: str | None,
        description: str | None,
    ) -> bool:
        changed = False

        if not _is_blank(name) and name != self.name:
            self.name = name
            changed = True
        if not _is_blank(email) and email != self.email:
            self.email = email
            changed = True
        if not _is_blank(phone_number) and phone_number != self.phone_number:
            self.phone_number = phone_number
            changed = True
        if description != self.description:
            self.description = description
            changed = True

        if changed:
            self.touch()
        return changed

    def set_address(self, address: SalonAddress) -> None:
        self.address = address
        self.touch()

    def get_opening_hours(self, day_of_week: int) -> OpeningHours | None:
        return next((hours for hours in self.opening_hours if hours.day_of_week == day_of_week), None)

    def add_opening_hours(
        self,
        day_of_week: int,
        opening_time: time,
        closing_time: time,
        is_closed: bool = False,
    ) -> OpeningHours:
        if self.get_opening_hours(day_of_week) is not None:
            raise ConflictError(f"Opening hours for day {day_of_week} already exist.")
        hours = OpeningHours(
            day_of_week=day_of_week,
            opening_time=opening_time,
            closing_time=closing_time,
            is_closed=is_closed,
        )
        self.opening_hours.append(hours)
        self.touch()
        return hours

    def update_opening_hours(
        self,
        day_of_week: int,
        opening_time: time,
        closing_time: time,
        is_closed: bool = False,
    ) -> bool:
        hours = self.get_opening_hours(day_of_week)
        if hours is None:
            raise ConflictError(f"Opening hours for day {day_of_week} do not exist.")
        changed = hours.update_hours(opening_time, closing_time, is_closed)
        if changed:
            self.touch()
        return changed

    def remove_opening_hours(self, day_of_week: int) -> None:
        hours = self.get_opening_hours(day_of_week)
        if hours is None:
            raise ConflictError(f"Opening hours for day {day_of_week} do not exist.")
        self.opening_hours.remove(hours)
        self.touch()

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.salon_id,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "phone_number": self.phone_number,
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_details_dict(self) -> dict[str, object]:
        data = self.to_dict()
        data["address"] = self.address.to_dict() if self.address else None
        data["opening_hours"] = [hours.to_dict() for hours in self.opening_hours]
        return data


class SalonAddress(TimestampMixin, db.Model):
    __tablename__ = "salon_addresses"

    address_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), unique=True, nullable=False)
    country = db.Column(db.String(100), nullable=False)
    region = db.Column(db.String(100), nullable=False)
    city = db.Column(db.String(100), nullable=False)
    postal_code = db.Column(db.String(20), nullable=False)
    street = db.Column(db.String(150), nullable=False)
    building_number = db.Column(db.String(20), nullable=False)

    salon = db.relationship("Salon", back_populates="address")

    FIELDS = ("country", "region", "city", "postal_code", "street", "building_number")

    def update_address(self, **values: str | None) -> bool:
        changed = False
        for field in self.FIELDS:
            value = values.get(field)
            if not _is_blank(value) and value != getattr(self, field):
                setattr(self, field, value)
                changed = True
        if changed:
            self.touch()
        return changed

    def to_dict(self) -> dict[str, object]:
        return {field: getattr(self, field) for field in self.FIELDS}


class OpeningHours(db.Model):
    __tablename__ = "opening_hours"
    __table_args__ = (db.UniqueConstraint("salon_id", "day_of_week", name="uq_opening_hours_day"),)

    opening_hours_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    # 0 = Sunday ... 6 = Saturday
    day_of_week = db.Column(db.SmallInteger, nullable=False)
    opening_time = db.Column(db.Time, nullable=False)
    closing_time = db.Column(db.Time, nullable=False)
    is_closed = db.Column(db.Boolean, nullable=False, default=False)

    salon = db.relationship("Salon", back_populates="opening_hours")

    def __init__(self, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self._check_range(self.opening_time, self.closing_time, bool(self.is_closed))

    @staticmethod
    def _check_range(opening_time: time | None, closing_time: time | None, is_closed: bool) -> None:
        if is_closed or opening_time is None or closing_time is None:
            return
        if closing_time <= opening_time:
            raise DomainValidationError("Closing time must be after opening time.")

    def update_hours(self, opening_time: time, closing_time: time, is_closed: bool = False) -> bool:
        self._check_range(opening_time, closing_time, is_closed)
        changed = False
        if opening_time != self.opening_time:
            self.opening_time = opening_time
            changed = True
        if closing_time != self.closing_time:
            self.closing_time = closing_time
            changed = True
        if bool(is_closed) != bool(self.is_closed):
            self.is_closed = is_closed
            changed = True
        return changed

    def to_dict(self) -> dict[str, object]:
        return {
            "day_of_week": self.day_of_week,
            "opening_time": self.opening_time.strftime("%H:%M") if self.opening_time else None,
            "closing_time": self.closing_time.strftime("%H:%M") if self.closing_time else None,
            "is_closed": bool(self.is_closed),
        }


class Employee(TimestampMixin, db.Model):
    __tablename__ = "employees"
    __table_args__ = (db.UniqueConstraint("salon_id", "user_id", name="uq_employee_salon_user"),)

    employee_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False, index=True)
    position = db.Column(db.String(50), nullable=False)
    code = db.Column(db.String(10), nullable=False)
    employment_status = db.Column(
        db.Enum(*EMPLOYMENT_STATUSES, name="employment_status", native_enum=False, validate_strings=True),
        nullable=False,
        server_default="active",
    )
    color = db.Column(db.String(7))
    hire_date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.String(500))

    salon = db.relationship("Salon", back_populates="employees")
    user = db.relationship("User")
    profile = db.relationship(
        "EmployeeProfile", back_populates="employee", uselist=False, cascade="all, delete-orphan"
    )

    def update_employee(
        self,
        position: str | None,
        code: str | None,
        employment_status: str | None,
        color: str | None,
        hire_date: date | None,
        notes: str | None,
    ) -> bool:
        changed = False

        if not _is_blank(position) and position != self.position:
            self.position = position
            changed = True
        if not _is_blank(code) and code != self.code:
            self.code = code
            changed = True
        if employment_status is not None and employment_status != self.employment_status:
            self.employment_status = employment_status
            changed = True
        if color != self.color:
            self.color = color
            changed = True
        if hire_date is not None and hire_date != self.hire_date:
            self.hire_date = hire_date
            changed = True
        if notes != self.notes:
            self.notes = notes
            changed = True

        if changed:
            self.touch()
        return changed

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.employee_id,
            "salon_id": self.salon_id,
            "user_id": self.user_id,
            "position": self.position,
            "code": self.code,
            "employment_status": self.employment_status,
            "color": self.color,
            "hire_date": self.hire_date.isoformat() if self.hire_date else None,
            "notes": self.notes,
        }

    def to_details_dict(self) -> dict[str, object]:
        data = self.to_dict()
        data["profile"] = self.profile.to_dict() if self.profile else None
        return data


class EmployeeProfile(TimestampMixin, db.Model):
    __tablename__ = "employee_profiles"

    employee_profile_id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.employee_id"), unique=True, nullable=False)
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    gender = _gender_column()
    date_of_birth = db.Column(db.Date, nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(30), nullable=False)

    employee = db.relationship("Employee", back_populates="profile")

    def update_employee_profile(
        self,
        first_name: str | None,
        last_name: str | None,
        gender: str | None,
        date_of_birth: date | None,
        email: str | None,
        phone_number: str | None,
    ) -> bool:
        changed = False

        for field, value in (
            ("first_name", first_name),
            ("last_name", last_name),
            ("email", email),
            ("phone_number", phone_number),
        ):
            if not _is_blank(value) and value != getattr(self, field):
                setattr(self, field, value)
                changed = True
        if gender is not None and gender != self.gender:
            self.gender = gender
            changed = True
        if date_of_birth is not None and date_of_birth != self.date_of_birth:
            self.date_of_birth = date_of_birth
            changed = True

        if changed:
            self.touch()
        return changed

    def to_dict(self) -> dict[str, object]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "gender": self.gender,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "email": self.email,
            "phone_number": self.phone_number,
        }


class Service(TimestampMixin, db.Model):
    __tablename__ = "services"
    __table_args__ = (db.UniqueConstraint("salon_id", "code", name="uq_service_salon_code"),)

    service_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    code = db.Column(db.String(20), nullable=False)
    description = db.Column(db.Text)
    price_cents = db.Column(db.Integer, nullable=False)
    tax_rate = db.Column(db.Numeric(5, 4), nullable=False, default=Decimal("0"))
    duration_minutes = db.Column(db.Integer, nullable=False)
    img_url = db.Column(db.String(500))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"))

    salon = db.relationship("Salon", back_populates="services")
    product_usages = db.relationship(
        "ServiceProductUsage", back_populates="service", cascade="all, delete-orphan"
    )

    @property
    def price_with_tax_cents(self) -> int:
        return _with_tax(self.price_cents, self.tax_rate)

    def update_service(
        self,
        updated_by_user_id: int,
        name: str | None,
        code: str | None,
        description: str | None,
        price_cents: int | None,
        tax_rate: Decimal | None,
        duration_minutes: int | None,
        img_url: str | None,
        is_active: bool | None,
    ) -> bool:
        changed = False

        if not _is_blank(name) and name != self.name:
            self.name = name
            changed = True
        if not _is_blank(code) and code != self.code:
            self.code = code
            changed = True
        if description != self.description:
            self.description = description
            changed = True
        for field, value in (
            ("price_cents", price_cents),
            ("tax_rate", tax_rate),
            ("duration_minutes", duration_minutes),
            ("is_active", is_active),
        ):
            if value is not None and value != getattr(self, field):
                setattr(self, field, value)
                changed = True
        if img_url != self.img_url:
            self.img_url = img_url
            changed = True

        if changed:
            self.updated_by_user_id = updated_by_user_id
            self.touch()
        return changed

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.service_id,
            "salon_id": self.salon_id,
            "name": self.name,
            "code": self.code,
            "description": self.description,
            "price_cents": self.price_cents,
            "tax_rate": str(self.tax_rate) if self.tax_rate is not None else None,
            "price_with_tax_cents": self.price_with_tax_cents,
            "duration_minutes": self.duration_minutes,
            "img_url": self.img_url,
            "is_active": bool(self.is_active),
            "created_by_user_id": self.created_by_user_id,
            "updated_by_user_id": self.updated_by_user_id,
        }

    def to_details_dict(self) -> dict[str, object]:
        data = self.to_dict()
        data["product_usages"] = [usage.to_dict() for usage in self.product_usages]
        return data


class Product(TimestampMixin, db.Model):
    __tablename__ = "products"
    __table_args__ = (db.UniqueConstraint("salon_id", "code", name="uq_product_salon_code"),)

    product_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    code = db.Column(db.String(20), nullable=False)
    description = db.Column(db.String(500))
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_price_cents = db.Column(db.Integer, nullable=False, default=0)
    purchase_tax_rate = db.Column(db.Numeric(5, 4), nullable=False, default=Decimal("0"))
    sale_tax_rate = db.Column(db.Numeric(5, 4), nullable=False, default=Decimal("0"))
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    minimum_stock_level = db.Column(db.Integer, nullable=False, default=0)
    unit_of_measure = db.Column(db.String(20), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    img_url = db.Column(db.String(500))
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"))

    salon = db.relationship("Salon", back_populates="products")

    UPDATABLE = (
        "purchase_price_cents",
        "sale_price_cents",
        "purchase_tax_rate",
        "sale_tax_rate",
        "stock_quantity",
        "minimum_stock_level",
        "is_active",
    )

    @property
    def purchase_price_with_tax_cents(self) -> int:
        return _with_tax(self.purchase_price_cents, self.purchase_tax_rate)

    @property
    def sale_price_with_tax_cents(self) -> int:
        return _with_tax(self.sale_price_cents, self.sale_tax_rate)

    @property
    def is_low_stock(self) -> bool:
        return (self.stock_quantity or 0) <= (self.minimum_stock_level or 0)

    def update_product(self, updated_by_user_id: int, **values: object) -> bool:
        changed = False

        for field in ("name", "code", "unit_of_measure"):
            value = values.get(field)
            if not _is_blank(value) and value != getattr(self, field):
                setattr(self, field, value)
                changed = True
        for field in ("description", "img_url"):
            if field in values and values[field] != getattr(self, field):
                setattr(self, field, values[field])
                changed = True
        for field in self.UPDATABLE:
            value = values.get(field)
            if value is not None and value != getattr(self, field):
                setattr(self, field, value)
                changed = True

        if changed:
            self.updated_by_user_id = updated_by_user_id
            self.touch()
        return changed

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.product_id,
            "salon_id": self.salon_id,
            "name": self.name,
            "code": self.code,
            "description": self.description,
            "purchase_price_cents": self.purchase_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "purchase_tax_rate": str(self.purchase_tax_rate) if self.purchase_tax_rate is not None else None,
            "sale_tax_rate": str(self.sale_tax_rate) if self.sale_tax_rate is not None else None,
            "purchase_price_with_tax_cents": self.purchase_price_with_tax_cents,
            "sale_price_with_tax_cents": self.sale_price_with_tax_cents,
            "stock_quantity": self.stock_quantity,
            "minimum_stock_level": self.minimum_stock_level,
            "is_low_stock": self.is_low_stock,
            "unit_of_measure": self.unit_of_measure,
            "is_active": bool(self.is_active),
            "img_url": self.img_url,
        }


class ServiceProductUsage(db.Model):
    __tablename__ = "service_product_usages"
    __table_args__ = (db.UniqueConstraint("service_id", "product_id", name="uq_service_product"),)

    usage_id = db.Column(db.Integer, primary_key=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.service_id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.product_id"), nullable=False)
    quantity_used = db.Column(db.Numeric(10, 3), nullable=False)

    service = db.relationship("Service", back_populates="product_usages")
    product = db.relationship("Product")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.usage_id,
            "service_id": self.service_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity_used": str(self.quantity_used),
        }


class Customer(TimestampMixin, db.Model):
    __tablename__ = "customers"

    customer_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False, index=True)
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    gender = _gender_column()
    phone_number = db.Column(db.String(30), nullable=False)
    email = db.Column(db.String(255))

    salon = db.relationship("Salon", back_populates="customers")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.customer_id,
            "salon_id": self.salon_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "gender": self.gender,
            "phone_number": self.phone_number,
            "email": self.email,
        }


class Appointment(TimestampMixin, db.Model):
    __tablename__ = "appointments"

    appointment_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.employee_id"), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.customer_id"), nullable=False)
    appointment_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    status = db.Column(
        db.Enum(*APPOINTMENT_STATUSES, name="appointment_status", native_enum=False, validate_strings=True),
        nullable=False,
        default="pending",
        server_default="pending",
    )
    notes = db.Column(db.String(500))

    salon = db.relationship("Salon", back_populates="appointments")
    employee = db.relationship("Employee")
    customer = db.relationship("Customer")
    appointment_services = db.relationship(
        "AppointmentService", back_populates="appointment", cascade="all, delete-orphan"
    )
    payments = db.relationship("Payment", back_populates="appointment", cascade="all, delete-orphan")

    @property
    def total_price_cents(self) -> int:
        return sum(item.price_cents for item in self.appointment_services)

    @property
    def paid_cents(self) -> int:
        return sum(payment.amount_cents for payment in self.payments if payment.status == "completed")

    @property
    def balance_cents(self) -> int:
        return max(self.total_price_cents - self.paid_cents, 0)

    @property
    def pending_cents(self) -> int:
        return sum(payment.amount_cents for payment in self.payments if payment.status == "pending")

    @property
    def outstanding_cents(self) -> int:
        """Balance not yet claimed by a completed or pending payment."""
        return max(self.total_price_cents - self.paid_cents - self.pending_cents, 0)

    @property
    def is_fully_paid(self) -> bool:
        return self.paid_cents >= self.total_price_cents

    @property
    def can_be_paid(self) -> bool:
        return self.status not in {"cancelled", "no_show"} and not self.is_fully_paid

    def add_service(self, service: Service) -> AppointmentService:
        item = AppointmentService(service=service, price_cents=service.price_cents)
        self.appointment_services.append(item)
        return item

    def change_status(self, new_status: str) -> None:
        if new_status not in APPOINTMENT_TRANSITIONS.get(self.status, set()):
            raise ConflictError(f"Cannot change appointment status from {self.status} to {new_status}.")
        self.status = new_status
        self.touch()

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.appointment_id,
            "salon_id": self.salon_id,
            "employee_id": self.employee_id,
            "customer_id": self.customer_id,
            "appointment_date": self.appointment_date.isoformat() if self.appointment_date else None,
            "start_time": self.start_time.strftime("%H:%M") if self.start_time else None,
            "end_time": self.end_time.strftime("%H:%M") if self.end_time else None,
            "status": self.status,
            "notes": self.notes,
            "total_price_cents": self.total_price_cents,
            "paid_cents": self.paid_cents,
            "balance_cents": self.balance_cents,
            "outstanding_cents": self.outstanding_cents,
            "is_fully_paid": self.is_fully_paid,
            "services": [item.to_dict() for item in self.appointment_services],
        }


class AppointmentService(db.Model):
    __tablename__ = "appointment_services"

    appointment_service_id = db.Column(db.Integer, primary_key=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.appointment_id"), nullable=False)
    service_id = db.Column(db.Integer, db.ForeignKey("services.service_id"), nullable=False)
    # Price at booking time; later catalog changes do not affect it.
    price_cents = db.Column(db.Integer, nullable=False)

    appointment = db.relationship("Appointment", back_populates="appointment_services")
    service = db.relationship("Service")

    def to_dict(self) -> dict[str, object]:
        return {
            "service_id": self.service_id,
            "name": self.service.name if self.service else None,
            "price_cents": self.price_cents,
        }


class Payment(TimestampMixin, db.Model):
    __tablename__ = "payments"

    payment_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False, index=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.appointment_id"), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.customer_id"), nullable=False, index=True)
    payment_date = db.Column(db.DateTime, nullable=False, default=utc_now)
    status = db.Column(
        db.Enum(*PAYMENT_STATUSES, name="payment_status", native_enum=False, validate_strings=True),
        nullable=False,
        default="pending",
        server_default="pending",
    )
    method = db.Column(
        db.Enum(*PAYMENT_METHODS, name="payment_method", native_enum=False, validate_strings=True),
        nullable=False,
    )
    amount_cents = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.String(500))
    gateway_payment_id = db.Column(db.String(255), unique=True)

    appointment = db.relationship("Appointment", back_populates="payments")
    customer = db.relationship("Customer")

    def change_status(self, new_status: str) -> None:
        if new_status not in PAYMENT_TRANSITIONS.get(self.status, set()):
            raise ConflictError(f"Cannot change payment status from {self.status} to {new_status}.")
        self.status = new_status
        self.touch()

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.payment_id,
            "salon_id": self.salon_id,
            "appointment_id": self.appointment_id,
            "customer_id": self.customer_id,
            "payment_date": self.payment_date.isoformat() if self.payment_date else None,
            "status": self.status,
            "method": self.method,
            "amount_cents": self.amount_cents,
            "notes": self.notes,
            "gateway_payment_id": self.gateway_payment_id,
        }
