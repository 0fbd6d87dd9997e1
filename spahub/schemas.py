"""Request validators for the JSON API.

Every field is optional at the type level so that missing values reach the
field validators and produce readable "X is required." messages instead of
pydantic's generic ones. :func:`parse_request` turns a failed validation into
a :class:`RequestValidationError` with errors grouped by field.
"""
from __future__ import annotations

import re
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from .exceptions import RequestValidationError
from .models import APPOINTMENT_STATUSES, EMPLOYMENT_STATUSES, GENDERS, PAYMENT_STATUSES
from .specifications import is_absolute_url, is_valid_email

RequestT = TypeVar("RequestT", bound=BaseModel)

PHONE_PATTERN = re.compile(r"^\d{9,15}$")
PERSON_NAME_PATTERN = re.compile(r"^[A-Za-z]+(?:\s[A-Za-z]+)*$")
SALON_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9 ]*$")
EMPLOYEE_CODE_PATTERN = re.compile(r"^[A-Za-z0-9]{1,10}$")
CATALOG_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,20}$")
COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")
PASSWORD_SPECIAL_CHARACTERS = "!?*."


def _years_since(value: date, today: date | None = None) -> int:
    today = today or date.today()
    years = today.year - value.year
    if (today.month, today.day) < (value.month, value.day):
        years -= 1
    return years


def _require(value: Any, label: str) -> Any:
    if value is None or (isinstance(value, str) and not value):
        raise ValueError(f"{label} is required.")
    return value


def check_email(value: str | None, label: str = "Email", required: bool = True) -> str | None:
    if value is None or value == "":
        if required:
            raise ValueError(f"{label} is required.")
        return None
    if not is_valid_email(value):
        raise ValueError("Invalid email address.")
    return value.lower()


def check_phone_number(value: str | None, required: bool = True) -> str | None:
    if value is None or value == "":
        if required:
            raise ValueError("Phone number is required.")
        return None
    if not PHONE_PATTERN.match(value):
        raise ValueError("Phone number must contain between 9 and 15 digits.")
    return value


def check_password(value: str | None, label: str = "Password") -> str:
    _require(value, label)
    if len(value) < 8:
        raise ValueError(f"{label} must be at least 8 characters long.")
    if not re.search(r"[A-Z]", value):
        raise ValueError(f"{label} must contain at least one uppercase letter.")
    if not re.search(r"[a-z]", value):
        raise ValueError(f"{label} must contain at least one lowercase letter.")
    if not re.search(r"\d", value):
        raise ValueError(f"{label} must contain at least one number.")
    if not any(char in PASSWORD_SPECIAL_CHARACTERS for char in value):
        raise ValueError(f"{label} must contain at least one special character ({PASSWORD_SPECIAL_CHARACTERS}).")
    return value


def check_person_name(value: str | None, label: str, required: bool = True) -> str | None:
    if value is None or value == "":
        if required:
            raise ValueError(f"{label} is required.")
        return None
    if not 2 <= len(value) <= 50:
        raise ValueError(f"{label} must be between 2 and 50 characters.")
    if not PERSON_NAME_PATTERN.match(value):
        raise ValueError(f"{label} can only contain letters and spaces.")
    return value


def check_gender(value: str | None, required: bool = True) -> str | None:
    if value is None or value == "":
        if required:
            raise ValueError("Gender is required.")
        return None
    normalized = value.strip().lower()
    if normalized not in GENDERS:
        raise ValueError("Gender must be one of: " + ", ".join(GENDERS) + ".")
    return normalized


def check_date_of_birth(value: date | None, required: bool = True, minimum_age: int = 0) -> date | None:
    if value is None:
        if required:
            raise ValueError("Date of birth is required.")
        return None
    if value > date.today():
        raise ValueError("Date of birth cannot be in the future.")
    if minimum_age and _years_since(value) < minimum_age:
        raise ValueError(f"Must be at least {minimum_age} years old.")
    return value


def check_max_length(value: str | None, label: str, limit: int) -> str | None:
    if value is not None and len(value) > limit:
        raise ValueError(f"{label} cannot exceed {limit} characters.")
    return value or None


def check_img_url(value: str | None) -> str | None:
    if not value:
        return None
    if not is_absolute_url(value):
        raise ValueError("Image URL must be a valid absolute URL.")
    return value


def check_rate(value: Decimal | None, label: str) -> Decimal:
    _require(value, label)
    if value < 0 or value > 1:
        raise ValueError(f"{label} must be between 0 and 1.")
    return value


def check_non_negative(value: int | None, label: str) -> int:
    _require(value, label)
    if value < 0:
        raise ValueError(f"{label} must be greater than or equal to 0.")
    return value


def format_errors(exc: ValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "request"
        message = error.get("msg", "Invalid value.")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, []).append(message)
    return errors


def parse_request(model: type[RequestT], payload: Any) -> RequestT:
    """Validate ``payload`` against ``model`` or raise RequestValidationError."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise RequestValidationError({"request": ["Request body must be a JSON object."]})
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise RequestValidationError(format_errors(exc)) from exc


class RequestModel(BaseModel):
    model_config = ConfigDict(validate_default=True, str_strip_whitespace=True, extra="ignore")


# --- Auth and account ---


class SignInRequest(RequestModel):
    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _email(cls, value):
        return check_email(value)

    @field_validator("password")
    @classmethod
    def _password(cls, value):
        return _require(value, "Password")


class RegisterRequest(RequestModel):
    email: Optional[str] = None
    password: Optional[str] = None
    phone_number: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None

    @field_validator("email")
    @classmethod
    def _email(cls, value):
        return check_email(value)

    @field_validator("password")
    @classmethod
    def _password(cls, value):
        return check_password(value)

    @field_validator("phone_number")
    @classmethod
    def _phone(cls, value):
        return check_phone_number(value)

    @field_validator("first_name")
    @classmethod
    def _first_name(cls, value):
        return check_person_name(value, "First name")

    @field_validator("last_name")
    @classmethod
    def _last_name(cls, value):
        return check_person_name(value, "Last name")

    @field_validator("gender")
    @classmethod
    def _gender(cls, value):
        return check_gender(value)

    @field_validator("date_of_birth")
    @classmethod
    def _date_of_birth(cls, value):
        return check_date_of_birth(value)


class RefreshRequest(RequestModel):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @field_validator("access_token")
    @classmethod
    def _access_token(cls, value):
        return _require(value, "Access token")

    @field_validator("refresh_token")
    @classmethod
    def _refresh_token(cls, value):
        return _require(value, "Refresh token")


class SendConfirmationEmailRequest(RequestModel):
    email: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _email(cls, value):
        return check_email(value)


class SendResetPasswordTokenRequest(SendConfirmationEmailRequest):
    pass


class ConfirmEmailRequest(SendConfirmationEmailRequest):
    token: Optional[str] = None

    @field_validator("token")
    @classmethod
    def _token(cls, value):
        return _require(value, "Token")


class ChangeEmailRequest(RequestModel):
    new_email: Optional[str] = None

    @field_validator("new_email")
    @classmethod
    def _new_email(cls, value):
        return check_email(value, "New email")


class ConfirmationChangeEmailRequest(ChangeEmailRequest):
    token: Optional[str] = None

    @field_validator("token")
    @classmethod
    def _token(cls, value):
        return _require(value, "Token")


class ChangePasswordRequest(RequestModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None

    @field_validator("current_password")
    @classmethod
    def _current_password(cls, value):
        return _require(value, "Current password")

    @field_validator("new_password")
    @classmethod
    def _new_password(cls, value):
        return check_password(value, "New password")

    @model_validator(mode="after")
    def _passwords_differ(self):
        if self.current_password == self.new_password:
            raise ValueError("New password must be different from the current password.")
        return self


class ResetPasswordRequest(ConfirmEmailRequest):
    new_password: Optional[str] = None

    @field_validator("new_password")
    @classmethod
    def _new_password(cls, value):
        return check_password(value, "New password")


class UpdateProfileRequest(RequestModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None

    @field_validator("first_name")
    @classmethod
    def _first_name(cls, value):
        return check_person_name(value, "First name", required=False)

    @field_validator("last_name")
    @classmethod
    def _last_name(cls, value):
        return check_person_name(value, "Last name", required=False)

    @field_validator("gender")
    @classmethod
    def _gender(cls, value):
        return check_gender(value, required=False)

    @field_validator("date_of_birth")
    @classmethod
    def _date_of_birth(cls, value):
        return check_date_of_birth(value, required=False)


# --- Salons ---


class CreateSalonRequest(RequestModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name(cls, value):
        _require(value, "Salon name")
        if not 2 <= len(value) <= 30:
            raise ValueError("Salon name must be between 2 and 30 characters.")
        if not SALON_NAME_PATTERN.match(value):
            raise ValueError("Salon name can only contain letters, numbers and spaces.")
        return value

    @field_validator("email")
    @classmethod
    def _email(cls, value):
        return check_email(value)

    @field_validator("phone_number")
    @classmethod
    def _phone(cls, value):
        return check_phone_number(value)


class UpdateSalonDetailsRequest(CreateSalonRequest):
    description: Optional[str] = None

    @field_validator("description")
    @classmethod
    def _description(cls, value):
        return check_max_length(value, "Description", 1000)


class OpeningHoursRequest(RequestModel):
    day_of_week: Optional[int] = None
    opening_time: Optional[time] = None
    closing_time: Optional[time] = None
    is_closed: bool = False

    @field_validator("day_of_week")
    @classmethod
    def _day_of_week(cls, value):
        _require(value, "Day of week")
        if not 0 <= value <= 6:
            raise ValueError("Day of week must be between 0 (Sunday) and 6 (Saturday).")
        return value

    @field_validator("opening_time")
    @classmethod
    def _opening_time(cls, value):
        return _require(value, "Opening time")

    @field_validator("closing_time")
    @classmethod
    def _closing_time(cls, value):
        return _require(value, "Closing time")

    @model_validator(mode="after")
    def _closing_after_opening(self):
        if not self.is_closed and self.closing_time <= self.opening_time:
            raise ValueError("Closing time must be after opening time.")
        return self


class UpdateSalonOpeningHoursRequest(RequestModel):
    opening_hours: Optional[list[OpeningHoursRequest]] = None

    @field_validator("opening_hours")
    @classmethod
    def _opening_hours(cls, value):
        if not value:
            raise ValueError("At least one day of opening hours is required.")
        days = [entry.day_of_week for entry in value]
        if len(days) != len(set(days)):
            raise ValueError("Each day of week can only appear once.")
        return value


class AddressRequest(RequestModel):
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    street: Optional[str] = None
    building_number: Optional[str] = None

    @field_validator("country", "region", "city", "street")
    @classmethod
    def _text(cls, value, info):
        label = info.field_name.replace("_", " ").capitalize()
        _require(value, label)
        return check_max_length(value, label, 100)

    @field_validator("postal_code", "building_number")
    @classmethod
    def _short_text(cls, value, info):
        label = info.field_name.replace("_", " ").capitalize()
        _require(value, label)
        return check_max_length(value, label, 20)


# --- Employees ---


class UpdateEmployeeRequest(RequestModel):
    position: Optional[str] = None
    code: Optional[str] = None
    employment_status: Optional[str] = "active"
    color: Optional[str] = None
    hire_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("position")
    @classmethod
    def _position(cls, value):
        _require(value, "Position")
        return check_max_length(value, "Position", 50)

    @field_validator("code")
    @classmethod
    def _code(cls, value):
        _require(value, "Employee code")
        if not EMPLOYEE_CODE_PATTERN.match(value):
            raise ValueError("Employee code must be 1 to 10 letters or digits.")
        return value

    @field_validator("employment_status")
    @classmethod
    def _employment_status(cls, value):
        if value not in EMPLOYMENT_STATUSES:
            raise ValueError("Employment status must be one of: " + ", ".join(EMPLOYMENT_STATUSES) + ".")
        return value

    @field_validator("color")
    @classmethod
    def _color(cls, value):
        if value and not COLOR_PATTERN.match(value):
            raise ValueError("Color must be a hex value like #A1B2C3.")
        return value or None

    @field_validator("hire_date")
    @classmethod
    def _hire_date(cls, value):
        _require(value, "Hire date")
        if value > date.today():
            raise ValueError("Hire date cannot be in the future.")
        if _years_since(value) > 50:
            raise ValueError("Hire date cannot be more than 50 years ago.")
        return value

    @field_validator("notes")
    @classmethod
    def _notes(cls, value):
        return check_max_length(value, "Notes", 500)


class UpdateEmployeeProfileRequest(RequestModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None

    @field_validator("first_name")
    @classmethod
    def _first_name(cls, value):
        return check_person_name(value, "First name")

    @field_validator("last_name")
    @classmethod
    def _last_name(cls, value):
        return check_person_name(value, "Last name")

    @field_validator("gender")
    @classmethod
    def _gender(cls, value):
        return check_gender(value)

    @field_validator("date_of_birth")
    @classmethod
    def _date_of_birth(cls, value):
        return check_date_of_birth(value, minimum_age=16)

    @field_validator("email")
    @classmethod
    def _email(cls, value):
        return check_email(value)

    @field_validator("phone_number")
    @classmethod
    def _phone(cls, value):
        return check_phone_number(value)


class CreateEmployeeRequest(UpdateEmployeeRequest, UpdateEmployeeProfileRequest):
    user_id: Optional[int] = None

    @field_validator("user_id")
    @classmethod
    def _user_id(cls, value):
        return _require(value, "User ID")


# --- Catalog ---


class ServiceRequest(RequestModel):
    name: Optional[str] = None
    code: Optional[str] = None
    description: Optional[str] = None
    price_cents: Optional[int] = None
    tax_rate: Optional[Decimal] = Decimal("0")
    duration_minutes: Optional[int] = None
    img_url: Optional[str] = None
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def _name(cls, value):
        _require(value, "Service name")
        return check_max_length(value, "Service name", 100)

    @field_validator("code")
    @classmethod
    def _code(cls, value):
        _require(value, "Service code")
        if not CATALOG_CODE_PATTERN.match(value):
            raise ValueError("Service code must be 1 to 20 letters, digits, '-' or '_'.")
        return value

    @field_validator("description")
    @classmethod
    def _description(cls, value):
        return check_max_length(value, "Description", 500)

    @field_validator("price_cents")
    @classmethod
    def _price(cls, value):
        return check_non_negative(value, "Price")

    @field_validator("tax_rate")
    @classmethod
    def _tax_rate(cls, value):
        return check_rate(value, "Tax rate")

    @field_validator("duration_minutes")
    @classmethod
    def _duration(cls, value):
        _require(value, "Duration")
        if not 0 < value <= 480:
            raise ValueError("Duration must be between 1 and 480 minutes.")
        return value

    @field_validator("img_url")
    @classmethod
    def _img_url(cls, value):
        return check_img_url(value)


class CreateServiceRequest(ServiceRequest):
    pass


class UpdateServiceRequest(ServiceRequest):
    pass


class ProductRequest(RequestModel):
    name: Optional[str] = None
    code: Optional[str] = None
    description: Optional[str] = None
    purchase_price_cents: Optional[int] = 0
    sale_price_cents: Optional[int] = None
    purchase_tax_rate: Optional[Decimal] = Decimal("0")
    sale_tax_rate: Optional[Decimal] = Decimal("0")
    stock_quantity: Optional[int] = 0
    minimum_stock_level: Optional[int] = 0
    unit_of_measure: Optional[str] = None
    is_active: bool = True
    img_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name(cls, value):
        _require(value, "Product name")
        return check_max_length(value, "Product name", 100)

    @field_validator("code")
    @classmethod
    def _code(cls, value):
        _require(value, "Product code")
        if not CATALOG_CODE_PATTERN.match(value):
            raise ValueError("Product code must be 1 to 20 letters, digits, '-' or '_'.")
        return value

    @field_validator("description")
    @classmethod
    def _description(cls, value):
        return check_max_length(value, "Description", 500)

    @field_validator("purchase_price_cents", "sale_price_cents", "stock_quantity", "minimum_stock_level")
    @classmethod
    def _non_negative(cls, value, info):
        return check_non_negative(value, info.field_name.replace("_cents", "").replace("_", " ").capitalize())

    @field_validator("purchase_tax_rate", "sale_tax_rate")
    @classmethod
    def _rates(cls, value, info):
        return check_rate(value, info.field_name.replace("_", " ").capitalize())

    @field_validator("unit_of_measure")
    @classmethod
    def _unit(cls, value):
        _require(value, "Unit of measure")
        return check_max_length(value, "Unit of measure", 20)

    @field_validator("img_url")
    @classmethod
    def _img_url(cls, value):
        return check_img_url(value)


class CreateProductRequest(ProductRequest):
    pass


class UpdateProductRequest(ProductRequest):
    pass


class AddServiceProductUsageRequest(RequestModel):
    product_id: Optional[int] = None
    quantity_used: Optional[Decimal] = None

    @field_validator("product_id")
    @classmethod
    def _product_id(cls, value):
        return _require(value, "Product ID")

    @field_validator("quantity_used")
    @classmethod
    def _quantity(cls, value):
        _require(value, "Quantity used")
        if value <= 0:
            raise ValueError("Quantity used must be greater than 0.")
        return value


# --- Customers, appointments and payments ---


class CreateCustomerRequest(RequestModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = "other"
    phone_number: Optional[str] = None
    email: Optional[str] = None

    @field_validator("first_name")
    @classmethod
    def _first_name(cls, value):
        return check_person_name(value, "First name")

    @field_validator("last_name")
    @classmethod
    def _last_name(cls, value):
        return check_person_name(value, "Last name")

    @field_validator("gender")
    @classmethod
    def _gender(cls, value):
        return check_gender(value)

    @field_validator("phone_number")
    @classmethod
    def _phone(cls, value):
        return check_phone_number(value)

    @field_validator("email")
    @classmethod
    def _email(cls, value):
        return check_email(value, required=False)


class CreateAppointmentRequest(RequestModel):
    employee_id: Optional[int] = None
    customer_id: Optional[int] = None
    appointment_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    service_ids: Optional[list[int]] = None
    notes: Optional[str] = None

    @field_validator("employee_id")
    @classmethod
    def _employee_id(cls, value):
        return _require(value, "Employee ID")

    @field_validator("customer_id")
    @classmethod
    def _customer_id(cls, value):
        return _require(value, "Customer ID")

    @field_validator("appointment_date")
    @classmethod
    def _appointment_date(cls, value):
        return _require(value, "Appointment date")

    @field_validator("start_time")
    @classmethod
    def _start_time(cls, value):
        return _require(value, "Start time")

    @field_validator("end_time")
    @classmethod
    def _end_time(cls, value):
        return _require(value, "End time")

    @field_validator("service_ids")
    @classmethod
    def _service_ids(cls, value):
        if not value:
            raise ValueError("At least one service is required.")
        if len(value) != len(set(value)):
            raise ValueError("Services cannot be repeated.")
        return value

    @field_validator("notes")
    @classmethod
    def _notes(cls, value):
        return check_max_length(value, "Notes", 500)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time.")
        return self


class UpdateAppointmentStatusRequest(RequestModel):
    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def _status(cls, value):
        _require(value, "Status")
        if value not in APPOINTMENT_STATUSES:
            raise ValueError("Status must be one of: " + ", ".join(APPOINTMENT_STATUSES) + ".")
        return value


class CreateAppointmentPaymentRequest(RequestModel):
    method: Optional[str] = None
    amount_cents: Optional[int] = None
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("method")
    @classmethod
    def _method(cls, value):
        _require(value, "Payment method")
        if value not in ("cash", "card"):
            raise ValueError("Payment method must be cash or card.")
        return value

    @field_validator("amount_cents")
    @classmethod
    def _amount(cls, value):
        _require(value, "Amount")
        if value <= 0:
            raise ValueError("Amount must be greater than 0.")
        return value

    @field_validator("notes")
    @classmethod
    def _notes(cls, value):
        return check_max_length(value, "Notes", 500)


class UpdatePaymentStatusRequest(RequestModel):
    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def _status(cls, value):
        _require(value, "Status")
        if value not in PAYMENT_STATUSES:
            raise ValueError("Status must be one of: " + ", ".join(PAYMENT_STATUSES) + ".")
        return value


# --- JSON Patch ---


class PatchOperation(RequestModel):
    op: Optional[str] = None
    path: Optional[str] = None
    value: Any = None

    @field_validator("op")
    @classmethod
    def _op(cls, value):
        _require(value, "Operation")
        if value.lower() != "replace":
            raise ValueError("Only 'replace' operations are supported.")
        return "replace"

    @field_validator("path")
    @classmethod
    def _path(cls, value):
        _require(value, "Path")
        if not value.startswith("/") or len(value) < 2:
            raise ValueError("Path must look like '/field_name'.")
        return value
