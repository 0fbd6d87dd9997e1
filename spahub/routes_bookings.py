"""Customer, appointment and payment routes, including the Stripe webhook."""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from .models import ROLE_ADMIN, ROLE_EMPLOYEE, ROLE_MANAGER
from .responses import json_payload, query_date, query_str
from .schemas import (
    CreateAppointmentPaymentRequest,
    CreateAppointmentRequest,
    CreateCustomerRequest,
    UpdateAppointmentStatusRequest,
    UpdatePaymentStatusRequest,
    parse_request,
)
from .security import auth_required, current_user_id
from .services import AppointmentService, CustomerService, PaymentService

bp = Blueprint("bookings", __name__)

STAFF_ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_EMPLOYEE)


# --- Customers ---


@bp.post("/salons/<int:salon_id>/customers")
@auth_required(*STAFF_ROLES)
def create_customer(salon_id: int) -> tuple[dict[str, object], int]:
    """Register a customer with the salon.
    ---
    tags:
      - Customers
    security:
      - Bearer: []
    responses:
      201:
        description: Customer created
      400:
        description: Validation failed
      403:
        description: No access to the salon
    """
    data = parse_request(CreateCustomerRequest, json_payload())
    customer = CustomerService().create_customer(salon_id, current_user_id(), data)
    return jsonify({"customer": customer.to_dict()}), 201


@bp.get("/salons/<int:salon_id>/customers")
@auth_required(*STAFF_ROLES)
def list_customers(salon_id: int) -> tuple[dict[str, object], int]:
    customers = CustomerService().list_customers(salon_id, current_user_id(), query_str("search"))
    return jsonify({"customers": [customer.to_dict() for customer in customers]}), 200


@bp.get("/customers/<int:customer_id>")
@auth_required(*STAFF_ROLES)
def get_customer(customer_id: int) -> tuple[dict[str, object], int]:
    customer = CustomerService().get_customer(customer_id, current_user_id())
    return jsonify({"customer": customer.to_dict()}), 200


@bp.get("/customers/<int:customer_id>/payments")
@auth_required(ROLE_ADMIN, ROLE_MANAGER)
def list_customer_payments(customer_id: int) -> tuple[dict[str, object], int]:
    """List a customer's payments, optionally between ``start_date`` and ``end_date``.
    ---
    tags:
      - Payments
    security:
      - Bearer: []
    parameters:
      - name: start_date
        in: query
        type: string
        format: date
      - name: end_date
        in: query
        type: string
        format: date
    responses:
      200:
        description: Payments, newest first
      400:
        description: Invalid date range
    """
    payments = PaymentService().get_payments_for_customer(
        customer_id,
        current_user_id(),
        start_date=query_date("start_date"),
        end_date=query_date("end_date"),
    )
    return jsonify({"payments": [payment.to_dict() for payment in payments]}), 200


# --- Appointments ---


@bp.post("/salons/<int:salon_id>/appointments")
@auth_required(*STAFF_ROLES)
def create_appointment(salon_id: int) -> tuple[dict[str, object], int]:
    """Book an appointment for a customer with one employee and one or more services.
    ---
    tags:
      - Appointments
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            employee_id:
              type: integer
            customer_id:
              type: integer
            appointment_date:
              type: string
              format: date
            start_time:
              type: string
              example: "10:00"
            end_time:
              type: string
              example: "11:00"
            service_ids:
              type: array
              items:
                type: integer
            notes:
              type: string
    responses:
      201:
        description: Appointment booked with status pending
      400:
        description: Validation failed or resources from another salon
      404:
        description: Employee or customer not found
    """
    data = parse_request(CreateAppointmentRequest, json_payload())
    appointment = AppointmentService().create_appointment(salon_id, current_user_id(), data)
    return jsonify({"appointment": appointment.to_dict()}), 201


@bp.get("/salons/<int:salon_id>/appointments")
@auth_required(*STAFF_ROLES)
def list_appointments(salon_id: int) -> tuple[dict[str, object], int]:
    employee_id = request.args.get("employee_id", type=int)
    appointments = AppointmentService().list_appointments(
        salon_id,
        current_user_id(),
        date_from=query_date("date_from"),
        date_to=query_date("date_to"),
        employee_id=employee_id,
        status=query_str("status"),
    )
    return jsonify({"appointments": [appointment.to_dict() for appointment in appointments]}), 200


@bp.get("/appointments/<int:appointment_id>")
@auth_required(*STAFF_ROLES)
def get_appointment(appointment_id: int) -> tuple[dict[str, object], int]:
    appointment = AppointmentService().get_appointment(appointment_id, current_user_id())
    return jsonify({"appointment": appointment.to_dict()}), 200


@bp.put("/appointments/<int:appointment_id>/status")
@auth_required(*STAFF_ROLES)
def update_appointment_status(appointment_id: int) -> tuple[dict[str, object], int]:
    """Move an appointment to a new status.
    ---
    tags:
      - Appointments
    security:
      - Bearer: []
    responses:
      200:
        description: Status updated
      400:
        description: Unknown status
      409:
        description: Transition not allowed from the current status
    """
    data = parse_request(UpdateAppointmentStatusRequest, json_payload())
    appointment = AppointmentService().change_status(appointment_id, current_user_id(), data.status)
    return jsonify({"appointment": appointment.to_dict()}), 200


# --- Payments ---


@bp.post("/appointments/<int:appointment_id>/payments")
@auth_required(*STAFF_ROLES)
def create_appointment_payment(appointment_id: int) -> tuple[dict[str, object], int]:
    """Record a cash or card payment against an appointment.
    ---
    tags:
      - Payments
    security:
      - Bearer: []
    responses:
      201:
        description: Payment recorded with status pending
      400:
        description: Validation failed or amount exceeds balance
      409:
        description: Appointment cannot be paid
    """
    data = parse_request(CreateAppointmentPaymentRequest, json_payload())
    payment = PaymentService().create_appointment_payment(appointment_id, current_user_id(), data)
    return jsonify({"payment": payment.to_dict()}), 201


@bp.get("/appointments/<int:appointment_id>/payments")
@auth_required(*STAFF_ROLES)
def list_appointment_payments(appointment_id: int) -> tuple[dict[str, object], int]:
    payments = PaymentService().get_payments_for_appointment(appointment_id, current_user_id())
    return jsonify({"payments": [payment.to_dict() for payment in payments]}), 200


@bp.post("/appointments/<int:appointment_id>/payment-intent")
@auth_required(*STAFF_ROLES)
def create_payment_intent(appointment_id: int) -> tuple[dict[str, object], int]:
    """Create a Stripe PaymentIntent for the appointment's outstanding balance.
    ---
    tags:
      - Payments
    security:
      - Bearer: []
    responses:
      200:
        description: Client secret for completing the payment
      409:
        description: Appointment cannot be paid
      500:
        description: Payments not configured
      502:
        description: Stripe error
    """
    return jsonify(PaymentService().create_payment_intent(appointment_id, current_user_id())), 200


@bp.get("/payments/<int:payment_id>")
@auth_required(*STAFF_ROLES)
def get_payment(payment_id: int) -> tuple[dict[str, object], int]:
    payment = PaymentService().get_payment(payment_id, current_user_id())
    return jsonify({"payment": payment.to_dict()}), 200


@bp.put("/payments/<int:payment_id>/status")
@auth_required(ROLE_ADMIN, ROLE_MANAGER)
def update_payment_status(payment_id: int) -> tuple[dict[str, object], int]:
    data = parse_request(UpdatePaymentStatusRequest, json_payload())
    payment = PaymentService().update_payment_status(payment_id, current_user_id(), data.status)
    return jsonify({"payment": payment.to_dict()}), 200


@bp.post("/stripe-webhook")
def stripe_webhook():
    """Stripe webhook endpoint to receive asynchronous events.
    ---
    tags:
      - Payments
    parameters:
      - name: Stripe-Signature
        in: header
        required: true
        type: string
    responses:
      200:
        description: Webhook event received and processed
      400:
        description: Invalid payload or signature
    """
    PaymentService().handle_webhook(request.get_data(), request.headers.get("Stripe-Signature"))
    # Always acknowledge so Stripe stops retrying
    return jsonify({"received": True}), 200
