"""Appointment payments, recorded at the desk or collected online through Stripe."""
from __future__ import annotations

from datetime import date

import stripe
from flask import current_app

from ..exceptions import BadRequestError, ConflictError, MissingConfigurationError, NotFoundError, PaymentGatewayError
from ..models import Appointment, Payment, utc_now
from ..repositories import AppointmentRepository, CustomerRepository, PaymentRepository
from ..schemas import CreateAppointmentPaymentRequest
from .salon_service import SalonService


class PaymentService:
    def __init__(
        self,
        payments: PaymentRepository | None = None,
        appointments: AppointmentRepository | None = None,
        customers: CustomerRepository | None = None,
        salon_service: SalonService | None = None,
    ) -> None:
        self.payments = payments or PaymentRepository()
        self.appointments = appointments or AppointmentRepository()
        self.customers = customers or CustomerRepository()
        self.salon_service = salon_service or SalonService()

    def _get_payable_appointment(self, appointment_id: int, user_id: int) -> Appointment:
        appointment = self.appointments.get_with_details_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found.")
        self.salon_service.get_accessible_salon(appointment.salon_id, user_id)
        if not appointment.can_be_paid:
            raise ConflictError("This appointment cannot be paid.")
        return appointment

    def create_appointment_payment(
        self, appointment_id: int, user_id: int, request: CreateAppointmentPaymentRequest
    ) -> Payment:
        appointment = self._get_payable_appointment(appointment_id, user_id)
        if request.amount_cents > appointment.outstanding_cents:
            raise BadRequestError(
                f"Amount exceeds the outstanding balance of {appointment.outstanding_cents} cents."
            )

        payment = Payment(
            salon_id=appointment.salon_id,
            appointment_id=appointment.appointment_id,
            customer_id=appointment.customer_id,
            payment_date=request.payment_date or utc_now(),
            method=request.method,
            amount_cents=request.amount_cents,
            notes=request.notes,
            status="pending",
        )
        self.payments.create(payment)
        self.payments.save_changes()
        current_app.logger.info("Recorded %s payment %s for appointment %s", payment.method, payment.payment_id, appointment_id)
        return payment

    def get_payment(self, payment_id: int, user_id: int) -> Payment:
        payment = self.payments.get_or_raise(payment_id, "Payment not found.")
        self.salon_service.get_accessible_salon(payment.salon_id, user_id)
        return payment

    def get_payments_for_appointment(self, appointment_id: int, user_id: int) -> list[Payment]:
        appointment = self.appointments.get_or_raise(appointment_id, "Appointment not found.")
        self.salon_service.get_accessible_salon(appointment.salon_id, user_id)
        return self.payments.get_for_appointment(appointment_id)

    def get_payments_for_customer(
        self,
        customer_id: int,
        user_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Payment]:
        customer = self.customers.get_or_raise(customer_id, "Customer not found.")
        self.salon_service.get_accessible_salon(customer.salon_id, user_id)
        if start_date and end_date and start_date > end_date:
            raise BadRequestError("start_date cannot be after end_date.")
        return self.payments.get_for_customer(customer_id, start_date, end_date)

    def update_payment_status(self, payment_id: int, user_id: int, status: str) -> Payment:
        payment = self.get_payment(payment_id, user_id)
        previous = payment.status
        if previous == "pending" and status == "completed":
            _ensure_within_total(payment, payment.amount_cents)
        payment.change_status(status)
        self.payments.save_changes()
        current_app.logger.info("Payment %s moved from %s to %s", payment_id, previous, status)
        return payment

    # --- Stripe ---

    def create_payment_intent(self, appointment_id: int, user_id: int) -> dict[str, object]:
        """Create a Stripe PaymentIntent for the outstanding balance.

        A pending online payment keyed by the intent id is recorded so the
        webhook can complete it later. While such a payment is still pending
        its intent is handed out again instead of opening a second one.
        """
        appointment = self._get_payable_appointment(appointment_id, user_id)

        stripe_key = current_app.config.get("STRIPE_SECRET_KEY")
        if not stripe_key:
            current_app.logger.warning("Stripe secret key not configured")
            raise MissingConfigurationError("Payments are not currently available. Please contact support.")

        stripe.api_key = stripe_key
        existing = next(
            (
                payment
                for payment in appointment.payments
                if payment.method == "online" and payment.status == "pending" and payment.gateway_payment_id
            ),
            None,
        )
        if existing is None and appointment.outstanding_cents <= 0:
            raise ConflictError("Pending payments already cover the outstanding balance.")

        try:
            if existing is not None:
                intent = stripe.PaymentIntent.retrieve(existing.gateway_payment_id)
            else:
                intent = stripe.PaymentIntent.create(
                    amount=int(appointment.outstanding_cents),
                    currency=current_app.config.get("STRIPE_CURRENCY", "usd"),
                    metadata={
                        "appointment_id": str(appointment.appointment_id),
                        "salon_id": str(appointment.salon_id),
                        "customer_id": str(appointment.customer_id),
                    },
                )
        except stripe.StripeError as exc:
            current_app.logger.exception("Stripe API error while creating payment intent", exc_info=exc)
            raise PaymentGatewayError("An error occurred while processing the payment.") from exc

        payment = existing
        if payment is None:
            payment = Payment(
                salon_id=appointment.salon_id,
                appointment_id=appointment.appointment_id,
                customer_id=appointment.customer_id,
                method="online",
                amount_cents=int(appointment.outstanding_cents),
                gateway_payment_id=intent.id,
                status="pending",
            )
            self.payments.create(payment)
            self.payments.save_changes()
        return {
            "client_secret": intent.client_secret,
            "payment_intent_id": intent.id,
            "payment": payment.to_dict(),
        }

    def handle_webhook(self, payload: bytes, signature: str | None) -> str | None:
        """Verify and apply a Stripe webhook event; returns the event type handled."""
        webhook_secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
        if not webhook_secret:
            current_app.logger.error("Stripe webhook secret not configured - webhooks will not be processed")
            return None

        try:
            event = stripe.Webhook.construct_event(payload, signature, webhook_secret)
        except ValueError as exc:
            current_app.logger.warning("Invalid webhook payload")
            raise BadRequestError("Invalid webhook payload.") from exc
        except stripe.SignatureVerificationError as exc:
            current_app.logger.warning("Invalid signature for webhook")
            raise BadRequestError("Invalid webhook signature.") from exc

        event_type = event.get("type")
        data = event.get("data", {}).get("object", {}) or {}
        if event_type == "payment_intent.succeeded":
            self._settle_intent(data.get("id"), "completed", data.get("amount"))
        elif event_type == "payment_intent.payment_failed":
            self._settle_intent(data.get("id"), "failed")
        return event_type

    def _settle_intent(self, payment_intent_id: str | None, status: str, amount: int | None = None) -> None:
        payment = self.payments.get_by_gateway_payment_id(payment_intent_id) if payment_intent_id else None
        if payment is None:
            current_app.logger.info("Webhook for unknown payment intent %s; skipping", payment_intent_id)
            return
        if payment.status != "pending":
            return

        if status == "completed":
            amount_cents = int(amount) if amount else payment.amount_cents
            try:
                _ensure_within_total(payment, amount_cents)
            except ConflictError:
                current_app.logger.warning(
                    "Payment intent %s would overpay appointment %s; leaving payment %s pending",
                    payment_intent_id,
                    payment.appointment_id,
                    payment.payment_id,
                )
                return
            payment.amount_cents = amount_cents
        payment.change_status(status)
        self.payments.save_changes()
        current_app.logger.info("Payment %s marked %s from webhook", payment.payment_id, status)


def _ensure_within_total(payment: Payment, amount_cents: int) -> None:
    appointment = payment.appointment
    if appointment.paid_cents + amount_cents > appointment.total_price_cents:
        raise ConflictError("Completing this payment would exceed the appointment total.")
