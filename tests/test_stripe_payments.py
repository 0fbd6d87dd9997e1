"""Tests for online payments through Stripe payment intents and webhooks."""
from __future__ import annotations

from datetime import date, time
from types import SimpleNamespace
from unittest.mock import patch

import pytest
import stripe

from spahub.extensions import db
from spahub.models import ROLE_EMPLOYEE, Appointment, Customer, Employee, Payment, Service


@pytest.fixture
def appointment_id(salon, owner, make_user) -> int:
    staff = make_user("staff@example.com", roles=(ROLE_EMPLOYEE,))
    employee = Employee(
        salon_id=salon.salon_id,
        user_id=staff.user_id,
        position="Therapist",
        code="TH1",
        employment_status="active",
        hire_date=date(2021, 6, 1),
    )
    customer = Customer(
        salon_id=salon.salon_id, first_name="Carla", last_name="Client", gender="female", phone_number="555000111"
    )
    facial = Service(
        salon_id=salon.salon_id, name="Facial", code="FC", price_cents=5000, duration_minutes=50,
        created_by_user_id=owner.user_id,
    )
    db.session.add_all([employee, customer, facial])
    db.session.flush()

    appointment = Appointment(
        salon_id=salon.salon_id,
        employee_id=employee.employee_id,
        customer_id=customer.customer_id,
        appointment_date=date(2030, 5, 1),
        start_time=time(10, 0),
        end_time=time(11, 0),
    )
    appointment.add_service(facial)
    db.session.add(appointment)
    db.session.commit()
    return appointment.appointment_id


def _use_real_errors(mock_stripe) -> None:
    mock_stripe.StripeError = stripe.StripeError
    mock_stripe.SignatureVerificationError = stripe.SignatureVerificationError


def _succeeded_event(intent_id: str, amount: int) -> dict[str, object]:
    return {"type": "payment_intent.succeeded", "data": {"object": {"id": intent_id, "amount": amount}}}


@patch("spahub.services.payment_service.stripe")
def test_create_payment_intent(mock_stripe, client, appointment_id, owner_headers) -> None:
    _use_real_errors(mock_stripe)
    mock_stripe.PaymentIntent.create.return_value = SimpleNamespace(id="pi_123", client_secret="secret_123")

    response = client.post(f"/appointments/{appointment_id}/payment-intent", headers=owner_headers)

    assert response.status_code == 200
    data = response.get_json()
    assert data["client_secret"] == "secret_123"
    assert data["payment"]["method"] == "online"
    assert data["payment"]["status"] == "pending"
    assert data["payment"]["gateway_payment_id"] == "pi_123"

    kwargs = mock_stripe.PaymentIntent.create.call_args.kwargs
    assert kwargs["amount"] == 5000
    assert kwargs["currency"] == "usd"
    assert kwargs["metadata"]["appointment_id"] == str(appointment_id)


@patch("spahub.services.payment_service.stripe")
def test_create_payment_intent_stripe_error(mock_stripe, client, appointment_id, owner_headers) -> None:
    _use_real_errors(mock_stripe)
    mock_stripe.PaymentIntent.create.side_effect = stripe.StripeError("card network down")

    response = client.post(f"/appointments/{appointment_id}/payment-intent", headers=owner_headers)

    assert response.status_code == 502
    assert response.get_json()["error"] == "payment_error"
    assert Payment.query.count() == 0


def test_create_payment_intent_without_stripe_key(app, client, appointment_id, owner_headers) -> None:
    app.config["STRIPE_SECRET_KEY"] = None

    response = client.post(f"/appointments/{appointment_id}/payment-intent", headers=owner_headers)

    assert response.status_code == 500
    assert response.get_json()["error"] == "configuration_error"


@patch("spahub.services.payment_service.stripe")
def test_webhook_completes_payment(mock_stripe, client, appointment_id, owner_headers) -> None:
    _use_real_errors(mock_stripe)
    mock_stripe.PaymentIntent.create.return_value = SimpleNamespace(id="pi_123", client_secret="secret_123")
    payment_id = client.post(
        f"/appointments/{appointment_id}/payment-intent", headers=owner_headers
    ).get_json()["payment"]["id"]
    mock_stripe.Webhook.construct_event.return_value = _succeeded_event("pi_123", 4800)

    response = client.post("/stripe-webhook", data=b"{}", headers={"Stripe-Signature": "t=1,v1=abc"})

    assert response.status_code == 200
    assert response.get_json() == {"received": True}
    mock_stripe.Webhook.construct_event.assert_called_once_with(b"{}", "t=1,v1=abc", "whsec_test_dummy")
    payment = db.session.get(Payment, payment_id)
    assert payment.status == "completed"
    assert payment.amount_cents == 4800


@patch("spahub.services.payment_service.stripe")
def test_webhook_marks_failed_payment(mock_stripe, client, appointment_id, owner_headers) -> None:
    _use_real_errors(mock_stripe)
    mock_stripe.PaymentIntent.create.return_value = SimpleNamespace(id="pi_456", client_secret="secret_456")
    payment_id = client.post(
        f"/appointments/{appointment_id}/payment-intent", headers=owner_headers
    ).get_json()["payment"]["id"]
    mock_stripe.Webhook.construct_event.return_value = {
        "type": "payment_intent.payment_failed",
        "data": {"object": {"id": "pi_456"}},
    }

    client.post("/stripe-webhook", data=b"{}", headers={"Stripe-Signature": "sig"})

    assert db.session.get(Payment, payment_id).status == "failed"


@patch("spahub.services.payment_service.stripe")
def test_webhook_invalid_signature(mock_stripe, client) -> None:
    _use_real_errors(mock_stripe)
    mock_stripe.Webhook.construct_event.side_effect = stripe.SignatureVerificationError("bad signature", "sig")

    response = client.post("/stripe-webhook", data=b"{}", headers={"Stripe-Signature": "sig"})

    assert response.status_code == 400
    assert response.get_json()["message"] == "Invalid webhook signature."


@patch("spahub.services.payment_service.stripe")
def test_webhook_invalid_payload(mock_stripe, client) -> None:
    _use_real_errors(mock_stripe)
    mock_stripe.Webhook.construct_event.side_effect = ValueError("not json")

    response = client.post("/stripe-webhook", data=b"garbage", headers={"Stripe-Signature": "sig"})

    assert response.status_code == 400
    assert response.get_json()["message"] == "Invalid webhook payload."


@patch("spahub.services.payment_service.stripe")
def test_webhook_for_unknown_intent_is_acknowledged(mock_stripe, client) -> None:
    _use_real_errors(mock_stripe)
    mock_stripe.Webhook.construct_event.return_value = _succeeded_event("pi_unknown", 100)

    response = client.post("/stripe-webhook", data=b"{}", headers={"Stripe-Signature": "sig"})

    assert response.status_code == 200
    assert Payment.query.count() == 0


@patch("spahub.services.payment_service.stripe")
def test_pending_intent_is_reused(mock_stripe, client, appointment_id, owner_headers) -> None:
    _use_real_errors(mock_stripe)
    mock_stripe.PaymentIntent.create.return_value = SimpleNamespace(id="pi_a", client_secret="secret_a")
    mock_stripe.PaymentIntent.retrieve.return_value = SimpleNamespace(id="pi_a", client_secret="secret_a")
    url = f"/appointments/{appointment_id}/payment-intent"

    first = client.post(url, headers=owner_headers).get_json()
    second = client.post(url, headers=owner_headers).get_json()

    assert second["payment"]["id"] == first["payment"]["id"]
    assert second["client_secret"] == "secret_a"
    mock_stripe.PaymentIntent.create.assert_called_once()
    mock_stripe.PaymentIntent.retrieve.assert_called_once_with("pi_a")
    assert Payment.query.count() == 1


@patch("spahub.services.payment_service.stripe")
def test_webhook_replays_are_ignored(mock_stripe, client, appointment_id, owner_headers) -> None:
    _use_real_errors(mock_stripe)
    mock_stripe.PaymentIntent.create.return_value = SimpleNamespace(id="pi_r", client_secret="secret_r")
    payment_id = client.post(
        f"/appointments/{appointment_id}/payment-intent", headers=owner_headers
    ).get_json()["payment"]["id"]

    mock_stripe.Webhook.construct_event.return_value = _succeeded_event("pi_r", 5000)
    client.post("/stripe-webhook", data=b"{}", headers={"Stripe-Signature": "sig"})
    replay = client.post("/stripe-webhook", data=b"{}", headers={"Stripe-Signature": "sig"})
    assert replay.status_code == 200

    mock_stripe.Webhook.construct_event.return_value = {
        "type": "payment_intent.payment_failed",
        "data": {"object": {"id": "pi_r"}},
    }
    late_failure = client.post("/stripe-webhook", data=b"{}", headers={"Stripe-Signature": "sig"})
    assert late_failure.status_code == 200

    payment = db.session.get(Payment, payment_id)
    assert payment.status == "completed"
    assert payment.amount_cents == 5000
    assert db.session.get(Appointment, appointment_id).paid_cents == 5000


@patch("spahub.services.payment_service.stripe")
def test_webhook_does_not_overpay(mock_stripe, client, appointment_id, owner_headers) -> None:
    _use_real_errors(mock_stripe)
    mock_stripe.PaymentIntent.create.return_value = SimpleNamespace(id="pi_o", client_secret="secret_o")
    payment_id = client.post(
        f"/appointments/{appointment_id}/payment-intent", headers=owner_headers
    ).get_json()["payment"]["id"]
    appointment = db.session.get(Appointment, appointment_id)
    db.session.add(
        Payment(
            salon_id=appointment.salon_id,
            appointment_id=appointment_id,
            customer_id=appointment.customer_id,
            method="cash",
            amount_cents=1000,
            status="completed",
        )
    )
    db.session.commit()
    mock_stripe.Webhook.construct_event.return_value = _succeeded_event("pi_o", 5000)

    response = client.post("/stripe-webhook", data=b"{}", headers={"Stripe-Signature": "sig"})

    assert response.status_code == 200
    assert db.session.get(Payment, payment_id).status == "pending"
    assert db.session.get(Appointment, appointment_id).paid_cents == 1000


@patch("spahub.services.payment_service.stripe")
def test_payment_intent_refused_when_pending_payments_cover_balance(
    mock_stripe, client, appointment_id, owner_headers
) -> None:
    _use_real_errors(mock_stripe)
    paid = client.post(
        f"/appointments/{appointment_id}/payments", json={"amount_cents": 5000, "method": "cash"}, headers=owner_headers
    )
    assert paid.status_code == 201

    response = client.post(f"/appointments/{appointment_id}/payment-intent", headers=owner_headers)

    assert response.status_code == 409
    assert response.get_json()["message"] == "Pending payments already cover the outstanding balance."
    mock_stripe.PaymentIntent.create.assert_not_called()
