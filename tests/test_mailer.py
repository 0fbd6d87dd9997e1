"""Unit tests for the SMTP email service."""
from __future__ import annotations

from unittest.mock import patch

import pytest

from spahub.mailer import EmailSender


def test_suppressed_email_goes_to_outbox(app, outbox) -> None:
    EmailSender().send_password_reset_code("ann@example.com", "tok123")

    message = outbox[-1]
    assert message["To"] == "ann@example.com"
    assert message["From"] == "no-reply@spahub.local"
    assert message["Subject"] == "SpaHub - Password reset"
    assert message.get_body(preferencelist=("plain",)).get_content().strip() == "Password reset token: tok123"
    assert "<p>Password reset token: tok123</p>" in message.get_body(preferencelist=("html",)).get_content()


def test_blank_recipient_is_rejected(app) -> None:
    with pytest.raises(ValueError, match="Recipient email address is required."):
        app.extensions["email_service"].send_email("  ", "Subject", "Body")


@patch("spahub.mailer.smtplib.SMTP")
def test_email_is_sent_over_smtp(mock_smtp, app, outbox) -> None:
    app.config.update(
        MAIL_SUPPRESS_SEND=False,
        MAIL_SERVER="smtp.example.com",
        MAIL_PORT=2525,
        MAIL_USERNAME="mailer",
        MAIL_PASSWORD="secret",
    )

    EmailSender().send_confirmation_link("ann@example.com", "tok456")

    mock_smtp.assert_called_once_with("smtp.example.com", 2525)
    smtp = mock_smtp.return_value.__enter__.return_value
    smtp.starttls.assert_called_once_with()
    smtp.login.assert_called_once_with("mailer", "secret")
    sent = smtp.send_message.call_args.args[0]
    assert sent["Subject"] == "SpaHub - Account Confirmation Email"
    assert outbox == []
