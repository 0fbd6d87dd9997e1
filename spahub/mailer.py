"""Outgoing email: a thin SMTP service and the account message templates."""
from __future__ import annotations

import smtplib
from email.message import EmailMessage

from flask import Flask, current_app


class EmailService:
    """Send plain-text and HTML email through the configured SMTP server.

    With ``MAIL_SUPPRESS_SEND`` the message is logged and kept in ``outbox``
    instead of being delivered.
    """

    def __init__(self, app: Flask | None = None) -> None:
        self.outbox: list[EmailMessage] = []
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        app.extensions["email_service"] = self

    def send_email(self, to: str, subject: str, message: str) -> None:
        if not to or not to.strip():
            raise ValueError("Recipient email address is required.")

        config = current_app.config
        email = EmailMessage()
        email["From"] = config.get("MAIL_DEFAULT_SENDER")
        email["To"] = to
        email["Subject"] = subject
        email.set_content(message)
        email.add_alternative(f"<p>{message}</p>", subtype="html")

        if config.get("MAIL_SUPPRESS_SEND"):
            current_app.logger.info("Email to %s suppressed: %s", to, subject)
            self.outbox.append(email)
            return

        with smtplib.SMTP(config.get("MAIL_SERVER"), int(config.get("MAIL_PORT") or 25)) as smtp:
            if config.get("MAIL_USE_TLS"):
                smtp.starttls()
            if config.get("MAIL_USERNAME"):
                smtp.login(config["MAIL_USERNAME"], config.get("MAIL_PASSWORD") or "")
            smtp.send_message(email)
        current_app.logger.info("Email sent to %s: %s", to, subject)


class EmailSender:
    def __init__(self, email_service: EmailService | None = None) -> None:
        self.email_service = email_service or current_app.extensions["email_service"]

    def send_confirmation_link(self, email: str, token: str) -> None:
        self.email_service.send_email(email, "SpaHub - Account Confirmation Email", f"Confirmation token: {token}")

    def send_confirmation_change_email(self, email: str, token: str) -> None:
        self.email_service.send_email(email, "SpaHub - Account Change Email", f"Change email token: {token}")

    def send_password_reset_code(self, email: str, token: str) -> None:
        self.email_service.send_email(email, "SpaHub - Password reset", f"Password reset token: {token}")
