"""Application errors and the JSON error handlers that render them."""
from __future__ import annotations

from flask import Flask, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .extensions import db


class SpaHubError(Exception):
    status_code = 500
    error = "server_error"

    def __init__(self, message: str | None = None, errors: dict[str, list[str]] | None = None) -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or ""
        self.errors = errors

    def to_dict(self) -> dict[str, object]:
        body: dict[str, object] = {"error": self.error, "message": self.message}
        if self.errors is not None:
            body["errors"] = self.errors
        return body


class BadRequestError(SpaHubError):
    status_code = 400
    error = "bad_request"


class RequestValidationError(SpaHubError):
    """Raised when a request body fails its validator."""

    status_code = 400
    error = "validation_failed"

    def __init__(self, errors: dict[str, list[str]], message: str = "One or more validation errors occurred.") -> None:
        super().__init__(message, errors)


class DomainValidationError(SpaHubError):
    """Raised when an entity fails its specification after a mutation."""

    status_code = 400
    error = "domain_validation_failed"

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message, {"entity": list(errors)} if errors else None)


class AuthenticationError(SpaHubError):
    status_code = 401
    error = "unauthorized"


class ForbiddenError(SpaHubError):
    status_code = 403
    error = "forbidden"


class NotFoundError(SpaHubError):
    status_code = 404
    error = "not_found"


class ConflictError(SpaHubError):
    """Duplicate resources and operations not allowed in the current state."""

    status_code = 409
    error = "conflict"


class MissingConfigurationError(SpaHubError):
    status_code = 500
    error = "configuration_error"


class PaymentGatewayError(SpaHubError):
    status_code = 502
    error = "payment_error"


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(SpaHubError)
    def handle_spahub_error(exc: SpaHubError):
        db.session.rollback()
        if exc.status_code >= 500:
            current_app.logger.error("%s: %s", exc.__class__.__name__, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(exc: SQLAlchemyError):
        db.session.rollback()
        current_app.logger.exception("Database operation failed", exc_info=exc)
        return jsonify({"error": "database_error", "message": "A database error occurred."}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        db.session.rollback()
        slug = (exc.name or "error").lower().replace(" ", "_")
        return jsonify({"error": slug, "message": exc.description}), exc.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error", exc_info=exc)
        return jsonify({"error": "server_error", "message": "An unexpected error occurred."}), 500
