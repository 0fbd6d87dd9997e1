"""Access tokens, refresh tokens, signed email tokens and route guards."""
from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Callable

from flask import current_app, g, jsonify, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from jose import JWTError, jwt

from .exceptions import BadRequestError, MissingConfigurationError

JWT_ALGORITHM = "HS512"
MIN_JWT_KEY_LENGTH = 32

EMAIL_CONFIRMATION_SALT = "email-confirmation"
EMAIL_CHANGE_SALT = "email-change"
PASSWORD_RESET_SALT = "password-reset"


def new_security_stamp() -> str:
    return uuid.uuid4().hex


def _jwt_settings() -> dict[str, Any]:
    config = current_app.config
    settings = {
        "key": config.get("JWT_KEY"),
        "issuer": config.get("JWT_ISSUER"),
        "audience": config.get("JWT_AUDIENCE"),
        "subject": config.get("JWT_SUBJECT") or "access-token",
        "expiry_minutes": config.get("JWT_EXPIRY_MINUTES") or 60,
    }
    missing = [name for name in ("key", "issuer", "audience") if not settings[name]]
    if missing:
        raise MissingConfigurationError(f"JWT configuration is missing: {', '.join(missing)}.")
    if len(settings["key"]) < MIN_JWT_KEY_LENGTH:
        raise MissingConfigurationError(f"JWT key must be at least {MIN_JWT_KEY_LENGTH} characters long.")
    return settings


def create_access_token(user_id: int, email: str, roles: list[str]) -> tuple[str, datetime]:
    """Sign an access token for the user and return it with its expiry."""
    settings = _jwt_settings()
    issued_at = datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(minutes=int(settings["expiry_minutes"]))
    claims = {
        "sub": settings["subject"],
        "jti": uuid.uuid4().hex,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
        "iss": settings["issuer"],
        "aud": settings["audience"],
        "nameid": str(user_id),
        "email": email,
        "roles": list(roles),
    }
    token = jwt.encode(claims, settings["key"], algorithm=JWT_ALGORITHM)
    return token, expires_at


def decode_access_token(token: str, verify_exp: bool = True) -> dict[str, Any] | None:
    """Return the claims of a correctly signed token, or None."""
    settings = _jwt_settings()
    try:
        return jwt.decode(
            token,
            settings["key"],
            algorithms=[JWT_ALGORITHM],
            audience=settings["audience"],
            issuer=settings["issuer"],
            options={"verify_exp": verify_exp},
        )
    except JWTError:
        return None


def generate_refresh_token() -> str:
    return secrets.token_urlsafe(64)


def refresh_token_expiry() -> datetime:
    days = int(current_app.config.get("REFRESH_TOKEN_EXPIRY_DAYS") or 7)
    return datetime.now(timezone.utc) + timedelta(days=days)


def _serializer(salt: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=salt)


def generate_email_token(salt: str, payload: dict[str, Any]) -> str:
    return _serializer(salt).dumps(payload)


def load_email_token(salt: str, token: str) -> dict[str, Any]:
    """Decode a confirmation, change-email or reset token.

    Raises BadRequestError for expired or tampered tokens.
    """
    max_age = int(current_app.config.get("EMAIL_TOKEN_MAX_AGE") or 86400)
    try:
        payload = _serializer(salt).loads(token, max_age=max_age)
    except SignatureExpired as exc:
        raise BadRequestError("The token has expired.") from exc
    except BadSignature as exc:
        raise BadRequestError("Invalid token.") from exc
    if not isinstance(payload, dict):
        raise BadRequestError("Invalid token.")
    return payload


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:].strip() or None


def get_jwt_claims() -> dict[str, Any] | None:
    token = _bearer_token()
    if token is None:
        return None
    return decode_access_token(token)


def get_jwt_identity() -> int | None:
    """Extract the user id from the Authorization header token.

    Returns None when the header is missing or the token is invalid or expired.
    """
    return _identity(get_jwt_claims())


def _identity(claims: dict[str, Any] | None) -> int | None:
    if not claims:
        return None
    try:
        return int(claims.get("nameid"))
    except (TypeError, ValueError):
        return None


def auth_required(*roles: str) -> Callable:
    """Require a valid access token and, when given, one of ``roles``."""

    def decorator(view: Callable) -> Callable:
        @wraps(view)
        def wrapper(*args: Any, **kwargs: Any):
            claims = get_jwt_claims()
            user_id = _identity(claims)
            if user_id is None:
                return jsonify({"error": "unauthorized", "message": "Authentication required. Please log in to continue."}), 401

            user_roles = claims.get("roles") or []
            if isinstance(user_roles, str):
                user_roles = [user_roles]
            if roles and not set(roles) & set(user_roles):
                return jsonify({"error": "forbidden", "message": "You do not have permission to perform this action."}), 403

            g.current_user_id = user_id
            g.current_user_roles = list(user_roles)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_user_id() -> int | None:
    user_id = getattr(g, "current_user_id", None)
    return user_id if user_id is not None else get_jwt_identity()
