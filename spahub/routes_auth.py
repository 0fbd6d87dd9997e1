"""Authentication, account self-service and user administration routes."""
from __future__ import annotations

from flask import Blueprint, jsonify

from .models import ROLE_ADMIN, ROLE_MANAGER
from .responses import json_payload, patch_response
from .schemas import (
    ChangeEmailRequest,
    ChangePasswordRequest,
    ConfirmationChangeEmailRequest,
    ConfirmEmailRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SendConfirmationEmailRequest,
    SendResetPasswordTokenRequest,
    SignInRequest,
    parse_request,
)
from .security import auth_required, current_user_id
from .services import AccountService, UserService

bp = Blueprint("auth", __name__)


@bp.post("/auth/register")
def register() -> tuple[dict[str, object], int]:
    """Register a salon owner account and send the email confirmation token.
    ---
    tags:
      - Authentication
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            email:
              type: string
            password:
              type: string
            phone_number:
              type: string
            first_name:
              type: string
            last_name:
              type: string
            gender:
              type: string
              enum: [male, female, other]
            date_of_birth:
              type: string
              format: date
    responses:
      201:
        description: User registered; confirmation email sent
      400:
        description: Validation failed
      409:
        description: Email already in use
    """
    data = parse_request(RegisterRequest, json_payload())
    user = AccountService().register(data)
    return (
        jsonify({"message": "Registration successful. Please confirm your email.", "user": user.to_dict()}),
        201,
    )


@bp.post("/auth/sign-in")
def sign_in() -> tuple[dict[str, object], int]:
    """Authenticate with email and password and return access and refresh tokens.
    ---
    tags:
      - Authentication
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            email:
              type: string
            password:
              type: string
    responses:
      200:
        description: Tokens issued
      400:
        description: Validation failed or email not confirmed
      401:
        description: Invalid credentials
    """
    data = parse_request(SignInRequest, json_payload())
    return jsonify(AccountService().sign_in(data)), 200


@bp.post("/auth/refresh")
def refresh() -> tuple[dict[str, object], int]:
    """Exchange an access token and a refresh token for a new pair.
    ---
    tags:
      - Authentication
    responses:
      200:
        description: New tokens issued
      401:
        description: Invalid access or refresh token
    """
    data = parse_request(RefreshRequest, json_payload())
    return jsonify(AccountService().refresh(data)), 200


@bp.post("/auth/sign-out")
@auth_required()
def sign_out() -> tuple[str, int]:
    AccountService().sign_out(current_user_id())
    return "", 204


# --- Account ---


@bp.get("/account")
@auth_required()
def get_account() -> tuple[dict[str, object], int]:
    """Return the signed-in user with their profile.
    ---
    tags:
      - Account
    security:
      - Bearer: []
    responses:
      200:
        description: Account details
      401:
        description: Authentication required
    """
    return jsonify(AccountService().get_account(current_user_id())), 200


@bp.patch("/account/profile")
@auth_required()
def update_profile() -> tuple[dict[str, object], int]:
    """Apply a JSON Patch document (replace operations only) to the user's profile.
    ---
    tags:
      - Account
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: array
          items:
            type: object
            properties:
              op:
                type: string
                enum: [replace]
              path:
                type: string
                example: /first_name
              value: {}
    responses:
      200:
        description: Profile updated
      400:
        description: Invalid patch, validation failure or no changes
      404:
        description: Profile not found
    """
    result = UserService().update_profile(current_user_id(), json_payload())
    return patch_response(result)


@bp.post("/account/confirm-email")
def confirm_email() -> tuple[dict[str, object], int]:
    """Confirm an email address with the token that was emailed on registration.
    ---
    tags:
      - Account
    responses:
      200:
        description: Email confirmed
      400:
        description: Invalid or expired token
    """
    data = parse_request(ConfirmEmailRequest, json_payload())
    AccountService().confirm_email(data)
    return jsonify({"message": "Email confirmed successfully."}), 200


@bp.post("/account/send-confirmation-email")
def send_confirmation_email() -> tuple[dict[str, object], int]:
    data = parse_request(SendConfirmationEmailRequest, json_payload())
    AccountService().send_confirmation_email(data)
    return jsonify({"message": "If the account exists, a confirmation email has been sent."}), 200


@bp.post("/account/send-change-email")
@auth_required()
def send_change_email() -> tuple[dict[str, object], int]:
    """Email a change-email token to the new address.
    ---
    tags:
      - Account
    security:
      - Bearer: []
    responses:
      200:
        description: Token sent
      400:
        description: Validation failed
      409:
        description: Email already in use
    """
    data = parse_request(ChangeEmailRequest, json_payload())
    AccountService().send_change_email(current_user_id(), data)
    return jsonify({"message": "A confirmation token has been sent to the new email address."}), 200


@bp.post("/account/confirm-changed-email")
@auth_required()
def confirm_changed_email() -> tuple[dict[str, object], int]:
    data = parse_request(ConfirmationChangeEmailRequest, json_payload())
    user = AccountService().confirm_changed_email(current_user_id(), data)
    return jsonify({"message": "Email changed. Please confirm the new address.", "user": user.to_dict()}), 200


@bp.post("/account/change-password")
@auth_required()
def change_password() -> tuple[dict[str, object], int]:
    """Change the password of the signed-in user.
    ---
    tags:
      - Account
    security:
      - Bearer: []
    responses:
      200:
        description: Password changed; existing refresh tokens revoked
      400:
        description: Validation failed or current password incorrect
    """
    data = parse_request(ChangePasswordRequest, json_payload())
    AccountService().change_password(current_user_id(), data)
    return jsonify({"message": "Password changed successfully."}), 200


@bp.post("/account/send-reset-password-token")
def send_reset_password_token() -> tuple[dict[str, object], int]:
    data = parse_request(SendResetPasswordTokenRequest, json_payload())
    AccountService().send_reset_password_token(data)
    return jsonify({"message": "If the account exists, a password reset token has been sent."}), 200


@bp.post("/account/reset-password")
def reset_password() -> tuple[dict[str, object], int]:
    """Set a new password using an emailed reset token.
    ---
    tags:
      - Account
    responses:
      200:
        description: Password reset
      400:
        description: Validation failed or invalid token
    """
    data = parse_request(ResetPasswordRequest, json_payload())
    AccountService().reset_password(data)
    return jsonify({"message": "Password has been reset successfully."}), 200


# --- Users ---


@bp.get("/users/me")
@auth_required()
def get_current_user() -> tuple[dict[str, object], int]:
    return jsonify({"user": AccountService().get_user(current_user_id()).to_dict()}), 200


@bp.get("/users/<int:user_id>")
@auth_required(ROLE_ADMIN, ROLE_MANAGER)
def get_user(user_id: int) -> tuple[dict[str, object], int]:
    """Look up a user by id.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - name: user_id
        in: path
        type: integer
        required: true
    responses:
      200:
        description: User found
      403:
        description: Admin or Manager role required
      404:
        description: User not found
    """
    return jsonify({"user": AccountService().get_user(user_id).to_dict()}), 200


@bp.post("/users/<int:user_id>/roles/manager")
@auth_required(ROLE_ADMIN)
def assign_manager_role(user_id: int) -> tuple[dict[str, object], int]:
    user = AccountService().assign_manager_role(user_id)
    return jsonify({"message": "Manager role assigned.", "user": user.to_dict()}), 200


@bp.delete("/users/<int:user_id>/roles/manager")
@auth_required(ROLE_ADMIN, ROLE_MANAGER)
def remove_manager_role(user_id: int) -> tuple[dict[str, object], int]:
    user = AccountService().remove_manager_role(user_id)
    return jsonify({"message": "Manager role removed.", "user": user.to_dict()}), 200
