"""Registration, sign-in and the account token flows."""
from __future__ import annotations

from flask import current_app

from ..exceptions import AuthenticationError, BadRequestError, ConflictError
from ..mailer import EmailSender
from ..models import ROLE_ADMIN, ROLE_MANAGER, AuthAccount, RefreshToken, User, utc_now
from ..repositories import RefreshTokenRepository, RoleRepository, UserRepository
from ..schemas import (
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
)
from ..security import (
    EMAIL_CHANGE_SALT,
    EMAIL_CONFIRMATION_SALT,
    PASSWORD_RESET_SALT,
    create_access_token,
    decode_access_token,
    generate_email_token,
    generate_refresh_token,
    load_email_token,
    new_security_stamp,
    refresh_token_expiry,
)
from .user_service import UserService


class AccountService:
    def __init__(
        self,
        users: UserRepository | None = None,
        roles: RoleRepository | None = None,
        refresh_tokens: RefreshTokenRepository | None = None,
        user_service: UserService | None = None,
        email_sender: EmailSender | None = None,
    ) -> None:
        self.users = users or UserRepository()
        self.roles = roles or RoleRepository()
        self.refresh_tokens = refresh_tokens or RefreshTokenRepository()
        self.user_service = user_service or UserService()
        self._email_sender = email_sender

    @property
    def email_sender(self) -> EmailSender:
        if self._email_sender is None:
            self._email_sender = EmailSender()
        return self._email_sender

    # --- Registration and sessions ---

    def register(self, request: RegisterRequest) -> User:
        """Create an account owner with the Admin role and send the confirmation token.

        The user, profile and role assignment are committed together only
        after the confirmation email went out.
        """
        if self.users.get_by_email(request.email) is not None:
            raise ConflictError("Email address is already in use.")

        try:
            admin_role = self.roles.ensure_roles([ROLE_ADMIN])[0]
            user = User(email=request.email, phone_number=request.phone_number, email_confirmed=False)
            user.add_role(admin_role)
            account = AuthAccount(security_stamp=new_security_stamp())
            account.set_password(request.password)
            user.auth_account = account
            self.users.create(user)
            self.users.flush()

            self.user_service.create_profile(
                user.user_id,
                request.first_name,
                request.last_name,
                request.gender,
                request.date_of_birth,
                commit=False,
            )
            self._send_confirmation_link(user)
            self.users.save_changes()
        except Exception:
            self.users.rollback()
            raise

        current_app.logger.info("Registered user %s", user.user_id)
        return user

    def sign_in(self, request: SignInRequest) -> dict[str, object]:
        user = self.users.get_by_email(request.email)
        account = user.auth_account if user is not None else None
        if account is None or not account.check_password(request.password):
            raise AuthenticationError("Invalid credentials.")

        if current_app.config.get("REQUIRE_CONFIRMED_EMAIL", True) and not user.email_confirmed:
            raise BadRequestError("Please, confirm your email.")

        account.last_login_at = utc_now()
        tokens = self._issue_tokens(user)
        self.users.save_changes()
        return tokens

    def refresh(self, request: RefreshRequest) -> dict[str, object]:
        claims = decode_access_token(request.access_token, verify_exp=False)
        if not claims:
            raise AuthenticationError("Invalid access token.")

        stored = self.refresh_tokens.get_by_token(request.refresh_token)
        if stored is None or str(stored.user_id) != str(claims.get("nameid")) or stored.is_expired:
            raise AuthenticationError("Invalid or expired refresh token.")

        user = self.users.get_or_raise(stored.user_id, "User not found.")
        self.refresh_tokens.delete(stored)
        tokens = self._issue_tokens(user)
        self.refresh_tokens.save_changes()
        return tokens

    def sign_out(self, user_id: int) -> None:
        self.refresh_tokens.delete_for_user(user_id)
        self.refresh_tokens.save_changes()

    def _issue_tokens(self, user: User) -> dict[str, object]:
        token, expires_at = create_access_token(user.user_id, user.email, user.role_names)
        refresh = RefreshToken(
            user_id=user.user_id,
            token=generate_refresh_token(),
            expires_at=refresh_token_expiry(),
        )
        self.refresh_tokens.create(refresh)
        return {
            "token": token,
            "expire": expires_at.isoformat(),
            "refresh_token": refresh.token,
            "refresh_token_expire": refresh.expires_at.isoformat(),
        }

    # --- Email confirmation ---

    def _send_confirmation_link(self, user: User) -> None:
        token = generate_email_token(
            EMAIL_CONFIRMATION_SALT,
            {"user_id": user.user_id, "email": user.email, "stamp": user.auth_account.security_stamp},
        )
        self.email_sender.send_confirmation_link(user.email, token)

    def confirm_email(self, request: ConfirmEmailRequest) -> None:
        user = self.users.get_by_email(request.email)
        if user is None:
            return

        payload = load_email_token(EMAIL_CONFIRMATION_SALT, request.token)
        if payload.get("user_id") != user.user_id or payload.get("email") != user.email:
            raise BadRequestError("Invalid token.")
        self._check_stamp(user, payload)

        if not user.email_confirmed:
            user.email_confirmed = True
            user.touch()
            self.users.save_changes()
            current_app.logger.info("Confirmed email for user %s", user.user_id)

    def send_confirmation_email(self, request: SendConfirmationEmailRequest) -> None:
        user = self.users.get_by_email(request.email)
        if user is None:
            return
        if user.email_confirmed:
            raise BadRequestError("Email already confirmed.")
        self._send_confirmation_link(user)

    # --- Email change ---

    def send_change_email(self, user_id: int, request: ChangeEmailRequest) -> None:
        user = self.users.get_or_raise(user_id, "User not found.")
        if request.new_email == user.email.lower():
            raise BadRequestError("New email must be different from the current email.")
        if self.users.get_by_email(request.new_email) is not None:
            raise ConflictError("Email address is already in use.")

        token = generate_email_token(
            EMAIL_CHANGE_SALT,
            {"user_id": user.user_id, "new_email": request.new_email, "stamp": user.auth_account.security_stamp},
        )
        self.email_sender.send_confirmation_change_email(request.new_email, token)

    def confirm_changed_email(self, user_id: int, request: ConfirmationChangeEmailRequest) -> User:
        user = self.users.get_or_raise(user_id, "User not found.")
        payload = load_email_token(EMAIL_CHANGE_SALT, request.token)
        if payload.get("user_id") != user.user_id or payload.get("new_email") != request.new_email:
            raise BadRequestError("Invalid token.")
        self._check_stamp(user, payload)
        if self.users.get_by_email(request.new_email) is not None:
            raise ConflictError("Email address is already in use.")

        user.email = request.new_email
        user.email_confirmed = False
        user.auth_account.rotate_security_stamp(new_security_stamp())
        user.touch()
        self.refresh_tokens.delete_for_user(user.user_id)
        self._send_confirmation_link(user)
        self.users.save_changes()
        current_app.logger.info("Changed email for user %s", user.user_id)
        return user

    # --- Passwords ---

    def change_password(self, user_id: int, request: ChangePasswordRequest) -> None:
        user = self.users.get_or_raise(user_id, "User not found.")
        if not user.auth_account.check_password(request.current_password):
            raise BadRequestError("Incorrect password.")
        self._set_password(user, request.new_password)
        self.users.save_changes()
        current_app.logger.info("Changed password for user %s", user.user_id)

    def send_reset_password_token(self, request: SendResetPasswordTokenRequest) -> None:
        user = self.users.get_by_email(request.email)
        if user is None:
            return
        token = generate_email_token(
            PASSWORD_RESET_SALT,
            {"user_id": user.user_id, "stamp": user.auth_account.security_stamp},
        )
        self.email_sender.send_password_reset_code(user.email, token)

    def reset_password(self, request: ResetPasswordRequest) -> None:
        user = self.users.get_by_email(request.email)
        if user is None:
            raise BadRequestError("Invalid token.")
        payload = load_email_token(PASSWORD_RESET_SALT, request.token)
        if payload.get("user_id") != user.user_id:
            raise BadRequestError("Invalid token.")
        self._check_stamp(user, payload)

        self._set_password(user, request.new_password)
        self.users.save_changes()
        current_app.logger.info("Reset password for user %s", user.user_id)

    def _set_password(self, user: User, password: str) -> None:
        user.auth_account.set_password(password)
        user.auth_account.rotate_security_stamp(new_security_stamp())
        self.refresh_tokens.delete_for_user(user.user_id)

    @staticmethod
    def _check_stamp(user: User, payload: dict[str, object]) -> None:
        if payload.get("stamp") != user.auth_account.security_stamp:
            raise BadRequestError("Invalid token.")

    # --- Users and roles ---

    def get_user(self, user_id: int) -> User:
        return self.users.get_or_raise(user_id, "User not found.")

    def get_account(self, user_id: int) -> dict[str, object]:
        user = self.get_user(user_id)
        data = user.to_dict()
        data["profile"] = user.profile.to_dict() if user.profile else None
        return data

    def assign_manager_role(self, user_id: int) -> User:
        user = self.get_user(user_id)
        manager_role = self.roles.ensure_roles([ROLE_MANAGER])[0]
        if not user.add_role(manager_role):
            raise ConflictError("User already has the Manager role.")
        self.users.save_changes()
        current_app.logger.info("Granted Manager role to user %s", user.user_id)
        return user

    def remove_manager_role(self, user_id: int) -> User:
        user = self.get_user(user_id)
        if not user.remove_role(ROLE_MANAGER):
            raise ConflictError("User does not have the Manager role.")
        self.users.save_changes()
        current_app.logger.info("Removed Manager role from user %s", user.user_id)
        return user
