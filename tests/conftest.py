"""Shared fixtures: an in-memory application, users with roles and bearer headers."""
from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import pytest

# Ensure the project root is available on sys.path so tests can import the app package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from spahub import create_app  # noqa: E402
from spahub.config import TestingConfig  # noqa: E402
from spahub.extensions import db  # noqa: E402
from spahub.models import ROLE_ADMIN, AuthAccount, Salon, User, UserProfile  # noqa: E402
from spahub.repositories import RoleRepository  # noqa: E402
from spahub.security import create_access_token, new_security_stamp  # noqa: E402

PASSWORD = "Secret1!"


@pytest.fixture
def app():
    flask_app = create_app(TestingConfig)
    with flask_app.app_context():
        db.create_all()
        RoleRepository().ensure_roles()
        db.session.commit()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def outbox(app):
    return app.extensions["email_service"].outbox


@pytest.fixture
def read_token():
    """Return the token from the plain-text body of a sent message."""

    def _read_token(message) -> str:
        body = message.get_body(preferencelist=("plain",)).get_content()
        return body.strip().split(": ", 1)[1]

    return _read_token


@pytest.fixture
def make_user(app):
    def _make_user(
        email: str,
        roles: tuple[str, ...] = (ROLE_ADMIN,),
        password: str = PASSWORD,
        confirmed: bool = True,
    ) -> User:
        role_repository = RoleRepository()
        user = User(email=email, phone_number="123456789", email_confirmed=confirmed)
        for name in roles:
            user.add_role(role_repository.get_by_name(name))
        account = AuthAccount(security_stamp=new_security_stamp())
        account.set_password(password)
        user.auth_account = account
        user.profile = UserProfile(
            first_name="Test",
            last_name="User",
            gender="other",
            date_of_birth=date(1990, 1, 1),
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def auth_headers(app):
    def _auth_headers(user: User) -> dict[str, str]:
        token, _ = create_access_token(user.user_id, user.email, user.role_names)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def owner(make_user):
    return make_user("owner@example.com")


@pytest.fixture
def owner_headers(owner, auth_headers):
    return auth_headers(owner)


@pytest.fixture
def salon(owner):
    record = Salon(
        user_id=owner.user_id,
        name="Glow Spa",
        email="spa@example.com",
        phone_number="123456789",
    )
    db.session.add(record)
    db.session.commit()
    return record
