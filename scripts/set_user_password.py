"""Create or update a user with a password and role for local development."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure the project root is on sys.path so ``spahub`` can be imported when the script is executed directly.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from spahub import create_app
from spahub.extensions import db
from spahub.models import ROLE_ADMIN, ROLES, AuthAccount, User
from spahub.repositories import RoleRepository, UserRepository
from spahub.security import new_security_stamp


def set_password(email: str, password: str, role: str = ROLE_ADMIN) -> None:
    app = create_app()

    with app.app_context():
        users = UserRepository()
        user = users.get_by_email(email)
        if user is None:
            user = User(email=email.strip().lower(), email_confirmed=True)
            users.create(user)
            print(f"Created new user: {email}")
        else:
            user.email_confirmed = True

        role_record = RoleRepository().ensure_roles([role])[0]
        if user.add_role(role_record):
            print(f"Granted role '{role}' to {email}")

        account = user.auth_account
        if account is None:
            account = AuthAccount(security_stamp=new_security_stamp())
            user.auth_account = account
            print(f"Created auth account for user: {email}")

        account.set_password(password)
        # Outstanding email tokens carry the old stamp
        account.rotate_security_stamp(new_security_stamp())
        db.session.commit()

        print(f"Password for '{email}' has been set successfully.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Set a user password for local testing.")
    parser.add_argument("email", help="User email address")
    parser.add_argument("password", help="Plain-text password to hash and store")
    parser.add_argument(
        "--role",
        choices=ROLES,
        default=ROLE_ADMIN,
        help=f"Role to grant (default: {ROLE_ADMIN})",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    set_password(args.email, args.password, args.role)


if __name__ == "__main__":
    main()
