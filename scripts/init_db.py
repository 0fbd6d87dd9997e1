#!/usr/bin/env python3
"""Create database tables and the built-in roles."""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from spahub import create_app
from spahub.extensions import db
from spahub.repositories import RoleRepository


def init_database():
    app = create_app()
    with app.app_context():
        db.create_all()
        roles = RoleRepository()
        roles.ensure_roles()
        roles.save_changes()
        print("Database tables and roles initialized successfully")


if __name__ == "__main__":
    init_database()
