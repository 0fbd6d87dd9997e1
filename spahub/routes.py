"""HTTP routes for the SpaHub backend."""
from __future__ import annotations

from flask import Blueprint, Flask, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .routes_auth import bp as auth_bp
from .routes_bookings import bp as bookings_bp
from .routes_catalog import bp as catalog_bp
from .routes_salons import bp as salons_bp

bp = Blueprint("api", __name__)


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """
    Expose a simple uptime check endpoint.
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is healthy and running.
    """
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database.
    ---
    tags:
      - Health
    responses:
      200:
        description: Database connection is ok.
      500:
        description: Database connection failed.
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


@bp.get("/test")
def api_test() -> tuple[dict[str, str], int]:
    return jsonify({"message": "API is working."}), 200


def register_routes(app: Flask) -> None:
    for blueprint in (bp, auth_bp, salons_bp, catalog_bp, bookings_bp):
        app.register_blueprint(blueprint)
