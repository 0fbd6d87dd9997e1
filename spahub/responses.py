"""Small helpers shared by the blueprints for reading requests and shaping responses."""
from __future__ import annotations

from datetime import date

from flask import jsonify, request

from .exceptions import RequestValidationError
from .patching import OperationResult


def json_payload() -> object:
    return request.get_json(silent=True)


def patch_response(result: OperationResult):
    if result.is_success:
        return jsonify(result.to_dict()), 200
    return jsonify(result.to_dict()), 400


def query_bool(name: str) -> bool | None:
    raw = (request.args.get(name) or "").strip().lower()
    if not raw:
        return None
    if raw in {"1", "true", "yes"}:
        return True
    if raw in {"0", "false", "no"}:
        return False
    raise RequestValidationError({name: [f"{name} must be true or false."]})


def query_date(name: str) -> date | None:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise RequestValidationError({name: [f"{name} must be an ISO date (YYYY-MM-DD)."]}) from exc


def query_str(name: str) -> str | None:
    return (request.args.get(name) or "").strip() or None
