"""Flask glue shared by the controllers: envelope helpers, error handlers and
the per-request identity."""

from __future__ import annotations

import logging
from functools import wraps

from flask import Flask, current_app, g, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.constants import SYSTEM_ERROR_CODE
from ..core.context import RequestContext
from ..core.enums import Role
from ..core.exceptions import DomainError, ValidationError
from .datetime_utils import parse_optional_date
from .paging import PagedResponse
from .responses import ApiResponse

logger = logging.getLogger(__name__)

SESSION_PRINCIPAL = "principal"
CONTAINER_KEY = "attendance_tracker"

_HTTP_CODES = {401: 4001, 403: 4003, 404: 4004, 409: 4009}


def _serialize(data):
    if isinstance(data, PagedResponse):
        return _serialize(data.to_dict())
    if hasattr(data, "to_dict"):
        return data.to_dict()
    if isinstance(data, dict):
        return {k: _serialize(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [_serialize(v) for v in data]
    return data


def ok(data=None, message: str = "Success", status: int = 200):
    return jsonify(ApiResponse.ok(_serialize(data), message).to_dict()), status


def fail(message: str, status: int = 400, error_code: int | None = None):
    return jsonify(ApiResponse.fail(message, error_code).to_dict()), status


def json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def date_arg(name: str, *, required: bool = False):
    raw = request.args.get(name)
    try:
        value = parse_optional_date(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be a date in YYYY-MM-DD format") from exc
    if required and value is None:
        raise ValidationError(f"{name} is required")
    return value


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def _domain(e: DomainError):
        return fail(e.message or str(e), status=e.http_status, error_code=e.error_code)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        status = e.code or 500
        code = _HTTP_CODES.get(status, 4000 if status < 500 else SYSTEM_ERROR_CODE)
        return fail(e.description or e.name, status=status, error_code=code)

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return fail("An unexpected error occurred", status=500, error_code=SYSTEM_ERROR_CODE)


def current_context() -> RequestContext:
    """Resolve the principal remembered in the session, once per request."""
    if "request_context" not in g:
        container = current_app.extensions[CONTAINER_KEY]
        g.request_context = container.user_directory.context_for(session.get(SESSION_PRINCIPAL))
    return g.request_context


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        current_context().require_user_id()
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            current_context().require_role(*roles)
            return view(*args, **kwargs)

        return wrapper

    return decorator
