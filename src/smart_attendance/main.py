from __future__ import annotations

import importlib
import logging
import uuid
from typing import Any, Optional

from dotenv import load_dotenv
from flask import Blueprint, Flask, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from .attendance.controller import register as register_attendance
from .common.log import configure_logging
from .complaints.controller import register as register_complaints
from .config import get_settings_module
from .container import MONGO, MYSQL, Container, build_container
from .core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    StoreMissingError,
    UnavailableError,
    ValidationError,
)
from .database.bootstrap import apply_schema, ensure_admin, list_tables
from .hardware.controller import register as register_hardware
from .permissions.controller import register as register_permissions
from .reports.controller import register as register_reports
from .schedules.controller import register as register_schedules
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (UnavailableError, 503),
    (StoreMissingError, 503),
)


def _status_for(exc: DomainError) -> int:
    for cls, status in STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 500


def error_body(kind: str, message: str) -> dict:
    return {
        "error": {"kind": kind, "message": message},
        "request_id": getattr(g, "request_id", None),
    }


def _bootstrap_store(container: Container, settings: Any) -> None:
    """Optional dev helpers: schema/indexes and the admin account."""

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        if container.backend == MYSQL:
            apply_schema(container.store)
            logger.info("schema ready (tables=%s)", len(list_tables(container.store)))
        elif container.backend == MONGO:
            container.store.ensure_indexes()
            logger.info("mongo indexes ready")

    if bool(getattr(settings, "AUTO_SEED_ADMIN", False)):
        password = getattr(settings, "ADMIN_PASSWORD", "")
        if not password:
            logger.warning("AUTO_SEED_ADMIN is set but ADMIN_PASSWORD is empty; skipping")
        else:
            ensure_admin(container.users_repo, email=getattr(settings, "ADMIN_EMAIL"), password=password)


def create_app(container: Optional[Container] = None, settings: Any = None) -> Flask:
    load_dotenv(override=False)
    settings_module = get_settings_module()
    if settings is None:
        settings = importlib.import_module(settings_module)

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    CORS(app, origins=getattr(settings, "CORS_ORIGINS", None) or "*")

    if container is None:
        container = build_container(settings)
        logger.info("settings=%s backend=%s", settings_module, container.backend)
        if container.health.check():
            _bootstrap_store(container, settings)
    app.extensions["smart_attendance"] = container

    @app.before_request
    def _gate_request():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        logger.info("%s %s from %s", request.method, request.path, request.remote_addr)
        if request.endpoint in {"health", "static"} or request.method == "OPTIONS":
            return None
        container.health.require_ready()
        return None

    @app.after_request
    def _stamp_request_id(response):
        response.headers["X-Request-ID"] = getattr(g, "request_id", "")
        return response

    @app.errorhandler(DomainError)
    def _domain_error(e: DomainError):
        status = _status_for(e)
        if isinstance(e, UnavailableError):
            container.health.mark_unavailable(str(e))
        if status >= 500:
            logger.error("%s: %s", e.kind, e)
        else:
            logger.info("%s: %s", e.kind, e)
        return jsonify(error_body(e.kind, str(e))), status

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        kind = (e.name or "error").lower().replace(" ", "_")
        return jsonify(error_body(kind, e.description or e.name)), e.code or 500

    @app.errorhandler(Exception)
    def _unexpected(e: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.path)
        message = str(e) if app.config["DEBUG"] else "Internal server error"
        return jsonify(error_body("internal", message)), 500

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        container.health.check()
        status = container.health.status()
        return jsonify(status), 200 if status["ok"] else 503

    api = Blueprint("api", __name__, url_prefix="/api")
    register_users(api, container)
    register_schedules(api, container)
    register_attendance(api, container)
    register_reports(api, container)
    register_permissions(api, container)
    register_complaints(api, container)
    register_hardware(api, container)
    app.register_blueprint(api)

    return app
