from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
import logging

from services.errors import (
    AuthError,
    DuplicateUserError,
    PersistenceError,
    RevokedTokenError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)


def error_response(error: str, message: str, status: int, details: dict | None = None):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def register_error_handlers(app):
    # 400 Bad Request (generic)
    @app.errorhandler(400)
    def bad_request(e):
        message = getattr(e, "description", "Bad request")
        return error_response("BAD_REQUEST", message, 400)

    # 401 Unauthorized (raised by the route decorators)
    @app.errorhandler(401)
    def unauthorized(e):
        message = getattr(e, "description", "Unauthorized")
        return error_response("UNAUTHORIZED", message, 401)

    @app.errorhandler(403)
    def forbidden(e):
        message = getattr(e, "description", "Forbidden")
        return error_response("FORBIDDEN", message, 403)

    # 404 Not Found
    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", 404)

    # 409 Conflict
    @app.errorhandler(409)
    def conflict(e):
        message = getattr(e, "description", "Conflict")
        return error_response("CONFLICT", message, 409)

    # 422 Unprocessable Entity (validation)
    @app.errorhandler(422)
    def unprocessable(e):
        message = getattr(e, "description", "Unprocessable entity")
        return error_response("VALIDATION_ERROR", message, 422)

    # Marshmallow validation errors map to 422
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        # err.messages contains field-level details
        return error_response("VALIDATION_ERROR", "Invalid input", 422, details=err.messages)

    # Every authentication failure looks the same to the client; the kind is only logged
    @app.errorhandler(AuthError)
    def handle_auth_error(err: AuthError):
        log = logger.warning if isinstance(err, RevokedTokenError) else logger.info
        log("Authentication failed", extra={"kind": err.__class__.__name__, "reason": err.message})
        return error_response("UNAUTHORIZED", err.public_message, 401)

    # Transient store failure: retriable, never reported as a bad credential
    @app.errorhandler(StoreUnavailableError)
    def handle_store_unavailable(err: StoreUnavailableError):
        logger.error("Store unavailable", exc_info=err)
        response, status = error_response("SERVICE_UNAVAILABLE", "Service temporarily unavailable", 503)
        response.headers["Retry-After"] = "5"
        return response, status

    # Lost a registration race against another request for the same email
    @app.errorhandler(DuplicateUserError)
    def handle_duplicate_user(err: DuplicateUserError):
        logger.info("Duplicate registration", extra={"reason": str(err)})
        return error_response("CONFLICT", "Email already registered", 409)

    @app.errorhandler(PersistenceError)
    def handle_persistence_error(err: PersistenceError):
        logger.error("Persistence failure", exc_info=err)
        return error_response("INTERNAL_ERROR", "Could not persist session", 500)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return error_response("BAD_REQUEST", err.description, err.code or 400)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("Unhandled exception", exc_info=err)
        details = None
        # In dev, include exception details to speed up debugging
        if current_app and current_app.debug:
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500, details=details)
