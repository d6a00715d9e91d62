"""Error taxonomy shared by the API and its JSON error handlers."""
from typing import Optional

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from civicwatch.extensions import db


class ApiError(Exception):
    """Base class for errors that map onto an HTTP status and a safe message."""

    status_code = 500
    message = "Something went wrong. Please try again later."

    def __init__(self, message: Optional[str] = None, errors: Optional[dict] = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message
        self.errors = errors

    def to_payload(self) -> dict:
        payload = {"status": "error", "message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationError(ApiError):
    status_code = 400
    message = "Invalid input"


class Unauthenticated(ApiError):
    status_code = 401
    message = "Not authenticated. Please log in"


class InvalidToken(Unauthenticated):
    message = "Invalid token. Please log in again"


class TokenExpired(Unauthenticated):
    message = "Your token has expired. Please log in again"


class Forbidden(ApiError):
    status_code = 403
    message = "Not authorized to perform this action"


class NotFound(ApiError):
    status_code = 404
    message = "Resource not found"


class Conflict(ApiError):
    status_code = 409
    message = "Resource already exists"


class NotificationDispatchFailure(Exception):
    """Raised when a best-effort notification cannot be delivered."""


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError):
        if error.status_code >= 500:
            current_app.logger.error("%s %s: %s", request.method, request.path, error.message)
        else:
            current_app.logger.warning(
                "%s %s -> %s %s: %s",
                request.method,
                request.path,
                error.status_code,
                error.__class__.__name__,
                error.message,
            )
        return jsonify(error.to_payload()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        current_app.logger.warning("%s %s -> %s %s", request.method, request.path, error.code, error.name)
        return jsonify({"status": "error", "message": error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        current_app.logger.exception("%s %s -> 500 Internal Server Error", request.method, request.path)
        db.session.rollback()
        return jsonify({"status": "error", "message": ApiError.message}), 500
