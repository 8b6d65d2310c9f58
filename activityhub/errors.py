"""Error taxonomy shared by the services and rendered by the blueprints."""
import logging

from flask import jsonify, request

logger = logging.getLogger(__name__)


class ActivityHubError(Exception):
    """Base exception: carries a stable ``kind`` and an HTTP status code."""

    kind = "error"
    status_code = 400

    def __init__(self, message, details=None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self):
        payload = {"kind": self.kind, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFound(ActivityHubError):
    kind = "not_found"
    status_code = 404

    def __init__(self, resource, identifier):
        super().__init__(f"{resource} not found", details={"resource": resource, "id": identifier})


class PermissionDenied(ActivityHubError):
    kind = "permission_denied"
    status_code = 403


class InvalidState(ActivityHubError):
    kind = "invalid_state"
    status_code = 409


class InvalidArgument(ActivityHubError):
    kind = "invalid_argument"
    status_code = 400

    def __init__(self, message, field=None):
        super().__init__(message, details={"field": field} if field else None)


class Conflict(ActivityHubError):
    kind = "conflict"
    status_code = 409


def register_error_handlers(app):
    @app.errorhandler(ActivityHubError)
    def handle_activityhub_error(exc):
        logger.warning("%s on %s: %s", exc.kind, request.path, exc.message)
        return jsonify({"success": False, "error": exc.to_dict()}), exc.status_code
