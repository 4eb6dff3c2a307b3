from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for domain errors raised by the service layer.

    Routes let these propagate; the handler registered in ``main.py`` turns
    them into the ``{"error": {...}}`` envelope with ``status_code``.
    """

    status_code: int = 500
    code: str = "app_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
        }
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    """Missing or malformed field, or an unacceptable file."""

    status_code = 400
    code = "validation_error"


class InvalidStateError(AppError):
    """The application is not in a status that allows the requested transition."""

    status_code = 400
    code = "invalid_state"


class AuthorizationError(AppError):
    status_code = 403
    code = "forbidden"

    def __init__(self, message: str = "You are not allowed to access this resource", details=None):
        super().__init__(message, details)


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class UpstreamError(AppError):
    """Storage, email or payment gateway failure.

    ``message`` is what the client sees; the underlying cause is logged where
    the error is raised and kept on ``__cause__``.
    """

    status_code = 500
    code = "upstream_error"

    def __init__(self, message: str = "An external service is unavailable, please try again later", details=None):
        super().__init__(message, details)
