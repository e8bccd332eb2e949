"""
Error taxonomy shared by the backend services and the client core.
The backend maps these to HTTP status codes; the client gateway maps them back.
"""


class VisitorManagementError(Exception):
    """Base exception for the visitor management system."""
    status_code = 500
    kind = "error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__


class ValidationError(VisitorManagementError):
    """Missing or malformed input. Never persisted."""
    status_code = 400
    kind = "validation"


class NotFoundError(VisitorManagementError):
    """Target request, flat or resident does not exist (including retention deletes)."""
    status_code = 404
    kind = "not_found"


class InvalidTransitionError(VisitorManagementError):
    """Request is no longer in the state the action expects."""
    status_code = 409
    kind = "invalid_transition"


class NotResidentOfRecordError(InvalidTransitionError):
    """Caller is not a resident of the request's flat."""


class TransportError(VisitorManagementError):
    """Gateway unreachable or the subscription dropped."""
    status_code = 503
    kind = "transport"


class ServerError(VisitorManagementError):
    """Backend reached but failed to handle the call (5xx)."""
    status_code = 500
    kind = "server"


ERRORS_BY_STATUS = {
    400: ValidationError,
    404: NotFoundError,
    409: InvalidTransitionError,
    422: ValidationError,
}
