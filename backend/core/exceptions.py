"""Custom exceptions for the playbook execution engine."""


class PlaybookEngineError(Exception):
    """Base exception for the playbook execution engine."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code.

        Args:
            message: Exception message
            status_code: HTTP status code
        """
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(PlaybookEngineError):
    """Missing playbook, execution, step, approval or input."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize NotFoundError with 404 status code."""
        super().__init__(message, 404)


class InvalidStateError(PlaybookEngineError):
    """Operation not allowed in the resource's current state."""

    def __init__(self, message: str = "Invalid state"):
        """Initialize InvalidStateError with 409 status code."""
        super().__init__(message, 409)


class ConfigurationError(PlaybookEngineError):
    """Playbook step is misconfigured (e.g. automation without action_id)."""

    def __init__(self, message: str = "Invalid step configuration"):
        """Initialize ConfigurationError with 422 status code."""
        super().__init__(message, 422)


class ValidationError(PlaybookEngineError):
    """Validation error exception."""

    def __init__(self, message: str = "Validation failed"):
        """Initialize ValidationError with 422 status code."""
        super().__init__(message, 422)


class ActionFailureError(PlaybookEngineError):
    """A registry action could not be executed."""

    def __init__(self, message: str = "Action failed"):
        """Initialize ActionFailureError with 502 status code."""
        super().__init__(message, 502)


class UnauthorizedError(PlaybookEngineError):
    """Missing or invalid credentials."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize UnauthorizedError with 401 status code."""
        super().__init__(message, 401)
