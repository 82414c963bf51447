"""Custom exceptions for the TrainHub negotiation core."""


class TrainHubException(Exception):
    """Base exception for the TrainHub application."""

    pass


class ValidationError(TrainHubException):
    """Raised when input validation fails (bad price, missing identifiers)."""

    pass


class NotFoundError(TrainHubException):
    """Raised when a training, request, trainer or company is unknown."""

    pass


class InvalidStateError(TrainHubException):
    """Raised when an operation is not allowed in the entity's current state."""

    pass


class TerminalStateError(InvalidStateError):
    """Raised when a transition is attempted out of a terminal request state."""

    pass


class ConflictError(TrainHubException):
    """Raised when a concurrent writer won the race or the row version is stale."""

    pass


class DatabaseError(TrainHubException):
    """Raised when a database operation fails."""

    pass


class ConfigurationError(TrainHubException):
    """Raised when configuration is invalid."""

    pass


class AuthenticationError(TrainHubException):
    """Raised when authentication fails."""

    pass


class AuthorizationError(TrainHubException):
    """Raised when an authenticated caller lacks the required scope or ownership."""

    pass
