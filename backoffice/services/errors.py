class ServiceError(Exception):
    """Base class for errors raised by the service layer."""


class NotFoundError(ServiceError):
    """The requested record does not exist."""


class BusinessRuleError(ServiceError):
    """A request came inside a cooldown window, such as a repeated reset email."""


class ConflictError(ServiceError):
    """The request would duplicate a unique value, such as an account email."""


class AuthenticationError(ServiceError):
    """Credentials or tokens were missing, wrong or expired."""


class InvalidRequestError(ServiceError):
    """The request is missing data the operation needs, or names a path it may not touch."""
