"""Exceptions raised by the use-case services; routers map them to HTTP codes."""


class ServiceError(Exception):
    """Base class for service-level failures."""


class ValidationError(ServiceError):
    """Raised when input is missing or malformed."""


class NotFoundError(ServiceError):
    """Raised when the addressed record does not exist."""


class UserError(ServiceError):
    """Base class for account-related failures."""


class UserNotFoundError(UserError, NotFoundError):
    pass


class UsernameTakenError(UserError):
    pass


class InvalidCredentialsError(UserError):
    pass


class RegistrationError(UserError, ValidationError):
    pass


class PermissionDeniedError(UserError):
    pass
