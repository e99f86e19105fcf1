"""Domain errors raised by the credential store, token codec and services.

Each error carries a message and the HTTP status the API boundary maps it to.
"""


class ServiceError(Exception):
    """Base class for typed domain errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class EmailInUseError(ServiceError):
    status_code = 400

    def __init__(self, message: str = "Email already in use") -> None:
        super().__init__(message)


class DuplicateNameError(ServiceError):
    """Raised when a role or permission name is already taken."""

    status_code = 400


class InvalidCredentialsError(ServiceError):
    """Raised for both unknown email and wrong password, with one generic message."""

    status_code = 401

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(message)


class InvalidTokenError(ServiceError):
    status_code = 401

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class InvalidResetTokenError(ServiceError):
    status_code = 400

    def __init__(self, message: str = "Invalid or expired reset token") -> None:
        super().__init__(message)


class UserNotFoundError(ServiceError):
    status_code = 404

    def __init__(self, message: str = "User not found") -> None:
        super().__init__(message)


class RoleNotFoundError(ServiceError):
    status_code = 404

    def __init__(self, message: str = "Role not found") -> None:
        super().__init__(message)


class PermissionNotFoundError(ServiceError):
    status_code = 404

    def __init__(self, message: str = "Permission not found") -> None:
        super().__init__(message)


class SystemEntityProtectedError(ServiceError):
    """Raised when deleting a system role or permission."""

    status_code = 403


class ConfigurationError(ServiceError):
    """Operator setup error (e.g. the default role is missing). Fatal to the operation only."""

    status_code = 500
