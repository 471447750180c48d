"""
Custom exceptions for the application.
"""


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    """Validation error."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "VALIDATION_ERROR")


class NotFoundError(AppError):
    """Requested resource does not exist."""

    def __init__(self, message: str, code: str = "NOT_FOUND") -> None:
        super().__init__(message, code)


class ConfigurationError(AppError):
    """Deployment configuration is missing or invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "CONFIGURATION_ERROR")
