"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class AccessDeniedError(AppError):
    """Raised when the caller may not act on a resource."""

    def __init__(self, message="Not allowed."):
        """Initialize the error."""
        super().__init__(message, 403)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class GatewayError(AppError):
    """Raised when the payment gateway rejects or fails a request."""

    def __init__(self, message="Payment gateway error.", details=None):
        """Initialize the error."""
        super().__init__(message, 502)
        self.details = details
