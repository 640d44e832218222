"""Application errors. Each carries the HTTP status the API layer renders it with."""

from typing import Optional


class AppError(Exception):
    """Base exception for PlantGenius"""

    status_code = 500
    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(AppError):
    """Malformed or missing input"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class EmailRequired(ValidationError):
    def __init__(self, message: str = "Email is required"):
        super().__init__(message, field="email")


class PasswordRequired(ValidationError):
    def __init__(self, message: str = "Password is required"):
        super().__init__(message, field="password")


class InvalidOrExpiredToken(ValidationError):
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message, field="token")


class AuthenticationError(AppError):
    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class InvalidCredentials(AuthenticationError):
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class InvalidToken(AuthenticationError):
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class ExpiredToken(InvalidToken):
    pass


class AuthorizationError(AppError):
    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class ConflictError(AppError):
    """Unique constraint violated (duplicate email, reused payment reference)"""

    status_code = 400


class DuplicateEmail(ConflictError):
    def __init__(self, message: str = "User already exists"):
        super().__init__(message)


class PaymentVerificationFailed(AppError):
    status_code = 400

    def __init__(self, message: str = "Payment verification failed", reference: Optional[str] = None):
        self.reference = reference
        super().__init__(message)


class DuplicatePaymentReference(PaymentVerificationFailed, ConflictError):
    def __init__(self, reference: Optional[str] = None):
        super().__init__("Payment reference has already been used", reference=reference)


class DependencyError(AppError):
    """An upstream service could not be reached or gave an ambiguous answer"""

    status_code = 502
    retryable = True


class PaymentVerifierUnavailable(DependencyError):
    def __init__(self, message: str = "Payment verification is temporarily unavailable, please retry",
                 reference: Optional[str] = None):
        self.reference = reference
        super().__init__(message)


class InternalError(AppError):
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
