"""
Custom Exceptions for Zomieks

Hierarchical exception classes for proper error handling across layers.
"""

from typing import Optional, Dict, Any


class ZomieksError(Exception):
    """Base exception for all Zomieks errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(ZomieksError):
    """Raised when input validation fails."""
    pass


class AuthorizationError(ZomieksError):
    """Raised when the caller lacks the role or verification an operation needs."""
    pass


class DatabaseError(ZomieksError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class NotFoundError(DatabaseError):
    """Raised when a requested resource is not found."""
    pass


class DuplicateError(DatabaseError):
    """Raised when attempting to create a duplicate resource."""
    pass


class PaymentGatewayError(ZomieksError):
    """Raised when a payment gateway call or payload fails."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if provider:
            details["provider"] = provider
        super().__init__(message, details, original_error)


class WebhookVerificationError(PaymentGatewayError):
    """Raised when an inbound gateway notification fails authenticity checks."""
    pass


class SessionStoreError(ZomieksError):
    """Raised when the session key-value store is unreachable or corrupt."""
    pass


class ConfigurationError(ZomieksError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
