"""Domain exceptions for the back-office application.

Defines domain-level exceptions that represent business rule violations.
Callers branch on the exception class (or error_code), never on the
message. Presentation layer maps them to HTTP responses in exception
handlers.
"""

from typing import Any


class BackofficeException(Exception):
    """Base exception for all back-office application errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON error body (error, message, details)."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(BackofficeException):
    """Raised when input validation fails (e.g. invalid format or range)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class BadRequestException(BackofficeException):
    """Raised when a call lacks a required identifier (e.g. no organization id)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional missing field name.

        Args:
            message: Description of what is missing.
            field: Optional name of the missing field.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "BAD_REQUEST", details)


class AuthenticationException(BackofficeException):
    """Raised when authentication fails (e.g. invalid credentials or token)."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class AuthorizationException(BackofficeException):
    """Raised when the caller's role is insufficient for the operation.

    Carries the required role and the caller's actual role ("none" when
    the caller is not a member) so clients can explain the rejection.
    """

    def __init__(
        self,
        required_role: str | None = None,
        actual_role: str | None = None,
        message: str | None = None,
    ) -> None:
        """Initialize with optional required/actual role and message.

        Args:
            required_role: Minimum role the operation needs.
            actual_role: Caller's resolved role; None means not a member.
            message: Human-readable message; built from the roles when omitted.
        """
        details: dict[str, Any] = {}
        if required_role is not None:
            details["required_role"] = required_role
            details["actual_role"] = actual_role or "none"
            if message is None:
                message = (
                    f"This operation requires {required_role} role or higher. "
                    f"Your role: {actual_role or 'none'}"
                )
        super().__init__(message or "Permission denied", "PERMISSION_DENIED", details)


class ResourceNotFoundException(BackofficeException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'org', 'member').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class SqlNotConfiguredException(BackofficeException):
    """Raised when an operation requires the SQL database but it is not configured."""

    def __init__(self) -> None:
        super().__init__(
            message="This operation requires a SQL database that is not configured.",
            error_code="SERVICE_UNAVAILABLE",
        )
