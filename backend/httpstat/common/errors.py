"""
Error Definitions

Defines custom exception classes used in the application for unified error handling.
"""

from typing import Any, Optional


class AppError(Exception):
    """
    Application Base Exception

    Base class for all custom exceptions, containing error message, type, and code.
    """

    def __init__(
        self,
        message: str,
        error_type: str = "app_error",
        code: str = "internal_error",
        details: Optional[dict[str, Any]] = None,
        status_code: int = 500,
    ):
        """
        Initialize exception

        Args:
            message: Error message
            error_type: Error type
            code: Error code
            details: Extra error details
            status_code: HTTP status code
        """
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.code = code
        self.details = details or {}
        self.status_code = status_code

    def to_dict(self, include_details: bool = True) -> dict[str, Any]:
        """
        Convert to dictionary format (for API response)

        Args:
            include_details: Whether to include extra details (hidden in production)

        Returns:
            dict: Error information dictionary
        """
        result = {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.code,
            }
        }
        if include_details and self.details:
            result["error"]["details"] = self.details
        return result


class ValidationError(AppError):
    """
    Parameter Validation Error

    Raised when the target URL is malformed or not allowed.
    """

    def __init__(
        self,
        message: str = "url is not valid",
        code: str = "invalid_url",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type="validation_error",
            code=code,
            details=details,
            status_code=400,
        )


class UpstreamError(AppError):
    """
    Upstream Service Error

    Raised when the measured request fails (DNS, connect, TLS, read or timeout).
    """

    def __init__(
        self,
        message: str = "Upstream request failed",
        code: str = "upstream_error",
        details: Optional[dict[str, Any]] = None,
        status_code: int = 502,
    ):
        super().__init__(
            message=message,
            error_type="upstream_error",
            code=code,
            details=details,
            status_code=status_code,
        )


class TimelineStateError(AppError):
    """
    Timeline State Error

    Raised when a recorder is finalized twice, or finalized with an instant
    earlier than the first response byte.
    """

    def __init__(
        self,
        message: str = "Invalid timeline state",
        code: str = "timeline_state_error",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type="timeline_state_error",
            code=code,
            details=details,
            status_code=500,
        )
