"""
Custom exception classes for the shift report.

Provides structured error handling for Azure DevOps API failures,
credential lookups and malformed work item data.
"""

from typing import Optional, Any


class AzureDevOpsError(Exception):
    """
    Base exception for Azure DevOps API errors.

    Attributes:
        status_code: HTTP status code from the API response
        message: Human-readable error message
        original_error: The original exception that was caught
        details: Additional error details
    """

    def __init__(
        self,
        message: str = "Azure DevOps API error",
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
        details: Optional[Any] = None
    ):
        self.status_code = status_code
        self.message = message
        self.original_error = original_error
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        """String representation of the error."""
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message

    def to_dict(self) -> dict:
        """Convert error to dictionary for JSON serialization."""
        return {
            'error': self.__class__.__name__,
            'status_code': self.status_code,
            'message': self.message,
            'details': str(self.details) if self.details else None
        }


class BadRequestError(AzureDevOpsError):
    """
    Raised for malformed requests (HTTP 400).

    Usually a WIQL syntax error or a field reference name the
    project does not define.
    """

    def __init__(
        self,
        message: str = "Bad request. Please check the query and the configured fields.",
        original_error: Optional[Exception] = None,
        details: Optional[Any] = None
    ):
        super().__init__(
            message=message,
            status_code=400,
            original_error=original_error,
            details=details
        )


class AuthenticationError(AzureDevOpsError):
    """
    Raised when authentication fails (HTTP 401).

    This is what an empty or expired token ends up as once the
    request reaches the server.
    """

    def __init__(
        self,
        message: str = "Authentication failed. Your token may be missing or expired.",
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            status_code=401,
            original_error=original_error
        )


class PermissionDeniedError(AzureDevOpsError):
    """Raised when the token lacks read access to work items (HTTP 403)."""

    def __init__(
        self,
        message: str = "Permission denied. The token needs the 'vso.work' scope.",
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            status_code=403,
            original_error=original_error
        )


class ProjectNotFoundError(AzureDevOpsError):
    """Raised when the organization or project does not exist (HTTP 404)."""

    def __init__(
        self,
        project: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        message = "Project or endpoint not found. Please verify the server URL."
        if project:
            message = f"Project '{project}' not found. Please verify the server URL and project name."

        super().__init__(
            message=message,
            status_code=404,
            original_error=original_error,
            details={'project': project} if project else None
        )


class RateLimitError(AzureDevOpsError):
    """Raised when the API rate limit is exceeded (HTTP 429)."""

    def __init__(
        self,
        retry_after: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        if retry_after:
            message = f"Rate limit exceeded. Server asked to wait {retry_after} seconds."
        else:
            message = "Rate limit exceeded."

        super().__init__(
            message=message,
            status_code=429,
            original_error=original_error,
            details={'retry_after': retry_after}
        )
        self.retry_after = retry_after


class TransientError(AzureDevOpsError):
    """Raised for temporary service errors (HTTP 500, 502, 503, 504)."""

    def __init__(
        self,
        status_code: int,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=f"Azure DevOps service temporarily unavailable (HTTP {status_code}).",
            status_code=status_code,
            original_error=original_error
        )


class TransportError(AzureDevOpsError):
    """
    Raised when no HTTP response was received at all.

    Covers DNS failures, refused connections and TLS errors.
    """

    def __init__(
        self,
        message: str = "Azure DevOps endpoint is unreachable.",
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            original_error=original_error
        )


class CredentialError(Exception):
    """Raised when no authentication token could be obtained."""

    def __init__(self, target: str, message: Optional[str] = None):
        self.target = target
        super().__init__(
            message or f"No credential could be retrieved for target '{target}'"
        )


class CellFormatError(ValueError):
    """Raised when a work item field cannot be rendered for its column."""

    def __init__(self, work_item_id: Any, column: str, value: Any):
        self.work_item_id = work_item_id
        self.column = column
        self.value = value
        super().__init__(
            f"Work item {work_item_id}: cannot render {value!r} for column '{column}'"
        )


class ConfigurationError(Exception):
    """Raised when a required setting is missing or malformed."""
    pass


def map_status_code_to_error(
    status_code: int,
    original_error: Optional[Exception] = None,
    **kwargs
) -> AzureDevOpsError:
    """
    Map HTTP status code to appropriate error class.

    Args:
        status_code: HTTP status code from Azure DevOps API
        original_error: The original exception
        **kwargs: Additional error-specific parameters

    Returns:
        Appropriate AzureDevOpsError subclass instance
    """
    if status_code == 400:
        return BadRequestError(original_error=original_error, **kwargs)
    elif status_code == 401:
        return AuthenticationError(original_error=original_error)
    elif status_code == 403:
        return PermissionDeniedError(original_error=original_error)
    elif status_code == 404:
        return ProjectNotFoundError(original_error=original_error, **kwargs)
    elif status_code == 429:
        return RateLimitError(original_error=original_error, **kwargs)
    elif status_code in [500, 502, 503, 504]:
        return TransientError(status_code=status_code, original_error=original_error)
    else:
        return AzureDevOpsError(
            message=f"Azure DevOps API error: HTTP {status_code}",
            status_code=status_code,
            original_error=original_error
        )
