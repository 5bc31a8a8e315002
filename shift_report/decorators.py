"""
Decorators for error handling and logging of Azure DevOps calls.

SDK exceptions are translated into the error classes of errors.py at the
boundary, so callers only ever see AzureDevOpsError subclasses.
"""

import logging
from functools import wraps
from typing import Callable, TypeVar, Optional

from azure.devops.exceptions import (
    AzureDevOpsAuthenticationError,
    AzureDevOpsServiceError
)
from msrest.exceptions import ClientRequestError

from .errors import (
    AzureDevOpsError,
    AuthenticationError,
    TransportError,
    map_status_code_to_error
)

# Type variable for generic function signatures
T = TypeVar('T')

logger = logging.getLogger(__name__)


def _extract_status_code(error: Exception) -> Optional[int]:
    """Find an HTTP status code on an SDK exception or its response."""
    status_code = getattr(error, 'status_code', None)

    if not status_code and hasattr(error, 'response'):
        response = getattr(error, 'response', None)
        if response is not None:
            status_code = getattr(response, 'status_code', None)

    return status_code


def _extract_retry_after(error: Exception) -> Optional[int]:
    """Read the Retry-After header of a 429 response, in seconds."""
    response = getattr(error, 'response', None)
    headers = getattr(response, 'headers', None) or {}
    value = headers.get('Retry-After') or headers.get('retry-after')
    if not value:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        logger.warning(f"Could not parse Retry-After header: {value}")
        return None


def translate_error(error: Exception, operation: str = "request") -> AzureDevOpsError:
    """
    Translate an exception raised by the SDK into an AzureDevOpsError.

    Args:
        error: The exception raised by the Azure DevOps client
        operation: Name of the failing operation, used in messages

    Returns:
        Matching AzureDevOpsError subclass instance
    """
    if isinstance(error, AzureDevOpsError):
        return error

    status_code = _extract_status_code(error)
    if status_code:
        if status_code == 429:
            return map_status_code_to_error(
                status_code,
                original_error=error,
                retry_after=_extract_retry_after(error)
            )
        return map_status_code_to_error(status_code, original_error=error)

    if isinstance(error, AzureDevOpsAuthenticationError):
        return AuthenticationError(original_error=error)

    if isinstance(error, AzureDevOpsServiceError):
        # The server answered but the SDK drops the status code
        return AzureDevOpsError(
            message=f"Azure DevOps rejected {operation}: {error.message}",
            original_error=error
        )

    if isinstance(error, ClientRequestError):
        return TransportError(
            message=f"Azure DevOps endpoint unreachable during {operation}: {error}",
            original_error=error
        )

    return AzureDevOpsError(
        message=f"Unexpected error in {operation}: {error}",
        original_error=error
    )


def handle_ado_error(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator to translate Azure DevOps SDK exceptions.

    Args:
        func: The async function to wrap

    Returns:
        Wrapped function raising only AzureDevOpsError subclasses

    Example:
        @handle_ado_error
        async def run_query(self, wiql):
            return self.wit_client.query_by_wiql(wiql)
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except AzureDevOpsError:
            raise
        except Exception as e:
            error = translate_error(e, func.__name__)
            logger.error(f"Azure DevOps call {func.__name__} failed: {error}")
            logger.debug("Original exception", exc_info=True)
            raise error from e

    return wrapper


def log_execution(
    level: int = logging.DEBUG,
    log_result_size: bool = False
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to log entry and exit of an async call.

    Args:
        level: Logging level (default: DEBUG)
        log_result_size: Whether to log len() of the result

    Returns:
        Decorator function
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            func_name = func.__name__
            logger.log(level, f"Calling {func_name}")

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.log(level, f"{func_name} failed with error: {e}")
                raise

            if log_result_size and result is not None:
                logger.log(level, f"{func_name} returned {len(result)} item(s)")
            else:
                logger.log(level, f"{func_name} completed successfully")
            return result

        return wrapper
    return decorator


def azure_devops_operation(
    level: int = logging.DEBUG,
    log_result_size: bool = True
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Convenience decorator combining logging and error translation.

    Applies decorators in order:
    1. Execution logging (outermost)
    2. Error translation (innermost)

    No retry is performed; a failed call fails once.

    Example:
        @azure_devops_operation()
        async def fetch_details(self, ids):
            return self.wit_client.get_work_items(ids=ids)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        decorated = handle_ado_error(func)
        decorated = log_execution(level=level, log_result_size=log_result_size)(decorated)
        return decorated

    return decorator
