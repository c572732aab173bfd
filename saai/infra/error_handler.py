"""Error classification for vendor calls and the HTTP boundary."""

import asyncio
import re
from typing import Optional, Tuple
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories of errors for better handling."""
    NETWORK = "network"  # Connection issues, timeouts
    API_ERROR = "api_error"  # API returned error response
    AUTH_ERROR = "auth_error"  # Authentication/authorization failures
    RATE_LIMIT = "rate_limit"  # Rate limit exceeded
    VALIDATION = "validation"  # Input validation errors
    BUSINESS_LOGIC = "business_logic"  # Business rule violations
    UNKNOWN = "unknown"  # Unknown errors


class RetryableError(Exception):
    """Base exception for classified errors."""
    def __init__(self, message: str, category: ErrorCategory, retryable: bool = True, retry_after: Optional[float] = None):
        self.message = message
        self.category = category
        self.retryable = retryable
        self.retry_after = retry_after
        super().__init__(message)


class NetworkError(RetryableError):
    """Network-related errors (connection, timeout)."""
    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message, ErrorCategory.NETWORK, retryable=True, retry_after=retry_after)


class APIError(RetryableError):
    """API returned an error response."""
    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = False, retry_after: Optional[float] = None):
        self.status_code = status_code
        super().__init__(message, ErrorCategory.API_ERROR, retryable=retryable, retry_after=retry_after)


class AuthError(RetryableError):
    """Authentication/authorization errors."""
    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.AUTH_ERROR, retryable=False)


class RateLimitError(RetryableError):
    """Rate limit exceeded."""
    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message, ErrorCategory.RATE_LIMIT, retryable=True, retry_after=retry_after)


class ValidationError(RetryableError):
    """Input validation errors."""
    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.VALIDATION, retryable=False)


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def classify_error(error: Exception) -> Tuple[ErrorCategory, bool, Optional[float]]:
    """
    Classify an error into a category and determine if it's retryable.

    Args:
        error: The exception to classify

    Returns:
        Tuple of (category, retryable, retry_after_seconds)
    """
    if isinstance(error, RetryableError):
        return error.category, error.retryable, error.retry_after

    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return ErrorCategory.NETWORK, True, None

    error_str = str(error).lower()

    if any(keyword in error_str for keyword in ['connection', 'timeout', 'network', 'dns', 'refused']):
        return ErrorCategory.NETWORK, True, None

    if 'rate limit' in error_str or '429' in error_str or 'too many requests' in error_str:
        match = re.search(r'retry[_-]after[:\s]+(\d+)', error_str, re.IGNORECASE)
        retry_after = float(match.group(1)) if match else None
        return ErrorCategory.RATE_LIMIT, True, retry_after

    if any(keyword in error_str for keyword in ['unauthorized', 'forbidden', '401', '403', 'authentication', 'authorization']):
        return ErrorCategory.AUTH_ERROR, False, None

    if 'api' in error_str or 'http' in error_str:
        return ErrorCategory.API_ERROR, False, None

    return ErrorCategory.UNKNOWN, False, None


def wrap_llm_error(error: Exception, provider: str) -> RetryableError:
    """
    Wrap LLM API errors into our error types.

    Args:
        error: Original exception
        provider: LLM provider name ('groq', 'gemini', 'mistral', 'openrouter')

    Returns:
        RetryableError with appropriate category
    """
    if isinstance(error, RetryableError):
        return error

    error_str = str(error)
    error_lower = error_str.lower()

    if 'rate limit' in error_lower or '429' in error_str:
        retry_after = None
        response = getattr(error, 'response', None)
        if response is not None and hasattr(response, 'headers'):
            retry_after = _parse_retry_after(response.headers.get('retry-after'))
        return RateLimitError(f"{provider} rate limit exceeded", retry_after=retry_after)

    if '401' in error_str or 'unauthorized' in error_lower or 'authentication' in error_lower:
        return AuthError(f"{provider} authentication failed: {error_str}")

    if any(keyword in error_lower for keyword in ['connection', 'timeout', 'network']):
        return NetworkError(f"{provider} network error: {error_str}")

    status_code = getattr(error, 'status_code', None)
    if isinstance(status_code, int):
        if status_code == 429:
            return RateLimitError(f"{provider} rate limit exceeded (429)")
        elif status_code in [401, 403]:
            return AuthError(f"{provider} auth error ({status_code})")
        elif status_code >= 500:
            return APIError(f"{provider} server error ({status_code})", status_code=status_code, retryable=True)
        else:
            return APIError(f"{provider} API error ({status_code})", status_code=status_code, retryable=False)

    return NetworkError(f"{provider} error: {error_str}")


def error_type_for(error: Exception) -> str:
    """
    Map an exception escaping a route to the `type` discriminator of the
    JSON error envelope.
    """
    name = type(error).__name__
    message = str(error).lower()

    if name in ("TenantNotFoundError", "RegistryNotFoundError"):
        return "tenant_not_found"
    if isinstance(error, RateLimitError) or 'rate limit' in message:
        return "rate_limit"
    if isinstance(error, (ValidationError, ValueError)) or 'validation' in message:
        return "validation_error"
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)) or 'timeout' in message:
        return "timeout"
    if isinstance(error, AuthError) or 'unauthorized' in message or 'authentication' in message:
        return "auth_error"
    if isinstance(error, PermissionError) or 'forbidden' in message:
        return "permission_error"
    return "internal_error"
