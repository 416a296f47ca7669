"""Exceptions raised by the backend collaborator client.

Raised from the admin API client and caught at the access-control component
boundaries, where they become error-state fields or save results.
"""

from typing import Optional


class ConsoleApiError(Exception):
    """Base exception for all backend collaborator errors."""

    def __init__(self, message: str, status_code: int = 0):
        self.status_code = status_code
        super().__init__(message)


class ApiAuthError(ConsoleApiError):
    """Missing or expired credentials (401)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=401)


class ApiForbiddenError(ConsoleApiError):
    """The signed-in administrator lacks the permission for this call (403)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=403)


class ApiNotFoundError(ConsoleApiError):
    """Resource not found (404)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class ApiRateLimitError(ConsoleApiError):
    """Rate limit exceeded (429). Includes retry_after hint if available."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(message, status_code=429)


class ApiResponseError(ConsoleApiError):
    """The backend answered, but not with a usable success envelope."""

    def __init__(self, message: str, status_code: int = 0, response_body: str = ""):
        self.response_body = response_body
        super().__init__(message, status_code=status_code)


class ApiTimeoutError(ConsoleApiError):
    """Request timed out or the connection failed."""

    pass


class ApiTransportError(ConsoleApiError):
    """The request failed below HTTP, e.g. a protocol violation or bad URL."""

    pass
