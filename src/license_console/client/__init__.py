"""Backend collaborator client for the license console."""

from .admin_api import AdminApiClient
from .exceptions import (
    ConsoleApiError,
    ApiAuthError,
    ApiForbiddenError,
    ApiNotFoundError,
    ApiRateLimitError,
    ApiResponseError,
    ApiTimeoutError,
    ApiTransportError,
)

__all__ = [
    "AdminApiClient",
    "ConsoleApiError",
    "ApiAuthError",
    "ApiForbiddenError",
    "ApiNotFoundError",
    "ApiRateLimitError",
    "ApiResponseError",
    "ApiTimeoutError",
    "ApiTransportError",
]
