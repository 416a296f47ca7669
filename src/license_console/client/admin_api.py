"""Async client for the license backend's administrator endpoints.

Every response is expected in the ``{status, message, data}`` envelope. A
non-success envelope is an error even when the HTTP status is 200.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..config import Settings, get_settings
from .exceptions import ApiResponseError
from .http_client import get_http_client
from .retry import retry_with_backoff
from .schemas import (
    AdminRecord,
    ApiEnvelope,
    PermissionDefinition,
    PermissionsUpdateRequest,
    PermissionsUpdateResult,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/admin"

# Keys under which list endpoints may nest their rows when data is an object
_LIST_KEYS = ("items", "licenses", "policies", "products")


class AdminApiClient:
    """Thin I/O wrapper over the backend's admin REST API."""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ):
        self._http_client = http_client
        self._settings = settings or get_settings()

    @property
    def client(self) -> httpx.AsyncClient:
        return self._http_client or get_http_client()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Perform a request and return the envelope's ``data``."""
        url = f"{API_PREFIX}{path}"

        async def _do_request():
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
            return response

        response = await retry_with_backoff(
            _do_request,
            max_retries=self._settings.max_retries,
            base_delay=self._settings.retry_base_delay,
            max_delay=self._settings.retry_max_delay,
        )

        try:
            envelope = ApiEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ApiResponseError(
                f"Malformed response from {method} {url}",
                status_code=response.status_code,
                response_body=response.text[:500],
            ) from exc

        if not envelope.ok:
            raise ApiResponseError(
                envelope.message or f"{method} {url} failed",
                status_code=response.status_code,
            )

        logger.debug("%s %s -> %d", method, url, response.status_code)
        return envelope.data

    async def get_permission_catalog(self) -> List[PermissionDefinition]:
        data = await self._request("GET", "/permissions/catalog")
        try:
            return [PermissionDefinition.model_validate(row) for row in data or []]
        except ValidationError as exc:
            raise ApiResponseError("Malformed permission catalog") from exc

    async def list_admins(self) -> List[AdminRecord]:
        data = await self._request("GET", "/admins")
        try:
            return [AdminRecord.model_validate(row) for row in data or []]
        except ValidationError as exc:
            raise ApiResponseError("Malformed admin list") from exc

    async def list_resources(self, path: str) -> List[Dict[str, Any]]:
        """Fetch the raw rows of a resource list endpoint such as ``/licenses``."""
        data = await self._request("GET", path)
        if isinstance(data, dict):
            for key in _LIST_KEYS:
                if isinstance(data.get(key), list):
                    data = data[key]
                    break
            else:
                raise ApiResponseError(f"Unexpected list payload from {path}")
        if data is None:
            return []
        if not isinstance(data, list):
            raise ApiResponseError(f"Unexpected list payload from {path}")
        return [row for row in data if isinstance(row, dict)]

    async def update_admin_permissions(
        self,
        admin_id: str,
        request: PermissionsUpdateRequest,
    ) -> PermissionsUpdateResult:
        data = await self._request(
            "PUT",
            f"/admins/{admin_id}/permissions",
            json=request.model_dump(),
        )
        try:
            return PermissionsUpdateResult.model_validate(data or {})
        except ValidationError as exc:
            raise ApiResponseError("Malformed permissions update response") from exc
