"""Test configuration and fixtures."""

import json
import os
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio

# Set test environment variables BEFORE importing the package
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("API_BASE_URL", "http://backend.test")

from license_console.client.admin_api import AdminApiClient
from license_console.client.schemas import AdminRecord
from license_console.config import Settings


BASE_URL = "http://backend.test"

CATALOG_ROWS = [
    {"key": "dashboard.view", "label": "View dashboard", "description": "", "category": "Dashboard"},
    {"key": "licenses.view", "label": "View licenses", "description": "", "category": "Licenses"},
    {"key": "licenses.manage", "label": "Manage licenses", "description": "", "category": "Licenses"},
    {"key": "devices.view", "label": "View devices", "description": "", "category": "Devices"},
    {"key": "devices.manage", "label": "Manage devices", "description": "", "category": "Devices"},
    {"key": "products.view", "label": "View products", "description": "", "category": "Products"},
    {"key": "policies.view", "label": "View policies", "description": "", "category": "Policies"},
]

LICENSE_ROWS = [
    {"id": "L1", "license_key": "ACME-KEY", "product_name": "Studio", "customer_name": "Acme"},
    {"id": "L2", "license_key": "GLOBEX-KEY", "product_name": "Studio", "customer_name": "Globex"},
]

POLICY_ROWS = [
    {"id": "P1", "policy_name": "Trial", "created_by": "admin-1"},
]

PRODUCT_ROWS = [
    {"id": "PR1", "name": "Studio", "description": "Desktop editor"},
    {"id": "PR2", "name": "Render Farm", "description": "Batch renderer"},
]


def envelope(data: Any = None, status: str = "success", message: str = "") -> Dict[str, Any]:
    return {"status": status, "message": message, "data": data}


def admin_row(
    admin_id: str = "admin-2",
    role: str = "admin",
    permissions: Optional[List[str]] = None,
    resource_permissions: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    row = {
        "id": admin_id,
        "username": f"user-{admin_id}",
        "email": f"{admin_id}@example.com",
        "role": role,
        "permissions": permissions or [],
    }
    if resource_permissions is not None:
        row["resource_permissions"] = resource_permissions
    return row


class FakeBackend:
    """Route table for ``httpx.MockTransport`` that records every request."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Callable[[httpx.Request], Any]] = {}
        self.requests: List[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        status_code: int = 200,
        handler: Optional[Callable[[httpx.Request], Any]] = None,
    ) -> None:
        if handler is None:
            def handler(request, _body=json_body, _status=status_code):
                return httpx.Response(_status, json=_body)
        self.routes[(method, path)] = handler

    def count(self, method: str, path: str) -> int:
        return sum(
            1 for request in self.requests
            if request.method == method and request.url.path == path
        )

    def last_json(self, method: str, path: str) -> Any:
        for request in reversed(self.requests):
            if request.method == method and request.url.path == path:
                return json.loads(request.content)
        return None

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json=envelope(status="error", message="no route"))
        response = handler(request)
        if not isinstance(response, httpx.Response):
            response = await response
        return response


@pytest.fixture
def settings() -> Settings:
    """Settings with retries disabled so failures surface immediately."""
    return Settings(
        api_base_url=BASE_URL,
        api_token="test-token",
        max_retries=0,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
    )


@pytest.fixture
def backend() -> FakeBackend:
    backend = FakeBackend()
    backend.add("GET", "/api/admin/permissions/catalog", envelope(CATALOG_ROWS))
    backend.add("GET", "/api/admin/licenses", envelope(LICENSE_ROWS))
    backend.add("GET", "/api/admin/policies", envelope(POLICY_ROWS))
    backend.add("GET", "/api/admin/products", envelope(PRODUCT_ROWS))
    return backend


@pytest_asyncio.fixture
async def http_client(backend, settings):
    client = httpx.AsyncClient(
        base_url=settings.api_base_url,
        transport=httpx.MockTransport(backend),
        headers=settings.auth_headers(),
    )
    yield client
    await client.aclose()


@pytest.fixture
def api_client(http_client, settings) -> AdminApiClient:
    return AdminApiClient(http_client=http_client, settings=settings)


@pytest.fixture
def sample_admin() -> AdminRecord:
    return AdminRecord.model_validate(admin_row(
        permissions=["licenses.view", "products.view"],
        resource_permissions={
            "licenses": {"mode": "custom", "selected_ids": ["L2"]},
            "policies": {"mode": "none", "selected_ids": None},
            "products": {"mode": "own", "selected_ids": []},
        },
    ))
