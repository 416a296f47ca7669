"""Wiring for the access-control editor.

``AccessConsole`` owns the catalog services, the state store and the editor,
and hands them out by reference; nothing in the access package is a module
level global.
"""

import logging
from typing import Optional

import httpx

from .access.editor import AdminPermissionEditor
from .access.permission_catalog import PermissionCatalogService
from .access.presentation import PermissionSummary, permission_summary
from .access.resource_catalog import ResourceCatalogService
from .access.state_store import AdminResourceStateStore
from .client.admin_api import AdminApiClient
from .client.http_client import close_http_client
from .client.schemas import AdminRecord
from .config import Settings, get_settings
from .observability.logging import clear_log_context, configure_logging

logger = logging.getLogger(__name__)


class AccessConsole:
    """Owns one set of access-control services for a console session."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self._owns_http_client = http_client is None
        self.client = AdminApiClient(http_client, self.settings)
        self.permission_catalog = PermissionCatalogService(self.client)
        self.resource_catalog = ResourceCatalogService(self.client)
        self.state_store = AdminResourceStateStore()
        self.editor = AdminPermissionEditor(
            self.client,
            self.permission_catalog,
            self.resource_catalog,
            self.state_store,
        )

    def summarize(self, admin: AdminRecord) -> PermissionSummary:
        """Permission badge for an admin list row."""
        return permission_summary(
            admin.permissions,
            admin.is_super_admin,
            labels=self.permission_catalog.labels(),
            max_labels=self.settings.summary_max_labels,
        )

    async def aclose(self) -> None:
        self.editor.close()
        clear_log_context()
        if self._owns_http_client:
            await close_http_client()

    async def __aenter__(self) -> "AccessConsole":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def create_console(
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AccessConsole:
    """Configure logging from settings and build a console."""
    settings = settings or get_settings()
    configure_logging(environment=settings.environment, log_level=settings.log_level)
    logger.info("%s %s targeting %s", settings.app_name, settings.app_version, settings.api_base_url)
    return AccessConsole(settings=settings, http_client=http_client)
