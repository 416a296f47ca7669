"""Resource-scoped access-control editor."""

from .editor import AdminPermissionEditor, SaveResult
from .models import (
    ResourceAccessMode,
    ResourceAccessPolicy,
    ResourceType,
    normalize_resource_policies,
)
from .permission_catalog import PermissionCatalogService
from .resource_catalog import ResourceCatalogService
from .state_store import AdminResourceStateStore

__all__ = [
    "AdminPermissionEditor",
    "SaveResult",
    "ResourceAccessMode",
    "ResourceAccessPolicy",
    "ResourceType",
    "normalize_resource_policies",
    "PermissionCatalogService",
    "ResourceCatalogService",
    "AdminResourceStateStore",
]
