"""Per-resource-type catalogs of selectable instances.

Used to populate the explicit allow-list in ``custom`` mode. Each type has its
own cache slot; concurrent ``get`` calls for a type share one fetch, and
``invalidate`` orphans any fetch still in flight so that only the latest
request can write the cache.

``get`` never raises collaborator errors. Callers inspect ``error`` on the
returned state; ``forbidden`` marks a 403, meaning the viewer lacks the
underlying view permission for that type.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping

from ..client.admin_api import AdminApiClient
from ..client.exceptions import ApiForbiddenError, ConsoleApiError
from ..observability.logging import set_log_context
from .loading import CacheEntry, LoadState
from .models import (
    RESOURCE_TYPE_META,
    ResourceCatalogEntry,
    ResourceCatalogState,
    ResourceType,
    parse_resource_type,
)

logger = logging.getLogger(__name__)


def _text(row: Mapping[str, Any], key: str) -> str:
    value = row.get(key)
    return str(value).strip() if value is not None else ""


def _map_license(row: Mapping[str, Any]) -> ResourceCatalogEntry:
    details = [part for part in (_text(row, "product_name"), _text(row, "customer_name")) if part]
    return ResourceCatalogEntry(
        id=_text(row, "id"),
        name=_text(row, "license_key") or _text(row, "id"),
        description=" / ".join(details),
    )


def _map_policy(row: Mapping[str, Any]) -> ResourceCatalogEntry:
    return ResourceCatalogEntry(
        id=_text(row, "id"),
        name=_text(row, "policy_name") or _text(row, "id"),
        description=_text(row, "created_by"),
    )


def _map_product(row: Mapping[str, Any]) -> ResourceCatalogEntry:
    return ResourceCatalogEntry(
        id=_text(row, "id"),
        name=_text(row, "name") or _text(row, "id"),
        description=_text(row, "description"),
    )


ITEM_MAPPERS: Dict[ResourceType, Callable[[Mapping[str, Any]], ResourceCatalogEntry]] = {
    ResourceType.LICENSES: _map_license,
    ResourceType.POLICIES: _map_policy,
    ResourceType.PRODUCTS: _map_product,
}


def describe_error(resource_type: ResourceType, exc: Exception) -> str:
    meta = RESOURCE_TYPE_META[resource_type]
    if isinstance(exc, ApiForbiddenError):
        return (
            f"You need the '{meta.view_permission}' permission to list "
            f"{meta.label.lower()}. Grant it first."
        )
    return f"Failed to load {meta.label.lower()}: {exc}"


class ResourceCatalogService:
    """Loads and caches selectable instances per resource type."""

    def __init__(self, client: AdminApiClient):
        self._client = client
        self._entries: Dict[ResourceType, CacheEntry[List[ResourceCatalogEntry]]] = {}

    def _entry(self, resource_type: ResourceType) -> CacheEntry[List[ResourceCatalogEntry]]:
        entry = self._entries.get(resource_type)
        if entry is None:
            entry = CacheEntry(f"resource-catalog:{resource_type.value}")
            self._entries[resource_type] = entry
        return entry

    async def get(self, resource_type, force_reload: bool = False) -> ResourceCatalogState:
        """Return the catalog state for *resource_type*, fetching if needed."""
        resource_type = parse_resource_type(resource_type)
        entry = self._entry(resource_type)

        try:
            items = await entry.load(
                lambda: self._fetch(resource_type), force=force_reload
            )
        except ConsoleApiError as exc:
            return ResourceCatalogState(
                items=[],
                loaded=False,
                loading=False,
                error=describe_error(resource_type, exc),
                forbidden=isinstance(exc, ApiForbiddenError),
            )
        return ResourceCatalogState(items=list(items), loaded=True)

    async def _fetch(self, resource_type: ResourceType) -> List[ResourceCatalogEntry]:
        set_log_context(resource_type=resource_type.value)
        meta = RESOURCE_TYPE_META[resource_type]
        mapper = ITEM_MAPPERS[resource_type]
        try:
            rows = await self._client.list_resources(meta.list_path)
        except ConsoleApiError as exc:
            logger.warning("Resource catalog load failed for %s: %s", resource_type.value, exc)
            raise

        items = []
        for row in rows:
            item = mapper(row)
            if not item.id:
                continue
            items.append(item)
        logger.debug("Loaded %d %s for selection", len(items), resource_type.value)
        return items

    def peek(self, resource_type) -> ResourceCatalogState:
        """Current cached state without triggering a fetch."""
        resource_type = parse_resource_type(resource_type)
        entry = self._entries.get(resource_type)
        if entry is None or entry.state is LoadState.EMPTY:
            return ResourceCatalogState()
        if entry.state is LoadState.LOADING:
            return ResourceCatalogState(items=list(entry.value or []), loading=True)
        if entry.state is LoadState.FAILED:
            return ResourceCatalogState(
                error=describe_error(resource_type, entry.error),
                forbidden=isinstance(entry.error, ApiForbiddenError),
            )
        return ResourceCatalogState(items=list(entry.value), loaded=True)

    def invalidate(self, resource_type) -> None:
        """Drop the cache for one type; the next ``get`` refetches."""
        resource_type = parse_resource_type(resource_type)
        entry = self._entries.get(resource_type)
        if entry is not None:
            entry.reset()
            logger.debug("Invalidated resource catalog for %s", resource_type.value)

    def invalidate_all(self) -> None:
        for resource_type in list(self._entries):
            self.invalidate(resource_type)
