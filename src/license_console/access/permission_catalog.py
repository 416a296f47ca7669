"""Process-wide catalog of assignable functional permissions.

The catalog is fetched once and never invalidated: no admin action changes
it. Concurrent ``ensure_loaded()`` callers share one fetch. A failed fetch
leaves the catalog empty and is retried by the next call.
"""

import logging
from typing import Dict, List, Tuple

from ..client.admin_api import AdminApiClient
from .loading import CacheEntry
from .models import PermissionDefinition

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Other"


class PermissionCatalogService:
    """Loads and caches the functional permission catalog."""

    def __init__(self, client: AdminApiClient):
        self._client = client
        self._entry: CacheEntry[Tuple[PermissionDefinition, ...]] = CacheEntry("permission-catalog")

    @property
    def is_loaded(self) -> bool:
        return self._entry.is_loaded

    @property
    def catalog(self) -> Tuple[PermissionDefinition, ...]:
        """The loaded catalog, or an empty tuple before the first successful load."""
        if self._entry.is_loaded:
            return self._entry.value
        return ()

    @property
    def last_error(self):
        return self._entry.error

    async def ensure_loaded(self) -> Tuple[PermissionDefinition, ...]:
        """Return the catalog, fetching it at most once at a time.

        Raises:
            ConsoleApiError: If the fetch fails. The catalog stays empty.
        """
        return await self._entry.load(self._fetch)

    async def _fetch(self) -> Tuple[PermissionDefinition, ...]:
        try:
            definitions = await self._client.get_permission_catalog()
        except Exception as exc:
            logger.warning("Permission catalog load failed: %s", exc)
            raise
        logger.info("Loaded permission catalog (%d permissions)", len(definitions))
        return tuple(definitions)

    def labels(self) -> Dict[str, str]:
        return {definition.key: definition.label for definition in self.catalog}

    def group_by_category(self) -> Dict[str, List[PermissionDefinition]]:
        """Partition the catalog by category, keeping catalog order in each group."""
        return group_by_category(self.catalog)


def group_by_category(catalog) -> Dict[str, List[PermissionDefinition]]:
    groups: Dict[str, List[PermissionDefinition]] = {}
    for definition in catalog:
        groups.setdefault(definition.category or UNCATEGORIZED, []).append(definition)
    return groups
