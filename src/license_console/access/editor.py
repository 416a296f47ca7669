"""Orchestrates editing one sub-administrator's permissions.

Open an administrator with ``load_for_admin``: the permission catalog is
ensured, resource policies are hydrated from the cached admin row and the
functional checklist is pre-checked. Edits stay in memory until ``save``,
whose server echo then replaces local state. Only one administrator is
active at a time, but earlier sessions stay in memory and can be resumed.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..client.admin_api import AdminApiClient
from ..client.exceptions import ApiForbiddenError, ConsoleApiError
from ..client.schemas import AdminRecord, PermissionsUpdateRequest
from ..observability.logging import set_log_context
from .models import (
    AdminPermissionProfile,
    ResourceAccessMode,
    ResourceAccessPolicy,
    ResourceCatalogEntry,
    ResourceCatalogState,
    parse_resource_type,
)
from .permission_catalog import PermissionCatalogService
from .presentation import filtered_catalog_items
from .resource_catalog import ResourceCatalogService
from .state_store import AdminResourceStateStore

logger = logging.getLogger(__name__)

SUPER_ADMIN_MESSAGE = "Super administrator permissions cannot be modified."


@dataclass
class SaveResult:
    ok: bool
    message: str = ""
    profile: Optional[AdminPermissionProfile] = None


def _save_error_message(exc: ConsoleApiError) -> str:
    if isinstance(exc, ApiForbiddenError):
        return "You are not allowed to change this administrator's permissions."
    return f"Failed to save permissions: {exc}"


class AdminPermissionEditor:
    """Loads, edits and saves an administrator's permission profile."""

    def __init__(
        self,
        client: AdminApiClient,
        permission_catalog: PermissionCatalogService,
        resource_catalog: ResourceCatalogService,
        state_store: AdminResourceStateStore,
    ):
        self._client = client
        self._permission_catalog = permission_catalog
        self._resource_catalog = resource_catalog
        self._store = state_store
        self._admins: Dict[str, AdminRecord] = {}
        self._checklists: Dict[str, Dict[str, bool]] = {}
        self.active_admin_id: Optional[str] = None
        self.catalog_error: Optional[str] = None
        self.admins_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Admin list
    # ------------------------------------------------------------------

    async def refresh_admins(self) -> List[AdminRecord]:
        """Fetch the admin list and remember each row as a cached profile.

        On failure the previous rows are returned and ``admins_error`` is set.
        """
        try:
            admins = await self._client.list_admins()
        except ConsoleApiError as exc:
            logger.warning("Admin list load failed: %s", exc)
            self.admins_error = f"Failed to load administrators: {exc}"
            return list(self._admins.values())

        self.admins_error = None
        self._admins = {admin.id: admin for admin in admins}
        return admins

    def cached_profile(self, admin_id: str) -> Optional[AdminRecord]:
        return self._admins.get(admin_id)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def load_for_admin(
        self,
        admin_id: str,
        cached_profile: Optional[AdminRecord] = None,
    ) -> AdminPermissionProfile:
        """Open *admin_id* for editing, replacing any earlier session for it.

        Resource policies come from the record; without them the admin starts
        over from the defaults.
        """
        set_log_context(admin_id=admin_id)

        try:
            await self._permission_catalog.ensure_loaded()
            self.catalog_error = None
        except ConsoleApiError as exc:
            self.catalog_error = f"Failed to load the permission catalog: {exc}"

        record = cached_profile or self._admins.get(admin_id)
        if record is not None:
            self._admins[admin_id] = record

        if record is not None and record.resource_permissions is not None:
            self._store.hydrate(admin_id, record.resource_permissions)
        else:
            self._store.discard(admin_id)
            self._store.ensure_state(admin_id)

        granted = set(record.permissions) if record is not None else set()
        self._checklists[admin_id] = self._build_checklist(granted)
        self.active_admin_id = admin_id
        logger.info("Opened permission editor for admin %s", admin_id)
        return self.profile(admin_id)

    def resume(self, admin_id: str) -> AdminPermissionProfile:
        """Make an earlier session active again without reloading it."""
        self._require_session(admin_id)
        set_log_context(admin_id=admin_id)
        self.active_admin_id = admin_id
        return self.profile(admin_id)

    def close(self) -> None:
        """Close the active session. Its in-memory edits are kept."""
        self.active_admin_id = None

    def profile(self, admin_id: Optional[str] = None) -> AdminPermissionProfile:
        admin_id = self._require_session(admin_id)
        functional = set(self.collect_functional_permissions(admin_id))
        record = self._admins.get(admin_id)
        return AdminPermissionProfile(
            admin_id=admin_id,
            functional_permissions=functional,
            resource_policies=self._store.ensure_state(admin_id),
            is_super_admin=record is not None and record.is_super_admin,
        )

    def _require_admin(self, admin_id: Optional[str]) -> str:
        admin_id = admin_id or self.active_admin_id
        if admin_id is None:
            raise RuntimeError("No administrator is open in the editor")
        return admin_id

    def _require_session(self, admin_id: Optional[str]) -> str:
        admin_id = self._require_admin(admin_id)
        if admin_id not in self._checklists:
            raise KeyError(f"No editing session for admin {admin_id}")
        return admin_id

    # ------------------------------------------------------------------
    # Functional permissions checklist
    # ------------------------------------------------------------------

    def _build_checklist(self, granted) -> Dict[str, bool]:
        checklist = {
            definition.key: definition.key in granted
            for definition in self._permission_catalog.catalog
        }
        for key in sorted(granted):
            checklist.setdefault(key, True)
        return checklist

    def _checklist(self, admin_id: Optional[str]) -> Dict[str, bool]:
        return self._checklists[self._require_session(admin_id)]

    def checklist(self, admin_id: Optional[str] = None) -> Dict[str, bool]:
        return dict(self._checklist(admin_id))

    def set_permission(self, key: str, checked: bool, admin_id: Optional[str] = None) -> None:
        self._checklist(admin_id)[key] = bool(checked)

    def toggle_permission(self, key: str, admin_id: Optional[str] = None) -> bool:
        checklist = self._checklist(admin_id)
        checklist[key] = not checklist.get(key, False)
        return checklist[key]

    def collect_functional_permissions(self, admin_id: Optional[str] = None) -> List[str]:
        """Checked keys: catalog order first, then keys the catalog doesn't know."""
        checklist = self._checklist(admin_id)
        known = [d.key for d in self._permission_catalog.catalog if checklist.get(d.key)]
        known_set = set(known)
        extra = sorted(key for key, checked in checklist.items() if checked and key not in known_set)
        return known + extra

    # ------------------------------------------------------------------
    # Resource policies
    # ------------------------------------------------------------------

    def set_resource_mode(self, resource_type, mode, admin_id: Optional[str] = None) -> ResourceAccessPolicy:
        return self._store.set_mode(self._require_session(admin_id), resource_type, mode)

    def toggle_resource_item(self, resource_type, item_id: str, admin_id: Optional[str] = None) -> bool:
        return self._store.toggle_selection(self._require_session(admin_id), resource_type, item_id)

    async def selectable_items(
        self,
        resource_type,
        search_term: str = "",
        admin_id: Optional[str] = None,
    ) -> tuple[ResourceCatalogState, Sequence[ResourceCatalogEntry]]:
        """Catalog state plus the items to offer for selection.

        Items are only offered, and the search only applied, in ``custom``
        mode; in any other mode nothing is fetched and no items are offered.
        """
        admin_id = self._require_session(admin_id)
        resource_type = parse_resource_type(resource_type)
        policy = self._store.get_policy(admin_id, resource_type)
        if policy.mode is not ResourceAccessMode.CUSTOM:
            return self._resource_catalog.peek(resource_type), []

        state = await self._resource_catalog.get(resource_type)
        if state.error:
            return state, []
        return state, filtered_catalog_items(state.items, search_term)

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    async def save(self, admin_id: Optional[str] = None) -> SaveResult:
        """Persist the profile; on success adopt the server's canonical echo.

        Failures leave local edits untouched so the user can retry.
        """
        admin_id = self._require_session(admin_id)
        set_log_context(admin_id=admin_id)

        record = self._admins.get(admin_id)
        if record is not None and record.is_super_admin:
            return SaveResult(ok=False, message=SUPER_ADMIN_MESSAGE)

        request = PermissionsUpdateRequest(
            permissions=self.collect_functional_permissions(admin_id),
            resource_permissions=self._store.serialize(admin_id),
        )

        try:
            result = await self._client.update_admin_permissions(admin_id, request)
        except ConsoleApiError as exc:
            logger.warning("Saving permissions for admin %s failed: %s", admin_id, exc)
            return SaveResult(ok=False, message=_save_error_message(exc))

        self._store.hydrate(admin_id, result.resource_permissions)
        self._checklists[admin_id] = self._build_checklist(set(result.permissions))
        if record is not None:
            self._admins[admin_id] = record.model_copy(update={
                "permissions": list(result.permissions),
                "resource_permissions": dict(result.resource_permissions),
            })

        logger.info("Saved permissions for admin %s", admin_id)
        return SaveResult(ok=True, message="Permissions saved.", profile=self.profile(admin_id))
