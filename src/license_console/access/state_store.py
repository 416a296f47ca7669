"""Per-administrator editable resource access policies.

One ``AdminResourcePermissionState`` is kept per administrator opened in the
editor. State is created with every type at ``all``, replaced wholesale by
``hydrate`` and changed only through ``set_mode`` and ``toggle_selection``,
which keep the selection empty outside ``custom`` mode. Nothing here talks to
the backend; ``serialize`` produces the save payload.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from .models import (
    AdminResourcePermissionState,
    ResourceAccessMode,
    ResourceAccessPolicy,
    ResourceType,
    normalize_resource_policies,
    parse_resource_type,
)

logger = logging.getLogger(__name__)


def _parse_mode(mode: Any) -> ResourceAccessMode:
    if isinstance(mode, ResourceAccessMode):
        return mode
    try:
        return ResourceAccessMode(mode)
    except ValueError:
        raise ValueError(f"Unknown resource access mode: {mode!r}") from None


class AdminResourceStateStore:
    """Holds unsaved resource access policies keyed by administrator id."""

    def __init__(self):
        self._states: Dict[str, AdminResourcePermissionState] = {}

    def __contains__(self, admin_id: str) -> bool:
        return admin_id in self._states

    def ensure_state(self, admin_id: str) -> AdminResourcePermissionState:
        """Return the state for *admin_id*, creating the all-``all`` default."""
        state = self._states.get(admin_id)
        if state is None:
            state = AdminResourcePermissionState()
            self._states[admin_id] = state
        return state

    def hydrate(
        self,
        admin_id: str,
        server_policies: Optional[Mapping[Any, Any]],
    ) -> AdminResourcePermissionState:
        """Replace every type's policy with the server's, normalized.

        Types missing from *server_policies* are reset to ``all``; unknown
        modes coerce to ``all``; selections are kept only for ``custom``.
        """
        normalized = normalize_resource_policies(server_policies)
        state = self.ensure_state(admin_id)
        for resource_type in ResourceType:
            entry = normalized[resource_type.value]
            state.policies[resource_type] = ResourceAccessPolicy(
                mode=ResourceAccessMode(entry["mode"]),
                selected_ids=set(entry["selected_ids"]),
            )
        state.loaded_from_server = True
        logger.debug("Hydrated resource policies for admin %s", admin_id)
        return state

    def get_policy(self, admin_id: str, resource_type) -> ResourceAccessPolicy:
        """A copy of the current policy; mutating it does not touch the store."""
        resource_type = parse_resource_type(resource_type)
        return self.ensure_state(admin_id).policies[resource_type].copy()

    def is_loaded_from_server(self, admin_id: str) -> bool:
        state = self._states.get(admin_id)
        return state is not None and state.loaded_from_server

    def set_mode(self, admin_id: str, resource_type, mode) -> ResourceAccessPolicy:
        """Change a type's mode. Leaving ``custom`` clears the selection."""
        resource_type = parse_resource_type(resource_type)
        mode = _parse_mode(mode)
        policy = self.ensure_state(admin_id).policies[resource_type]
        policy.mode = mode
        if mode is not ResourceAccessMode.CUSTOM:
            policy.selected_ids.clear()
        return policy.copy()

    def toggle_selection(self, admin_id: str, resource_type, item_id: str) -> bool:
        """Add or remove *item_id* from the allow-list.

        Returns False without changing anything unless the type is in
        ``custom`` mode.
        """
        resource_type = parse_resource_type(resource_type)
        policy = self.ensure_state(admin_id).policies[resource_type]
        if policy.mode is not ResourceAccessMode.CUSTOM:
            return False
        if item_id in policy.selected_ids:
            policy.selected_ids.discard(item_id)
        else:
            policy.selected_ids.add(item_id)
        return True

    def serialize(self, admin_id: str) -> Dict[str, Dict[str, Any]]:
        """Save payload: ``{type: {"mode": str, "selected_ids": [sorted ids]}}``."""
        state = self.ensure_state(admin_id)
        return {
            resource_type.value: state.policies[resource_type].to_payload()
            for resource_type in ResourceType
        }

    def discard(self, admin_id: str) -> None:
        self._states.pop(admin_id, None)
