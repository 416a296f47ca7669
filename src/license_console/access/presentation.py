"""Pure mappings from access-control state to display text.

No I/O and no state; safe to call from anywhere.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Sequence

from .models import (
    RESOURCE_TYPE_META,
    ResourceAccessMode,
    ResourceAccessPolicy,
    ResourceCatalogEntry,
    parse_resource_type,
)

MODE_LABELS = {
    ResourceAccessMode.ALL: "All items",
    ResourceAccessMode.NONE: "No access",
    ResourceAccessMode.OWN: "Own items only",
    ResourceAccessMode.CUSTOM: "Selected items",
}

BLOCKED_DETAIL = "Blocked"
OWN_DETAIL = "Items created by this administrator"

ALL_PERMISSIONS_LABEL = "All permissions"
NO_PERMISSIONS_LABEL = "No permissions"

DEFAULT_MAX_LABELS = 3


@dataclass(frozen=True, slots=True)
class ResourceSummary:
    mode_label: str
    detail: str


@dataclass(frozen=True)
class PermissionSummary:
    """Badge content for an administrator's functional permissions.

    ``kind`` is ``"all"`` (super admin), ``"none"`` or ``"list"``. For
    ``"list"``, ``labels`` holds at most the requested number of labels and
    ``overflow`` counts the rest.
    """

    kind: str
    labels: List[str] = field(default_factory=list)
    overflow: int = 0

    @property
    def overflow_text(self) -> str:
        return f"+{self.overflow}" if self.overflow else ""


def mode_label(mode) -> str:
    return MODE_LABELS[ResourceAccessMode(mode)]


def resource_summary(policy: ResourceAccessPolicy) -> ResourceSummary:
    mode = ResourceAccessMode(policy.mode)
    if mode is ResourceAccessMode.CUSTOM:
        detail = f"{len(policy.selected_ids)} selected"
    elif mode is ResourceAccessMode.NONE:
        detail = BLOCKED_DETAIL
    elif mode is ResourceAccessMode.OWN:
        detail = OWN_DETAIL
    else:
        detail = ""
    return ResourceSummary(mode_label=MODE_LABELS[mode], detail=detail)


def permission_summary(
    functional_keys: Iterable[str],
    is_super_admin: bool,
    labels: Optional[Mapping[str, str]] = None,
    max_labels: int = DEFAULT_MAX_LABELS,
) -> PermissionSummary:
    """Summarize functional permissions for a list row.

    A super admin always gets the single all-permissions indicator, whatever
    *functional_keys* holds.
    """
    if is_super_admin:
        return PermissionSummary(kind="all", labels=[ALL_PERMISSIONS_LABEL])

    keys = list(dict.fromkeys(functional_keys))
    if not keys:
        return PermissionSummary(kind="none", labels=[NO_PERMISSIONS_LABEL])

    labels = labels or {}
    shown = [labels.get(key, key) for key in keys[:max_labels]]
    return PermissionSummary(kind="list", labels=shown, overflow=len(keys) - len(shown))


def filtered_catalog_items(
    items: Sequence[ResourceCatalogEntry],
    search_term: Optional[str],
) -> Sequence[ResourceCatalogEntry]:
    """Case-insensitive substring match on name and description.

    An empty or blank term returns *items* itself.
    """
    if not search_term or not search_term.strip():
        return items
    needle = search_term.strip().casefold()
    return [
        item for item in items
        if needle in item.name.casefold() or needle in (item.description or "").casefold()
    ]


def resource_type_label(resource_type) -> str:
    return RESOURCE_TYPE_META[parse_resource_type(resource_type)].label


def resource_search_placeholder(resource_type) -> str:
    return RESOURCE_TYPE_META[parse_resource_type(resource_type)].search_placeholder


def resource_summary_label(resource_type) -> str:
    return RESOURCE_TYPE_META[parse_resource_type(resource_type)].summary_label
