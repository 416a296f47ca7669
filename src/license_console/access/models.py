"""Resource-scoped access-control data model.

A sub-administrator's reach is narrowed per resource type by a
``ResourceAccessPolicy``. Selected ids only mean something in ``CUSTOM``
mode; every other mode carries an empty selection.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set

from ..client.schemas import PermissionDefinition, ResourcePolicyPayload

__all__ = [
    "PermissionDefinition",
    "ResourceType",
    "ResourceTypeMeta",
    "RESOURCE_TYPE_META",
    "ResourceAccessMode",
    "ResourceAccessPolicy",
    "AdminResourcePermissionState",
    "ResourceCatalogEntry",
    "ResourceCatalogState",
    "AdminPermissionProfile",
    "normalize_resource_policies",
    "parse_resource_type",
]


class ResourceType(str, enum.Enum):
    """Resource types that accept per-instance access policies."""

    LICENSES = "licenses"
    POLICIES = "policies"
    PRODUCTS = "products"


@dataclass(frozen=True, slots=True)
class ResourceTypeMeta:
    label: str
    search_placeholder: str
    summary_label: str
    view_permission: str
    list_path: str


RESOURCE_TYPE_META: Dict[ResourceType, ResourceTypeMeta] = {
    ResourceType.LICENSES: ResourceTypeMeta(
        label="Licenses",
        search_placeholder="Search by license key, product or customer",
        summary_label="License access",
        view_permission="licenses.view",
        list_path="/licenses",
    ),
    ResourceType.POLICIES: ResourceTypeMeta(
        label="Policies",
        search_placeholder="Search by policy name",
        summary_label="Policy access",
        view_permission="policies.view",
        list_path="/policies",
    ),
    ResourceType.PRODUCTS: ResourceTypeMeta(
        label="Products",
        search_placeholder="Search by product name or description",
        summary_label="Product access",
        view_permission="products.view",
        list_path="/products",
    ),
}


class ResourceAccessMode(str, enum.Enum):
    """Which instances of a resource type a policy covers."""

    ALL = "all"
    NONE = "none"
    OWN = "own"
    CUSTOM = "custom"

    @classmethod
    def coerce(cls, value: Any) -> "ResourceAccessMode":
        """Leniently map a server-provided mode onto a member.

        Matching ignores case, surrounding whitespace, dashes, underscores and
        inner spaces. Anything unrecognised becomes ``ALL``.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.ALL
        key = value.strip().lower()
        for ch in ("-", "_", " "):
            key = key.replace(ch, "")
        try:
            return cls(key)
        except ValueError:
            return cls.ALL


def parse_resource_type(value: Any) -> ResourceType:
    """Strictly resolve a resource type, raising ``ValueError`` if unknown."""
    if isinstance(value, ResourceType):
        return value
    try:
        return ResourceType(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown resource type: {value!r}") from None


@dataclass
class ResourceAccessPolicy:
    mode: ResourceAccessMode = ResourceAccessMode.ALL
    selected_ids: Set[str] = field(default_factory=set)

    def copy(self) -> "ResourceAccessPolicy":
        return ResourceAccessPolicy(mode=self.mode, selected_ids=set(self.selected_ids))

    def to_payload(self) -> Dict[str, Any]:
        return {"mode": self.mode.value, "selected_ids": sorted(self.selected_ids)}


def _default_policies() -> Dict[ResourceType, ResourceAccessPolicy]:
    return {resource_type: ResourceAccessPolicy() for resource_type in ResourceType}


@dataclass
class AdminResourcePermissionState:
    """Editable policies for one administrator, one entry per resource type."""

    policies: Dict[ResourceType, ResourceAccessPolicy] = field(default_factory=_default_policies)
    loaded_from_server: bool = False


@dataclass(frozen=True, slots=True)
class ResourceCatalogEntry:
    id: str
    name: str
    description: str = ""


@dataclass
class ResourceCatalogState:
    """Cached selectable instances for one resource type."""

    items: List[ResourceCatalogEntry] = field(default_factory=list)
    loaded: bool = False
    loading: bool = False
    error: Optional[str] = None
    forbidden: bool = False


@dataclass
class AdminPermissionProfile:
    """Edit buffer for the administrator currently open in the editor."""

    admin_id: str
    functional_permissions: Set[str] = field(default_factory=set)
    resource_policies: AdminResourcePermissionState = field(
        default_factory=AdminResourcePermissionState
    )
    is_super_admin: bool = False


def _clean_ids(ids: Any) -> List[str]:
    if not ids:
        return []
    cleaned = set()
    for raw_id in ids:
        if raw_id is None:
            continue
        item_id = str(raw_id).strip()
        if item_id:
            cleaned.add(item_id)
    return sorted(cleaned)


def _read_policy(raw: Any) -> tuple:
    if isinstance(raw, ResourcePolicyPayload):
        return raw.mode, raw.selected_ids
    if isinstance(raw, ResourceAccessPolicy):
        return raw.mode, raw.selected_ids
    if isinstance(raw, Mapping):
        return raw.get("mode"), raw.get("selected_ids")
    return None, None


def normalize_resource_policies(
    raw: Optional[Mapping[Any, Any]],
) -> Dict[str, Dict[str, Any]]:
    """Canonical save-payload form of a server policy map.

    Every known resource type is present. Modes are coerced, selections are
    trimmed, de-duplicated and sorted, and dropped outside ``custom``.
    Unknown resource types are ignored.
    """
    by_type: Dict[ResourceType, Any] = {}
    for key, value in (raw or {}).items():
        try:
            by_type[parse_resource_type(key)] = value
        except ValueError:
            continue

    result: Dict[str, Dict[str, Any]] = {}
    for resource_type in ResourceType:
        mode_value, ids = _read_policy(by_type.get(resource_type))
        mode = ResourceAccessMode.coerce(mode_value)
        selected = _clean_ids(ids) if mode is ResourceAccessMode.CUSTOM else []
        result[resource_type.value] = {"mode": mode.value, "selected_ids": selected}
    return result
