"""Pydantic schemas for backend payloads."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


SUPER_ADMIN_ROLE = "super_admin"


class ApiEnvelope(BaseModel):
    """Standard ``{status, message, data}`` response wrapper."""

    status: str
    message: str = ""
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


class PermissionDefinition(BaseModel):
    """One assignable functional permission from the catalog."""

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    description: str = ""
    category: str = ""

    @field_validator("description", "category", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return v or ""


class ResourcePolicyPayload(BaseModel):
    """Wire form of one resource type's access policy."""

    mode: str = ""
    selected_ids: Optional[List[str]] = None


class AdminRecord(BaseModel):
    """An administrator row as returned by the admin list."""

    model_config = ConfigDict(extra="ignore")

    id: str
    username: str = ""
    email: str = ""
    role: str = "admin"
    permissions: List[str] = Field(default_factory=list)
    resource_permissions: Optional[Dict[str, ResourcePolicyPayload]] = None

    @field_validator("permissions", mode="before")
    @classmethod
    def _null_permissions(cls, v):
        return v or []

    @property
    def is_super_admin(self) -> bool:
        return self.role == SUPER_ADMIN_ROLE


class PermissionsUpdateRequest(BaseModel):
    """Body of ``PUT /api/admin/admins/{id}/permissions``."""

    permissions: List[str]
    resource_permissions: Dict[str, ResourcePolicyPayload]


class PermissionsUpdateResult(BaseModel):
    """Canonical echo returned by the permissions update."""

    model_config = ConfigDict(extra="ignore")

    permissions: List[str] = Field(default_factory=list)
    resource_permissions: Dict[str, ResourcePolicyPayload] = Field(default_factory=dict)

    @field_validator("permissions", "resource_permissions", mode="before")
    @classmethod
    def _null_to_empty(cls, v, info):
        if v is None:
            return [] if info.field_name == "permissions" else {}
        return v
