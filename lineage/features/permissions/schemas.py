"""
Pydantic schemas for permission checks and audit logs.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from lineage.features.permissions.types import Permission, ResourceType, Role


# ============================================================================
# Permission Check Schemas
# ============================================================================

class PermissionCheckRequest(BaseModel):
    """Schema for checking whether the current user holds a permission."""
    tree_id: str = Field(..., description="Tree ID")
    permission: Permission = Field(..., description="Permission to check")
    resource_id: Optional[str] = Field(None, description="Scope the check to one resource in the tree")
    resource_type: Optional[ResourceType] = Field(
        None, description="Resource kind; inferred from the permission when omitted"
    )


class PermissionCheckResponse(BaseModel):
    """Schema for permission check response."""
    has_permission: bool
    reason: Optional[str] = None
    granted_by: Optional[str] = None


class TreeCapabilitiesResponse(BaseModel):
    """What the current user can do in a tree."""
    user_id: str
    tree_id: str
    role: Optional[Role] = None
    permissions: List[Permission] = []


# ============================================================================
# Audit Log Schemas
# ============================================================================

class AuditLogResponse(BaseModel):
    id: str
    user_id: Optional[str]
    action: str
    resource_type: str
    resource_id: Optional[str]
    tree_id: Optional[str]
    details: Optional[Dict[str, Any]]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditLogListResponse(BaseModel):
    """Schema for paginated audit log list."""
    items: List[AuditLogResponse]
    total: int
    page: int
    page_size: int
    pages: int
