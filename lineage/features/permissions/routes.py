"""
Permission API routes.

Provides permission checks, capability listings, and the tree audit trail.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from lineage.core.database.engine import get_db
from lineage.core.errors import PermissionDeniedError
from lineage.features.permissions.dependencies import get_permission_service
from lineage.features.permissions.models import AuditLog
from lineage.features.permissions.schemas import (
    AuditLogListResponse,
    AuditLogResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    TreeCapabilitiesResponse,
)
from lineage.features.permissions.service import PermissionService
from lineage.features.permissions.types import Role
from lineage.features.users.dependencies import get_current_user
from lineage.features.users.models import User
from lineage.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Permission Check Routes
# ============================================================================

@router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(
    check_request: PermissionCheckRequest,
    current_user: User = Depends(get_current_user),
    permissions: PermissionService = Depends(get_permission_service),
):
    """Check whether the current user holds a permission, with the deciding reason."""
    result = await permissions.evaluate(
        current_user.id,
        check_request.tree_id,
        check_request.permission,
        resource_id=check_request.resource_id,
        resource_type=check_request.resource_type,
    )
    return PermissionCheckResponse(
        has_permission=result.allowed,
        reason=result.reason,
        granted_by=result.granted_by,
    )


@router.get("/trees/{tree_id}", response_model=TreeCapabilitiesResponse)
async def get_tree_capabilities(
    tree_id: str,
    current_user: User = Depends(get_current_user),
    permissions: PermissionService = Depends(get_permission_service),
):
    """List the current user's role and permissions in a tree."""
    try:
        role = await permissions.get_user_role(current_user.id, tree_id)
    except PermissionDeniedError:
        role = None

    return TreeCapabilitiesResponse(
        user_id=current_user.id,
        tree_id=tree_id,
        role=role,
        permissions=await permissions.get_permissions(current_user.id, tree_id),
    )


# ============================================================================
# Audit Log Routes
# ============================================================================

@router.get("/trees/{tree_id}/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    tree_id: str,
    skip: int = 0,
    limit: int = 50,
    action: str | None = None,
    resource_type: str | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    permissions: PermissionService = Depends(get_permission_service),
):
    """List a tree's audit trail (admins and the owner only)."""
    if not await permissions.has_minimum_role(current_user.id, tree_id, Role.ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required to view the audit trail"
        )

    stmt = select(AuditLog).where(AuditLog.tree_id == tree_id)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    if resource_type:
        stmt = stmt.where(AuditLog.resource_type == resource_type)

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total_result = await db.execute(count_stmt)
    total = total_result.scalar() or 0

    stmt = stmt.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(stmt)
    logs = result.scalars().all()

    pages = (total + limit - 1) // limit if limit > 0 else 0
    page = (skip // limit) + 1 if limit > 0 else 1

    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(entry) for entry in logs],
        total=total,
        page=page,
        page_size=limit,
        pages=pages
    )
