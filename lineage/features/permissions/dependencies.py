"""
Permission wiring for FastAPI.

Implements:
- Construction of a request-scoped PermissionService over the shared cache
- Route guards for tree-scoped permissions
- Audit logging helpers
"""
from typing import Any, Dict, Optional
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from lineage.core.database.engine import get_db
from lineage.features.permissions.cache import PermissionCache
from lineage.features.permissions.models import AuditLog
from lineage.features.permissions.service import PermissionService
from lineage.features.permissions.strategies import (
    AttributeBasedStrategy,
    OwnerOnlyStrategy,
    RoleBasedStrategy,
)
from lineage.features.permissions.types import Permission
from lineage.features.persons.repositories import PersonRepository
from lineage.features.relationships.repositories import RelationshipRepository
from lineage.features.trees.repositories import TreeRepository
from lineage.features.users.dependencies import get_current_user
from lineage.features.users.models import User
from lineage.utils import get_logger


log = get_logger(__name__)


# ============================================================================
# Service Construction
# ============================================================================

def build_permission_service(db: AsyncSession, cache: Optional[PermissionCache] = None) -> PermissionService:
    """Assemble the default strategy chain over repositories bound to ``db``."""
    trees = TreeRepository(db)
    return PermissionService(
        [
            OwnerOnlyStrategy(trees),
            AttributeBasedStrategy(PersonRepository(db), RelationshipRepository(db), trees),
            RoleBasedStrategy(trees),
        ],
        cache=cache,
        session=db,
    )


def get_permission_cache(request: Request) -> PermissionCache:
    """The process-wide cache created with the app."""
    return request.app.state.permission_cache


async def get_permission_service(
    db: AsyncSession = Depends(get_db),
    cache: PermissionCache = Depends(get_permission_cache),
) -> PermissionService:
    return build_permission_service(db, cache)


# ============================================================================
# FastAPI Dependencies
# ============================================================================

def require_tree_permission(permission: Permission):
    """
    FastAPI dependency to require a permission on the tree named in the path.

    Usage:
        @router.delete("/{tree_id}")
        async def delete_tree(
            tree_id: str,
            user: User = Depends(require_tree_permission(Permission.DELETE_TREE))
        ):
            pass

    Raises:
        HTTPException: 403 if the user doesn't have the permission. Missing
        trees answer 403 too, so private tree ids are not disclosed.
    """
    async def permission_dependency(
        tree_id: str,
        current_user: User = Depends(get_current_user),
        permissions: PermissionService = Depends(get_permission_service),
    ) -> User:
        if not await permissions.can_access(current_user.id, tree_id, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {permission.value}"
            )
        return current_user

    return permission_dependency


# ============================================================================
# Audit Logging
# ============================================================================

async def create_audit_log(
    db: AsyncSession,
    user_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    tree_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> AuditLog:
    """
    Create an audit log entry in the caller's transaction.

    Args:
        db: Database session
        user_id: User performing the action
        action: Action performed (e.g., "create", "update", "delete")
        resource_type: Type of resource (e.g., "tree", "person", "collaborator")
        resource_id: ID of the resource
        tree_id: Tree context
        details: Additional details
        request: Incoming request, for client address and user agent
    """
    audit_log = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        tree_id=tree_id,
        details=details,
        ip_address=request.client.host if request is not None and request.client else None,
        user_agent=request.headers.get("user-agent") if request is not None else None,
    )

    db.add(audit_log)
    await db.flush()

    log.info(
        f"Audit: user={user_id} action={action} resource={resource_type}:{resource_id} tree={tree_id}"
    )

    return audit_log
