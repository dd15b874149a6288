"""
Tree and collaborator API routes.

Every mutation that changes ownership, membership, or visibility purges the
matching permission cache entries, again once the request commits.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lineage.core.database.engine import get_db
from lineage.features.permissions.dependencies import (
    create_audit_log,
    get_permission_service,
    require_tree_permission,
)
from lineage.features.permissions.service import PermissionService
from lineage.features.permissions.types import Permission
from lineage.features.trees.models import FamilyTree
from lineage.features.trees.repositories import TreeRepository
from lineage.features.trees.schemas import (
    CollaboratorCreate,
    CollaboratorResponse,
    CollaboratorUpdate,
    TreeCreate,
    TreeResponse,
    TreeUpdate,
    TreeWithCollaborators,
)
from lineage.features.users.dependencies import get_current_user
from lineage.features.users.models import User
from lineage.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


async def get_tree_or_404(tree_id: str, db: AsyncSession) -> FamilyTree:
    tree = await TreeRepository(db).find_by_id(tree_id)
    if tree is None:
        raise HTTPException(status_code=404, detail="Tree not found")
    return tree


# ============================================================================
# Tree Routes
# ============================================================================

@router.post("", response_model=TreeResponse, status_code=status.HTTP_201_CREATED)
async def create_tree(
    tree: TreeCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a tree owned by the current user."""
    db_tree = FamilyTree(owner_id=current_user.id, **tree.model_dump())
    db.add(db_tree)
    await db.flush()
    await db.refresh(db_tree)

    await create_audit_log(
        db,
        user_id=current_user.id,
        action="create",
        resource_type="tree",
        resource_id=db_tree.id,
        tree_id=db_tree.id,
        details=tree.model_dump(),
        request=request,
    )
    return db_tree


@router.get("", response_model=List[TreeResponse])
async def list_trees(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List trees the current user owns or collaborates on."""
    return await TreeRepository(db).list_for_user(current_user.id)


@router.get("/{tree_id}", response_model=TreeWithCollaborators)
async def get_tree(
    tree_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tree_permission(Permission.VIEW_TREE))
):
    """Get a tree with its collaborators."""
    return await get_tree_or_404(tree_id, db)


@router.patch("/{tree_id}", response_model=TreeResponse)
async def update_tree(
    tree_id: str,
    tree_update: TreeUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tree_permission(Permission.EDIT_TREE)),
    permissions: PermissionService = Depends(get_permission_service),
):
    """Update tree details; visibility changes re-derive guest access."""
    db_tree = await get_tree_or_404(tree_id, db)

    update_data = tree_update.model_dump(exclude_unset=True)
    visibility_changed = "is_public" in update_data and update_data["is_public"] != db_tree.is_public
    for key, value in update_data.items():
        setattr(db_tree, key, value)

    await db.flush()
    await db.refresh(db_tree)

    if visibility_changed:
        permissions.invalidate_cache(tree_id=tree_id)

    await create_audit_log(
        db,
        user_id=current_user.id,
        action="update",
        resource_type="tree",
        resource_id=tree_id,
        tree_id=tree_id,
        details=update_data,
        request=request,
    )
    return db_tree


@router.delete("/{tree_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tree(
    tree_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tree_permission(Permission.DELETE_TREE)),
    permissions: PermissionService = Depends(get_permission_service),
):
    """Delete a tree with all of its persons and relationships (owner only)."""
    db_tree = await get_tree_or_404(tree_id, db)
    tree_name = db_tree.name

    await TreeRepository(db).delete(db_tree)
    permissions.invalidate_cache(tree_id=tree_id)

    await create_audit_log(
        db,
        user_id=current_user.id,
        action="delete",
        resource_type="tree",
        resource_id=tree_id,
        tree_id=tree_id,
        details={"name": tree_name},
        request=request,
    )
    return None


# ============================================================================
# Collaborator Routes
# ============================================================================

@router.get("/{tree_id}/collaborators", response_model=List[CollaboratorResponse])
async def list_collaborators(
    tree_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tree_permission(Permission.VIEW_TREE))
):
    """List a tree's collaborators."""
    tree = await get_tree_or_404(tree_id, db)
    return tree.collaborators


@router.post(
    "/{tree_id}/collaborators",
    response_model=CollaboratorResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_collaborator(
    tree_id: str,
    collaborator: CollaboratorCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tree_permission(Permission.MANAGE_COLLABORATORS)),
    permissions: PermissionService = Depends(get_permission_service),
):
    """Add a collaborator to a tree (owner only)."""
    repository = TreeRepository(db)
    tree = await get_tree_or_404(tree_id, db)

    if collaborator.user_id == tree.owner_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The owner cannot be added as a collaborator"
        )

    user_result = await db.execute(select(User).where(User.id == collaborator.user_id))
    if user_result.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="User not found")

    if await repository.find_collaborator(tree_id, collaborator.user_id) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User is already a collaborator on this tree"
        )

    db_collaborator = await repository.add_collaborator(
        tree,
        user_id=collaborator.user_id,
        permission_level=collaborator.permission_level.value,
        added_by_id=current_user.id,
    )
    await db.refresh(db_collaborator)
    permissions.invalidate_cache(user_id=collaborator.user_id, tree_id=tree_id)

    await create_audit_log(
        db,
        user_id=current_user.id,
        action="add_collaborator",
        resource_type="collaborator",
        resource_id=collaborator.user_id,
        tree_id=tree_id,
        details={"permission_level": collaborator.permission_level.value},
        request=request,
    )
    return db_collaborator


@router.patch("/{tree_id}/collaborators/{user_id}", response_model=CollaboratorResponse)
async def update_collaborator(
    tree_id: str,
    user_id: str,
    collaborator_update: CollaboratorUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tree_permission(Permission.MANAGE_COLLABORATORS)),
    permissions: PermissionService = Depends(get_permission_service),
):
    """Change a collaborator's permission level (owner only)."""
    db_collaborator = await TreeRepository(db).find_collaborator(tree_id, user_id)
    if db_collaborator is None:
        raise HTTPException(status_code=404, detail="Collaborator not found")

    previous_level = db_collaborator.permission_level
    db_collaborator.permission_level = collaborator_update.permission_level.value
    await db.flush()
    await db.refresh(db_collaborator)
    permissions.invalidate_cache(user_id=user_id, tree_id=tree_id)

    await create_audit_log(
        db,
        user_id=current_user.id,
        action="update_collaborator",
        resource_type="collaborator",
        resource_id=user_id,
        tree_id=tree_id,
        details={"from": previous_level, "to": collaborator_update.permission_level.value},
        request=request,
    )
    return db_collaborator


@router.delete("/{tree_id}/collaborators/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_collaborator(
    tree_id: str,
    user_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tree_permission(Permission.MANAGE_COLLABORATORS)),
    permissions: PermissionService = Depends(get_permission_service),
):
    """Remove a collaborator from a tree (owner only)."""
    repository = TreeRepository(db)
    tree = await get_tree_or_404(tree_id, db)
    db_collaborator = await repository.find_collaborator(tree_id, user_id)
    if db_collaborator is None:
        raise HTTPException(status_code=404, detail="Collaborator not found")

    await repository.remove_collaborator(tree, db_collaborator)
    permissions.invalidate_cache(user_id=user_id, tree_id=tree_id)

    await create_audit_log(
        db,
        user_id=current_user.id,
        action="remove_collaborator",
        resource_type="collaborator",
        resource_id=user_id,
        tree_id=tree_id,
        request=request,
    )
    return None
