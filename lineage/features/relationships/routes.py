"""
Relationship API routes.
"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from lineage.core.database.engine import get_db
from lineage.features.permissions.dependencies import get_permission_service
from lineage.features.permissions.service import PermissionService
from lineage.features.relationships.schemas import (
    FamilyMembersResponse,
    RelationshipCreate,
    RelationshipResponse,
    RelationshipUpdate,
)
from lineage.features.relationships.service import RelationshipService
from lineage.features.users.dependencies import get_current_user
from lineage.features.users.models import User

router = APIRouter()


def get_relationship_service(
    db: AsyncSession = Depends(get_db),
    permissions: PermissionService = Depends(get_permission_service),
) -> RelationshipService:
    return RelationshipService(db, permissions)


@router.post(
    "/trees/{tree_id}/relationships",
    response_model=RelationshipResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_relationship(
    tree_id: str,
    relationship: RelationshipCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: RelationshipService = Depends(get_relationship_service),
):
    """Link two persons of a tree."""
    return await service.create_relationship(tree_id, current_user.id, relationship, request=request)


@router.patch("/relationships/{relationship_id}", response_model=RelationshipResponse)
async def update_relationship(
    relationship_id: str,
    relationship_update: RelationshipUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: RelationshipService = Depends(get_relationship_service),
):
    """Change a relationship's type or notes."""
    return await service.update_relationship(
        relationship_id, current_user.id, relationship_update, request=request
    )


@router.delete("/relationships/{relationship_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_relationship(
    relationship_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: RelationshipService = Depends(get_relationship_service),
):
    """Remove a relationship."""
    await service.delete_relationship(relationship_id, current_user.id, request=request)
    return None


@router.get("/persons/{person_id}/family", response_model=FamilyMembersResponse)
async def get_family_members(
    person_id: str,
    current_user: User = Depends(get_current_user),
    service: RelationshipService = Depends(get_relationship_service),
):
    """Parents, children, spouses and siblings of a person."""
    return await service.get_family_members(person_id, current_user.id)
