"""
Person API routes.

Person checks are scoped to the person itself, so attribute rules about the
person (living, deceased, still linked) take part in the decision.
"""
from typing import List
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from lineage.core.database.engine import get_db
from lineage.core.errors import NotFoundError, PermissionDeniedError
from lineage.features.permissions.dependencies import (
    create_audit_log,
    get_permission_service,
    require_tree_permission,
)
from lineage.features.permissions.service import PermissionService
from lineage.features.permissions.types import Permission, ResourceType
from lineage.features.persons.models import Person
from lineage.features.persons.repositories import PersonRepository
from lineage.features.persons.schemas import PersonCreate, PersonResponse, PersonUpdate
from lineage.features.relationships.service import RelationshipService
from lineage.features.users.dependencies import get_current_user
from lineage.features.users.models import User
from lineage.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


async def get_person_with_permission(
    person_id: str,
    permission: Permission,
    user: User,
    db: AsyncSession,
    permissions: PermissionService,
) -> Person:
    person = await PersonRepository(db).find_by_id(person_id)
    if person is None:
        raise NotFoundError("Person", person_id)

    allowed = await permissions.can_access(
        user.id,
        person.tree_id,
        permission,
        resource_id=person.id,
        resource_type=ResourceType.PERSON,
    )
    if not allowed:
        raise PermissionDeniedError(f"Permission denied: {permission.value}")
    return person


# ============================================================================
# Tree-scoped Person Routes
# ============================================================================

@router.get("/trees/{tree_id}/persons", response_model=List[PersonResponse])
async def list_persons(
    tree_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tree_permission(Permission.VIEW_TREE)),
    permissions: PermissionService = Depends(get_permission_service),
):
    """List the persons of a tree the current user may view."""
    persons = await PersonRepository(db).find_by_tree_id(tree_id)
    visible = []
    for person in persons:
        if await permissions.can_access(
            current_user.id, tree_id, Permission.VIEW_PERSON,
            resource_id=person.id, resource_type=ResourceType.PERSON,
        ):
            visible.append(person)
    return visible


@router.post("/trees/{tree_id}/persons", response_model=PersonResponse, status_code=status.HTTP_201_CREATED)
async def create_person(
    tree_id: str,
    person: PersonCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tree_permission(Permission.ADD_PERSON)),
):
    """Add a person to a tree."""
    db_person = Person(tree_id=tree_id, **person.model_dump())
    db.add(db_person)
    await db.flush()
    await db.refresh(db_person)

    await create_audit_log(
        db,
        user_id=current_user.id,
        action="create",
        resource_type="person",
        resource_id=db_person.id,
        tree_id=tree_id,
        details=person.model_dump(mode="json"),
        request=request,
    )
    return db_person


# ============================================================================
# Person Routes
# ============================================================================

@router.get("/persons/{person_id}", response_model=PersonResponse)
async def get_person(
    person_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    permissions: PermissionService = Depends(get_permission_service),
):
    """Get a person."""
    return await get_person_with_permission(person_id, Permission.VIEW_PERSON, current_user, db, permissions)


@router.patch("/persons/{person_id}", response_model=PersonResponse)
async def update_person(
    person_id: str,
    person_update: PersonUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    permissions: PermissionService = Depends(get_permission_service),
):
    """
    Update a person. Deceased persons can only be edited by the owner or an
    admin. A gender change re-types the person's parent links.
    """
    db_person = await get_person_with_permission(person_id, Permission.EDIT_PERSON, current_user, db, permissions)

    update_data = person_update.model_dump(exclude_unset=True)
    gender_changed = "gender" in update_data and update_data["gender"] != db_person.gender
    for key, value in update_data.items():
        setattr(db_person, key, value)

    await db.flush()
    await db.refresh(db_person)

    if gender_changed:
        await RelationshipService(db, permissions).update_parent_types_for_gender(
            db_person, current_user.id, request=request
        )

    # Living status feeds the attribute rules
    permissions.invalidate_cache(tree_id=db_person.tree_id)

    await create_audit_log(
        db,
        user_id=current_user.id,
        action="update",
        resource_type="person",
        resource_id=person_id,
        tree_id=db_person.tree_id,
        details=person_update.model_dump(mode="json", exclude_unset=True),
        request=request,
    )
    return db_person


@router.delete("/persons/{person_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_person(
    person_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    permissions: PermissionService = Depends(get_permission_service),
):
    """Delete a person. Persons that still have relationships cannot be deleted."""
    db_person = await get_person_with_permission(person_id, Permission.DELETE_PERSON, current_user, db, permissions)
    tree_id = db_person.tree_id
    name = f"{db_person.first_name} {db_person.last_name}".strip()

    await PersonRepository(db).delete(db_person)
    permissions.invalidate_cache(tree_id=tree_id)

    await create_audit_log(
        db,
        user_id=current_user.id,
        action="delete",
        resource_type="person",
        resource_id=person_id,
        tree_id=tree_id,
        details={"name": name},
        request=request,
    )
    return None
