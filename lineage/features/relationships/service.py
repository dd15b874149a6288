"""
Relationship service.

Creating, editing or deleting a link changes what attribute rules read
(relationship counts), so each of them purges the tree's cached decisions.
"""
from dataclasses import replace
from typing import Dict, List, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from lineage.core.errors import (
    BusinessRuleError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from lineage.features.permissions.dependencies import create_audit_log
from lineage.features.permissions.service import PermissionService
from lineage.features.permissions.types import Permission, ResourceType
from lineage.features.persons.models import Person
from lineage.features.persons.repositories import PersonRepository
from lineage.features.relationships.models import (
    PARENT_TYPES,
    Relationship,
    StoredRelationshipType,
    parent_type_for_gender,
)
from lineage.features.relationships.normalization import NormalizedRelationship, normalize_relationship_type
from lineage.features.relationships.repositories import RelationshipRepository
from lineage.features.relationships.schemas import RelationshipCreate, RelationshipUpdate
from lineage.utils import get_logger


log = get_logger(__name__)

MAX_PARENTS = 2


class RelationshipService:
    def __init__(self, db: AsyncSession, permissions: PermissionService):
        self.db = db
        self.permissions = permissions
        self.persons = PersonRepository(db)
        self.relationships = RelationshipRepository(db)

    async def create_relationship(
        self,
        tree_id: str,
        user_id: str,
        data: RelationshipCreate,
        request: Optional[Request] = None,
    ) -> Relationship:
        """
        Normalize, validate and store a new relationship.

        A plain parent link is stored as father or mother when the parent's
        gender says so.

        Raises:
            PermissionDeniedError: caller may not add relationships to the tree
            NotFoundError: one of the persons does not exist
            ValidationError: self-link, person outside the tree, or too many parents
            BusinessRuleError: the link would create a cycle or already exists
        """
        if not await self.permissions.can_access(user_id, tree_id, Permission.ADD_RELATIONSHIP):
            raise PermissionDeniedError("Permission denied")

        normalized = normalize_relationship_type(data.type, data.existing_person_id, data.new_person_id)

        errors = await self.validate_relationship(tree_id, normalized)
        if errors:
            raise ValidationError(errors)

        if await self.creates_cycle(normalized):
            raise BusinessRuleError("This relationship would create an impossible cycle")

        existing = await self.relationships.find_between_persons(
            normalized.from_person_id, normalized.to_person_id
        )
        if existing is not None:
            raise BusinessRuleError("A relationship between these persons already exists")

        if normalized.type == StoredRelationshipType.PARENT:
            parent = await self.persons.find_by_id(normalized.from_person_id)
            normalized = replace(normalized, type=parent_type_for_gender(parent.gender))

        relationship = await self.relationships.create(
            tree_id=tree_id,
            from_person_id=normalized.from_person_id,
            to_person_id=normalized.to_person_id,
            type=normalized.type.value,
            notes=data.notes.strip() if data.notes else None,
            created_by_id=user_id,
        )

        await create_audit_log(
            self.db,
            user_id=user_id,
            action="create",
            resource_type="relationship",
            resource_id=relationship.id,
            tree_id=tree_id,
            details={"requested_type": data.type.value, "stored_type": normalized.type.value},
            request=request,
        )
        self.permissions.invalidate_cache(tree_id=tree_id)
        log.debug(f"Created relationship {relationship!r}")
        return relationship

    async def update_relationship(
        self,
        relationship_id: str,
        user_id: str,
        data: RelationshipUpdate,
        request: Optional[Request] = None,
    ) -> Relationship:
        """
        Change a link's type or notes.

        Turning a spouse or sibling link into a parent link runs the parent
        limit and cycle checks with ``from_person_id`` as the parent.
        """
        relationship = await self.relationships.find_by_id(relationship_id)
        if relationship is None:
            raise NotFoundError("Relationship", relationship_id)

        tree_id = relationship.tree_id
        if not await self.permissions.can_access(user_id, tree_id, Permission.EDIT_RELATIONSHIP):
            raise PermissionDeniedError("Permission denied")

        changes = {}
        update_data = data.model_dump(exclude_unset=True)

        if update_data.get("type") is not None:
            new_type = StoredRelationshipType(update_data["type"])
            old_type = StoredRelationshipType(relationship.type)
            if new_type != old_type:
                if new_type in PARENT_TYPES and old_type not in PARENT_TYPES:
                    await self._check_new_parent_link(relationship, new_type)
                changes["type"] = {"from": old_type.value, "to": new_type.value}
                relationship.type = new_type.value

        if "notes" in update_data:
            notes = update_data["notes"].strip() if update_data["notes"] else None
            if notes != relationship.notes:
                changes["notes"] = {"from": relationship.notes, "to": notes}
                relationship.notes = notes

        if not changes:
            return relationship

        await self.db.flush()
        await self.db.refresh(relationship)

        await create_audit_log(
            self.db,
            user_id=user_id,
            action="update",
            resource_type="relationship",
            resource_id=relationship_id,
            tree_id=tree_id,
            details=changes,
            request=request,
        )
        self.permissions.invalidate_cache(tree_id=tree_id)
        return relationship

    async def delete_relationship(
        self,
        relationship_id: str,
        user_id: str,
        request: Optional[Request] = None,
    ) -> None:
        relationship = await self.relationships.find_by_id(relationship_id)
        if relationship is None:
            raise NotFoundError("Relationship", relationship_id)

        tree_id = relationship.tree_id
        if not await self.permissions.can_access(user_id, tree_id, Permission.DELETE_RELATIONSHIP):
            raise PermissionDeniedError("Permission denied")

        await self.relationships.delete(relationship)

        await create_audit_log(
            self.db,
            user_id=user_id,
            action="delete",
            resource_type="relationship",
            resource_id=relationship_id,
            tree_id=tree_id,
            request=request,
        )
        self.permissions.invalidate_cache(tree_id=tree_id)

    async def update_parent_types_for_gender(
        self,
        person: Person,
        user_id: str,
        request: Optional[Request] = None,
    ) -> List[Relationship]:
        """
        Re-type the person's parent links after a gender change.

        Returns:
            The links whose type changed
        """
        new_type = parent_type_for_gender(person.gender)
        stale = [r for r in await self.relationships.find_children(person.id) if r.type != new_type.value]
        if not stale:
            return []

        if not await self.permissions.can_access(user_id, person.tree_id, Permission.EDIT_RELATIONSHIP):
            raise PermissionDeniedError("Permission denied")

        for relationship in stale:
            old_type = relationship.type
            relationship.type = new_type.value
            await create_audit_log(
                self.db,
                user_id=user_id,
                action="update",
                resource_type="relationship",
                resource_id=relationship.id,
                tree_id=person.tree_id,
                details={"type": {"from": old_type, "to": new_type.value}},
                request=request,
            )

        await self.db.flush()
        log.info(f"Re-typed {len(stale)} parent links of person {person.id} as {new_type.value}")
        return stale

    async def get_family_members(self, person_id: str, user_id: str) -> Dict[str, List[Person]]:
        """
        Parents, children, spouses and siblings of a person.

        Relatives the caller may not view (e.g. living persons in a public
        tree) are left out.
        """
        person = await self.persons.find_by_id(person_id)
        if person is None:
            raise NotFoundError("Person", person_id)

        if not await self._can_view(user_id, person):
            raise PermissionDeniedError(f"Permission denied: {Permission.VIEW_PERSON.value}")

        def other_ends(links: List[Relationship]) -> List[str]:
            return [r.to_person_id if r.from_person_id == person_id else r.from_person_id for r in links]

        relative_ids = {
            "parents": [r.from_person_id for r in await self.relationships.find_parents(person_id)],
            "children": [r.to_person_id for r in await self.relationships.find_children(person_id)],
            "spouses": other_ends(await self.relationships.find_linked(person_id, StoredRelationshipType.SPOUSE)),
            "siblings": other_ends(await self.relationships.find_linked(person_id, StoredRelationshipType.SIBLING)),
        }

        family: Dict[str, List[Person]] = {}
        for group, ids in relative_ids.items():
            family[group] = [
                relative for relative in await self.persons.find_by_ids(ids)
                if await self._can_view(user_id, relative)
            ]
        return family

    async def validate_relationship(self, tree_id: str, normalized: NormalizedRelationship) -> List[str]:
        errors: List[str] = []

        if normalized.from_person_id == normalized.to_person_id:
            errors.append("Cannot create relationship with same person")
            return errors

        for person_id in (normalized.from_person_id, normalized.to_person_id):
            person = await self.persons.find_by_id(person_id)
            if person is None:
                raise NotFoundError("Person", person_id)
            if person.tree_id != tree_id:
                errors.append(f"Person {person_id} does not belong to this tree")

        if normalized.type in PARENT_TYPES:
            parents = await self.relationships.find_parents(normalized.to_person_id)
            if len(parents) >= MAX_PARENTS:
                errors.append(f"Person can have maximum {MAX_PARENTS} parents")

        return errors

    async def creates_cycle(self, normalized: NormalizedRelationship) -> bool:
        """A parent link is impossible when the child is already the parent's ancestor."""
        if normalized.type not in PARENT_TYPES:
            return False
        ancestors = await self.relationships.get_ancestor_ids(normalized.from_person_id)
        return normalized.to_person_id in ancestors

    async def _check_new_parent_link(self, relationship: Relationship, new_type: StoredRelationshipType) -> None:
        normalized = NormalizedRelationship(relationship.from_person_id, relationship.to_person_id, new_type)

        parents = await self.relationships.find_parents(normalized.to_person_id)
        if len(parents) >= MAX_PARENTS:
            raise ValidationError([f"Person can have maximum {MAX_PARENTS} parents"])

        if await self.creates_cycle(normalized):
            raise BusinessRuleError("This relationship would create an impossible cycle")

    async def _can_view(self, user_id: str, person: Person) -> bool:
        return await self.permissions.can_access(
            user_id,
            person.tree_id,
            Permission.VIEW_PERSON,
            resource_id=person.id,
            resource_type=ResourceType.PERSON,
        )
