from typing import List, Optional, Set
from sqlalchemy import select, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from lineage.features.relationships.models import PARENT_TYPE_VALUES, Relationship, StoredRelationshipType


class RelationshipRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, relationship_id: str) -> Optional[Relationship]:
        return await self.db.get(Relationship, relationship_id)

    async def find_by_person_id(self, person_id: str) -> List[Relationship]:
        stmt = select(Relationship).where(
            or_(Relationship.from_person_id == person_id, Relationship.to_person_id == person_id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_by_person_id(self, person_id: str) -> int:
        stmt = select(func.count(Relationship.id)).where(
            or_(Relationship.from_person_id == person_id, Relationship.to_person_id == person_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def find_between_persons(self, person_a_id: str, person_b_id: str) -> Optional[Relationship]:
        """Any relationship linking the two persons, in either direction."""
        stmt = select(Relationship).where(
            or_(
                and_(Relationship.from_person_id == person_a_id, Relationship.to_person_id == person_b_id),
                and_(Relationship.from_person_id == person_b_id, Relationship.to_person_id == person_a_id),
            )
        ).limit(1)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def find_parents(self, person_id: str) -> List[Relationship]:
        stmt = select(Relationship).where(
            Relationship.to_person_id == person_id,
            Relationship.type.in_(PARENT_TYPE_VALUES),
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_children(self, person_id: str) -> List[Relationship]:
        """Parent links where the person is the parent."""
        stmt = select(Relationship).where(
            Relationship.from_person_id == person_id,
            Relationship.type.in_(PARENT_TYPE_VALUES),
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_linked(self, person_id: str, relationship_type: StoredRelationshipType) -> List[Relationship]:
        """Links of one type touching the person, in either direction."""
        stmt = select(Relationship).where(
            or_(Relationship.from_person_id == person_id, Relationship.to_person_id == person_id),
            Relationship.type == StoredRelationshipType(relationship_type).value,
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_ancestor_ids(self, person_id: str) -> Set[str]:
        """Walk parent links upwards and collect every ancestor id."""
        ancestors: Set[str] = set()
        frontier = [person_id]
        while frontier:
            stmt = select(Relationship.from_person_id).where(
                Relationship.to_person_id.in_(frontier),
                Relationship.type.in_(PARENT_TYPE_VALUES),
            )
            result = await self.db.execute(stmt)
            parents = {row for row in result.scalars().all() if row not in ancestors}
            ancestors.update(parents)
            frontier = list(parents)
        return ancestors

    async def create(self, **values) -> Relationship:
        relationship = Relationship(**values)
        self.db.add(relationship)
        await self.db.flush()
        await self.db.refresh(relationship)
        return relationship

    async def delete(self, relationship: Relationship) -> None:
        await self.db.delete(relationship)
        await self.db.flush()
