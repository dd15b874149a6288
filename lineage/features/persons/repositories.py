from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lineage.features.persons.models import Person


class PersonRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, person_id: str) -> Optional[Person]:
        return await self.db.get(Person, person_id)

    async def find_by_tree_id(self, tree_id: str) -> List[Person]:
        stmt = (
            select(Person)
            .where(Person.tree_id == tree_id)
            .order_by(Person.last_name, Person.first_name)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_by_ids(self, person_ids: List[str]) -> List[Person]:
        if not person_ids:
            return []
        stmt = (
            select(Person)
            .where(Person.id.in_(person_ids))
            .order_by(Person.last_name, Person.first_name)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def delete(self, person: Person) -> None:
        await self.db.delete(person)
        await self.db.flush()
