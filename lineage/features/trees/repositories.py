"""
Tree lookups and collaborator persistence.
"""
from typing import List, Optional
from sqlalchemy import select, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lineage.features.trees.models import FamilyTree, TreeCollaborator


class TreeRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, tree_id: str) -> Optional[FamilyTree]:
        """
        Load a tree with its collaborators.

        Repeated lookups inside one session are served from the identity map,
        so the permission strategies can each ask for the tree without
        issuing another query.
        """
        return await self.db.get(
            FamilyTree,
            tree_id,
            options=[selectinload(FamilyTree.collaborators)],
        )

    async def list_for_user(self, user_id: str) -> List[FamilyTree]:
        stmt = (
            select(FamilyTree)
            .outerjoin(TreeCollaborator)
            .where(or_(FamilyTree.owner_id == user_id, TreeCollaborator.user_id == user_id))
            .distinct()
            .order_by(FamilyTree.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_collaborator(self, tree_id: str, user_id: str) -> Optional[TreeCollaborator]:
        stmt = select(TreeCollaborator).where(
            TreeCollaborator.tree_id == tree_id,
            TreeCollaborator.user_id == user_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def add_collaborator(
        self,
        tree: FamilyTree,
        user_id: str,
        permission_level: str,
        added_by_id: Optional[str] = None,
    ) -> TreeCollaborator:
        collaborator = TreeCollaborator(
            tree_id=tree.id,
            user_id=user_id,
            permission_level=permission_level,
            added_by_id=added_by_id,
        )
        tree.collaborators.append(collaborator)
        await self.db.flush()
        return collaborator

    async def remove_collaborator(self, tree: FamilyTree, collaborator: TreeCollaborator) -> None:
        tree.collaborators.remove(collaborator)
        await self.db.flush()

    async def delete(self, tree: FamilyTree) -> None:
        """Delete a tree together with its persons and relationships."""
        from lineage.features.persons.models import Person
        from lineage.features.relationships.models import Relationship

        await self.db.execute(delete(Relationship).where(Relationship.tree_id == tree.id))
        await self.db.execute(delete(Person).where(Person.tree_id == tree.id))
        await self.db.delete(tree)
        await self.db.flush()
