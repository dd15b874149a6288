"""
Seed script to populate a demo family tree.

Run this script against an empty database to create:
- Demo users (one per role)
- A private tree with admin, editor and viewer collaborators
- A public tree visible to every signed-in user
- A few persons and relationships

It prints a bearer token per user when AUTH_JWT_SECRET is set.

Usage:
    python -m scripts.seed_demo
"""
import asyncio
from datetime import date

import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lineage.core import config
from lineage.core.database.engine import get_db, init_db
from lineage.features.persons.models import Person
from lineage.features.relationships.models import StoredRelationshipType, parent_type_for_gender
from lineage.features.relationships.normalization import RelationshipType, normalize_relationship_type
from lineage.features.relationships.repositories import RelationshipRepository
from lineage.features.trees.models import CollaboratorLevel, FamilyTree, TreeCollaborator
from lineage.features.users.models import User
from lineage.utils import get_logger


log = get_logger(__name__)


DEMO_USERS = [
    # (email, name, level on the private tree; None for the owner)
    ("owner@lineage.dev", "Olive Owner", None),
    ("admin@lineage.dev", "Adam Admin", CollaboratorLevel.ADMIN),
    ("editor@lineage.dev", "Edith Editor", CollaboratorLevel.EDITOR),
    ("viewer@lineage.dev", "Victor Viewer", CollaboratorLevel.VIEWER),
    ("guest@lineage.dev", "Grace Guest", None),
]

DEMO_PERSONS = {
    # key: (first_name, last_name, gender, date_of_birth, date_of_death)
    "george": ("George", "Byron", "male", date(1788, 1, 22), date(1824, 4, 19)),
    "annabella": ("Annabella", "Milbanke", "female", date(1792, 5, 17), date(1860, 5, 16)),
    "ada": ("Ada", "Lovelace", "female", date(1815, 12, 10), date(1852, 11, 27)),
    "william": ("William", "King", "male", date(1805, 2, 21), date(1893, 12, 29)),
    "descendant": ("Living", "Descendant", None, date(1990, 3, 1), None),
}

DEMO_RELATIONSHIPS = [
    # (existing, new, what new is to existing)
    ("george", "ada", RelationshipType.CHILD),
    ("annabella", "ada", RelationshipType.CHILD),
    ("george", "annabella", RelationshipType.SPOUSE),
    ("ada", "william", RelationshipType.SPOUSE),
    ("ada", "descendant", RelationshipType.CHILD),
]


async def seed_users(db: AsyncSession) -> dict[str, User]:
    """
    Create demo users, reusing any that already exist.

    Returns:
        Dictionary mapping email to User
    """
    log.info("Creating demo users...")
    users = {}

    for email, name, _level in DEMO_USERS:
        result = await db.execute(select(User).where(User.email == email))
        existing = result.scalars().first()

        if existing:
            log.debug(f"User '{email}' already exists, skipping")
            users[email] = existing
            continue

        user = User(email=email, name=name)
        db.add(user)
        users[email] = user
        log.info(f"Created user: {email}")

    await db.flush()
    return users


async def seed_trees(db: AsyncSession, users: dict[str, User]) -> FamilyTree:
    """Create the private and public demo trees; returns the private one."""
    owner = users["owner@lineage.dev"]

    private_tree = FamilyTree(owner_id=owner.id, name="Byron family", description="Demo tree")
    public_tree = FamilyTree(owner_id=owner.id, name="Public archive", is_public=True)
    db.add_all([private_tree, public_tree])
    await db.flush()

    for email, _name, level in DEMO_USERS:
        if level is None:
            continue
        db.add(TreeCollaborator(
            tree_id=private_tree.id,
            user_id=users[email].id,
            permission_level=level.value,
            added_by_id=owner.id,
        ))
        log.info(f"Added {email} to '{private_tree.name}' as {level.value}")

    await db.flush()
    return private_tree


async def seed_persons(db: AsyncSession, tree: FamilyTree, created_by_id: str):
    """Create demo persons and link them."""
    persons = {}
    for key, (first_name, last_name, gender, born, died) in DEMO_PERSONS.items():
        person = Person(
            tree_id=tree.id,
            first_name=first_name,
            last_name=last_name,
            gender=gender,
            date_of_birth=born,
            date_of_death=died,
        )
        db.add(person)
        persons[key] = person
    await db.flush()
    log.info(f"Created {len(persons)} persons in '{tree.name}'")

    relationships = RelationshipRepository(db)
    for existing, new, relationship_type in DEMO_RELATIONSHIPS:
        normalized = normalize_relationship_type(relationship_type, persons[existing].id, persons[new].id)
        stored_type = normalized.type
        if stored_type == StoredRelationshipType.PARENT:
            parent = next(p for p in persons.values() if p.id == normalized.from_person_id)
            stored_type = parent_type_for_gender(parent.gender)
        await relationships.create(
            tree_id=tree.id,
            from_person_id=normalized.from_person_id,
            to_person_id=normalized.to_person_id,
            type=stored_type.value,
            created_by_id=created_by_id,
        )
    log.info(f"Created {len(DEMO_RELATIONSHIPS)} relationships")


def print_tokens(users: dict[str, User]):
    if not config.AUTH_JWT_SECRET:
        log.warning("AUTH_JWT_SECRET is not set; skipping demo tokens")
        return

    log.info("Demo bearer tokens:")
    for email, user in users.items():
        token = jwt.encode({"sub": user.id}, config.AUTH_JWT_SECRET, algorithm=config.AUTH_JWT_ALGORITHM)
        log.info(f"  - {email}: {token}")


async def main():
    """Main function to seed the demo data."""
    log.info("Starting demo seeding...")

    # Initialize database tables first
    log.info("Initializing database tables...")
    await init_db()

    async for db in get_db():
        try:
            users = await seed_users(db)

            result = await db.execute(select(FamilyTree).where(FamilyTree.name == "Byron family"))
            if result.scalars().first():
                log.info("Demo trees already exist, skipping")
            else:
                tree = await seed_trees(db, users)
                await seed_persons(db, tree, users["owner@lineage.dev"].id)

            await db.commit()
            log.info("Demo seeding completed successfully!")
            print_tokens(users)

        except Exception as e:
            log.error(f"Error seeding demo data: {e}", exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
