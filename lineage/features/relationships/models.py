"""
Relationship model.

Parent-child links are always stored from the parent's side, with the
parent as ``from_person_id``. The stored type follows the parent's gender:
``father``, ``mother``, or ``parent`` when the gender is unknown or other.
Spouse and sibling links keep the direction they were created with.
"""
import enum
from typing import Optional
from sqlalchemy import String, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from lineage.core.database.base import Base, TimestampMixin, generate_ulid


class StoredRelationshipType(str, enum.Enum):
    PARENT = "parent"
    FATHER = "father"
    MOTHER = "mother"
    SPOUSE = "spouse"
    SIBLING = "sibling"


PARENT_TYPES = frozenset({
    StoredRelationshipType.PARENT,
    StoredRelationshipType.FATHER,
    StoredRelationshipType.MOTHER,
})
PARENT_TYPE_VALUES = tuple(t.value for t in StoredRelationshipType if t in PARENT_TYPES)


def parent_type_for_gender(gender: Optional[str]) -> StoredRelationshipType:
    gender = (gender or "").strip().lower()
    if gender == "male":
        return StoredRelationshipType.FATHER
    if gender == "female":
        return StoredRelationshipType.MOTHER
    return StoredRelationshipType.PARENT


class Relationship(Base, TimestampMixin):
    __tablename__ = "relationships"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    tree_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("family_trees.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    from_person_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("persons.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    to_person_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("persons.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by_id: Mapped[str | None] = mapped_column(String(26), ForeignKey("users.id"), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Relationship(id={self.id}, {self.from_person_id} -{self.type}-> {self.to_person_id})>"
        )
