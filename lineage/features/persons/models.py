"""
Person model.

A person belongs to exactly one tree. ``date_of_death`` being unset is what
marks a person as living.
"""
from datetime import date
from sqlalchemy import String, ForeignKey, Text, Date
from sqlalchemy.orm import Mapped, mapped_column

from lineage.core.database.base import Base, TimestampMixin, generate_ulid


class Person(Base, TimestampMixin):
    __tablename__ = "persons"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    tree_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("family_trees.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)  # male, female, other

    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    date_of_death: Mapped[date | None] = mapped_column(Date, nullable=True)

    biography: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def is_living(self) -> bool:
        return self.date_of_death is None

    def __repr__(self) -> str:
        return f"<Person(id={self.id}, name={self.first_name!r} {self.last_name!r}, tree_id={self.tree_id})>"
