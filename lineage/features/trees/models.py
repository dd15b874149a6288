"""
Family tree models.

A tree has exactly one owner and any number of collaborators. Each
collaborator record carries a permission level (admin, editor, viewer);
roles are derived from these records by the permission engine.
"""
import enum
from sqlalchemy import String, ForeignKey, Boolean, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lineage.core.database.base import Base, TimestampMixin, generate_ulid


class CollaboratorLevel(str, enum.Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class FamilyTree(Base, TimestampMixin):
    """
    A family tree owned by a single user.
    """
    __tablename__ = "family_trees"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    owner_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Public trees grant the guest role to any authenticated user
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    collaborators: Mapped[list["TreeCollaborator"]] = relationship(
        "TreeCollaborator",
        back_populates="tree",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<FamilyTree(id={self.id}, name={self.name!r}, owner_id={self.owner_id})>"


class TreeCollaborator(Base, TimestampMixin):
    """
    A user's membership in someone else's tree.
    """
    __tablename__ = "tree_collaborators"
    __table_args__ = (UniqueConstraint("tree_id", "user_id", name="uq_tree_collaborator"),)

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    tree_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("family_trees.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    permission_level: Mapped[str] = mapped_column(String(20), nullable=False, default=CollaboratorLevel.VIEWER.value)
    added_by_id: Mapped[str | None] = mapped_column(String(26), ForeignKey("users.id"), nullable=True)

    tree: Mapped["FamilyTree"] = relationship("FamilyTree", back_populates="collaborators")

    def __repr__(self) -> str:
        return f"<TreeCollaborator(tree_id={self.tree_id}, user_id={self.user_id}, level={self.permission_level})>"
