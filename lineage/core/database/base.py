"""
SQLAlchemy declarative base shared by users, trees, persons, relationships
and audit logs.

Primary keys are ULID strings so ids sort by creation time and can be
handed out before a flush.
"""
from datetime import datetime
from sqlalchemy import DateTime, MetaData, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from ulid import ULID

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def generate_ulid() -> str:
    return str(ULID())


class Base(DeclarativeBase):
    """
    Base class for all models.

        class Person(Base, TimestampMixin):
            __tablename__ = "persons"

            id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    """
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class TimestampMixin:
    """created_at / updated_at maintained by the database."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
