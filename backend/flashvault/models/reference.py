"""
FlashVault Backend — Reference Table Models
=============================================

What:  `manufacturers` and `emitter_types`, the lookup tables shared by every
       user's collection.
How:   Both tables expose the same shape (integer id, unique `name`) so a
       single ReferenceResolver can serve them.

Uniqueness:
    The UNIQUE constraint on `name` is the only guard against two
    concurrent imports creating the same manufacturer. The application
    never locks; it relies on the constraint and re-fetches on conflict.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from flashvault.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Manufacturer(Base):
    """A flashlight maker, referenced by many flashlights."""

    __tablename__ = "manufacturers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        unique=True,
        comment="Display name, matched case-sensitively by the resolver",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<Manufacturer(id={self.id}, name='{self.name}')>"


class EmitterType(Base):
    """An LED part number such as '519A' or 'XHP70.3 HI'."""

    __tablename__ = "emitter_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        unique=True,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<EmitterType(id={self.id}, name='{self.name}')>"
