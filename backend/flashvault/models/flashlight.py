"""
FlashVault Backend — Flashlight & Emitter Models
==================================================

What:  The owned records of a collection: `flashlights` and their
       `flashlight_emitters`.
Who:   Written by FlashlightWriter, read by FlashlightService.

Table Design Rationale:
    - UUID primary keys: ids appear in URLs; non-sequential ids cannot be
      enumerated.
    - user_id: plain string from the identity provider; indexed because
      every query filters on it.
    - form_factors / special_features: JSON lists (tags, never queried by
      element).
    - purchase_date: free text; historic data holds bare years ("2024").
    - Emitter.type keeps the label as entered even when emitter_type_id is
      resolved, so a record still reads correctly if no reference was made.
    - Emitter.count has a CHECK (count >= 1) so the database refuses what
      the composer would reject.

Ownership:
    A Flashlight exclusively owns its Emitters. The FK is ON DELETE CASCADE
    and the ORM relationship cascades "all, delete-orphan", so deleting a
    flashlight never leaves emitter rows behind.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flashvault.constants import DEFAULT_EMITTER_COLOR
from flashvault.database import Base
from flashvault.models.reference import Manufacturer


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Flashlight(Base):
    """
    One flashlight in a user's collection.

    Lifecycle:
        Created together with its emitters in one savepoint; updated in
        place (emitters optionally replaced wholesale); deleted with its
        emitters.
    """

    __tablename__ = "flashlights"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    model: Mapped[str] = mapped_column(String(200), nullable=False)
    manufacturer_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("manufacturers.id"),
        nullable=True,
    )
    finish: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    finish_group: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    battery_type: Mapped[str] = mapped_column(String(100), nullable=False)
    driver: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    ui: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    anduril: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    form_factors: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    ip_rating: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    special_features: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    purchase_date: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    # Set once the item has physically shipped; no rule clears it for Sold
    shipping_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    manufacturer: Mapped[Optional[Manufacturer]] = relationship(lazy="joined")
    emitters: Mapped[List["Emitter"]] = relationship(
        back_populates="flashlight",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Emitter.position",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_flashlights_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Flashlight(id={self.id}, model='{self.model}', status='{self.status}')>"


class Emitter(Base):
    """A group of identical LEDs inside one flashlight."""

    __tablename__ = "flashlight_emitters"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    flashlight_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("flashlights.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    emitter_type_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("emitter_types.id"),
        nullable=True,
    )
    type: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    # Null for colored emitters that have no color temperature
    cct: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    color: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DEFAULT_EMITTER_COLOR.value,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    flashlight: Mapped[Flashlight] = relationship(back_populates="emitters")

    __table_args__ = (
        CheckConstraint("count >= 1", name="ck_flashlight_emitters_count_positive"),
    )

    def __repr__(self) -> str:
        return f"<Emitter(id={self.id}, type='{self.type}', count={self.count})>"
