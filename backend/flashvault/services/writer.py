"""
FlashVault Backend — Transactional Writer
===========================================

What:  Persists a flashlight together with its emitters as one unit.
Why:   A flashlight without the emitters it was submitted with is a corrupt
       record. Either both land or neither does.
How:   Every write runs inside `session.begin_nested()` (a SAVEPOINT). Any
       SQLAlchemyError inside it rolls the savepoint back and surfaces as
       WriteFailed; the outer request transaction stays usable, which is what
       lets the bulk importer continue with the next item.

Write Flow (create):
    SAVEPOINT ─▶ INSERT flashlight ─▶ flush ─▶ INSERT emitters ─▶ flush ─▶ RELEASE
                                                      │
                                            error ────┴──▶ ROLLBACK TO SAVEPOINT
                                                           └─▶ WriteFailed

After each write the flashlight is re-selected with populate_existing so the
eager-loaded manufacturer and emitters reflect what is now in the database.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from flashvault.exceptions import NotFoundError, WriteFailed
from flashvault.models import Emitter, Flashlight
from flashvault.services.composer import ResolvedEmitter, ResolvedFlashlight

logger = logging.getLogger(__name__)

# Draft fields that are not flashlight columns
_NON_COLUMN_FIELDS = {"manufacturer_name", "emitters"}


def _build_emitters(emitters: Sequence[ResolvedEmitter]) -> List[Emitter]:
    return [
        Emitter(
            emitter_type_id=item.emitter_type_id,
            type=item.draft.type,
            cct=item.draft.cct,
            count=item.draft.count,
            color=item.draft.color.value,
            position=position,
        )
        for position, item in enumerate(emitters)
    ]


class FlashlightWriter:
    """All flashlight/emitter mutations go through here."""

    async def load(
        self,
        db: AsyncSession,
        flashlight_id: uuid.UUID,
        user_id: Optional[str] = None,
    ) -> Optional[Flashlight]:
        """Fresh copy of a flashlight (optionally scoped to its owner), or None."""
        stmt = (
            select(Flashlight)
            .where(Flashlight.id == flashlight_id)
            .execution_options(populate_existing=True)
        )
        if user_id is not None:
            stmt = stmt.where(Flashlight.user_id == user_id)
        result = await db.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def _reload(self, db: AsyncSession, flashlight_id: uuid.UUID) -> Flashlight:
        flashlight = await self.load(db, flashlight_id)
        if flashlight is None:
            raise NotFoundError("flashlight", str(flashlight_id))
        return flashlight

    async def create(
        self,
        db: AsyncSession,
        user_id: str,
        record: ResolvedFlashlight,
    ) -> Flashlight:
        """
        Insert a flashlight and its emitters atomically.

        Raises:
            WriteFailed: any database error; nothing from this call remains.
        """
        fields = record.draft.model_dump(mode="json", exclude=_NON_COLUMN_FIELDS)
        flashlight = Flashlight(
            user_id=user_id,
            manufacturer_id=record.manufacturer_id,
            **fields,
        )
        flashlight.emitters = _build_emitters(record.emitters)

        try:
            async with db.begin_nested():
                db.add(flashlight)
                await db.flush()
        except SQLAlchemyError as exc:
            logger.warning(
                "Saving flashlight '%s' failed, savepoint rolled back: %s",
                record.draft.model,
                exc,
            )
            raise WriteFailed(context={"error_type": type(exc).__name__}) from exc

        logger.info(
            "Created flashlight %s ('%s', %d emitter group(s)) for user %s",
            flashlight.id,
            flashlight.model,
            len(record.emitters),
            user_id,
        )
        return await self._reload(db, flashlight.id)

    async def update(
        self,
        db: AsyncSession,
        flashlight: Flashlight,
        values: Dict[str, Any],
        emitters: Optional[Sequence[ResolvedEmitter]] = None,
    ) -> Flashlight:
        """
        Apply column `values`; when `emitters` is not None, replace every
        existing emitter with the given list (an empty list clears them).
        """
        flashlight_id = flashlight.id
        try:
            async with db.begin_nested():
                for key, value in values.items():
                    setattr(flashlight, key, value)
                if emitters is not None:
                    await self._swap_emitters(db, flashlight, emitters)
                await db.flush()
        except SQLAlchemyError as exc:
            logger.warning("Updating flashlight %s failed, savepoint rolled back: %s", flashlight_id, exc)
            raise WriteFailed(context={"error_type": type(exc).__name__}) from exc

        logger.info(
            "Updated flashlight %s (fields=%s, emitters_replaced=%s)",
            flashlight_id,
            sorted(values),
            emitters is not None,
        )
        return await self._reload(db, flashlight_id)

    async def replace_children(
        self,
        db: AsyncSession,
        flashlight: Flashlight,
        emitters: Sequence[ResolvedEmitter],
    ) -> Flashlight:
        """Replace every emitter of `flashlight` in one savepoint."""
        return await self.update(db, flashlight, {}, emitters)

    async def _swap_emitters(
        self,
        db: AsyncSession,
        flashlight: Flashlight,
        emitters: Sequence[ResolvedEmitter],
    ) -> None:
        # delete-orphan removes the old rows before the new ones go in
        flashlight.emitters.clear()
        await db.flush()
        flashlight.emitters.extend(_build_emitters(emitters))

    async def update_emitter(
        self,
        db: AsyncSession,
        emitter: Emitter,
        values: Dict[str, Any],
    ) -> Emitter:
        try:
            async with db.begin_nested():
                for key, value in values.items():
                    setattr(emitter, key, value)
                await db.flush()
        except SQLAlchemyError as exc:
            logger.warning("Updating emitter %s failed: %s", emitter.id, exc)
            raise WriteFailed(
                message="Could not save the emitter",
                context={"error_type": type(exc).__name__},
            ) from exc
        return emitter

    async def delete(self, db: AsyncSession, flashlight: Flashlight) -> None:
        """Delete a flashlight; its emitters go with it."""
        flashlight_id = flashlight.id
        try:
            async with db.begin_nested():
                await db.delete(flashlight)
                await db.flush()
        except SQLAlchemyError as exc:
            logger.warning("Deleting flashlight %s failed: %s", flashlight_id, exc)
            raise WriteFailed(
                message="Could not delete the flashlight",
                context={"error_type": type(exc).__name__},
            ) from exc
        logger.info("Deleted flashlight %s", flashlight_id)


# Module-level singleton
flashlight_writer = FlashlightWriter()
