"""
FlashVault Backend — Flashlight Service (Business Logic Orchestrator)
=======================================================================

What:  CRUD over one user's flashlight collection.
Why:   Keeps routes thin; owns the resolve → write → reload sequence and the
       ownership rule.
Who:   Called by routes/flashlights.py; calls ReferenceResolvers and
       FlashlightWriter.

Orchestration Flow (POST /api/flashlights):
    ┌───────────┐    ┌──────────────┐    ┌──────────────┐    ┌──────────┐
    │  Request  │───▶│  Resolve     │───▶│  Writer      │───▶│ Response │
    │  (schema) │    │  references  │    │  (savepoint) │    │ (reload) │
    └───────────┘    └──────────────┘    └──────────────┘    └──────────┘

Ownership:
    Every lookup filters on user_id. A flashlight that exists but belongs
    to someone else raises the same NotFoundError as one that does not exist.

Error Handling Strategy:
    FlashVaultError subclasses propagate unchanged. Unexpected
    SQLAlchemyErrors on reads are wrapped in DatabaseError so internal
    details never reach the client.
"""

import logging
import uuid
from typing import List

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from flashvault.exceptions import DatabaseError, NotFoundError
from flashvault.models import Flashlight
from flashvault.schemas.common import MessageResponse
from flashvault.schemas.flashlight import (
    EmitterResponse,
    EmitterUpdate,
    FlashlightCreate,
    FlashlightResponse,
    FlashlightUpdate,
)
from flashvault.services.reference_resolver import ReferenceResolvers
from flashvault.services.writer import flashlight_writer

logger = logging.getLogger(__name__)


class FlashlightService:
    """
    Business logic layer for flashlight operations.

    Stateless: resolvers are created per call, the session is passed in.
    """

    async def list_flashlights(self, db: AsyncSession, user_id: str) -> List[FlashlightResponse]:
        """All of the caller's flashlights, newest first."""
        try:
            result = await db.execute(
                select(Flashlight)
                .where(Flashlight.user_id == user_id)
                .order_by(desc(Flashlight.created_at), desc(Flashlight.id))
            )
            flashlights = result.unique().scalars().all()
        except SQLAlchemyError as exc:
            logger.error("Failed to list flashlights for user %s: %s", user_id, exc)
            raise DatabaseError(context={"operation": "list_flashlights"}) from exc

        return [FlashlightResponse.from_model(f) for f in flashlights]

    async def _owned(self, db: AsyncSession, user_id: str, flashlight_id: uuid.UUID) -> Flashlight:
        try:
            flashlight = await flashlight_writer.load(db, flashlight_id, user_id=user_id)
        except SQLAlchemyError as exc:
            logger.error("Failed to load flashlight %s: %s", flashlight_id, exc)
            raise DatabaseError(context={"operation": "get_flashlight"}) from exc

        if flashlight is None:
            raise NotFoundError("flashlight", str(flashlight_id))
        return flashlight

    async def get_flashlight(
        self,
        db: AsyncSession,
        user_id: str,
        flashlight_id: uuid.UUID,
    ) -> FlashlightResponse:
        flashlight = await self._owned(db, user_id, flashlight_id)
        return FlashlightResponse.from_model(flashlight)

    async def create_flashlight(
        self,
        db: AsyncSession,
        user_id: str,
        payload: FlashlightCreate,
    ) -> FlashlightResponse:
        """
        Resolve references, then write the flashlight and its emitters.

        References are resolved before the write savepoint opens, so a
        failed write never takes a freshly created manufacturer with it.
        """
        resolvers = ReferenceResolvers.fresh()
        record = await resolvers.resolve_record(db, payload, create_manufacturer=True)
        flashlight = await flashlight_writer.create(db, user_id, record)
        return FlashlightResponse.from_model(flashlight)

    async def update_flashlight(
        self,
        db: AsyncSession,
        user_id: str,
        flashlight_id: uuid.UUID,
        payload: FlashlightUpdate,
    ) -> FlashlightResponse:
        """
        Partial update. Absent fields are left alone; a present `emitters`
        key (even `[]` or null) replaces the emitter list.
        """
        flashlight = await self._owned(db, user_id, flashlight_id)
        resolvers = ReferenceResolvers.fresh()

        values = payload.model_dump(mode="json", exclude_unset=True)
        replace_emitters = "emitters" in values
        values.pop("emitters", None)

        if "manufacturer_name" in values:
            values["manufacturer_id"] = await resolvers.manufacturers.resolve(
                db,
                values.pop("manufacturer_name"),
                create=True,
                field="manufacturer_name",
            )

        emitters = None
        if replace_emitters:
            emitters = await resolvers.resolve_emitters(db, payload.emitters or [])

        updated = await flashlight_writer.update(db, flashlight, values, emitters)
        return FlashlightResponse.from_model(updated)

    async def patch_emitter(
        self,
        db: AsyncSession,
        user_id: str,
        flashlight_id: uuid.UUID,
        emitter_id: uuid.UUID,
        payload: EmitterUpdate,
    ) -> EmitterResponse:
        """Patch one emitter of one of the caller's flashlights."""
        flashlight = await self._owned(db, user_id, flashlight_id)
        emitter = next((e for e in flashlight.emitters if e.id == emitter_id), None)
        if emitter is None:
            raise NotFoundError("emitter", str(emitter_id))

        values = payload.model_dump(mode="json", exclude_unset=True)
        if "type" in values:
            resolvers = ReferenceResolvers.fresh()
            values["emitter_type_id"] = await resolvers.emitter_types.resolve(
                db, values["type"], create=True, field="type"
            )

        emitter = await flashlight_writer.update_emitter(db, emitter, values)
        return EmitterResponse.model_validate(emitter)

    async def delete_flashlight(
        self,
        db: AsyncSession,
        user_id: str,
        flashlight_id: uuid.UUID,
    ) -> MessageResponse:
        flashlight = await self._owned(db, user_id, flashlight_id)
        await flashlight_writer.delete(db, flashlight)
        return MessageResponse(message="Flashlight deleted successfully")


# Module-level singleton
flashlight_service = FlashlightService()
