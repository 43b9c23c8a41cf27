"""
FlashVault Backend — Transactional Writer Tests
=================================================

What we test:
    ✅ A flashlight and its emitters are stored together, in order
    ✅ An emitter failure leaves no flashlight behind
    ✅ The session stays usable after a rolled-back write
    ✅ Emitter replacement and cascade delete
"""

import pytest
from sqlalchemy import func, select

from flashvault.constants import EmitterColor
from flashvault.exceptions import WriteFailed
from flashvault.models import Emitter, Flashlight
from flashvault.schemas.flashlight import EmitterIn
from flashvault.services.composer import ResolvedEmitter, compose
from flashvault.services.reference_resolver import ReferenceResolvers
from flashvault.services.writer import flashlight_writer


async def _rows(db, model):
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


async def _resolved(db, record):
    return await ReferenceResolvers.fresh().resolve_record(db, compose(record))


class TestCreate:

    @pytest.mark.asyncio
    async def test_stores_parent_and_children(self, db_session, sample_flashlight):
        record = await _resolved(db_session, sample_flashlight)

        flashlight = await flashlight_writer.create(db_session, "user-1", record)

        assert flashlight.model == "E75"
        assert flashlight.manufacturer.name == "Acebeam"
        assert [e.type for e in flashlight.emitters] == ["519A", "XP-E2"]
        assert [e.position for e in flashlight.emitters] == [0, 1]
        assert flashlight.emitters[1].color == "Red"
        assert flashlight.emitters[1].cct is None

    @pytest.mark.asyncio
    async def test_emitter_failure_rolls_back_parent(self, db_session, sample_flashlight):
        record = await _resolved(db_session, sample_flashlight)
        # Bypass validation so the database CHECK is what rejects the row
        record.emitters.append(
            ResolvedEmitter(
                draft=EmitterIn.model_construct(type="519A", cct=None, count=0, color=EmitterColor.WHITE)
            )
        )

        with pytest.raises(WriteFailed):
            await flashlight_writer.create(db_session, "user-1", record)

        assert await _rows(db_session, Flashlight) == 0
        assert await _rows(db_session, Emitter) == 0

    @pytest.mark.asyncio
    async def test_session_usable_after_failed_write(self, db_session, sample_flashlight):
        bad = await _resolved(db_session, sample_flashlight)
        bad.emitters = [
            ResolvedEmitter(draft=EmitterIn.model_construct(type=None, cct=None, count=0, color=EmitterColor.RED))
        ]
        with pytest.raises(WriteFailed):
            await flashlight_writer.create(db_session, "user-1", bad)

        good = await _resolved(db_session, sample_flashlight)
        stored = await flashlight_writer.create(db_session, "user-1", good)

        assert stored.id is not None
        assert await _rows(db_session, Flashlight) == 1
        assert await _rows(db_session, Emitter) == 2


class TestUpdateAndDelete:

    @pytest.mark.asyncio
    async def test_replacing_with_empty_list_removes_emitters(self, db_session, sample_flashlight):
        record = await _resolved(db_session, sample_flashlight)
        flashlight = await flashlight_writer.create(db_session, "user-1", record)

        updated = await flashlight_writer.replace_children(db_session, flashlight, [])

        assert updated.emitters == []
        assert await _rows(db_session, Emitter) == 0

    @pytest.mark.asyncio
    async def test_replacement_swaps_the_whole_list(self, db_session, sample_flashlight):
        record = await _resolved(db_session, sample_flashlight)
        flashlight = await flashlight_writer.create(db_session, "user-1", record)

        replacement = [ResolvedEmitter(draft=EmitterIn(type="SST-20", cct="4000K", count=3))]
        updated = await flashlight_writer.update(
            db_session, flashlight, {"ui": "Anduril 2", "anduril": True}, emitters=replacement
        )

        assert updated.ui == "Anduril 2"
        assert updated.anduril is True
        assert [(e.type, e.count) for e in updated.emitters] == [("SST-20", 3)]
        assert await _rows(db_session, Emitter) == 1

    @pytest.mark.asyncio
    async def test_delete_takes_emitters_along(self, db_session, sample_flashlight):
        record = await _resolved(db_session, sample_flashlight)
        flashlight = await flashlight_writer.create(db_session, "user-1", record)

        await flashlight_writer.delete(db_session, flashlight)

        assert await _rows(db_session, Flashlight) == 0
        assert await _rows(db_session, Emitter) == 0

    @pytest.mark.asyncio
    async def test_load_scoped_to_owner(self, db_session, sample_flashlight):
        record = await _resolved(db_session, sample_flashlight)
        flashlight = await flashlight_writer.create(db_session, "user-1", record)

        assert await flashlight_writer.load(db_session, flashlight.id, user_id="user-2") is None
        assert (await flashlight_writer.load(db_session, flashlight.id, user_id="user-1")).id == flashlight.id
