"""
FlashVault Backend — Reference Resolver Tests
===============================================

What we test:
    ✅ Existing label → existing id; missing label → new row
    ✅ Repeated resolution of a label yields one row
    ✅ create=False reports unknown labels
    ✅ A lost insert race re-fetches the winner's row
    ✅ Read failures surface as LookupFailed
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from flashvault.exceptions import CreateFailed, LookupFailed, ValidationError
from flashvault.models import EmitterType, Manufacturer
from flashvault.services.reference_resolver import (
    ReferenceResolvers,
    emitter_type_resolver,
    manufacturer_resolver,
)


async def _count(db, model, name):
    result = await db.execute(select(func.count()).select_from(model).where(model.name == name))
    return result.scalar_one()


class TestResolve:

    @pytest.mark.asyncio
    async def test_existing_label_returns_existing_id(self, db_session):
        acebeam = Manufacturer(name="Acebeam")
        db_session.add(acebeam)
        await db_session.flush()
        acebeam_id = acebeam.id

        resolved = await manufacturer_resolver().resolve(db_session, "Acebeam")

        assert resolved == acebeam_id

    @pytest.mark.asyncio
    async def test_missing_label_creates_row(self, db_session):
        resolved = await manufacturer_resolver().resolve(db_session, "Wurkkos")

        row = await db_session.get(Manufacturer, resolved)
        assert row.name == "Wurkkos"

    @pytest.mark.asyncio
    async def test_emitter_type_gets_description(self, db_session):
        resolved = await emitter_type_resolver().resolve(db_session, "SFT-40")

        row = await db_session.get(EmitterType, resolved)
        assert row.description == "SFT-40 LED emitter"

    @pytest.mark.asyncio
    async def test_repeated_resolution_creates_one_row(self, db_session):
        first = await manufacturer_resolver().resolve(db_session, "Convoy")
        # A second resolver has an empty cache and must hit the table
        second = await manufacturer_resolver().resolve(db_session, "Convoy")

        assert first == second
        assert await _count(db_session, Manufacturer, "Convoy") == 1

    @pytest.mark.asyncio
    async def test_cache_skips_second_query(self, db_session):
        resolver = manufacturer_resolver()
        await resolver.resolve(db_session, "Olight")

        calls = []
        original_find = resolver._find

        async def counting_find(db, label):
            calls.append(label)
            return await original_find(db, label)

        resolver._find = counting_find
        await resolver.resolve(db_session, "Olight")

        assert calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("label", [None, "", "   "])
    async def test_empty_label_resolves_to_none(self, db_session, label):
        assert await emitter_type_resolver().resolve(db_session, label) is None

    @pytest.mark.asyncio
    async def test_label_is_trimmed(self, db_session):
        first = await manufacturer_resolver().resolve(db_session, "Nitecore")
        second = await manufacturer_resolver().resolve(db_session, "  Nitecore ")
        assert first == second

    @pytest.mark.asyncio
    async def test_unknown_label_without_create(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await manufacturer_resolver().resolve(
                db_session, "Zyntrex", create=False, field="manufacturer_name"
            )

        assert exc_info.value.message == "Unknown manufacturer: Zyntrex"
        assert exc_info.value.field == "manufacturer_name"
        assert await _count(db_session, Manufacturer, "Zyntrex") == 0


class TestConcurrentCreation:

    @pytest.mark.asyncio
    async def test_lost_race_refetches_winner(self, db_session):
        winner = Manufacturer(name="Emisar")
        db_session.add(winner)
        await db_session.flush()
        winner_id = winner.id

        resolver = manufacturer_resolver()
        original_find = resolver._find
        misses = {"left": 1}

        async def stale_find(db, label):
            # First lookup runs "before" the other request committed
            if misses["left"]:
                misses["left"] -= 1
                return None
            return await original_find(db, label)

        resolver._find = stale_find
        resolved = await resolver.resolve(db_session, "Emisar")

        assert resolved == winner_id
        assert await _count(db_session, Manufacturer, "Emisar") == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_second_conflict(self, db_session):
        db_session.add(Manufacturer(name="Reylight"))
        await db_session.flush()

        resolver = manufacturer_resolver()

        async def always_missing(db, label):
            return None

        resolver._find = always_missing
        with pytest.raises(CreateFailed, match="Could not create manufacturer 'Reylight'"):
            await resolver.resolve(db_session, "Reylight")


class TestLookupFailures:

    @pytest.mark.asyncio
    async def test_read_error_raises_lookup_failed(self, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("gone"))

        with pytest.raises(LookupFailed) as exc_info:
            await manufacturer_resolver().resolve(mock_db_session, "Acebeam")

        assert exc_info.value.kind == "manufacturer"
        assert exc_info.value.label == "Acebeam"


class TestListAndResolveRecord:

    @pytest.mark.asyncio
    async def test_list_all_is_sorted(self, db_session):
        resolver = manufacturer_resolver()
        for name in ("Skilhunt", "Acebeam", "Lumintop"):
            await resolver.resolve(db_session, name)

        rows = await resolver.list_all(db_session)

        assert [r.name for r in rows] == ["Acebeam", "Lumintop", "Skilhunt"]

    @pytest.mark.asyncio
    async def test_resolve_record_maps_every_label(self, db_session):
        from flashvault.services.composer import compose

        draft = compose({
            "model": "D4V2",
            "manufacturer_name": "Emisar",
            "battery_type": "18650",
            "status": "Owned",
            "emitters": [
                {"type": "519A", "count": 4},
                {"type": "519A", "count": 1, "color": "Red"},
                {"count": 1},
            ],
        })

        record = await ReferenceResolvers.fresh().resolve_record(db_session, draft)

        assert record.manufacturer_id is not None
        type_ids = [e.emitter_type_id for e in record.emitters]
        assert type_ids[0] == type_ids[1] is not None
        assert type_ids[2] is None
        assert await _count(db_session, EmitterType, "519A") == 1
