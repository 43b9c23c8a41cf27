"""
FlashVault Backend — Bulk Importer Tests
==========================================

What we test:
    ✅ Known and unknown manufacturers in one batch
    ✅ A bad record fails alone; neighbours are stored
    ✅ Summary counts always add up
    ✅ Emitter defaults and on-demand emitter types
    ✅ Opt-in creation of unknown manufacturers
"""

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from flashvault.models import Emitter, EmitterType, Flashlight, Manufacturer
from flashvault.services.bulk_importer import BulkImporter


def _record(model, manufacturer, **overrides):
    record = {
        "model": model,
        "manufacturer_name": manufacturer,
        "battery_type": "21700",
        "status": "Owned",
        "emitters": [{"type": "519A", "count": 1}],
    }
    record.update(overrides)
    return record


async def _count(db, model):
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


@pytest.fixture
def importer():
    return BulkImporter()


@pytest_asyncio.fixture
async def known_manufacturers(db_session):
    for name in ("Acebeam", "Emisar"):
        db_session.add(Manufacturer(name=name))
    await db_session.flush()


class TestMixedBatch:

    @pytest.mark.asyncio
    async def test_unknown_manufacturer_fails_only_its_record(self, db_session, importer, known_manufacturers):
        result = await importer.import_batch(
            db_session,
            "user-1",
            [
                _record("E75", "Acebeam"),
                _record("Phantom", "Zyntrex"),
            ],
        )

        assert result.message == "Bulk import completed"
        assert (result.summary.total, result.summary.successful, result.summary.failed) == (2, 1, 1)
        assert result.results.successful[0].model == "E75"
        assert result.results.successful[0].manufacturer == "Acebeam"
        failure = result.results.failed[0]
        assert (failure.model, failure.manufacturer) == ("Phantom", "Zyntrex")
        assert failure.error == "Unknown manufacturer: Zyntrex"
        assert await _count(db_session, Flashlight) == 1
        assert await db_session.scalar(
            select(func.count()).select_from(Manufacturer).where(Manufacturer.name == "Zyntrex")
        ) == 0

    @pytest.mark.asyncio
    async def test_invalid_record_between_valid_ones(self, db_session, importer, known_manufacturers):
        missing_battery = _record("D4K", "Emisar")
        del missing_battery["battery_type"]

        result = await importer.import_batch(
            db_session,
            "user-1",
            [
                _record("E75", "Acebeam"),
                missing_battery,
                _record("D4V2", "Emisar", emitters=[{"type": "519A", "count": 0}]),
                _record("L35", "Acebeam"),
            ],
        )

        assert [s.model for s in result.results.successful] == ["E75", "L35"]
        assert [f.model for f in result.results.failed] == ["D4K", "D4V2"]
        assert result.results.failed[0].error.startswith("battery_type")
        assert result.results.failed[1].error.startswith("emitters.0.count")
        assert result.summary.successful + result.summary.failed == result.summary.total == 4
        assert await _count(db_session, Flashlight) == 2

    @pytest.mark.asyncio
    async def test_empty_batch(self, db_session, importer):
        result = await importer.import_batch(db_session, "user-1", [])
        assert (result.summary.total, result.summary.successful, result.summary.failed) == (0, 0, 0)


class TestStoredValues:

    @pytest.mark.asyncio
    async def test_emitter_defaults(self, db_session, importer, known_manufacturers):
        result = await importer.import_batch(
            db_session, "user-1", [_record("E75", "Acebeam", emitters=[{"type": "519A", "count": 4}])]
        )
        assert result.summary.successful == 1

        emitter = (await db_session.execute(select(Emitter))).scalar_one()
        assert emitter.color == "White"
        assert emitter.cct is None
        assert emitter.count == 4

    @pytest.mark.asyncio
    async def test_emitter_type_resolved_once_per_label(self, db_session, importer, known_manufacturers):
        await importer.import_batch(
            db_session,
            "user-1",
            [_record(f"E75 #{n}", "Acebeam", emitters=[{"type": "SFT-40", "count": 1}]) for n in range(3)],
        )

        names = (await db_session.execute(select(EmitterType.name))).scalars().all()
        assert names.count("SFT-40") == 1
        type_ids = {e.emitter_type_id for e in (await db_session.execute(select(Emitter))).scalars()}
        assert len(type_ids) == 1

    @pytest.mark.asyncio
    async def test_records_belong_to_importing_user(self, db_session, importer, known_manufacturers):
        await importer.import_batch(db_session, "user-7", [_record("E75", "Acebeam")])

        owner = (await db_session.execute(select(Flashlight.user_id))).scalar_one()
        assert owner == "user-7"


class TestManufacturerCreation:

    @pytest.mark.asyncio
    async def test_opt_in_creates_unknown_manufacturer(self, db_session, importer):
        result = await importer.import_batch(
            db_session, "user-1", [_record("Phantom", "Zyntrex")], create_manufacturers=True
        )

        assert result.summary.successful == 1
        assert await _count(db_session, Manufacturer) == 1

    @pytest.mark.asyncio
    async def test_non_object_item_is_reported(self, db_session, importer):
        result = await importer.import_batch(db_session, "user-1", ["just a string"])

        assert result.summary.failed == 1
        assert result.results.failed[0].model is None
        assert "JSON object" in result.results.failed[0].error
