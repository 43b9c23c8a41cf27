"""
FlashVault Backend — Bulk Importer
====================================

What:  Imports a list of raw flashlight records for one user and reports,
       per record, whether it was stored.
Why:   Migrating an existing collection means hundreds of records of mixed
       quality. One bad record must not sink the rest.
How:   Records are processed strictly in submission order. Each goes through
       compose → resolve → write; any FlashVaultError on the way is recorded
       against that record and the loop moves on. Writes use a savepoint per
       record (FlashlightWriter), so a failed record leaves nothing behind.
Who:   POST /api/flashlights/bulk and the import_collection script (via HTTP).

Reference resolution:
    One ReferenceResolvers pair serves the whole batch, so "Acebeam" is
    looked up once no matter how many records name it. Emitter types are
    created on demand. Manufacturers are only created when
    BULK_CREATE_MANUFACTURERS is enabled; otherwise an unknown manufacturer
    fails the record with "Unknown manufacturer: <name>".
"""

import logging
from typing import Any, Mapping, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from flashvault.config import settings
from flashvault.exceptions import FlashVaultError
from flashvault.schemas.bulk import (
    BulkImportFailure,
    BulkImportResponse,
    BulkImportResults,
    BulkImportSuccess,
    BulkImportSummary,
)
from flashvault.services.composer import compose
from flashvault.services.reference_resolver import ReferenceResolvers
from flashvault.services.writer import flashlight_writer

logger = logging.getLogger(__name__)


def _labels(raw: Any) -> Tuple[Optional[str], Optional[str]]:
    """Model and manufacturer as submitted, for echoing back in results."""
    if not isinstance(raw, Mapping):
        return None, None
    model = raw.get("model")
    manufacturer = raw.get("manufacturer_name", raw.get("manufacturer"))
    return (
        model if isinstance(model, str) else None,
        manufacturer if isinstance(manufacturer, str) else None,
    )


class BulkImporter:
    """Sequential, per-record-isolated import of flashlight records."""

    async def import_batch(
        self,
        db: AsyncSession,
        user_id: str,
        items: Sequence[Any],
        create_manufacturers: Optional[bool] = None,
    ) -> BulkImportResponse:
        if create_manufacturers is None:
            create_manufacturers = settings.bulk_create_manufacturers

        resolvers = ReferenceResolvers.fresh()
        results = BulkImportResults()

        logger.info("Bulk import of %d record(s) started for user %s", len(items), user_id)

        for index, raw in enumerate(items):
            model, manufacturer = _labels(raw)
            try:
                draft = compose(raw)
                record = await resolvers.resolve_record(
                    db, draft, create_manufacturer=create_manufacturers
                )
                flashlight = await flashlight_writer.create(db, user_id, record)
            except FlashVaultError as exc:
                logger.warning(
                    "Bulk record %d (%s / %s) failed: %s",
                    index,
                    manufacturer,
                    model,
                    exc.message,
                )
                results.failed.append(
                    BulkImportFailure(model=model, manufacturer=manufacturer, error=exc.message)
                )
                continue

            results.successful.append(
                BulkImportSuccess(model=model, manufacturer=manufacturer, id=flashlight.id)
            )

        summary = BulkImportSummary(
            total=len(items),
            successful=len(results.successful),
            failed=len(results.failed),
        )
        logger.info(
            "Bulk import finished for user %s: %d ok, %d failed",
            user_id,
            summary.successful,
            summary.failed,
        )
        return BulkImportResponse(summary=summary, results=results)


# Module-level singleton
bulk_importer = BulkImporter()
