"""
FlashVault Backend — Reference Resolver
=========================================

What:  Maps a free-text label (manufacturer name, emitter part) to the id of
       the matching reference row, creating the row when allowed.
Why:   One resolver, parameterised by table and column, replaces the
       per-call-site lookups that disagreed on the column name.
How:   select-by-name → (missing) insert inside a SAVEPOINT → on a uniqueness
       conflict, re-fetch once (tenacity, two attempts in total).
Who:   FlashlightService (single-item writes) and BulkImporter (per batch).

Concurrency:
    Two requests resolving the same new label may both try to insert. The
    UNIQUE constraint on `name` decides the winner; the loser's insert fails
    with IntegrityError, its savepoint rolls back, and the retry finds the
    winner's row. No application-level locking is involved.

Caching:
    Each resolver keeps a label → id dict. Instances are created per request
    (ReferenceResolvers.fresh()), so the cache never outlives one batch.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Type

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
)

from flashvault.exceptions import CreateFailed, LookupFailed, ValidationError
from flashvault.models import EmitterType, Manufacturer
from flashvault.schemas.flashlight import EmitterIn, FlashlightCreate
from flashvault.services.composer import ResolvedEmitter, ResolvedFlashlight

logger = logging.getLogger(__name__)


class _CreateConflict(Exception):
    """Insert lost a uniqueness race; the row should now be readable."""


class ReferenceResolver:
    """
    Label → id resolution for one reference table.

    Args:
        model: ORM class of the reference table.
        column: Name of the unique label column.
        kind: Human label used in error messages ("manufacturer").
        row_defaults: Extra column values for newly created rows.
    """

    def __init__(
        self,
        model: Type[Any],
        column: str = "name",
        kind: Optional[str] = None,
        row_defaults: Optional[Callable[[str], Dict[str, Any]]] = None,
    ):
        self.model = model
        self.column = getattr(model, column)
        self.kind = kind or model.__tablename__
        self._row_defaults = row_defaults
        self._cache: Dict[str, int] = {}

    async def resolve(
        self,
        db: AsyncSession,
        label: Optional[str],
        create: bool = True,
        field: Optional[str] = None,
    ) -> Optional[int]:
        """
        Return the id for `label`, or None when the label is empty.

        Raises:
            ValidationError: `create` is False and no row matches.
            LookupFailed: the select itself failed.
            CreateFailed: the insert failed and the re-fetch found nothing.
        """
        if label is None or not label.strip():
            return None
        label = label.strip()

        cached = self._cache.get(label)
        if cached is not None:
            return cached

        try:
            ref_id = await self._lookup_or_create(db, label, create, field)
        except _CreateConflict as exc:
            logger.error("%s '%s' conflicted twice; giving up", self.kind, label)
            raise CreateFailed(self.kind, label, context={"reason": "uniqueness conflict"}) from exc

        self._cache[label] = ref_id
        return ref_id

    @retry(
        retry=retry_if_exception_type(_CreateConflict),
        stop=stop_after_attempt(2),
        before_sleep=before_sleep_log(logger, logging.INFO),
        reraise=True,
    )
    async def _lookup_or_create(
        self,
        db: AsyncSession,
        label: str,
        create: bool,
        field: Optional[str],
    ) -> int:
        existing = await self._find(db, label)
        if existing is not None:
            return existing
        if not create:
            raise ValidationError(
                message=f"Unknown {self.kind}: {label}",
                field=field,
                context={"kind": self.kind, "label": label},
            )
        return await self._create(db, label)

    async def _find(self, db: AsyncSession, label: str) -> Optional[int]:
        try:
            result = await db.execute(select(self.model.id).where(self.column == label))
        except SQLAlchemyError as exc:
            logger.error("Lookup of %s '%s' failed: %s", self.kind, label, exc)
            raise LookupFailed(self.kind, label, context={"error_type": type(exc).__name__}) from exc
        return result.scalar_one_or_none()

    async def _create(self, db: AsyncSession, label: str) -> int:
        values = {self.column.key: label}
        if self._row_defaults:
            values.update(self._row_defaults(label))
        row = self.model(**values)

        try:
            async with db.begin_nested():
                db.add(row)
                await db.flush()
        except IntegrityError as exc:
            logger.info("%s '%s' was created concurrently; re-fetching", self.kind, label)
            raise _CreateConflict(label) from exc
        except SQLAlchemyError as exc:
            logger.error("Creating %s '%s' failed: %s", self.kind, label, exc)
            raise CreateFailed(self.kind, label, context={"error_type": type(exc).__name__}) from exc

        logger.info("Created %s '%s' (id=%s)", self.kind, label, row.id)
        return row.id

    async def list_all(self, db: AsyncSession) -> List[Any]:
        """Every row of the table, ordered by label."""
        result = await db.execute(select(self.model).order_by(self.column))
        return list(result.scalars().all())


def _emitter_type_defaults(label: str) -> Dict[str, Any]:
    return {"description": f"{label} LED emitter"}


def manufacturer_resolver() -> ReferenceResolver:
    return ReferenceResolver(Manufacturer, column="name", kind="manufacturer")


def emitter_type_resolver() -> ReferenceResolver:
    return ReferenceResolver(
        EmitterType,
        column="name",
        kind="emitter type",
        row_defaults=_emitter_type_defaults,
    )


class ReferenceResolvers:
    """The pair of resolvers one request (or one bulk batch) works with."""

    def __init__(self, manufacturers: ReferenceResolver, emitter_types: ReferenceResolver):
        self.manufacturers = manufacturers
        self.emitter_types = emitter_types

    @classmethod
    def fresh(cls) -> "ReferenceResolvers":
        return cls(manufacturer_resolver(), emitter_type_resolver())

    async def resolve_emitters(
        self,
        db: AsyncSession,
        emitters: Iterable[EmitterIn],
    ) -> List[ResolvedEmitter]:
        resolved = []
        for index, emitter in enumerate(emitters):
            type_id = await self.emitter_types.resolve(
                db, emitter.type, create=True, field=f"emitters.{index}.type"
            )
            resolved.append(ResolvedEmitter(draft=emitter, emitter_type_id=type_id))
        return resolved

    async def resolve_record(
        self,
        db: AsyncSession,
        draft: FlashlightCreate,
        create_manufacturer: bool = True,
    ) -> ResolvedFlashlight:
        manufacturer_id = await self.manufacturers.resolve(
            db,
            draft.manufacturer_name,
            create=create_manufacturer,
            field="manufacturer_name",
        )
        emitters = await self.resolve_emitters(db, draft.emitters)
        return ResolvedFlashlight(draft=draft, manufacturer_id=manufacturer_id, emitters=emitters)
