"""
FlashVault Backend — Reference Table Routes
=============================================

What:  Read-only listings of manufacturers and emitter types for form
       dropdowns. Rows are only ever added by the resolver.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from flashvault.auth import get_current_user
from flashvault.database import get_db_session
from flashvault.exceptions import DatabaseError
from flashvault.schemas.common import ReferenceItem
from flashvault.services.reference_resolver import (
    ReferenceResolver,
    emitter_type_resolver,
    manufacturer_resolver,
)

router = APIRouter(
    prefix="/api",
    tags=["References"],
    dependencies=[Depends(get_current_user)],
)


async def _list(resolver: ReferenceResolver, db: AsyncSession) -> List[ReferenceItem]:
    try:
        rows = await resolver.list_all(db)
    except SQLAlchemyError as exc:
        raise DatabaseError(context={"operation": f"list {resolver.kind}"}) from exc
    return [ReferenceItem.model_validate(row) for row in rows]


@router.get("/manufacturers", response_model=List[ReferenceItem], summary="List manufacturers")
async def list_manufacturers(db: AsyncSession = Depends(get_db_session)) -> List[ReferenceItem]:
    return await _list(manufacturer_resolver(), db)


@router.get("/emitter-types", response_model=List[ReferenceItem], summary="List emitter types")
async def list_emitter_types(db: AsyncSession = Depends(get_db_session)) -> List[ReferenceItem]:
    return await _list(emitter_type_resolver(), db)
