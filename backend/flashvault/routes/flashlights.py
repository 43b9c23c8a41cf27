"""
FlashVault Backend — Flashlight Route Handlers
================================================

What:  CRUD and bulk import for the caller's flashlight collection.
How:   Every handler depends on get_current_user (401 without a valid
       credential) and get_db_session (commit on success, rollback on error),
       then delegates to FlashlightService or BulkImporter.

Route Map:
    GET    /api/flashlights                               list (newest first)
    POST   /api/flashlights                               create → 201
    POST   /api/flashlights/bulk                          bulk import → 200
    GET    /api/flashlights/{id}                          detail
    PUT    /api/flashlights/{id}                          partial update
    PATCH  /api/flashlights/{id}/emitters/{emitter_id}    edit one emitter
    DELETE /api/flashlights/{id}                          delete

The bulk route is declared before the `{flashlight_id}` routes so "bulk" is
never parsed as an id.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from flashvault.auth import get_current_user
from flashvault.database import get_db_session
from flashvault.schemas.bulk import BulkImportRequest, BulkImportResponse
from flashvault.schemas.common import ErrorResponse, MessageResponse
from flashvault.schemas.flashlight import (
    EmitterResponse,
    EmitterUpdate,
    FlashlightCreate,
    FlashlightResponse,
    FlashlightUpdate,
)
from flashvault.services.bulk_importer import bulk_importer
from flashvault.services.flashlight_service import flashlight_service
from flashvault.services.identity import AuthenticatedUser

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/flashlights", tags=["Flashlights"])

_COMMON_ERRORS = {
    401: {"description": "Missing or invalid credential", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


@router.get(
    "",
    response_model=List[FlashlightResponse],
    responses=_COMMON_ERRORS,
    summary="List the caller's flashlights",
)
async def list_flashlights(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[FlashlightResponse]:
    return await flashlight_service.list_flashlights(db, user.id)


@router.post(
    "",
    response_model=FlashlightResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid flashlight", "model": ErrorResponse},
        **_COMMON_ERRORS,
    },
    summary="Create a flashlight with its emitters",
    description=(
        "Stores one flashlight and all of its emitters atomically. Unknown "
        "manufacturers and emitter types are added to the reference tables."
    ),
)
async def create_flashlight(
    payload: FlashlightCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FlashlightResponse:
    return await flashlight_service.create_flashlight(db, user.id, payload)


@router.post(
    "/bulk",
    response_model=BulkImportResponse,
    responses={
        400: {"description": "Body is not {flashlights: [...]}", "model": ErrorResponse},
        **_COMMON_ERRORS,
    },
    summary="Import many flashlights",
    description=(
        "Processes records in order. Each record succeeds or fails on its own; "
        "the response lists both and always answers 200 once the envelope is valid."
    ),
)
async def bulk_import(
    payload: BulkImportRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BulkImportResponse:
    """
    Per-record failures (unknown manufacturer, missing battery_type, a bad
    emitter count) land in `results.failed` with the reason; they never turn
    the whole call into an error.
    """
    return await bulk_importer.import_batch(db, user.id, payload.flashlights)


@router.get(
    "/{flashlight_id}",
    response_model=FlashlightResponse,
    responses={404: {"description": "Not found", "model": ErrorResponse}, **_COMMON_ERRORS},
    summary="Get one flashlight",
)
async def get_flashlight(
    flashlight_id: UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FlashlightResponse:
    return await flashlight_service.get_flashlight(db, user.id, flashlight_id)


@router.put(
    "/{flashlight_id}",
    response_model=FlashlightResponse,
    responses={
        400: {"description": "Invalid field", "model": ErrorResponse},
        404: {"description": "Not found", "model": ErrorResponse},
        **_COMMON_ERRORS,
    },
    summary="Update a flashlight",
    description=(
        "Only the fields present in the body change. Sending `emitters` "
        "replaces the whole emitter list; `[]` removes every emitter."
    ),
)
async def update_flashlight(
    flashlight_id: UUID,
    payload: FlashlightUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FlashlightResponse:
    return await flashlight_service.update_flashlight(db, user.id, flashlight_id, payload)


@router.patch(
    "/{flashlight_id}/emitters/{emitter_id}",
    response_model=EmitterResponse,
    responses={
        400: {"description": "Invalid field", "model": ErrorResponse},
        404: {"description": "Not found", "model": ErrorResponse},
        **_COMMON_ERRORS,
    },
    summary="Edit a single emitter",
)
async def patch_emitter(
    flashlight_id: UUID,
    emitter_id: UUID,
    payload: EmitterUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> EmitterResponse:
    return await flashlight_service.patch_emitter(db, user.id, flashlight_id, emitter_id, payload)


@router.delete(
    "/{flashlight_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Not found", "model": ErrorResponse}, **_COMMON_ERRORS},
    summary="Delete a flashlight and its emitters",
)
async def delete_flashlight(
    flashlight_id: UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await flashlight_service.delete_flashlight(db, user.id, flashlight_id)
