"""
FlashVault Backend — Bulk Import Schemas
==========================================

What:  Envelope and result shapes for POST /api/flashlights/bulk.

Envelope vs items:
    Only the envelope is validated at request level: `flashlights` must be a
    list of JSON objects. Each object is validated later by the composer so
    a single malformed record becomes one entry in `results.failed` instead
    of rejecting the whole batch.
"""

import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class BulkImportRequest(BaseModel):
    flashlights: List[Dict[str, Any]] = Field(
        description="Raw flashlight records, processed in order",
    )


class BulkImportSummary(BaseModel):
    total: int
    successful: int
    failed: int


class BulkImportSuccess(BaseModel):
    model: Optional[str] = None
    manufacturer: Optional[str] = None
    id: uuid.UUID


class BulkImportFailure(BaseModel):
    model: Optional[str] = None
    manufacturer: Optional[str] = None
    error: str


class BulkImportResults(BaseModel):
    successful: List[BulkImportSuccess] = Field(default_factory=list)
    failed: List[BulkImportFailure] = Field(default_factory=list)


class BulkImportResponse(BaseModel):
    """
    Outcome of one bulk call.

    Invariant: summary.successful + summary.failed == summary.total, and
    summary.total equals the number of submitted records.
    """
    message: str = "Bulk import completed"
    summary: BulkImportSummary
    results: BulkImportResults
