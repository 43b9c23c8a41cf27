"""
FlashVault Backend — Flashlight Request/Response Schemas
==========================================================

What:  Pydantic models defining the flashlight API contract.
Why:   The same models validate single-item request bodies (via FastAPI) and
       raw bulk-import items (via the composer), so both paths apply
       identical rules.

Input rules:
    - Required: model, manufacturer label, battery_type, status, and each
      emitter's count (positive integer).
    - Emitter color defaults to White; cct stays null when absent or blank.
    - ip_rating / notes / shipping_status default to null.
    - shipping_status is accepted for any status, including Sold.
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationInfo, field_validator

from flashvault.constants import (
    DEFAULT_EMITTER_COLOR,
    EmitterColor,
    FlashlightStatus,
    ShippingStatus,
)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class EmitterIn(BaseModel):
    """One emitter group as supplied by a caller."""

    type: Optional[str] = Field(
        default=None,
        max_length=120,
        description="Emitter part name, e.g. '519A'. Blank means no reference lookup.",
    )
    cct: Optional[str] = Field(
        default=None,
        max_length=40,
        description="Correlated color temperature, e.g. '5000K'. Null for colored emitters.",
    )
    count: int = Field(ge=1, strict=True, description="How many of this emitter (>= 1)")
    color: EmitterColor = Field(default=DEFAULT_EMITTER_COLOR)

    model_config = {"str_strip_whitespace": True}

    @field_validator("type", "cct", mode="before")
    @classmethod
    def blank_is_absent(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("color", mode="before")
    @classmethod
    def default_color(cls, v: Any) -> Any:
        return DEFAULT_EMITTER_COLOR if v is None else v


class FlashlightCreate(BaseModel):
    """
    A complete flashlight record, as posted to POST /api/flashlights or as
    one element of a bulk import.

    The manufacturer label arrives as `manufacturer_name` from bulk clients
    and as `manufacturer` from the web UI; both are accepted.
    """

    model: str = Field(min_length=1, max_length=200)
    manufacturer_name: str = Field(
        min_length=1,
        max_length=120,
        validation_alias=AliasChoices("manufacturer_name", "manufacturer"),
    )
    finish: str = Field(default="", max_length=200)
    finish_group: str = Field(default="", max_length=100)
    battery_type: str = Field(min_length=1, max_length=100)
    emitters: List[EmitterIn] = Field(default_factory=list)
    driver: str = Field(default="", max_length=100)
    ui: str = Field(default="", max_length=100)
    anduril: bool = False
    form_factors: List[str] = Field(default_factory=list)
    ip_rating: Optional[str] = Field(default=None, max_length=20)
    special_features: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    purchase_date: Optional[str] = Field(default=None, max_length=32)
    status: FlashlightStatus
    shipping_status: Optional[ShippingStatus] = None

    model_config = {"str_strip_whitespace": True}

    @field_validator("ip_rating", "notes", "purchase_date", mode="before")
    @classmethod
    def blank_is_absent(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("finish", "finish_group", "driver", "ui", mode="before")
    @classmethod
    def null_text_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class FlashlightUpdate(BaseModel):
    """
    Partial update for PUT /api/flashlights/{id}.

    Only fields present in the body are written. When `emitters` is present
    (including `[]` or null) the existing emitters are replaced wholesale.
    """

    model: Optional[str] = Field(default=None, min_length=1, max_length=200)
    manufacturer_name: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=120,
        validation_alias=AliasChoices("manufacturer_name", "manufacturer"),
    )
    finish: Optional[str] = Field(default=None, max_length=200)
    finish_group: Optional[str] = Field(default=None, max_length=100)
    battery_type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    emitters: Optional[List[EmitterIn]] = None
    driver: Optional[str] = Field(default=None, max_length=100)
    ui: Optional[str] = Field(default=None, max_length=100)
    anduril: Optional[bool] = None
    form_factors: Optional[List[str]] = None
    ip_rating: Optional[str] = Field(default=None, max_length=20)
    special_features: Optional[List[str]] = None
    notes: Optional[str] = None
    purchase_date: Optional[str] = Field(default=None, max_length=32)
    status: Optional[FlashlightStatus] = None
    shipping_status: Optional[ShippingStatus] = None

    model_config = {"str_strip_whitespace": True}

    @field_validator("model", "manufacturer_name", "battery_type", "status", "anduril")
    @classmethod
    def not_nullable(cls, v: Any) -> Any:
        # Runs only for fields present in the body
        if v is None:
            raise ValueError("may not be null")
        return v

    @field_validator("ip_rating", "notes", "purchase_date", mode="before")
    @classmethod
    def blank_is_absent(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("finish", "finish_group", "driver", "ui", "form_factors", "special_features", mode="before")
    @classmethod
    def null_is_empty(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return [] if info.field_name in ("form_factors", "special_features") else ""
        return v


class EmitterUpdate(BaseModel):
    """Partial update for a single emitter."""

    type: Optional[str] = Field(default=None, max_length=120)
    cct: Optional[str] = Field(default=None, max_length=40)
    count: Optional[int] = Field(default=None, ge=1, strict=True)
    color: Optional[EmitterColor] = None

    model_config = {"str_strip_whitespace": True}

    @field_validator("type", "cct", mode="before")
    @classmethod
    def blank_is_absent(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("count")
    @classmethod
    def count_not_null(cls, v: Optional[int]) -> int:
        if v is None:
            raise ValueError("may not be null")
        return v

    @field_validator("color", mode="before")
    @classmethod
    def default_color(cls, v: Any) -> Any:
        return DEFAULT_EMITTER_COLOR if v is None else v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class EmitterResponse(BaseModel):
    id: uuid.UUID
    type: Optional[str] = None
    emitter_type_id: Optional[int] = None
    cct: Optional[str] = None
    count: int
    color: str

    model_config = {"from_attributes": True}


class FlashlightResponse(BaseModel):
    """
    A stored flashlight with its emitters, as returned by every single-item
    route. `manufacturer` is the resolved reference row's name.
    """

    id: uuid.UUID
    user_id: str
    model: str
    manufacturer: Optional[str] = None
    manufacturer_id: Optional[int] = None
    finish: str
    finish_group: str
    battery_type: str
    emitters: List[EmitterResponse]
    driver: str
    ui: str
    anduril: bool
    form_factors: List[str]
    ip_rating: Optional[str] = None
    special_features: List[str]
    notes: Optional[str] = None
    purchase_date: Optional[str] = None
    status: str
    shipping_status: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, flashlight: Any) -> "FlashlightResponse":
        return cls(
            id=flashlight.id,
            user_id=flashlight.user_id,
            model=flashlight.model,
            manufacturer=flashlight.manufacturer.name if flashlight.manufacturer else None,
            manufacturer_id=flashlight.manufacturer_id,
            finish=flashlight.finish,
            finish_group=flashlight.finish_group,
            battery_type=flashlight.battery_type,
            emitters=[EmitterResponse.model_validate(e) for e in flashlight.emitters],
            driver=flashlight.driver,
            ui=flashlight.ui,
            anduril=flashlight.anduril,
            form_factors=list(flashlight.form_factors or []),
            ip_rating=flashlight.ip_rating,
            special_features=list(flashlight.special_features or []),
            notes=flashlight.notes,
            purchase_date=flashlight.purchase_date,
            status=flashlight.status,
            shipping_status=flashlight.shipping_status,
            created_at=flashlight.created_at,
            updated_at=flashlight.updated_at,
        )
