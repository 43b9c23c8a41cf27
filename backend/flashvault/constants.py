"""
FlashVault Backend — Canonical Domain Values
==============================================

What:  The single source of enumerated inventory values (statuses, colors)
       and of the legacy-value maps used when importing old collection data.
Who:   ORM models, Pydantic schemas, the composer and the import client.

Versioning:
    VALUES_VERSION is bumped whenever a member is added or renamed, so an
    import file produced against an older set can be spotted in logs.
"""

from enum import Enum
from typing import Dict

VALUES_VERSION = 2


class FlashlightStatus(str, Enum):
    WANTED = "Wanted"
    ORDERED = "Ordered"
    OWNED = "Owned"
    SOLD = "Sold"


class ShippingStatus(str, Enum):
    RECEIVED = "Received"
    SHIPPED = "Shipped"
    ORDERED = "Ordered"


class EmitterColor(str, Enum):
    WHITE = "White"
    RED = "Red"
    GREEN = "Green"
    BLUE = "Blue"
    UV = "UV"
    RGB = "RGB"
    GREEN_LASER = "Green Laser"
    RED_LASER = "Red Laser"


DEFAULT_EMITTER_COLOR = EmitterColor.WHITE

# Bulk endpoint callers send this many records per request
DEFAULT_IMPORT_CHUNK_SIZE = 10

# ── Legacy normalisation ──────────────────────────────────────────────────
# Older exports misspelled some manufacturers; keys are the bad spellings.
MANUFACTURER_ALIASES: Dict[str, str] = {
    "Sofrin": "Sofirn",
}

LEGACY_SHIPPING_STATUS: Dict[str, str] = {
    "In Transit": ShippingStatus.SHIPPED.value,
}

# The five-state lifecycle from the first data set, folded into the current four
LEGACY_FLASHLIGHT_STATUS: Dict[str, str] = {
    "New": FlashlightStatus.OWNED.value,
    "Active": FlashlightStatus.OWNED.value,
    "Storage": FlashlightStatus.OWNED.value,
    "Retired": FlashlightStatus.OWNED.value,
    "Gifted": FlashlightStatus.SOLD.value,
}


def canonical_manufacturer(name: str) -> str:
    return MANUFACTURER_ALIASES.get(name, name)


def canonical_shipping_status(value: str) -> str:
    return LEGACY_SHIPPING_STATUS.get(value, value)


def canonical_flashlight_status(value: str) -> str:
    return LEGACY_FLASHLIGHT_STATUS.get(value, value)
