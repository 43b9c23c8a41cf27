"""
FlashVault Backend — ORM Models
================================

Importing this package registers every table on `Base.metadata`, which both
relationship resolution and Alembic autogenerate rely on.
"""

from flashvault.models.reference import EmitterType, Manufacturer
from flashvault.models.flashlight import Emitter, Flashlight

__all__ = ["Emitter", "EmitterType", "Flashlight", "Manufacturer"]
