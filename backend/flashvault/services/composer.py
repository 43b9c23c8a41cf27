"""
FlashVault Backend — Record Composer
======================================

What:  Turns an untrusted mapping into a validated FlashlightCreate draft, and
       defines the "resolved" record shapes handed to the writer.
Why:   Validation stays free of I/O; reference lookups happen afterwards in
       ReferenceResolvers.resolve_record().
How:   Pydantic does the shape checks; the first pydantic error is converted
       into our ValidationError naming the offending field path.
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from flashvault.exceptions import ValidationError
from flashvault.schemas.flashlight import EmitterIn, FlashlightCreate


@dataclass
class ResolvedEmitter:
    """An emitter draft plus its emitter_types id (None = free-text only)."""
    draft: EmitterIn
    emitter_type_id: Optional[int] = None


@dataclass
class ResolvedFlashlight:
    """A flashlight draft whose labels have been mapped to reference ids."""
    draft: FlashlightCreate
    manufacturer_id: Optional[int]
    emitters: List[ResolvedEmitter] = field(default_factory=list)


def field_path(loc: Sequence[Union[str, int]]) -> str:
    """('emitters', 0, 'count') -> 'emitters.0.count'."""
    return ".".join(str(part) for part in loc)


def validation_error_from(exc: Any, strip_prefix: str = "") -> ValidationError:
    """
    Convert a pydantic (or FastAPI request) error report into a single
    ValidationError.

    The message names the first failing field; `details.errors` lists all of
    them so a client can highlight every bad input at once.
    """
    errors = []
    for err in exc.errors():
        loc = list(err.get("loc", ()))
        if strip_prefix and loc and loc[0] == strip_prefix:
            loc = loc[1:]
        errors.append({"field": field_path(loc), "message": err.get("msg", "invalid value")})

    first = errors[0] if errors else {"field": "", "message": "invalid value"}
    message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
    return ValidationError(
        message=message,
        field=first["field"] or None,
        context={"errors": errors},
    )


def compose(raw: Any) -> FlashlightCreate:
    """
    Validate one raw flashlight record.

    Raises:
        ValidationError: the input is not an object or a field is missing,
            mistyped, or outside its enumeration.
    """
    if not isinstance(raw, Mapping):
        raise ValidationError(message="Each flashlight must be a JSON object")
    try:
        return FlashlightCreate.model_validate(raw)
    except PydanticValidationError as exc:
        raise validation_error_from(exc) from exc
