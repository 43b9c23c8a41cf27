"""
FlashVault Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for every failure the inventory
       services can report.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers (registered in main.py) map them to HTTP
       status codes; the bulk importer catches them per item instead.

Exception Hierarchy:
    FlashVaultError (base)
    ├── ValidationError   → 400 Bad Request (caller fixes the input, never retried)
    ├── AuthError         → 401 Unauthorized (surfaced immediately, never retried)
    ├── IdentityProviderUnavailable → 503 (provider unreachable after retries)
    ├── NotFoundError     → 404 Not Found
    ├── ReferenceResolutionError (base for reference-table resolution trouble)
    │   ├── LookupFailed  → 500 (read failed for a reason other than "missing")
    │   └── CreateFailed  → 500 (insert failed even after the one re-fetch)
    ├── WriteFailed       → 500 (parent/child persistence failed, savepoint rolled back)
    └── DatabaseError     → 500 (any other database failure)

Propagation:
    Single-item routes let the first error escape to the global handlers.
    The bulk importer stores `exc.message` in the item's failed slot and
    moves on to the next item.
"""

from typing import Any, Dict, Optional


class FlashVaultError(Exception):
    """
    Base exception for all FlashVault application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only for 400s)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(FlashVaultError):
    """
    Raised when caller input is malformed or references unknown data.

    `field` is the dotted path of the offending input field, for example
    `emitters.0.count` or `manufacturer_name`.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthError(FlashVaultError):
    """Missing, malformed or rejected credential."""

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(FlashVaultError):
    """
    Raised when a requested resource does not exist for the caller.

    A flashlight owned by another user is reported exactly like a missing
    one so ids cannot be probed across accounts.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource.capitalize()} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ReferenceResolutionError(FlashVaultError):
    """Base for failures while mapping a label to a reference row."""

    def __init__(
        self,
        message: str,
        kind: str,
        label: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"kind": kind, "label": label})
        super().__init__(message=message, context=ctx)
        self.kind = kind
        self.label = label


class LookupFailed(ReferenceResolutionError):
    """The select-by-name query itself failed."""

    def __init__(self, kind: str, label: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Could not look up {kind} '{label}'",
            kind=kind,
            label=label,
            context=context,
        )


class CreateFailed(ReferenceResolutionError):
    """Inserting a new reference row failed and the re-fetch found nothing."""

    def __init__(self, kind: str, label: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Could not create {kind} '{label}'",
            kind=kind,
            label=label,
            context=context,
        )


class WriteFailed(FlashVaultError):
    """
    Raised when persisting a flashlight or its emitters fails.

    By the time this is raised the enclosing savepoint has been rolled back,
    so no partially written flashlight remains.
    """

    def __init__(
        self,
        message: str = "Could not save the flashlight",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(FlashVaultError):
    """
    Raised when database operations fail unexpectedly.

    The client always gets a generic message; details are logged only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class IdentityProviderUnavailable(FlashVaultError):
    """
    Raised when the identity provider cannot be reached or answers with a
    server error after the configured retries.

    Distinct from AuthError: the credential may be fine, we just could not
    check it.
    """

    def __init__(
        self,
        message: str = "Authentication service is temporarily unavailable.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
