"""
Magic Movers Backend — Custom Exception Hierarchy
===================================================

What:  Defines application-specific exceptions for every error scenario the
       API reports.
How:   Each exception class carries a message, an optional context dict, an
       HTTP status code and a machine-readable error code. The global
       exception handler registered in main.py turns them into structured
       JSON error responses.
Who:   Raised by services and repositories; caught by global handlers.
When:  During request processing, before anything is committed.

Exception Hierarchy:
    MagicMoversError (base)
    ├── ValidationError              → 400 ValidationError
    ├── DuplicateNameError           → 400 DuplicateName
    ├── NotFoundError                → 404 NotFound
    ├── InvalidStateError            → 400 InvalidState
    ├── CapacityExceededError        → 400 CapacityExceeded
    ├── ConcurrentModificationError  → 409 ConcurrentModification
    └── OperationFailedError         → 500 OperationFailed
"""

from typing import Any, Dict, Iterable, List, Optional


class MagicMoversError(Exception):
    """
    Base exception for all Magic Movers application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional structured details returned as `details`
        status_code / code: HTTP status and error code used by the handler
    """

    status_code: int = 500
    code: str = "OperationFailed"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MagicMoversError):
    """
    Raised when client input fails validation.

    `errors` is a list of {"field", "message"} dicts, the same shape the
    request-validation handler produces from Pydantic errors.

    Example response:
        {
            "error": "ValidationError",
            "message": "Request validation failed",
            "details": {"errors": [{"field": "weightLimit", "message": "..."}]}
        }
    """

    status_code = 400
    code = "ValidationError"

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[List[Dict[str, str]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if errors:
            ctx["errors"] = errors
        super().__init__(message=message, context=ctx)
        self.errors = errors or []


class DuplicateNameError(MagicMoversError):
    """Raised when a mover or item name is already taken."""

    status_code = 400
    code = "DuplicateName"

    def __init__(
        self,
        resource: str,
        name: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update(resource=resource, name=name)
        super().__init__(
            message=f"A {resource} named '{name}' already exists",
            context=ctx,
        )


class NotFoundError(MagicMoversError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that None
    into this exception so routes stay free of existence checks.
    """

    status_code = 404
    code = "NotFound"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        missing_ids: Optional[Iterable[int]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if missing_ids is not None:
            missing = sorted(missing_ids)
            ctx["missing_ids"] = missing
            message = f"{resource} not found: {', '.join(str(i) for i in missing)}"
        elif resource_id is not None:
            ctx["resource_id"] = resource_id
            message = f"{resource} with ID '{resource_id}' was not found"
        else:
            message = f"The requested {resource} was not found"
        super().__init__(message=message, context=ctx)


class InvalidStateError(MagicMoversError):
    """
    Raised when an operation is not permitted in the mover's quest state,
    e.g. loading a mover that is on a mission.
    """

    status_code = 400
    code = "InvalidState"

    def __init__(
        self,
        message: str = "Operation not permitted in the current quest state",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CapacityExceededError(MagicMoversError):
    """Raised when held weight would exceed the mover's weight limit."""

    status_code = 400
    code = "CapacityExceeded"

    def __init__(
        self,
        weight_limit: int,
        total_weight: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update(weight_limit=weight_limit, total_weight=total_weight)
        super().__init__(
            message=(
                f"Total weight {total_weight} exceeds the mover's "
                f"weight limit of {weight_limit}"
            ),
            context=ctx,
        )
        self.weight_limit = weight_limit
        self.total_weight = total_weight


class ConcurrentModificationError(MagicMoversError):
    """
    Raised when a mover or item changed underneath the request.

    When:  A compare-and-swap lost its race on every retry, or an item was
           grabbed by another mover between validation and attachment.
    HTTP:  409 Conflict; the client can resend the request as-is.
    """

    status_code = 409
    code = "ConcurrentModification"

    def __init__(
        self,
        message: str = "The resource was modified concurrently. Please retry.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class OperationFailedError(MagicMoversError):
    """
    Raised when a persistence operation fails unexpectedly.

    The message returned to the client is always generic. Driver and SQL
    details are logged server-side only.
    """

    status_code = 500
    code = "OperationFailed"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
