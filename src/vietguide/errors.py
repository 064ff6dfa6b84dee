"""
Domain errors for the booking lifecycle and currency conversion core.

Every failure surfaced to callers is one of the typed errors below. Transport
failures from the backend client are translated into this taxonomy by the
managers, so callers never have to inspect HTTP status codes themselves.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

AVAILABILITY_CONFLICT_MESSAGE = (
    "This tour guide is not available for the selected dates. "
    "Please choose different dates."
)

# Lowercased fragments the backend uses when a slot cannot be booked.
_CONFLICT_KEYWORDS = (
    "not available",
    "unavailable",
    "already booked",
    "time slot",
    "schedule conflict",
    "booking conflict",
    "date conflict",
)

_CONFLICT_STATUS_CODES = {409, 422}


class VietGuideError(Exception):
    """Base exception for all domain-specific errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}


class ValidationError(VietGuideError):
    """Raised when a local precondition fails. Never reaches the network."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message=message, code="VALIDATION_ERROR", details=details)


class AvailabilityConflictError(VietGuideError):
    """Raised when the backend rejects a booking because the slot is taken."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message or AVAILABILITY_CONFLICT_MESSAGE,
            code="AVAILABILITY_CONFLICT",
            details=details,
        )


class InvalidTransitionError(VietGuideError):
    """Raised when a status change is not permitted from the current state."""

    def __init__(self, current_status: str, requested_status: str, actor_role: str) -> None:
        self.current_status = current_status
        self.requested_status = requested_status
        self.actor_role = actor_role
        super().__init__(
            message=(
                f"Cannot change booking from {current_status} to {requested_status} "
                f"as {actor_role}"
            ),
            code="INVALID_TRANSITION",
            details={
                "current_status": current_status,
                "requested_status": requested_status,
                "actor_role": actor_role,
            },
        )


class PersistenceError(VietGuideError):
    """Raised when the booking backend fails for reasons other than availability."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        merged = dict(details or {})
        if status_code is not None:
            merged.setdefault("status_code", status_code)
        super().__init__(message=message, code="PERSISTENCE_ERROR", details=merged)


class ConversionError(VietGuideError):
    """Raised when a currency rate cannot be resolved or applied."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message or "conversion failed",
            code="CONVERSION_ERROR",
            details=details,
        )


class FailureKind(str, Enum):
    """Local classification of a backend failure."""

    AVAILABILITY_CONFLICT = "availability_conflict"
    PERSISTENCE = "persistence"


def classify_failure(status_code: Optional[int], message: Optional[str]) -> FailureKind:
    """Map a backend failure's status code and message to a failure kind.

    Conflict keywords win regardless of status. 409 and 422 are always
    conflicts. A 400 counts as a conflict only when it carries no message;
    a 400 that explains itself is reported as-is.
    """
    text = (message or "").strip().lower()
    if text and any(keyword in text for keyword in _CONFLICT_KEYWORDS):
        return FailureKind.AVAILABILITY_CONFLICT
    if status_code in _CONFLICT_STATUS_CODES:
        return FailureKind.AVAILABILITY_CONFLICT
    if status_code == 400 and not text:
        return FailureKind.AVAILABILITY_CONFLICT
    return FailureKind.PERSISTENCE
