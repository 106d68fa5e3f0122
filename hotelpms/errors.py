"""
hotelpms/errors.py

Typed error taxonomy shared by every service.

Each error carries a category so callers (and the HTTP layer) can pick a
presentation: validation errors are fixed by changing input, conflict and
not-found errors are surfaced verbatim, transport errors may be retried.
"""
from typing import Any, Dict, Optional


class ErrorCategory:
    """Error categories"""

    VALIDATION = "validation"
    AUTH = "auth"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    TRANSPORT = "transport"


class PMSError(Exception):
    """
    Base error of the hotelpms core.

    Attributes:
        category: one of ErrorCategory
        code: stable machine-readable code
        message: human readable message
        context: extra structured details
    """

    category = ErrorCategory.VALIDATION
    code = "pms_error"
    default_message = "Operation failed"

    def __init__(self, message: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


# ============== Validation ==============

class ValidationError(PMSError):
    category = ErrorCategory.VALIDATION
    code = "validation_error"
    default_message = "Invalid input"


class EmptyNoteError(ValidationError):
    code = "empty_note"
    default_message = "Note body cannot be empty"


class InvalidRoomRangeError(ValidationError):
    code = "invalid_room_ranges"
    default_message = "Invalid room ranges provided"


class InvalidEventTypeError(ValidationError):
    code = "invalid_event_type"
    default_message = "Invalid event type"


class EmptyPatchError(ValidationError):
    code = "empty_patch"
    default_message = "Room patch has no fields to update"


class WorkflowRuleViolation(ValidationError):
    code = "workflow_rule_violation"
    default_message = "Operation blocked by a hotel workflow rule"


# ============== Auth ==============

class NotAuthenticatedError(PMSError):
    category = ErrorCategory.AUTH
    code = "not_authenticated"
    default_message = "User must be authenticated to perform this action"


# ============== Conflict / state ==============

class DuplicateRequestError(PMSError):
    category = ErrorCategory.CONFLICT
    code = "duplicate_request"
    default_message = "You already have a pending request for this hotel"


class DuplicateRoomError(PMSError):
    category = ErrorCategory.CONFLICT
    code = "duplicate_room"
    default_message = "Room number already exists in this hotel"


class InvalidStateTransitionError(PMSError):
    category = ErrorCategory.CONFLICT
    code = "invalid_state_transition"
    default_message = "Invalid state transition"


class MembershipConsistencyError(PMSError):
    category = ErrorCategory.CONFLICT
    code = "membership_consistency"
    default_message = "No pending membership is paired with this join request"


# ============== Not found ==============

class NotFoundError(PMSError):
    category = ErrorCategory.NOT_FOUND
    code = "not_found"
    default_message = "Resource not found"


class RequestNotFoundError(NotFoundError):
    code = "request_not_found"
    default_message = "Join request not found"


class RoomNotFoundError(NotFoundError):
    code = "room_not_found"
    default_message = "Room not found"


class NoteNotFoundError(NotFoundError):
    code = "note_not_found"
    default_message = "Note not found"


class MembershipNotFoundError(NotFoundError):
    code = "membership_not_found"
    default_message = "Membership not found"


# ============== Transport ==============

class NetworkError(PMSError):
    category = ErrorCategory.TRANSPORT
    code = "network_error"
    default_message = "Network error"


class PartialFailureError(NetworkError):
    """A compound write stopped after a committed step and could not be compensated."""

    code = "partial_failure"
    default_message = "Operation partially completed"

    def __init__(self, message: Optional[str] = None, committed_step: str = "",
                 context: Optional[Dict[str, Any]] = None):
        self.committed_step = committed_step
        ctx = dict(context or {})
        ctx["committed_step"] = committed_step
        super().__init__(message, ctx)


__all__ = [
    "ErrorCategory",
    "PMSError",
    "ValidationError",
    "EmptyNoteError",
    "InvalidRoomRangeError",
    "InvalidEventTypeError",
    "EmptyPatchError",
    "WorkflowRuleViolation",
    "NotAuthenticatedError",
    "DuplicateRequestError",
    "DuplicateRoomError",
    "InvalidStateTransitionError",
    "MembershipConsistencyError",
    "NotFoundError",
    "RequestNotFoundError",
    "RoomNotFoundError",
    "NoteNotFoundError",
    "MembershipNotFoundError",
    "NetworkError",
    "PartialFailureError",
]
