"""Error taxonomy shared by every workflow operation."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "Unauthenticated"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    INVALID_REFERENCE = "InvalidReference"
    INVALID_ROLE = "InvalidRole"
    INACTIVE_TARGET = "InactiveTarget"
    ALREADY_DECIDED = "AlreadyDecided"
    NOT_ACCEPTED = "NotAccepted"
    VALIDATION_ERROR = "ValidationError"
    UNAVAILABLE = "Unavailable"


class WorkflowError(Exception):
    """Base class for failures reported through the result envelope."""

    kind: ErrorKind = ErrorKind.UNAVAILABLE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnauthenticatedError(WorkflowError):
    kind = ErrorKind.UNAUTHENTICATED


class ForbiddenError(WorkflowError):
    kind = ErrorKind.FORBIDDEN


class NotFoundError(WorkflowError):
    kind = ErrorKind.NOT_FOUND


class InvalidReferenceError(WorkflowError):
    kind = ErrorKind.INVALID_REFERENCE


class InvalidRoleError(WorkflowError):
    kind = ErrorKind.INVALID_ROLE


class InactiveTargetError(WorkflowError):
    kind = ErrorKind.INACTIVE_TARGET


class AlreadyDecidedError(WorkflowError):
    kind = ErrorKind.ALREADY_DECIDED


class NotAcceptedError(WorkflowError):
    kind = ErrorKind.NOT_ACCEPTED


class PayloadValidationError(WorkflowError):
    kind = ErrorKind.VALIDATION_ERROR


class UnavailableError(WorkflowError):
    kind = ErrorKind.UNAVAILABLE


class CorruptRecordError(UnavailableError):
    """A persisted record violates the record invariants (e.g. unknown status)."""
