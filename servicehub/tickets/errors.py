"""Errors raised by the ticket lifecycle engine."""

from __future__ import annotations

from enum import Enum


class DenialReason(str, Enum):
    """Why a lifecycle action was refused."""

    FORBIDDEN = "forbidden"
    NO_OP_TRANSITION = "no_op_transition"
    PENDING_APPROVAL = "pending_approval"
    TERMINAL_STATE = "terminal_state"
    NOT_FOUND = "not_found"


class TicketServiceError(RuntimeError):
    """Base error for ticket service issues."""


class TicketNotFoundError(TicketServiceError):
    """Raised when a ticket is missing or soft-deleted."""


class TransitionDeniedError(TicketServiceError):
    """Raised when the transition policy refuses an action."""

    def __init__(self, reason: DenialReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message


class TicketConflictError(TicketServiceError):
    """Raised when the ticket changed between read and write."""


class PersistenceError(TicketServiceError):
    """Raised when the data store rejects a write."""


class TicketValidationError(TicketServiceError):
    """Raised when ticket input references missing or unsuitable records."""


class RemarkValidationError(TicketValidationError):
    """Raised when a remark or one of its attachments is not acceptable."""
