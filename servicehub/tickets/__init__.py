"""Ticket lifecycle engine: status registry, policy, state machine and service."""

from .approval import ApprovalGate
from .errors import (
    DenialReason,
    PersistenceError,
    RemarkValidationError,
    TicketConflictError,
    TicketNotFoundError,
    TicketServiceError,
    TicketValidationError,
    TransitionDeniedError,
)
from .lifecycle import StatusChanged, TicketLifecycle, TransitionResult
from .models import AttachmentUpload, Ticket, TicketAuditEntry, TicketDraft, TicketRemark
from .policy import TransitionDecision, TransitionPolicy
from .repository import TicketRepository
from .service import TicketService
from .state import StatusRegistry, TicketStatus, UnknownStatusError

__all__ = [
    "ApprovalGate",
    "AttachmentUpload",
    "DenialReason",
    "PersistenceError",
    "RemarkValidationError",
    "StatusChanged",
    "StatusRegistry",
    "Ticket",
    "TicketAuditEntry",
    "TicketConflictError",
    "TicketDraft",
    "TicketLifecycle",
    "TicketNotFoundError",
    "TicketRemark",
    "TicketRepository",
    "TicketService",
    "TicketServiceError",
    "TicketStatus",
    "TicketValidationError",
    "TransitionDecision",
    "TransitionDeniedError",
    "TransitionPolicy",
    "TransitionResult",
    "UnknownStatusError",
]
