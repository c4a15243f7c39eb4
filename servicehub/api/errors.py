"""Translate service-layer exceptions into HTTP errors."""

from __future__ import annotations

from fastapi import HTTPException, status

from servicehub.assistant import ChatAssistantError
from servicehub.directory import CustomerValidationError, DirectoryError, DuplicateCustomerError
from servicehub.notifications import NotificationNotFoundError, WhatsAppGatewayError
from servicehub.storage import StorageError
from servicehub.templates import TemplateNotFoundError
from servicehub.tickets import (
    DenialReason,
    PersistenceError,
    TicketConflictError,
    TicketNotFoundError,
    TicketValidationError,
    TransitionDeniedError,
)

_DENIAL_STATUS = {
    DenialReason.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    DenialReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    DenialReason.NO_OP_TRANSITION: status.HTTP_409_CONFLICT,
    DenialReason.PENDING_APPROVAL: status.HTTP_409_CONFLICT,
    DenialReason.TERMINAL_STATE: status.HTTP_409_CONFLICT,
}

HANDLED_ERRORS = (
    TicketNotFoundError,
    TransitionDeniedError,
    TicketConflictError,
    PersistenceError,
    TicketValidationError,
    NotificationNotFoundError,
    TemplateNotFoundError,
    StorageError,
    WhatsAppGatewayError,
    ChatAssistantError,
    DirectoryError,
)


def http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, TransitionDeniedError):
        return HTTPException(
            status_code=_DENIAL_STATUS.get(exc.reason, status.HTTP_403_FORBIDDEN),
            detail={"reason": exc.reason.value, "message": exc.message},
        )
    if isinstance(exc, (TicketNotFoundError, NotificationNotFoundError, TemplateNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, TicketConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, PersistenceError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Ticket store is unavailable")
    if isinstance(exc, CustomerValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, DuplicateCustomerError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, DirectoryError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Directory is unavailable")
    if isinstance(exc, TicketValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, (StorageError, WhatsAppGatewayError, ChatAssistantError)):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
