from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from servicehub.assistant import ChatAssistant
from servicehub.dependencies.auth import get_directory
from servicehub.directory import DirectoryRepository
from servicehub.notifications import NotificationInbox
from servicehub.templates import TemplateService
from servicehub.tickets import TicketService


def _from_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{label} is not available")
    return service


async def get_ticket_service(request: Request) -> TicketService:
    return _from_state(request, "ticket_service", "Ticket service")


async def get_notification_inbox(request: Request) -> NotificationInbox:
    return _from_state(request, "notification_inbox", "Notification inbox")


async def get_template_service(request: Request) -> TemplateService:
    return _from_state(request, "template_service", "Template service")


async def get_chat_assistant(request: Request) -> ChatAssistant:
    return _from_state(request, "chat_assistant", "Chat assistant")


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
NotificationInboxDep = Annotated[NotificationInbox, Depends(get_notification_inbox)]
TemplateServiceDep = Annotated[TemplateService, Depends(get_template_service)]
ChatAssistantDep = Annotated[ChatAssistant, Depends(get_chat_assistant)]
DirectoryDep = Annotated[DirectoryRepository, Depends(get_directory)]
