from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict

from servicehub.api.errors import HANDLED_ERRORS, http_error
from servicehub.dependencies.auth import CurrentActor
from servicehub.dependencies.services import NotificationInboxDep

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    message: str
    ticket_id: str | None
    is_read: bool
    created_at: datetime


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    inbox: NotificationInboxDep,
    actor: CurrentActor,
    unread: bool = Query(default=False),
) -> list[NotificationResponse]:
    notifications = await inbox.list_for(actor.user_id, unread_only=unread)
    return [NotificationResponse.model_validate(item) for item in notifications]


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    inbox: NotificationInboxDep,
    actor: CurrentActor,
) -> NotificationResponse:
    try:
        notification = await inbox.mark_read(actor.user_id, notification_id)
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return NotificationResponse.model_validate(notification)
