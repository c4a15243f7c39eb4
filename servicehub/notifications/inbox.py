from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable

from .models import Notification
from .repository import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationNotFoundError(RuntimeError):
    """Raised when a notification does not exist or belongs to someone else."""


class NotificationInbox:
    """Create and read in-app notifications."""

    def __init__(self, repository: NotificationRepository) -> None:
        self._repository = repository

    async def notify(self, user_id: str, *, title: str, message: str, ticket_id: str | None = None) -> Notification:
        notification = Notification(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title,
            message=message,
            ticket_id=ticket_id,
            created_at=datetime.now(timezone.utc),
        )
        return await self._repository.add(notification)

    async def notify_many(
        self,
        user_ids: Iterable[str],
        *,
        title: str,
        message: str,
        ticket_id: str | None = None,
    ) -> list[Notification]:
        """Notify every user concurrently; failed inserts are logged and skipped."""

        recipients = list(dict.fromkeys(user_ids))
        outcomes = await asyncio.gather(
            *(self.notify(user_id, title=title, message=message, ticket_id=ticket_id) for user_id in recipients),
            return_exceptions=True,
        )
        delivered: list[Notification] = []
        for user_id, outcome in zip(recipients, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("Failed to notify %s about ticket %s: %s", user_id, ticket_id, outcome)
                continue
            delivered.append(outcome)
        return delivered

    async def list_for(self, user_id: str, *, unread_only: bool = False) -> list[Notification]:
        return await self._repository.list_for_user(user_id, unread_only=unread_only)

    async def mark_read(self, user_id: str, notification_id: str) -> Notification:
        notification = await self._repository.mark_read(notification_id, user_id)
        if notification is None:
            raise NotificationNotFoundError(f"Notification {notification_id} not found")
        return notification
