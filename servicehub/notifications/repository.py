from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from servicehub.db.models import NotificationTable
from servicehub.db.session import ensure_datetime
from servicehub.tickets.errors import PersistenceError

from .models import Notification


class NotificationRepository:
    """Storage for in-app notifications."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add(self, notification: Notification) -> Notification:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(
                        NotificationTable(
                            id=notification.id,
                            user_id=notification.user_id,
                            title=notification.title,
                            message=notification.message,
                            ticket_id=notification.ticket_id,
                            is_read=notification.is_read,
                            created_at=notification.created_at,
                        )
                    )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not store notification: {exc}") from exc
        return notification

    async def list_for_user(self, user_id: str, *, unread_only: bool = False) -> list[Notification]:
        query = select(NotificationTable).where(NotificationTable.user_id == user_id)
        if unread_only:
            query = query.where(NotificationTable.is_read == False)  # noqa: E712
        async with self._session_factory() as session:
            result = await session.execute(query.order_by(NotificationTable.created_at.desc()))
            return [self._table_to_notification(row) for row in result.scalars().all()]

    async def mark_read(self, notification_id: str, user_id: str) -> Notification | None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        select(NotificationTable).where(
                            NotificationTable.id == notification_id,
                            NotificationTable.user_id == user_id,
                        )
                    )
                    row = result.scalars().first()
                    if row is None:
                        return None
                    row.is_read = True
                    notification = self._table_to_notification(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not update notification: {exc}") from exc
        return notification

    @staticmethod
    def _table_to_notification(row: NotificationTable) -> Notification:
        return Notification(
            id=row.id,
            user_id=row.user_id,
            title=row.title,
            message=row.message,
            ticket_id=row.ticket_id,
            is_read=bool(row.is_read),
            created_at=ensure_datetime(row.created_at),
        )
