from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from servicehub.db.models import WhatsAppTemplateTable
from servicehub.db.session import ensure_datetime
from servicehub.tickets.errors import PersistenceError
from servicehub.tickets.state import TicketStatus

from .models import TemplateDefinition, TemplateRecipient, WhatsAppTemplate


class TemplateRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_templates(
        self,
        *,
        status: TicketStatus | None = None,
        recipient: TemplateRecipient | None = None,
        active_only: bool = False,
    ) -> list[WhatsAppTemplate]:
        query = select(WhatsAppTemplateTable)
        if status is not None:
            query = query.where(WhatsAppTemplateTable.status == status.value)
        if recipient is not None:
            query = query.where(WhatsAppTemplateTable.recipient == recipient.value)
        if active_only:
            query = query.where(WhatsAppTemplateTable.is_active == True)  # noqa: E712
        async with self._session_factory() as session:
            result = await session.execute(query.order_by(WhatsAppTemplateTable.name.asc()))
            return [self._table_to_template(row) for row in result.scalars().all()]

    async def get_template(self, template_id: str) -> WhatsAppTemplate | None:
        async with self._session_factory() as session:
            row = await session.get(WhatsAppTemplateTable, template_id)
            return self._table_to_template(row) if row is not None else None

    async def count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(WhatsAppTemplateTable))
            return int(result.scalar_one())

    async def add_many(self, definitions: Iterable[TemplateDefinition]) -> list[WhatsAppTemplate]:
        now = datetime.now(timezone.utc)
        rows = [
            WhatsAppTemplateTable(
                id=str(uuid.uuid4()),
                name=definition.name,
                subject=definition.subject,
                message=definition.message,
                recipient=definition.recipient.value,
                status=definition.status.value,
                is_active=True,
                variables=list(definition.variables),
                created_at=now,
                updated_at=now,
            )
            for definition in definitions
        ]
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add_all(rows)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not store templates: {exc}") from exc
        return [self._table_to_template(row) for row in rows]

    async def update_template(self, template_id: str, changes: dict[str, Any]) -> WhatsAppTemplate | None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    row = await session.get(WhatsAppTemplateTable, template_id)
                    if row is None:
                        return None
                    for key, value in changes.items():
                        if isinstance(value, (TicketStatus, TemplateRecipient)):
                            value = value.value
                        elif key == "variables":
                            value = list(value)
                        setattr(row, key, value)
                    row.updated_at = datetime.now(timezone.utc)
                    template = self._table_to_template(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not update template {template_id}: {exc}") from exc
        return template

    @staticmethod
    def _table_to_template(row: WhatsAppTemplateTable) -> WhatsAppTemplate:
        return WhatsAppTemplate(
            id=row.id,
            name=row.name,
            subject=row.subject,
            message=row.message,
            recipient=TemplateRecipient(row.recipient),
            status=TicketStatus(row.status),
            is_active=bool(row.is_active),
            variables=list(row.variables or []),
            created_at=ensure_datetime(row.created_at),
            updated_at=ensure_datetime(row.updated_at),
        )
