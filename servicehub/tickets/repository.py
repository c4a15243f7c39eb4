from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import select

from servicehub.db.models import RemarkAttachmentTable, TicketAuditLogTable, TicketRemarkTable, TicketTable
from servicehub.db.session import create_schema, ensure_datetime

from .errors import PersistenceError, TicketConflictError, TicketNotFoundError
from .models import (
    DeviceDetails,
    DeviceStatus,
    IssueType,
    RemarkAttachment,
    Ticket,
    TicketAuditEntry,
    TicketPriority,
    TicketRemark,
    TicketType,
)
from .state import TicketStatus


class TicketRepository:
    """Persistence helper wrapping ``tickets``, remarks and the audit trail.

    Every read filters out soft-deleted tickets. Writes that change lifecycle
    fields are guarded by the row ``version`` so a concurrent writer surfaces as
    :class:`TicketConflictError` instead of silently winning.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        await create_schema(self._engine)

    @asynccontextmanager
    async def _write(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Ticket store rejected the write: {exc}") from exc

    async def create_ticket(self, ticket: Ticket, audit: TicketAuditEntry) -> Ticket:
        async with self._write() as session:
            session.add(self._ticket_to_table(ticket))
            # The audit row references the ticket, so it must follow the insert.
            await session.flush()
            session.add(self._audit_to_table(audit))
        return ticket

    async def get_ticket(self, ticket_id: str) -> Ticket | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketTable).where(TicketTable.id == ticket_id, TicketTable.is_deleted == False)  # noqa: E712
            )
            row = result.scalars().first()
            if row is None:
                return None
            return self._table_to_ticket(row)

    async def list_tickets(
        self,
        *,
        status: TicketStatus | None = None,
        technician_id: str | None = None,
        customer_id: str | None = None,
        needs_approval: bool | None = None,
        visible_to: str | None = None,
        include_archived: bool = False,
    ) -> list[Ticket]:
        query = select(TicketTable).where(TicketTable.is_deleted == False)  # noqa: E712
        if visible_to is not None:
            query = query.where(or_(TicketTable.technician_id == visible_to, TicketTable.created_by == visible_to))
        if status is not None:
            query = query.where(TicketTable.status == status.value)
        if technician_id is not None:
            query = query.where(TicketTable.technician_id == technician_id)
        if customer_id is not None:
            query = query.where(TicketTable.customer_id == customer_id)
        if needs_approval is not None:
            query = query.where(TicketTable.needs_approval == needs_approval)
        if not include_archived:
            query = query.where(TicketTable.archived == False)  # noqa: E712
        async with self._session_factory() as session:
            result = await session.execute(query.order_by(TicketTable.created_at.desc()))
            return [self._table_to_ticket(row) for row in result.scalars().all()]

    async def count_by_status(
        self,
        *,
        technician_id: str | None = None,
        visible_to: str | None = None,
        include_archived: bool = False,
    ) -> dict[str, int]:
        query = select(TicketTable.status, func.count()).where(TicketTable.is_deleted == False)  # noqa: E712
        if visible_to is not None:
            query = query.where(or_(TicketTable.technician_id == visible_to, TicketTable.created_by == visible_to))
        if technician_id is not None:
            query = query.where(TicketTable.technician_id == technician_id)
        if not include_archived:
            query = query.where(TicketTable.archived == False)  # noqa: E712
        async with self._session_factory() as session:
            result = await session.execute(query.group_by(TicketTable.status))
            return {str(status): int(count) for status, count in result.all()}

    async def save_ticket_state(
        self,
        ticket: Ticket,
        *,
        expected_version: int,
        audit: TicketAuditEntry,
    ) -> Ticket:
        """Write lifecycle fields of ``ticket`` and its audit entry atomically."""

        async with self._write() as session:
            result = await session.execute(
                update(TicketTable)
                .where(
                    TicketTable.id == ticket.id,
                    TicketTable.version == expected_version,
                    TicketTable.is_deleted == False,  # noqa: E712
                )
                .values(
                    status=ticket.status.value,
                    needs_approval=ticket.needs_approval,
                    technician_id=ticket.technician_id,
                    archived=ticket.archived,
                    is_deleted=ticket.is_deleted,
                    version=ticket.version,
                    updated_at=ticket.updated_at,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                current = await session.get(TicketTable, ticket.id)
                if current is None or current.is_deleted:
                    raise TicketNotFoundError(f"Ticket {ticket.id} not found")
                raise TicketConflictError(
                    f"Ticket {ticket.id} was modified concurrently "
                    f"(expected version {expected_version}, found {current.version})"
                )
            session.add(self._audit_to_table(audit))
        return ticket

    async def add_remark(self, remark: TicketRemark, audit: TicketAuditEntry) -> TicketRemark:
        async with self._write() as session:
            session.add(
                TicketRemarkTable(
                    id=remark.id,
                    ticket_id=remark.ticket_id,
                    author_id=remark.author_id,
                    text=remark.text,
                    created_at=remark.created_at,
                )
            )
            await session.flush()
            for attachment in remark.attachments:
                session.add(
                    RemarkAttachmentTable(
                        id=attachment.id,
                        remark_id=attachment.remark_id,
                        ticket_id=attachment.ticket_id,
                        name=attachment.name,
                        path=attachment.path,
                        content_type=attachment.content_type,
                        size=attachment.size,
                        created_at=attachment.created_at,
                    )
                )
            session.add(self._audit_to_table(audit))
        return remark

    async def list_remarks(self, ticket_id: str) -> list[TicketRemark]:
        async with self._session_factory() as session:
            remark_result = await session.execute(
                select(TicketRemarkTable)
                .where(TicketRemarkTable.ticket_id == ticket_id)
                .order_by(TicketRemarkTable.created_at.desc())
            )
            remark_rows = remark_result.scalars().all()
            attachment_result = await session.execute(
                select(RemarkAttachmentTable)
                .where(RemarkAttachmentTable.ticket_id == ticket_id)
                .order_by(RemarkAttachmentTable.created_at.asc())
            )
            attachment_rows = attachment_result.scalars().all()

        attachments: dict[str, list[RemarkAttachment]] = {}
        for row in attachment_rows:
            attachments.setdefault(row.remark_id, []).append(self._table_to_attachment(row))
        return [
            TicketRemark(
                id=row.id,
                ticket_id=row.ticket_id,
                author_id=row.author_id,
                text=row.text,
                created_at=ensure_datetime(row.created_at),
                attachments=attachments.get(row.id, []),
            )
            for row in remark_rows
        ]

    async def get_audit_log(self, ticket_id: str) -> list[TicketAuditEntry]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketAuditLogTable)
                .where(TicketAuditLogTable.ticket_id == ticket_id)
                .order_by(TicketAuditLogTable.created_at.asc())
            )
            return [self._table_to_audit(row) for row in result.scalars().all()]

    @staticmethod
    def _ticket_to_table(ticket: Ticket) -> TicketTable:
        return TicketTable(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            customer_id=ticket.customer_id,
            technician_id=ticket.technician_id,
            created_by=ticket.created_by,
            issue_type=ticket.issue_type.value,
            ticket_type=ticket.ticket_type.value,
            priority=ticket.priority.value,
            device_type=ticket.device.device_type,
            device_brand=ticket.device.device_brand,
            serial_number=ticket.device.serial_number,
            device_status=ticket.device.device_status.value,
            comment=ticket.comment,
            status=ticket.status.value,
            needs_approval=ticket.needs_approval,
            is_deleted=ticket.is_deleted,
            archived=ticket.archived,
            version=ticket.version,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )

    @staticmethod
    def _audit_to_table(audit: TicketAuditEntry) -> TicketAuditLogTable:
        return TicketAuditLogTable(
            id=audit.id,
            ticket_id=audit.ticket_id,
            action=audit.action,
            actor=audit.actor,
            from_status=audit.from_status.value if audit.from_status else None,
            to_status=audit.to_status.value if audit.to_status else None,
            metadata_=dict(audit.metadata),
            created_at=audit.created_at,
        )

    @staticmethod
    def _table_to_ticket(row: TicketTable) -> Ticket:
        return Ticket(
            id=row.id,
            title=row.title,
            description=row.description,
            customer_id=row.customer_id,
            technician_id=row.technician_id,
            created_by=row.created_by,
            issue_type=IssueType(row.issue_type),
            ticket_type=TicketType(row.ticket_type),
            priority=TicketPriority(row.priority),
            device=DeviceDetails(
                device_type=row.device_type,
                device_brand=row.device_brand,
                serial_number=row.serial_number,
                device_status=DeviceStatus(row.device_status),
            ),
            status=TicketStatus(row.status),
            needs_approval=bool(row.needs_approval),
            is_deleted=bool(row.is_deleted),
            archived=bool(row.archived),
            created_at=ensure_datetime(row.created_at),
            updated_at=ensure_datetime(row.updated_at),
            comment=row.comment,
            version=int(row.version),
        )

    @staticmethod
    def _table_to_attachment(row: RemarkAttachmentTable) -> RemarkAttachment:
        return RemarkAttachment(
            id=row.id,
            remark_id=row.remark_id,
            ticket_id=row.ticket_id,
            name=row.name,
            path=row.path,
            content_type=row.content_type,
            size=int(row.size),
            created_at=ensure_datetime(row.created_at),
        )

    @staticmethod
    def _table_to_audit(row: TicketAuditLogTable) -> TicketAuditEntry:
        from_status = row.from_status
        to_status = row.to_status
        metadata: dict[str, Any] = dict(row.metadata_ or {})
        return TicketAuditEntry(
            id=row.id,
            ticket_id=row.ticket_id,
            action=row.action,
            actor=row.actor,
            from_status=TicketStatus(from_status) if from_status else None,
            to_status=TicketStatus(to_status) if to_status else None,
            metadata=metadata,
            created_at=ensure_datetime(row.created_at),
        )

