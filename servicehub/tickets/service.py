from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Sequence

from servicehub.directory.models import Actor, Profile, Role
from servicehub.directory.repository import DirectoryRepository
from servicehub.notifications.inbox import NotificationInbox
from servicehub.storage.attachments import ObjectStorage, StorageError, attachment_path

from .approval import ApprovalGate
from .errors import (
    DenialReason,
    RemarkValidationError,
    TicketNotFoundError,
    TicketValidationError,
    TransitionDeniedError,
)
from .lifecycle import TicketLifecycle, TransitionResult
from .models import AttachmentUpload, RemarkAttachment, Ticket, TicketAuditEntry, TicketDraft, TicketRemark
from .repository import TicketRepository
from .state import StatusCount, StatusRegistry, TicketStatus

logger = logging.getLogger(__name__)

ASSIGNED_TITLE = "New Ticket Assigned"
DEFAULT_MAX_ATTACHMENT_BYTES = 25 * 1024 * 1024


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketService:
    """High level orchestration of the ticket lifecycle for the API layer."""

    def __init__(
        self,
        repository: TicketRepository,
        lifecycle: TicketLifecycle,
        gate: ApprovalGate,
        inbox: NotificationInbox,
        directory: DirectoryRepository,
        *,
        storage: ObjectStorage | None = None,
        max_attachment_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repository = repository
        self.lifecycle = lifecycle
        self.gate = gate
        self.inbox = inbox
        self.directory = directory
        self.storage = storage
        self.max_attachment_bytes = max_attachment_bytes
        self._clock = clock

    async def ensure_schema(self) -> None:
        await self.repository.ensure_schema()

    async def create_ticket(self, draft: TicketDraft, actor: Actor) -> TransitionResult:
        """Store a new ticket.

        Technician drafts are held by the approval gate and admins are told about
        them. Admin drafts naming a technician are assigned straight away.
        """

        customer = await self.directory.get_customer(draft.customer_id)
        if customer is None:
            raise TicketValidationError(f"Customer {draft.customer_id} not found")

        prepared = self.gate.intercept(draft, actor)
        assign_to = prepared.technician_id
        if assign_to is not None:
            await self._require_technician(assign_to)

        now = self._clock()
        ticket = Ticket(
            id=str(uuid.uuid4()),
            title=prepared.title,
            description=prepared.description,
            customer_id=prepared.customer_id,
            technician_id=None,
            created_by=actor.user_id,
            issue_type=prepared.issue_type,
            ticket_type=prepared.ticket_type,
            priority=prepared.priority,
            device=prepared.device,
            status=StatusRegistry.initial_state(),
            needs_approval=prepared.needs_approval,
            is_deleted=False,
            archived=False,
            created_at=now,
            updated_at=now,
            comment=prepared.comment,
        )
        audit = TicketAuditEntry(
            id=str(uuid.uuid4()),
            ticket_id=ticket.id,
            action="created",
            actor=actor.user_id,
            from_status=None,
            to_status=ticket.status,
            metadata={"needs_approval": ticket.needs_approval},
            created_at=now,
        )
        await self.repository.create_ticket(ticket, audit)
        logger.info("Ticket %s created by %s (%s)", ticket.id, actor.user_id, actor.role.value)

        result = await self.lifecycle.record_creation(ticket, actor)
        if ticket.needs_approval:
            try:
                await self.gate.notify_admins(ticket, actor)
            except Exception:
                logger.exception("Could not notify admins about ticket %s", ticket.id)
            return result

        if assign_to is None:
            return result
        assigned = await self.assign_technician(ticket.id, actor, assign_to)
        assigned.reports[:0] = result.reports
        return assigned

    async def get_ticket(self, ticket_id: str, actor: Actor) -> Ticket:
        ticket = await self.lifecycle.load(ticket_id)
        if actor.is_technician and actor.user_id not in (ticket.technician_id, ticket.created_by):
            # Technicians cannot tell other people's tickets apart from missing ones.
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def list_tickets(
        self,
        actor: Actor,
        *,
        status: TicketStatus | None = None,
        technician_id: str | None = None,
        customer_id: str | None = None,
        needs_approval: bool | None = None,
        include_archived: bool = False,
    ) -> list[Ticket]:
        return await self.repository.list_tickets(
            status=status,
            technician_id=technician_id,
            customer_id=customer_id,
            needs_approval=needs_approval,
            visible_to=actor.user_id if actor.is_technician else None,
            include_archived=include_archived,
        )

    async def change_status(
        self,
        ticket_id: str,
        actor: Actor,
        new_status: TicketStatus,
        *,
        metadata: Mapping[str, Any] | None = None,
    ) -> TransitionResult:
        return await self.lifecycle.apply_transition(ticket_id, actor, new_status, metadata=metadata)

    async def assign_technician(self, ticket_id: str, actor: Actor, technician_id: str) -> TransitionResult:
        self._require_admin(actor, "assign technicians")
        technician = await self._require_technician(technician_id)
        result = await self.lifecycle.assign_technician(ticket_id, actor, technician.user_id)
        try:
            await self.inbox.notify(
                technician.user_id,
                title=ASSIGNED_TITLE,
                message=f"You have been assigned to ticket: {result.ticket.title}",
                ticket_id=result.ticket.id,
            )
        except Exception:
            logger.exception("Could not notify technician %s about ticket %s", technician.user_id, ticket_id)
        return result

    async def approve(self, ticket_id: str, actor: Actor) -> TransitionResult:
        return await self.gate.approve(ticket_id, actor)

    async def reject(self, ticket_id: str, actor: Actor) -> TransitionResult:
        return await self.gate.reject(ticket_id, actor)

    async def archive_ticket(self, ticket_id: str, actor: Actor) -> TransitionResult:
        self._require_admin(actor, "archive tickets")
        ticket = await self.lifecycle.load(ticket_id)
        if ticket.archived:
            raise TransitionDeniedError(DenialReason.NO_OP_TRANSITION, "Ticket is already archived")
        return await self.lifecycle.commit(ticket, actor, ticket.status, action="archived", archived=True)

    async def delete_ticket(self, ticket_id: str, actor: Actor) -> None:
        self._require_admin(actor, "delete tickets")
        ticket = await self.lifecycle.load(ticket_id)
        await self.lifecycle.commit(ticket, actor, ticket.status, action="deleted", is_deleted=True)

    async def add_remark(
        self,
        ticket_id: str,
        actor: Actor,
        text: str | None,
        attachments: Sequence[AttachmentUpload] = (),
    ) -> TicketRemark:
        ticket = await self.get_ticket(ticket_id, actor)
        body = (text or "").strip()
        if not body and not attachments:
            raise RemarkValidationError("A remark needs text or at least one attachment")
        for upload in attachments:
            if not upload.content:
                raise RemarkValidationError(f"Attachment {upload.name!r} is empty")
            if len(upload.content) > self.max_attachment_bytes:
                raise RemarkValidationError(
                    f"Attachment {upload.name!r} exceeds {self.max_attachment_bytes // (1024 * 1024)} MB"
                )
        if attachments and self.storage is None:
            raise StorageError("Attachment storage is not configured")

        now = self._clock()
        remark_id = str(uuid.uuid4())
        paths = [attachment_path(ticket.id, upload.name) for upload in attachments]
        if attachments:
            # Rows are only written once every upload has succeeded.
            outcomes = await asyncio.gather(
                *(
                    self.storage.put(path, upload.content, upload.content_type)
                    for path, upload in zip(paths, attachments)
                ),
                return_exceptions=True,
            )
            failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
            if failures:
                stored = [path for path, outcome in zip(paths, outcomes) if not isinstance(outcome, BaseException)]
                if stored:
                    logger.warning("Remark upload failed for ticket %s; orphaned objects: %s", ticket.id, stored)
                raise failures[0]

        remark = TicketRemark(
            id=remark_id,
            ticket_id=ticket.id,
            author_id=actor.user_id,
            text=body,
            created_at=now,
            attachments=[
                RemarkAttachment(
                    id=str(uuid.uuid4()),
                    remark_id=remark_id,
                    ticket_id=ticket.id,
                    name=upload.name,
                    path=path,
                    content_type=upload.content_type,
                    size=len(upload.content),
                    created_at=now,
                )
                for path, upload in zip(paths, attachments)
            ],
        )
        audit = TicketAuditEntry(
            id=str(uuid.uuid4()),
            ticket_id=ticket.id,
            action="remark_added",
            actor=actor.user_id,
            from_status=ticket.status,
            to_status=ticket.status,
            metadata={"remark_id": remark_id, "attachments": len(paths)},
            created_at=now,
        )
        try:
            return await self.repository.add_remark(remark, audit)
        except Exception:
            if paths:
                logger.warning("Remark write failed for ticket %s; orphaned objects: %s", ticket.id, paths)
            raise

    async def list_remarks(self, ticket_id: str, actor: Actor) -> list[TicketRemark]:
        ticket = await self.get_ticket(ticket_id, actor)
        return await self.repository.list_remarks(ticket.id)

    async def get_audit_log(self, ticket_id: str, actor: Actor) -> list[TicketAuditEntry]:
        ticket = await self.get_ticket(ticket_id, actor)
        return await self.repository.get_audit_log(ticket.id)

    async def status_summary(self, actor: Actor, *, include_archived: bool = False) -> list[StatusCount]:
        counts = await self.repository.count_by_status(
            visible_to=actor.user_id if actor.is_technician else None,
            include_archived=include_archived,
        )
        return StatusRegistry.summarize(counts)

    async def allowed_transitions(self, ticket_id: str, actor: Actor) -> list[TicketStatus]:
        ticket = await self.get_ticket(ticket_id, actor)
        return self.lifecycle.policy.allowed_targets(actor, ticket)

    async def _require_technician(self, user_id: str) -> Profile:
        profile = await self.directory.get_profile(user_id)
        if profile is None or profile.role != Role.TECHNICIAN.value:
            raise TicketValidationError(f"Technician {user_id} not found")
        return profile

    @staticmethod
    def _require_admin(actor: Actor, action: str) -> None:
        if not actor.is_admin:
            raise TransitionDeniedError(DenialReason.FORBIDDEN, f"Only admins can {action}")
