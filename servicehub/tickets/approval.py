from __future__ import annotations

import logging
from dataclasses import replace

from servicehub.directory.models import Actor
from servicehub.directory.repository import DirectoryRepository
from servicehub.notifications.inbox import NotificationInbox
from servicehub.notifications.models import Notification

from .errors import DenialReason, TransitionDeniedError
from .lifecycle import TicketLifecycle, TransitionResult
from .models import Ticket, TicketDraft
from .policy import ApprovalAction
from .state import TicketStatus

logger = logging.getLogger(__name__)

NEW_TICKET_TITLE = "New Ticket Generated"


class ApprovalGate:
    """Holds technician-created tickets until an admin approves or rejects them."""

    def __init__(
        self,
        lifecycle: TicketLifecycle,
        directory: DirectoryRepository,
        inbox: NotificationInbox,
    ) -> None:
        self._lifecycle = lifecycle
        self._directory = directory
        self._inbox = inbox

    def intercept(self, draft: TicketDraft, actor: Actor) -> TicketDraft:
        """Technician drafts are held for approval and lose any self-assignment."""

        if actor.is_technician:
            return replace(draft, needs_approval=True, technician_id=None)
        return replace(draft, needs_approval=False)

    async def notify_admins(self, ticket: Ticket, actor: Actor) -> list[Notification]:
        admins = await self._directory.list_admins()
        creator = actor.name or actor.user_id
        notifications = await self._inbox.notify_many(
            [admin.user_id for admin in admins],
            title=NEW_TICKET_TITLE,
            message=f'Technician {creator} has created a new ticket "{ticket.title}" that needs assignment.',
            ticket_id=ticket.id,
        )
        logger.info("Ticket %s awaiting approval; notified %d admins", ticket.id, len(notifications))
        return notifications

    async def approve(self, ticket_id: str, actor: Actor) -> TransitionResult:
        return await self._resolve(ticket_id, actor, ApprovalAction.APPROVE)

    async def reject(self, ticket_id: str, actor: Actor) -> TransitionResult:
        return await self._resolve(ticket_id, actor, ApprovalAction.REJECT)

    async def _resolve(self, ticket_id: str, actor: Actor, action: ApprovalAction) -> TransitionResult:
        if not actor.is_admin:
            raise TransitionDeniedError(DenialReason.FORBIDDEN, f"Only admins can {action.value} tickets")
        ticket = await self._lifecycle.load(ticket_id)
        self._lifecycle.policy.evaluate_approval(actor, ticket, action).raise_for_denial()
        if action is ApprovalAction.APPROVE:
            target, audit_action = TicketStatus.IN_QUEUE, "approved"
        else:
            target, audit_action = TicketStatus.REJECTED, "rejected"
        return await self._lifecycle.commit(ticket, actor, target, action=audit_action, needs_approval=False)
