"""Role-gated rules deciding which lifecycle actions are legal."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from servicehub.directory.models import Actor, Role

from .errors import DenialReason, TransitionDeniedError
from .models import Ticket
from .state import StatusRegistry, TicketStatus


class ApprovalAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True, slots=True)
class TransitionDecision:
    """Outcome of a policy check. Denials carry a reason and a user-facing message."""

    allowed: bool
    reason: DenialReason | None = None
    message: str = ""

    @classmethod
    def allow(cls) -> "TransitionDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenialReason, message: str) -> "TransitionDecision":
        return cls(allowed=False, reason=reason, message=message)

    def __bool__(self) -> bool:
        return self.allowed

    def raise_for_denial(self) -> None:
        if not self.allowed:
            raise TransitionDeniedError(self.reason or DenialReason.FORBIDDEN, self.message)


TECHNICIAN_TARGETS: frozenset[TicketStatus] = frozenset(
    {
        TicketStatus.TICKET_ACCEPTED,
        TicketStatus.PICKUP,
        TicketStatus.PRODUCT_RECEIVED,
        TicketStatus.IN_PROGRESS,
        TicketStatus.DELIVERED,
        TicketStatus.DONE,
        TicketStatus.ON_HOLD,
    }
)

# Technicians may also pick a ticket up from the states an admin hands it over in.
TECHNICIAN_ORIGINS: frozenset[TicketStatus] = TECHNICIAN_TARGETS | {
    TicketStatus.ASSIGNED,
    TicketStatus.CLIENT_APPROVAL,
    TicketStatus.DELIVERY_SCHEDULED,
}

# Everything from ``assigned`` onwards in the forward progression needs a technician.
REQUIRES_TECHNICIAN: frozenset[TicketStatus] = frozenset(StatusRegistry.progression()[1:])


def _build_transition_table() -> Mapping[tuple[Role, TicketStatus], frozenset[TicketStatus]]:
    table: dict[tuple[Role, TicketStatus], frozenset[TicketStatus]] = {}
    selectable = frozenset(StatusRegistry.selectable())
    for current in StatusRegistry.all_statuses():
        if StatusRegistry.is_terminal(current):
            table[(Role.ADMIN, current)] = frozenset()
            table[(Role.TECHNICIAN, current)] = frozenset()
            continue
        table[(Role.ADMIN, current)] = selectable - {current}
        if current in TECHNICIAN_ORIGINS:
            table[(Role.TECHNICIAN, current)] = TECHNICIAN_TARGETS - {current}
        else:
            table[(Role.TECHNICIAN, current)] = frozenset()
    return table


class TransitionPolicy:
    """Single authority over ``{role x current status} -> allowed targets``."""

    _DEFAULT_TABLE = _build_transition_table()

    def __init__(
        self,
        table: Mapping[tuple[Role, TicketStatus], frozenset[TicketStatus]] | None = None,
    ) -> None:
        self._table = self._DEFAULT_TABLE if table is None else table

    def targets_for(self, role: Role, current: TicketStatus) -> frozenset[TicketStatus]:
        return self._table.get((role, current), frozenset())

    def evaluate(self, actor: Actor, ticket: Ticket, requested: TicketStatus) -> TransitionDecision:
        if ticket.is_deleted:
            return TransitionDecision.deny(DenialReason.NOT_FOUND, f"Ticket {ticket.id} not found")
        if requested == ticket.status:
            return TransitionDecision.deny(
                DenialReason.NO_OP_TRANSITION,
                f"Ticket is already '{StatusRegistry.label_of(requested)}'",
            )
        if StatusRegistry.is_terminal(ticket.status):
            return TransitionDecision.deny(
                DenialReason.TERMINAL_STATE,
                f"Ticket is '{StatusRegistry.label_of(ticket.status)}' and cannot change status",
            )
        if ticket.needs_approval:
            return TransitionDecision.deny(
                DenialReason.PENDING_APPROVAL,
                "Ticket is waiting for admin approval",
            )
        if requested is TicketStatus.REJECTED:
            return TransitionDecision.deny(
                DenialReason.FORBIDDEN,
                "Tickets can only be rejected from the approval queue",
            )
        if actor.is_technician and ticket.technician_id != actor.user_id:
            return TransitionDecision.deny(
                DenialReason.FORBIDDEN,
                "Ticket is not assigned to you",
            )
        if requested not in self.targets_for(actor.role, ticket.status):
            return TransitionDecision.deny(
                DenialReason.FORBIDDEN,
                f"Role '{actor.role.value}' cannot move a ticket from "
                f"'{StatusRegistry.label_of(ticket.status)}' to '{StatusRegistry.label_of(requested)}'",
            )
        if requested in REQUIRES_TECHNICIAN and ticket.technician_id is None:
            return TransitionDecision.deny(
                DenialReason.FORBIDDEN,
                "Assign a technician before moving the ticket forward",
            )
        return TransitionDecision.allow()

    def evaluate_approval(self, actor: Actor, ticket: Ticket, action: ApprovalAction) -> TransitionDecision:
        if ticket.is_deleted:
            return TransitionDecision.deny(DenialReason.NOT_FOUND, f"Ticket {ticket.id} not found")
        if not actor.is_admin:
            return TransitionDecision.deny(
                DenialReason.FORBIDDEN,
                f"Only admins can {action.value} tickets",
            )
        if not ticket.needs_approval:
            return TransitionDecision.deny(
                DenialReason.NO_OP_TRANSITION,
                "Ticket has no pending approval",
            )
        return TransitionDecision.allow()

    def evaluate_assignment(self, actor: Actor, ticket: Ticket, technician_id: str) -> TransitionDecision:
        if ticket.is_deleted:
            return TransitionDecision.deny(DenialReason.NOT_FOUND, f"Ticket {ticket.id} not found")
        if not actor.is_admin:
            return TransitionDecision.deny(
                DenialReason.FORBIDDEN,
                "Only admins can assign technicians",
            )
        if StatusRegistry.is_terminal(ticket.status):
            return TransitionDecision.deny(
                DenialReason.TERMINAL_STATE,
                f"Ticket is '{StatusRegistry.label_of(ticket.status)}' and cannot be reassigned",
            )
        if ticket.needs_approval:
            return TransitionDecision.deny(
                DenialReason.PENDING_APPROVAL,
                "Approve the ticket before assigning a technician",
            )
        if ticket.status is TicketStatus.ASSIGNED and ticket.technician_id == technician_id:
            return TransitionDecision.deny(
                DenialReason.NO_OP_TRANSITION,
                "Ticket is already assigned to this technician",
            )
        return TransitionDecision.allow()

    def allowed_targets(self, actor: Actor, ticket: Ticket) -> list[TicketStatus]:
        return [
            status
            for status in StatusRegistry.all_statuses()
            if self.evaluate(actor, ticket, status).allowed
        ]
