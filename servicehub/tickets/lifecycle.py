"""Ticket state machine applying policy-checked transitions and emitting events."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Sequence

from opentelemetry import trace

from servicehub.directory.models import Actor, Role

from .errors import TicketNotFoundError
from .models import Ticket, TicketAuditEntry
from .policy import TransitionDecision, TransitionPolicy
from .repository import TicketRepository
from .state import TicketStatus

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True, slots=True)
class StatusChanged:
    """Emitted once per committed lifecycle change.

    ``from_status`` is ``None`` for the creation event. ``ticket`` is the
    snapshot that was written, so listeners never re-read the store.
    """

    ticket_id: str
    from_status: TicketStatus | None
    to_status: TicketStatus
    actor_id: str
    actor_role: Role
    timestamp: datetime
    ticket: Ticket
    action: str = "status_changed"


TransitionListener = Callable[[StatusChanged], Awaitable[Any]]


@dataclass(slots=True)
class TransitionResult:
    """Committed ticket, the event describing it and whatever listeners reported."""

    ticket: Ticket
    event: StatusChanged
    reports: list[Any] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketLifecycle:
    """Validate, persist and announce ticket status changes.

    A change is written together with its audit entry before any listener runs;
    a failed write raises and nothing is emitted.
    """

    def __init__(
        self,
        repository: TicketRepository,
        *,
        policy: TransitionPolicy | None = None,
        listeners: Sequence[TransitionListener] = (),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._policy = policy or TransitionPolicy()
        self._listeners: list[TransitionListener] = list(listeners)
        self._clock = clock

    @property
    def policy(self) -> TransitionPolicy:
        return self._policy

    def subscribe(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    async def load(self, ticket_id: str) -> Ticket:
        ticket = await self._repository.get_ticket(ticket_id)
        if ticket is None or ticket.is_deleted:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def apply_transition(
        self,
        ticket_id: str,
        actor: Actor,
        requested: TicketStatus,
        *,
        metadata: Mapping[str, Any] | None = None,
    ) -> TransitionResult:
        ticket = await self.load(ticket_id)
        decision = self._policy.evaluate(actor, ticket, requested)
        self._enforce(decision, ticket, actor, requested)
        return await self.commit(ticket, actor, requested, action="status_changed", metadata=metadata)

    async def assign_technician(self, ticket_id: str, actor: Actor, technician_id: str) -> TransitionResult:
        ticket = await self.load(ticket_id)
        decision = self._policy.evaluate_assignment(actor, ticket, technician_id)
        self._enforce(decision, ticket, actor, TicketStatus.ASSIGNED)
        return await self.commit(
            ticket,
            actor,
            TicketStatus.ASSIGNED,
            action="assigned",
            metadata={"technician_id": technician_id},
            technician_id=technician_id,
        )

    async def commit(
        self,
        ticket: Ticket,
        actor: Actor,
        target: TicketStatus,
        *,
        action: str,
        metadata: Mapping[str, Any] | None = None,
        **changes: Any,
    ) -> TransitionResult:
        """Persist an already-authorised change and notify listeners.

        ``changes`` carries extra lifecycle fields (``needs_approval``,
        ``technician_id``, ``archived``, ``is_deleted``) set alongside the status.
        """

        now = self._clock()
        updated = replace(ticket, status=target, updated_at=now, version=ticket.version + 1, **changes)
        audit = TicketAuditEntry(
            id=str(uuid.uuid4()),
            ticket_id=ticket.id,
            action=action,
            actor=actor.user_id,
            from_status=ticket.status,
            to_status=target,
            metadata=dict(metadata or {}),
            created_at=now,
        )

        with tracer.start_as_current_span("ticket.transition") as span:
            span.set_attribute("ticket.id", ticket.id)
            span.set_attribute("ticket.action", action)
            span.set_attribute("ticket.from_status", ticket.status.value)
            span.set_attribute("ticket.to_status", target.value)
            persisted = await self._repository.save_ticket_state(
                updated,
                expected_version=ticket.version,
                audit=audit,
            )

        logger.info(
            "Ticket %s %s by %s (%s): %s -> %s",
            ticket.id,
            action,
            actor.user_id,
            actor.role.value,
            ticket.status.value,
            target.value,
        )
        event = StatusChanged(
            ticket_id=ticket.id,
            from_status=ticket.status,
            to_status=target,
            actor_id=actor.user_id,
            actor_role=actor.role,
            timestamp=now,
            ticket=persisted,
            action=action,
        )
        reports = await self._emit(event)
        return TransitionResult(ticket=persisted, event=event, reports=reports)

    async def record_creation(self, ticket: Ticket, actor: Actor) -> TransitionResult:
        """Announce a freshly inserted ticket to listeners."""

        event = StatusChanged(
            ticket_id=ticket.id,
            from_status=None,
            to_status=ticket.status,
            actor_id=actor.user_id,
            actor_role=actor.role,
            timestamp=ticket.created_at,
            ticket=ticket,
            action="created",
        )
        reports = await self._emit(event)
        return TransitionResult(ticket=ticket, event=event, reports=reports)

    async def _emit(self, event: StatusChanged) -> list[Any]:
        reports: list[Any] = []
        for listener in self._listeners:
            try:
                reports.append(await listener(event))
            except Exception:
                # The change is already committed; a listener can only lose its own side effect.
                logger.exception("Transition listener failed for ticket %s", event.ticket_id)
        return reports

    @staticmethod
    def _enforce(decision: TransitionDecision, ticket: Ticket, actor: Actor, requested: TicketStatus) -> None:
        if decision.allowed:
            return
        logger.info(
            "Denied %s for ticket %s by %s (%s): %s",
            requested.value,
            ticket.id,
            actor.user_id,
            actor.role.value,
            decision.reason.value if decision.reason else "unknown",
        )
        decision.raise_for_denial()
