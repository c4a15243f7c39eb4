from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from servicehub.tickets.errors import (
    DenialReason,
    PersistenceError,
    TicketConflictError,
    TicketNotFoundError,
    TransitionDeniedError,
)
from servicehub.tickets.lifecycle import TicketLifecycle
from servicehub.tickets.state import TicketStatus

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _repository(ticket):
    repository = AsyncMock()
    repository.get_ticket.return_value = ticket
    repository.save_ticket_state.side_effect = lambda updated, **_: updated
    return repository


@pytest.mark.asyncio
async def test_transition_persists_audit_then_emits(admin, ticket_factory):
    ticket = ticket_factory(status=TicketStatus.ASSIGNED, technician_id="tech-1")
    repository = _repository(ticket)
    calls: list[str] = []

    async def listener(event):
        calls.append("listener")
        assert repository.save_ticket_state.await_count == 1
        return "report"

    lifecycle = TicketLifecycle(repository, listeners=[listener], clock=lambda: NOW)
    result = await lifecycle.apply_transition(ticket.id, admin, TicketStatus.PICKUP, metadata={"note": "van"})

    assert result.ticket.status is TicketStatus.PICKUP
    assert result.ticket.version == 2
    assert result.ticket.updated_at == NOW
    assert result.reports == ["report"]
    assert calls == ["listener"]

    kwargs = repository.save_ticket_state.await_args.kwargs
    assert kwargs["expected_version"] == 1
    audit = kwargs["audit"]
    assert audit.action == "status_changed"
    assert audit.actor == "admin-1"
    assert audit.from_status is TicketStatus.ASSIGNED
    assert audit.to_status is TicketStatus.PICKUP
    assert audit.metadata == {"note": "van"}

    event = result.event
    assert event.from_status is TicketStatus.ASSIGNED
    assert event.to_status is TicketStatus.PICKUP
    assert event.actor_id == "admin-1"
    assert event.timestamp == NOW
    assert event.ticket is result.ticket


@pytest.mark.asyncio
async def test_denied_transition_writes_nothing(technician, ticket_factory):
    ticket = ticket_factory(status=TicketStatus.ASSIGNED, technician_id="tech-2")
    repository = _repository(ticket)
    listener = AsyncMock()
    lifecycle = TicketLifecycle(repository, listeners=[listener])

    with pytest.raises(TransitionDeniedError) as exc:
        await lifecycle.apply_transition(ticket.id, technician, TicketStatus.TICKET_ACCEPTED)

    assert exc.value.reason is DenialReason.FORBIDDEN
    repository.save_ticket_state.assert_not_awaited()
    listener.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_or_deleted_ticket_is_not_found(admin, ticket_factory):
    repository = _repository(None)
    lifecycle = TicketLifecycle(repository)
    with pytest.raises(TicketNotFoundError):
        await lifecycle.apply_transition("missing", admin, TicketStatus.ON_HOLD)

    repository.get_ticket.return_value = ticket_factory(is_deleted=True)
    with pytest.raises(TicketNotFoundError):
        await lifecycle.apply_transition("gone", admin, TicketStatus.ON_HOLD)


@pytest.mark.asyncio
async def test_persistence_failure_emits_nothing(admin, ticket_factory):
    ticket = ticket_factory()
    repository = _repository(ticket)
    repository.save_ticket_state.side_effect = PersistenceError("database unavailable")
    listener = AsyncMock()
    lifecycle = TicketLifecycle(repository, listeners=[listener])

    with pytest.raises(PersistenceError):
        await lifecycle.apply_transition(ticket.id, admin, TicketStatus.ON_HOLD)

    listener.assert_not_awaited()


@pytest.mark.asyncio
async def test_version_conflict_propagates(admin, ticket_factory):
    ticket = ticket_factory()
    repository = _repository(ticket)
    repository.save_ticket_state.side_effect = TicketConflictError("stale")
    lifecycle = TicketLifecycle(repository)

    with pytest.raises(TicketConflictError):
        await lifecycle.apply_transition(ticket.id, admin, TicketStatus.ON_HOLD)


@pytest.mark.asyncio
async def test_listener_failure_is_logged_and_others_still_run(admin, ticket_factory, caplog):
    ticket = ticket_factory()
    repository = _repository(ticket)
    broken = AsyncMock(side_effect=RuntimeError("gateway down"))
    healthy = AsyncMock(return_value="ok")
    lifecycle = TicketLifecycle(repository, listeners=[broken, healthy])

    with caplog.at_level("ERROR"):
        result = await lifecycle.apply_transition(ticket.id, admin, TicketStatus.ON_HOLD)

    assert result.ticket.status is TicketStatus.ON_HOLD
    assert result.reports == ["ok"]
    healthy.assert_awaited_once()
    assert "Transition listener failed" in caplog.text


@pytest.mark.asyncio
async def test_assign_sets_technician_and_status(admin, ticket_factory):
    ticket = ticket_factory(status=TicketStatus.ON_HOLD)
    repository = _repository(ticket)
    lifecycle = TicketLifecycle(repository)

    result = await lifecycle.assign_technician(ticket.id, admin, "tech-2")

    assert result.ticket.technician_id == "tech-2"
    assert result.ticket.status is TicketStatus.ASSIGNED
    assert result.event.action == "assigned"
    audit = repository.save_ticket_state.await_args.kwargs["audit"]
    assert audit.metadata == {"technician_id": "tech-2"}


@pytest.mark.asyncio
async def test_record_creation_emits_event_without_origin(admin, ticket_factory):
    ticket = ticket_factory()
    listener = AsyncMock(return_value="sent")
    lifecycle = TicketLifecycle(AsyncMock())
    lifecycle.subscribe(listener)

    result = await lifecycle.record_creation(ticket, admin)

    event = listener.await_args.args[0]
    assert event.from_status is None
    assert event.to_status is TicketStatus.IN_QUEUE
    assert event.action == "created"
    assert result.reports == ["sent"]
