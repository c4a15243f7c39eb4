from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from servicehub.directory import Customer, Profile
from servicehub.templates import (
    DEFAULT_TEMPLATES,
    TemplateContext,
    TemplateDefinition,
    TemplateNotFoundError,
    TemplateRecipient,
    TemplateRepository,
    TemplateService,
    render,
    whatsapp_link,
)
from servicehub.tickets.errors import TransitionDeniedError
from servicehub.tickets.state import TicketStatus


def _context(**overrides) -> TemplateContext:
    values = dict(customer_name="Meera Shah", ticket_id="T-1", issue="Broken hinge", priority="high")
    values.update(overrides)
    return TemplateContext(**values)


def test_render_replaces_known_placeholders_only():
    text = render("Hi {Customer Name} / {customer_name}: {issue} ({priority}) {unknown}", _context())
    assert text == "Hi Meera Shah / Meera Shah: Broken hinge (high) {unknown}"


def test_render_fills_missing_values_with_empty_string():
    assert render("Tech: [{technician_name}]", _context()) == "Tech: []"


def test_whatsapp_link_encodes_text_like_a_browser():
    link = whatsapp_link("+91 98765 43210", "Hi Meera!\nDone (100%) & it's fine")
    assert link == "https://wa.me/919876543210?text=Hi%20Meera!%0ADone%20(100%25)%20%26%20it's%20fine"


def test_default_templates_cover_known_statuses():
    assert len(DEFAULT_TEMPLATES) == 11
    assert {definition.status for definition in DEFAULT_TEMPLATES} <= set(TicketStatus)
    repair = next(definition for definition in DEFAULT_TEMPLATES if definition.name == "Update After Repair")
    assert "{issue}" in repair.message
    assert repair.variables == ("{Customer Name}", "{issue}")


@pytest.mark.asyncio
async def test_seed_defaults_only_once(session_factory):
    service = TemplateService(TemplateRepository(session_factory), AsyncMock())

    assert await service.seed_defaults() == 11
    assert await service.seed_defaults() == 0

    in_progress = await service.list_templates(status=TicketStatus.IN_PROGRESS)
    assert [template.name for template in in_progress] == ["Approval Received", "Technician Started"]


@pytest.mark.asyncio
async def test_create_and_update_require_admin(session_factory, admin, technician):
    service = TemplateService(TemplateRepository(session_factory), AsyncMock())
    definition = TemplateDefinition(
        name="Tech Reminder",
        subject="Reminder",
        message="Ticket {ticket_id} is waiting",
        status=TicketStatus.ASSIGNED,
        recipient=TemplateRecipient.TECHNICIAN,
        variables=("{ticket_id}",),
    )

    with pytest.raises(TransitionDeniedError):
        await service.create_template(definition, technician)

    created = await service.create_template(definition, admin)
    assert created.recipient is TemplateRecipient.TECHNICIAN
    assert created.variables == ["{ticket_id}"]

    updated = await service.update_template(created.id, {"is_active": False}, admin)
    assert updated.is_active is False
    assert await service.list_templates(active_only=True) == []
    assert len(await service.list_templates(recipient=TemplateRecipient.TECHNICIAN)) == 1

    with pytest.raises(TransitionDeniedError):
        await service.update_template(created.id, {"subject": "x"}, technician)
    with pytest.raises(TemplateNotFoundError):
        await service.update_template("missing", {"subject": "x"}, admin)
    with pytest.raises(TemplateNotFoundError):
        await service.get_template("missing")


@pytest.mark.asyncio
async def test_preview_renders_for_ticket(session_factory, admin, ticket_factory):
    ticket = ticket_factory(title="Fan noise", technician_id="tech-1")
    tickets = AsyncMock()
    tickets.get_ticket.return_value = ticket
    tickets.directory = AsyncMock()
    tickets.directory.get_customer.return_value = Customer(cust_id="cust-1", name="Meera Shah", mobile="+91 98765 43210")
    tickets.directory.get_profile.return_value = Profile(user_id="tech-1", name="Tariq Tech", role="technician")
    service = TemplateService(TemplateRepository(session_factory), tickets)
    template = await service.create_template(
        TemplateDefinition(
            name="Assigned",
            subject="Assigned",
            message="Hi {Customer Name}, {technician_name} is on {issue}",
            status=TicketStatus.ASSIGNED,
        ),
        admin,
    )

    preview = await service.preview(template.id, ticket.id, admin)

    tickets.get_ticket.assert_awaited_once_with(ticket.id, admin)
    assert preview.text == "Hi Meera Shah, Tariq Tech is on Fan noise"
    assert preview.phone == "+91 98765 43210"
    assert preview.link.startswith("https://wa.me/919876543210?text=Hi%20Meera%20Shah")


@pytest.mark.asyncio
async def test_preview_without_customer_has_no_link(session_factory, admin, ticket_factory):
    ticket = ticket_factory()
    tickets = AsyncMock()
    tickets.get_ticket.return_value = ticket
    tickets.directory = AsyncMock()
    tickets.directory.get_customer.return_value = None
    service = TemplateService(TemplateRepository(session_factory), tickets)
    await service.seed_defaults()
    [template] = await service.list_templates(status=TicketStatus.IN_QUEUE)

    preview = await service.preview(template.id, ticket.id, admin)

    assert preview.link is None
    assert preview.text.startswith("Dear ,")
