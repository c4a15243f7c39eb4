from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from servicehub.directory.models import Actor
from servicehub.notifications.whatsapp import normalize_phone
from servicehub.tickets.errors import DenialReason, TransitionDeniedError
from servicehub.tickets.models import Ticket
from servicehub.tickets.service import TicketService
from servicehub.tickets.state import TicketStatus

from .models import DEFAULT_TEMPLATES, TemplateDefinition, TemplateRecipient, WhatsAppTemplate
from .repository import TemplateRepository

logger = logging.getLogger(__name__)


class TemplateNotFoundError(RuntimeError):
    """Raised when a template id does not exist."""


@dataclass(frozen=True, slots=True)
class TemplateContext:
    """Values substituted into a template body."""

    customer_name: str
    ticket_id: str
    issue: str
    priority: str
    technician_name: str = ""
    resolution: str = ""

    def placeholders(self) -> dict[str, str]:
        return {
            "{customer_name}": self.customer_name,
            "{Customer Name}": self.customer_name,
            "{technician_name}": self.technician_name,
            "{ticket_id}": self.ticket_id,
            "{issue}": self.issue,
            "{priority}": self.priority,
            "{resolution}": self.resolution,
        }


def render(message: str, context: TemplateContext) -> str:
    """Replace every known placeholder; unknown ``{...}`` markers are left as written."""

    for placeholder, value in context.placeholders().items():
        message = message.replace(placeholder, value)
    return message


# Characters encodeURIComponent leaves unescaped besides the ones quote() always keeps.
_URI_SAFE = "!*'()"


def whatsapp_link(phone: str, text: str) -> str:
    return f"https://wa.me/{normalize_phone(phone)}?text={quote(text, safe=_URI_SAFE)}"


@dataclass(slots=True)
class TemplatePreview:
    template: WhatsAppTemplate
    text: str
    phone: str | None
    link: str | None


class TemplateService:
    """Manage WhatsApp templates and render them for a ticket."""

    def __init__(self, repository: TemplateRepository, tickets: TicketService) -> None:
        self._repository = repository
        self._tickets = tickets

    async def seed_defaults(self) -> int:
        if await self._repository.count() > 0:
            return 0
        created = await self._repository.add_many(DEFAULT_TEMPLATES)
        logger.info("Seeded %d default WhatsApp templates", len(created))
        return len(created)

    async def list_templates(
        self,
        *,
        status: TicketStatus | None = None,
        recipient: TemplateRecipient | None = None,
        active_only: bool = False,
    ) -> list[WhatsAppTemplate]:
        return await self._repository.list_templates(status=status, recipient=recipient, active_only=active_only)

    async def get_template(self, template_id: str) -> WhatsAppTemplate:
        template = await self._repository.get_template(template_id)
        if template is None:
            raise TemplateNotFoundError(f"Template {template_id} not found")
        return template

    async def create_template(self, definition: TemplateDefinition, actor: Actor) -> WhatsAppTemplate:
        self._require_admin(actor)
        [template] = await self._repository.add_many([definition])
        return template

    async def update_template(self, template_id: str, changes: dict[str, Any], actor: Actor) -> WhatsAppTemplate:
        self._require_admin(actor)
        template = await self._repository.update_template(template_id, changes)
        if template is None:
            raise TemplateNotFoundError(f"Template {template_id} not found")
        return template

    async def preview(self, template_id: str, ticket_id: str, actor: Actor) -> TemplatePreview:
        template = await self.get_template(template_id)
        ticket = await self._tickets.get_ticket(ticket_id, actor)
        context, phone = await self._context_for(ticket)
        text = render(template.message, context)
        link = whatsapp_link(phone, text) if phone else None
        return TemplatePreview(template=template, text=text, phone=phone, link=link)

    async def _context_for(self, ticket: Ticket) -> tuple[TemplateContext, str | None]:
        directory = self._tickets.directory
        customer = await directory.get_customer(ticket.customer_id)
        technician = await directory.get_profile(ticket.technician_id) if ticket.technician_id else None
        context = TemplateContext(
            customer_name=customer.name if customer is not None else "",
            ticket_id=ticket.id,
            issue=ticket.title,
            priority=ticket.priority.value,
            technician_name=technician.name if technician is not None else "",
            resolution=ticket.description,
        )
        return context, customer.mobile if customer is not None else None

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        if not actor.is_admin:
            raise TransitionDeniedError(DenialReason.FORBIDDEN, "Only admins can manage templates")
