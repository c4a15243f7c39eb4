"""Static map from lifecycle events to WhatsApp template messages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from servicehub.tickets.state import TicketStatus

from .models import RecipientClass


@dataclass(frozen=True, slots=True)
class TemplateRoute:
    """Template sent to one recipient class; ``fields`` name the body parameters in order."""

    recipient: RecipientClass
    template: str
    fields: tuple[str, ...]


CUSTOMER = "customer"
TICKET = "ticket"
DESCRIPTION = "description"

CREATION_ROUTES: tuple[TemplateRoute, ...] = (
    TemplateRoute(RecipientClass.CLIENT, "query_received", (CUSTOMER, TICKET)),
    TemplateRoute(RecipientClass.ADMIN, "new_ticket_generated", (TICKET, CUSTOMER, DESCRIPTION)),
)

STATUS_ROUTES: Mapping[TicketStatus, tuple[TemplateRoute, ...]] = {
    TicketStatus.ASSIGNED: (
        TemplateRoute(RecipientClass.TECHNICIAN, "ticket_assigned", (TICKET, CUSTOMER, DESCRIPTION)),
    ),
    TicketStatus.IN_PROGRESS: (
        TemplateRoute(RecipientClass.CLIENT, "technician_started", (CUSTOMER, TICKET)),
        TemplateRoute(RecipientClass.ADMIN, "technician_started", (TICKET, CUSTOMER)),
    ),
    TicketStatus.PICKUP: (
        TemplateRoute(RecipientClass.CLIENT, "pickup_scheduled", (CUSTOMER, TICKET)),
        TemplateRoute(RecipientClass.ADMIN, "pickup_scheduled", (TICKET, CUSTOMER)),
    ),
    TicketStatus.PRODUCT_RECEIVED: (
        TemplateRoute(RecipientClass.CLIENT, "product_received", (CUSTOMER, TICKET)),
        TemplateRoute(RecipientClass.ADMIN, "product_received", (TICKET, CUSTOMER)),
    ),
    TicketStatus.CLIENT_APPROVAL: (
        TemplateRoute(RecipientClass.CLIENT, "estimate_sent", (CUSTOMER, TICKET)),
    ),
    TicketStatus.DELIVERY_SCHEDULED: (
        TemplateRoute(RecipientClass.CLIENT, "delivery_scheduled", (CUSTOMER, TICKET)),
        TemplateRoute(RecipientClass.ADMIN, "delivery_scheduled", (TICKET, CUSTOMER)),
    ),
    TicketStatus.DONE: (
        TemplateRoute(RecipientClass.CLIENT, "feedback", (CUSTOMER, TICKET)),
        TemplateRoute(RecipientClass.ADMIN, "generate_invoice", (TICKET, CUSTOMER)),
    ),
}


SILENT_ACTIONS = frozenset({"approved", "archived", "deleted", "remark_added"})


def routes_for(
    action: str,
    from_status: TicketStatus | None,
    to_status: TicketStatus,
) -> tuple[TemplateRoute, ...]:
    """Templates owed for a lifecycle event.

    Every assignment, reassignment included, goes to the technician on the
    ticket. Other events are routed on a changed status only.
    """

    if action == "created" or from_status is None:
        return CREATION_ROUTES
    if action in SILENT_ACTIONS:
        return ()
    if action == "assigned":
        return STATUS_ROUTES[TicketStatus.ASSIGNED]
    if from_status == to_status:
        return ()
    return STATUS_ROUTES.get(to_status, ())
