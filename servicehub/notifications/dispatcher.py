"""Turn committed status changes into WhatsApp template messages."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol, Sequence

from opentelemetry import trace

from servicehub.directory.models import Customer, Profile
from servicehub.directory.repository import DirectoryRepository

from .models import DeliveryReceipt, DispatchReport, MessageJob, NotificationFailure, RecipientClass
from .routing import CUSTOMER, DESCRIPTION, TICKET, TemplateRoute, routes_for
from .whatsapp import WhatsAppGatewayError

if TYPE_CHECKING:
    from servicehub.tickets.lifecycle import StatusChanged

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class MessageGateway(Protocol):
    async def send(self, phone: str, template: str, variables: Sequence[str]) -> DeliveryReceipt:
        ...


class NotificationDispatcher:
    """Lifecycle listener sending the templates routed for each event.

    Every recipient is attempted independently; failures end up in the returned
    :class:`DispatchReport` and are never raised.
    """

    def __init__(
        self,
        gateway: MessageGateway,
        directory: DirectoryRepository,
        *,
        admin_phone_numbers: Sequence[str] = (),
    ) -> None:
        self._gateway = gateway
        self._directory = directory
        self._admin_phone_numbers = tuple(number for number in admin_phone_numbers if number)

    async def __call__(self, event: StatusChanged) -> DispatchReport:
        return await self.dispatch(event)

    async def plan(self, event: StatusChanged) -> list[MessageJob]:
        routes = routes_for(event.action, event.from_status, event.to_status)
        if not routes:
            return []

        ticket = event.ticket
        customer = await self._directory.get_customer(ticket.customer_id)
        values = {
            CUSTOMER: customer.name if customer is not None else "",
            TICKET: ticket.id,
            DESCRIPTION: ticket.description,
        }

        jobs: list[MessageJob] = []
        for route in routes:
            variables = tuple(values[name] for name in route.fields)
            if route.recipient is RecipientClass.CLIENT:
                jobs.append(self._client_job(route, customer, variables))
            elif route.recipient is RecipientClass.TECHNICIAN:
                technician = None
                if ticket.technician_id:
                    technician = await self._directory.get_profile(ticket.technician_id)
                jobs.append(self._profile_job(route, technician, ticket.technician_id, variables))
            else:
                jobs.extend(await self._admin_jobs(route, variables))
        return jobs

    async def dispatch(self, event: StatusChanged) -> DispatchReport:
        report = DispatchReport(ticket_id=event.ticket_id)
        with tracer.start_as_current_span("notifications.dispatch") as span:
            span.set_attribute("ticket.id", event.ticket_id)
            span.set_attribute("ticket.to_status", event.to_status.value)
            try:
                report.jobs = await self.plan(event)
            except Exception as exc:
                logger.exception("Could not resolve notification recipients for ticket %s", event.ticket_id)
                report.failures.append(NotificationFailure(job=None, error=str(exc)))
                return report

            outcomes = await asyncio.gather(
                *(self._deliver(job) for job in report.jobs),
                return_exceptions=True,
            )
            for job, outcome in zip(report.jobs, outcomes):
                if isinstance(outcome, DeliveryReceipt):
                    report.delivered.append(outcome)
                elif isinstance(outcome, NotificationFailure):
                    report.failures.append(outcome)
                else:
                    logger.error("Unexpected error sending %s for ticket %s: %r", job.template, event.ticket_id, outcome)
                    report.failures.append(NotificationFailure(job=job, error=str(outcome)))
            span.set_attribute("notifications.delivered", len(report.delivered))
            span.set_attribute("notifications.failed", len(report.failures))

        if report.failures:
            logger.warning(
                "Ticket %s: %d of %d notifications failed",
                event.ticket_id,
                len(report.failures),
                len(report.jobs),
            )
        return report

    async def _deliver(self, job: MessageJob) -> DeliveryReceipt | NotificationFailure:
        if not job.phone:
            return NotificationFailure(job=job, error=f"No phone number for {job.recipient_class.value} recipient")
        try:
            return await self._gateway.send(job.phone, job.template, job.variables)
        except WhatsAppGatewayError as exc:
            logger.warning("WhatsApp template %s to %s failed: %s", job.template, job.phone, exc)
            return NotificationFailure(job=job, error=str(exc))

    @staticmethod
    def _client_job(route: TemplateRoute, customer: Customer | None, variables: tuple[str, ...]) -> MessageJob:
        return MessageJob(
            recipient_class=route.recipient,
            recipient_id=customer.cust_id if customer is not None else None,
            phone=customer.mobile if customer is not None else None,
            template=route.template,
            variables=variables,
        )

    @staticmethod
    def _profile_job(
        route: TemplateRoute,
        profile: Profile | None,
        recipient_id: str | None,
        variables: tuple[str, ...],
    ) -> MessageJob:
        return MessageJob(
            recipient_class=route.recipient,
            recipient_id=recipient_id,
            phone=profile.mobile if profile is not None else None,
            template=route.template,
            variables=variables,
        )

    async def _admin_jobs(self, route: TemplateRoute, variables: tuple[str, ...]) -> list[MessageJob]:
        if self._admin_phone_numbers:
            return [
                MessageJob(route.recipient, None, phone, route.template, variables)
                for phone in self._admin_phone_numbers
            ]
        admins = [admin for admin in await self._directory.list_admins() if admin.mobile]
        if not admins:
            return [MessageJob(route.recipient, None, None, route.template, variables)]
        return [self._profile_job(route, admin, admin.user_id, variables) for admin in admins]
