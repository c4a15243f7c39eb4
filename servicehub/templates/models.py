from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from servicehub.tickets.state import TicketStatus


class TemplateRecipient(str, Enum):
    CLIENT = "Client"
    TECHNICIAN = "Technician"
    ADMIN = "Admin"


@dataclass(slots=True)
class WhatsAppTemplate:
    """Operator-editable message body offered for a ticket status."""

    id: str
    name: str
    subject: str
    message: str
    recipient: TemplateRecipient
    status: TicketStatus
    is_active: bool
    created_at: datetime
    updated_at: datetime
    variables: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class TemplateDefinition:
    name: str
    subject: str
    message: str
    status: TicketStatus
    recipient: TemplateRecipient = TemplateRecipient.CLIENT
    variables: tuple[str, ...] = ("{Customer Name}",)


_SIGNATURE = "Best regards,\nMP2TECH Support Team."

DEFAULT_TEMPLATES: tuple[TemplateDefinition, ...] = (
    TemplateDefinition(
        name="Query Received",
        subject="📞 Your Query Received!",
        message=(
            "Dear {Customer Name},\n\n"
            "Thank you for contacting the MP2TECH Support team. We have received your query. "
            "One of our technicians will get in touch with you within a few minutes.\n\n"
            "Thank You,\nMP2TECH Support team."
        ),
        status=TicketStatus.IN_QUEUE,
    ),
    TemplateDefinition(
        name="Technician Started",
        subject="🛠️ Technician On the Job: Your Ticket in Progress!",
        message=(
            "Dear Client,\n"
            "We wanted to inform you that the Technician has begun working on your Ticket. "
            "He will do his best to complete the job as quickly and efficiently as possible. "
            "Please let us know if you need anything or have any concerns.\n\n"
            "Thank You,\nMP2TECH Support team."
        ),
        status=TicketStatus.IN_PROGRESS,
    ),
    TemplateDefinition(
        name="Pickup Scheduled",
        subject="🚚 Pickup Scheduled: Technician En Route for Your Device! 🖥️",
        message=(
            "Dear Client,\n"
            "We'd like to inform you that your laptop/desktop pickup has been scheduled, and a technician "
            "has been dispatched.\n\n"
            "Our technician is en route to your location and will arrive shortly. Kindly ensure that "
            "someone is available at the specified address for the pickup.\n\n"
            "Thank you for your cooperation. We appreciate your trust in our services.\n\n" + _SIGNATURE
        ),
        status=TicketStatus.PICKUP,
    ),
    TemplateDefinition(
        name="Product Received",
        subject="🛠️ Device Assessment Update: We've Received Your Device! 📱",
        message=(
            "Dear Client,\n"
            "We have received your Device and we are currently assessing the issue. We will keep you "
            "updated on the progress of the repair and let you know when it is ready for pickup/Drop. "
            "If you have any questions, please don't hesitate to contact us.\n\n" + _SIGNATURE
        ),
        status=TicketStatus.PRODUCT_RECEIVED,
    ),
    TemplateDefinition(
        name="Estimate Sent",
        subject="🔍 Review Required: Estimate & Terms for Your Device 📝",
        message=(
            "Dear Client,\n"
            "Your device is with us for assessment. Before we proceed with repairs, your approval is "
            "needed. Kindly review the attached estimate and confirm your consent.\n\n"
            "By approving, you agree to our terms outlined in the estimate. If you have any questions, "
            "feel free to ask.\n\n" + _SIGNATURE
        ),
        status=TicketStatus.CLIENT_APPROVAL,
    ),
    TemplateDefinition(
        name="Approval Received",
        subject="🎉 Approval Confirmed: Your Ticket in Progress! 🛠️",
        message=(
            "Dear Client,\n"
            "Thank you for approving the estimated cost and timeline for your ticket. Our team will begin "
            "working on your ticket right away and will keep you updated on the progress.\n\n" + _SIGNATURE
        ),
        status=TicketStatus.IN_PROGRESS,
    ),
    TemplateDefinition(
        name="Update After Repair",
        subject="🛠️ Repair Update: Your Laptop Repair Completed Successfully!",
        message=(
            "Hi {Customer Name},\n"
            "Great news! Your device has undergone successful repairs for the following issue:\n"
            "- {issue}\n\n"
            "Currently, it's under observation, and we'll inform you of the exact delivery time after "
            "completion of testing.\n\n" + _SIGNATURE
        ),
        status=TicketStatus.DONE,
        variables=("{Customer Name}", "{issue}"),
    ),
    TemplateDefinition(
        name="Delivery Scheduled",
        subject="🛠️ Your Device Repaired & Ready for Delivery! 📦",
        message=(
            "Dear Client,\n"
            "We are pleased to inform you that your device has been repaired and is now ready for delivery. "
            "Our team will get in touch with you shortly to confirm the delivery time.\n\n" + _SIGNATURE
        ),
        status=TicketStatus.DELIVERY_SCHEDULED,
    ),
    TemplateDefinition(
        name="Delivered",
        subject="📦 Confirmation: Your Device Successfully Delivered! 🚀",
        message=(
            "Dear Client,\n"
            "We want to confirm that your device has been successfully delivered. If you have any "
            "questions or need assistance, feel free to reach out.\n\n" + _SIGNATURE
        ),
        status=TicketStatus.DELIVERED,
    ),
    TemplateDefinition(
        name="Invoice Sent",
        subject="🛠️ Work Completed: Invoice Coming Soon! 📑",
        message=(
            "Dear Client,\n"
            "Our technician has successfully completed the work assigned to them as per the agreed-upon "
            "terms and conditions. An invoice will be generated for the services provided and sent to you "
            "shortly via Whatsapp or email.\n\n" + _SIGNATURE
        ),
        status=TicketStatus.INVOICE_SENT,
    ),
    TemplateDefinition(
        name="On Hold",
        subject="🚫 Repair Status Update: Your Device On Hold 🛑",
        message=(
            "Dear Client,\n"
            "We regret to inform you that the repair of your device has been put on hold. Our team is "
            "working to resolve the issue and resume the repair process as soon as possible.\n\n"
            "Thank you for your patience and understanding.\n\n" + _SIGNATURE
        ),
        status=TicketStatus.ON_HOLD,
    ),
)
