from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Sequence

from .state import TicketStatus


class IssueType(str, Enum):
    HARDWARE = "hardware"
    SOFTWARE = "software"
    NETWORK = "network"
    OTHER = "other"


class TicketType(str, Enum):
    CUSTOMER = "customer"
    INTERNAL = "internal"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DeviceStatus(str, Enum):
    WORKING = "WORKING"
    NOT_WORKING = "NOT_WORKING"


@dataclass(slots=True)
class DeviceDetails:
    """Device brought in with the ticket."""

    device_type: str = "LAPTOP"
    device_brand: str = ""
    serial_number: str = ""
    device_status: DeviceStatus = DeviceStatus.WORKING


@dataclass(slots=True)
class TicketDraft:
    """Input for ticket creation before the approval gate has looked at it."""

    title: str
    description: str
    customer_id: str
    issue_type: IssueType = IssueType.HARDWARE
    ticket_type: TicketType = TicketType.CUSTOMER
    priority: TicketPriority = TicketPriority.MEDIUM
    device: DeviceDetails = field(default_factory=DeviceDetails)
    technician_id: str | None = None
    comment: str | None = None
    needs_approval: bool = False


@dataclass(slots=True)
class Ticket:
    """Aggregate representing a service-center ticket."""

    id: str
    title: str
    description: str
    customer_id: str
    technician_id: str | None
    created_by: str
    issue_type: IssueType
    ticket_type: TicketType
    priority: TicketPriority
    device: DeviceDetails
    status: TicketStatus
    needs_approval: bool
    is_deleted: bool
    archived: bool
    created_at: datetime
    updated_at: datetime
    comment: str | None = None
    version: int = 1


@dataclass(slots=True)
class TicketAuditEntry:
    """History entry describing a lifecycle action on a ticket."""

    id: str
    ticket_id: str
    action: str
    actor: str
    from_status: TicketStatus | None
    to_status: TicketStatus | None
    created_at: datetime
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class RemarkAttachment:
    """File stored in object storage and linked to a remark."""

    id: str
    remark_id: str
    ticket_id: str
    name: str
    path: str
    content_type: str
    size: int
    created_at: datetime


@dataclass(slots=True)
class TicketRemark:
    """Append-only annotation on a ticket."""

    id: str
    ticket_id: str
    author_id: str
    text: str
    created_at: datetime
    attachments: Sequence[RemarkAttachment] = field(default_factory=list)


@dataclass(slots=True)
class AttachmentUpload:
    """Raw file handed to the service when adding a remark."""

    name: str
    content: bytes
    content_type: str = "application/octet-stream"
