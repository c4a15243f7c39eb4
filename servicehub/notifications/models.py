from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class RecipientClass(str, Enum):
    CLIENT = "client"
    TECHNICIAN = "technician"
    ADMIN = "admin"


@dataclass(frozen=True, slots=True)
class MessageJob:
    """One outbound template message to one recipient."""

    recipient_class: RecipientClass
    recipient_id: str | None
    phone: str | None
    template: str
    variables: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class DeliveryReceipt:
    phone: str
    template: str
    message_id: str | None = None


@dataclass(frozen=True, slots=True)
class NotificationFailure:
    job: MessageJob | None
    error: str


@dataclass(slots=True)
class DispatchReport:
    """Outcome of fanning out a single status change."""

    ticket_id: str
    jobs: list[MessageJob] = field(default_factory=list)
    delivered: list[DeliveryReceipt] = field(default_factory=list)
    failures: list[NotificationFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass(slots=True)
class Notification:
    """In-app notification shown to a staff member."""

    id: str
    user_id: str
    title: str
    message: str
    created_at: datetime
    ticket_id: str | None = None
    is_read: bool = False
