from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping


UNKNOWN_STATUS_LABEL = "Unknown Status"


class TicketStatus(str, Enum):
    """Wire codes of the ticket lifecycle.

    The values are persisted and referenced by WhatsApp templates, so they must
    never be renamed.
    """

    IN_QUEUE = "in_queue"
    ASSIGNED = "assigned"
    TICKET_ACCEPTED = "ticket_accepted"
    PICKUP = "pickup"
    PRODUCT_RECEIVED = "product_received"
    IN_PROGRESS = "in_progress"
    CLIENT_APPROVAL = "client_approval"
    DELIVERY_SCHEDULED = "delivery_scheduled"
    DELIVERED = "delivered"
    DONE = "done"
    INVOICE_SENT = "invoice_sent"
    PAYMENT_RECEIVED = "payment_received"
    COMPLETE = "complete"
    ON_HOLD = "on_hold"
    REJECTED = "rejected"


class UnknownStatusError(LookupError):
    """Raised when a status code is not part of the registry."""


@dataclass(frozen=True, slots=True)
class StatusInfo:
    """Display metadata for a single status."""

    status: TicketStatus
    label: str
    color: str
    order: int
    terminal: bool = False


@dataclass(frozen=True, slots=True)
class StatusCount:
    """One row of a per-status report."""

    status: TicketStatus
    label: str
    count: int


class StatusRegistry:
    """Lookup table for ticket statuses, their labels and reporting order."""

    _ENTRIES: tuple[StatusInfo, ...] = (
        StatusInfo(TicketStatus.IN_QUEUE, "Generated", "bg-blue-500 text-white", 0),
        StatusInfo(TicketStatus.ASSIGNED, "Ticket Assigned", "bg-purple-500 text-white", 1),
        StatusInfo(TicketStatus.TICKET_ACCEPTED, "Ticket Accepted", "bg-indigo-500 text-white", 2),
        StatusInfo(TicketStatus.PICKUP, "Pickup Schedule", "bg-cyan-500 text-white", 3),
        StatusInfo(TicketStatus.PRODUCT_RECEIVED, "Product Received", "bg-teal-500 text-white", 4),
        StatusInfo(TicketStatus.IN_PROGRESS, "In Progress", "bg-orange-500 text-white", 5),
        StatusInfo(TicketStatus.CLIENT_APPROVAL, "Client Approval", "bg-amber-500 text-white", 6),
        StatusInfo(TicketStatus.DELIVERY_SCHEDULED, "Delivery Scheduled", "bg-lime-500 text-white", 7),
        StatusInfo(TicketStatus.DELIVERED, "Delivered", "bg-green-500 text-white", 8),
        StatusInfo(TicketStatus.DONE, "Done", "bg-emerald-500 text-white", 9),
        StatusInfo(TicketStatus.INVOICE_SENT, "Invoice Sent", "bg-sky-500 text-white", 10),
        StatusInfo(TicketStatus.PAYMENT_RECEIVED, "Payment Received", "bg-violet-500 text-white", 11),
        StatusInfo(TicketStatus.COMPLETE, "Complete", "bg-green-700 text-white", 12, terminal=True),
        StatusInfo(TicketStatus.ON_HOLD, "On Hold", "bg-red-500 text-white", 13),
        StatusInfo(TicketStatus.REJECTED, "Rejected", "bg-gray-500 text-white", 14, terminal=True),
    )

    _BY_CODE: Mapping[str, StatusInfo] = {entry.status.value: entry for entry in _ENTRIES}

    _SIDE_STATES = frozenset({TicketStatus.ON_HOLD, TicketStatus.REJECTED})

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.IN_QUEUE

    @classmethod
    def lookup(cls, status: TicketStatus | str) -> StatusInfo:
        code = status.value if isinstance(status, TicketStatus) else str(status)
        try:
            return cls._BY_CODE[code]
        except KeyError:
            raise UnknownStatusError(f"Unknown ticket status: {code!r}") from None

    @classmethod
    def label_of(cls, status: TicketStatus | str | None) -> str:
        """Return the display label, falling back to ``"Unknown Status"``."""

        if status is None:
            return UNKNOWN_STATUS_LABEL
        try:
            return cls.lookup(status).label
        except UnknownStatusError:
            return UNKNOWN_STATUS_LABEL

    @classmethod
    def is_registered(cls, status: TicketStatus | str) -> bool:
        code = status.value if isinstance(status, TicketStatus) else str(status)
        return code in cls._BY_CODE

    @classmethod
    def is_terminal(cls, status: TicketStatus) -> bool:
        return cls.lookup(status).terminal

    @classmethod
    def all_statuses(cls) -> tuple[TicketStatus, ...]:
        return tuple(entry.status for entry in cls._ENTRIES)

    @classmethod
    def entries(cls) -> tuple[StatusInfo, ...]:
        return cls._ENTRIES

    @classmethod
    def progression(cls) -> tuple[TicketStatus, ...]:
        """Forward progression from intake to completion, without side states."""

        return tuple(entry.status for entry in cls._ENTRIES if entry.status not in cls._SIDE_STATES)

    @classmethod
    def selectable(cls) -> tuple[TicketStatus, ...]:
        """Statuses that can be picked directly; ``rejected`` is gate-only."""

        return tuple(status for status in cls.all_statuses() if status is not TicketStatus.REJECTED)

    @classmethod
    def order_of(cls, status: TicketStatus) -> int:
        return cls.lookup(status).order

    @classmethod
    def summarize(cls, counts: Mapping[TicketStatus | str, int]) -> list[StatusCount]:
        normalized: dict[str, int] = {}
        for key, value in counts.items():
            code = key.value if isinstance(key, TicketStatus) else str(key)
            normalized[code] = normalized.get(code, 0) + int(value)
        return [
            StatusCount(status=entry.status, label=entry.label, count=normalized.get(entry.status.value, 0))
            for entry in cls._ENTRIES
        ]

    @classmethod
    def sort(cls, statuses: Iterable[TicketStatus]) -> list[TicketStatus]:
        return sorted(set(statuses), key=cls.order_of)
