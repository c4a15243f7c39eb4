"""WhatsApp fan-out for ticket events and the in-app notification inbox."""

from .dispatcher import MessageGateway, NotificationDispatcher
from .inbox import NotificationInbox, NotificationNotFoundError
from .models import (
    DeliveryReceipt,
    DispatchReport,
    MessageJob,
    Notification,
    NotificationFailure,
    RecipientClass,
)
from .repository import NotificationRepository
from .whatsapp import WhatsAppGateway, WhatsAppGatewayError, normalize_phone

__all__ = [
    "DeliveryReceipt",
    "DispatchReport",
    "MessageGateway",
    "MessageJob",
    "Notification",
    "NotificationDispatcher",
    "NotificationFailure",
    "NotificationInbox",
    "NotificationNotFoundError",
    "NotificationRepository",
    "RecipientClass",
    "WhatsAppGateway",
    "WhatsAppGatewayError",
    "normalize_phone",
]
