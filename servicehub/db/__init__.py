"""Database models and utilities."""

from .models import (
    CustomerTable,
    NotificationTable,
    ProfileTable,
    RemarkAttachmentTable,
    TicketAuditLogTable,
    TicketRemarkTable,
    TicketTable,
    WhatsAppTemplateTable,
)
from .session import create_engine_from_dsn, create_schema, ensure_datetime, to_asyncpg_dsn

__all__ = [
    "CustomerTable",
    "NotificationTable",
    "ProfileTable",
    "RemarkAttachmentTable",
    "TicketAuditLogTable",
    "TicketRemarkTable",
    "TicketTable",
    "WhatsAppTemplateTable",
    "create_engine_from_dsn",
    "create_schema",
    "ensure_datetime",
    "to_asyncpg_dsn",
]
