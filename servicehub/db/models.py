"""SQLModel table definitions for the ServiceHub data layer."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


def _uuid_str() -> str:
    """Generate a random UUID string."""

    return str(uuid.uuid4())


class ProfileTable(SQLModel, table=True):
    """Staff accounts; ``role`` holds the role name (admin, technician, ...)."""

    __tablename__ = "profiles"

    user_id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    name: str = Field(sa_column=Column(String(255), nullable=False))
    role: str = Field(sa_column=Column(String(50), nullable=False, index=True))
    mobile: str | None = Field(default=None, sa_column=Column(String(32), nullable=True))
    email: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    is_deleted: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class CustomerTable(SQLModel, table=True):
    """Customers whose devices are serviced."""

    __tablename__ = "customers"

    cust_id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    name: str = Field(sa_column=Column(String(255), nullable=False))
    mobile: str = Field(sa_column=Column(String(32), nullable=False))
    email: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    address: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    company: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    is_deleted: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketTable(SQLModel, table=True):
    """Service tickets and their current lifecycle status."""

    __tablename__ = "tickets"

    id: str = Field(primary_key=True, index=True)
    title: str = Field(sa_column=Column(String(255), nullable=False))
    description: str = Field(sa_column=Column(Text, nullable=False))
    customer_id: str = Field(
        sa_column=Column(String(36), ForeignKey("customers.cust_id"), nullable=False, index=True)
    )
    technician_id: str | None = Field(
        default=None,
        sa_column=Column(String(36), ForeignKey("profiles.user_id"), nullable=True, index=True),
    )
    created_by: str = Field(sa_column=Column(String(36), nullable=False))
    issue_type: str = Field(sa_column=Column(String(20), nullable=False))
    ticket_type: str = Field(sa_column=Column(String(20), nullable=False))
    priority: str = Field(sa_column=Column(String(20), nullable=False))
    device_type: str = Field(sa_column=Column(String(50), nullable=False))
    device_brand: str = Field(sa_column=Column(String(255), nullable=False))
    serial_number: str = Field(sa_column=Column(String(255), nullable=False))
    device_status: str = Field(sa_column=Column(String(20), nullable=False))
    comment: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    status: str = Field(sa_column=Column(String(50), nullable=False, index=True))
    needs_approval: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    is_deleted: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    archived: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    version: int = Field(default=1, sa_column=Column(Integer, nullable=False, default=1))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketAuditLogTable(SQLModel, table=True):
    """Audit trail describing discrete ticket actions."""

    __tablename__ = "ticket_audit_logs"

    id: str = Field(primary_key=True, index=True)
    ticket_id: str = Field(
        sa_column=Column(String(36), ForeignKey("tickets.id"), nullable=False, index=True)
    )
    action: str = Field(sa_column=Column(String(100), nullable=False))
    actor: str = Field(sa_column=Column(String(255), nullable=False))
    from_status: str | None = Field(default=None, sa_column=Column(String(50), nullable=True))
    to_status: str | None = Field(default=None, sa_column=Column(String(50), nullable=True))
    metadata_: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column("metadata", JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketRemarkTable(SQLModel, table=True):
    """Remarks left on a ticket by staff."""

    __tablename__ = "ticket_remarks"

    id: str = Field(primary_key=True, index=True)
    ticket_id: str = Field(
        sa_column=Column(String(36), ForeignKey("tickets.id"), nullable=False, index=True)
    )
    author_id: str = Field(sa_column=Column(String(36), nullable=False))
    text: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class RemarkAttachmentTable(SQLModel, table=True):
    """Files uploaded alongside a remark."""

    __tablename__ = "ticket_images"

    id: str = Field(primary_key=True, index=True)
    remark_id: str = Field(
        sa_column=Column(String(36), ForeignKey("ticket_remarks.id"), nullable=False, index=True)
    )
    ticket_id: str = Field(sa_column=Column(String(36), ForeignKey("tickets.id"), nullable=False))
    name: str = Field(sa_column=Column(String(255), nullable=False))
    path: str = Field(sa_column=Column(String(512), nullable=False))
    content_type: str = Field(sa_column=Column(String(255), nullable=False))
    size: int = Field(default=0, sa_column=Column(Integer, nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class NotificationTable(SQLModel, table=True):
    """In-app notifications shown to staff."""

    __tablename__ = "notifications"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    user_id: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    title: str = Field(sa_column=Column(String(255), nullable=False))
    message: str = Field(sa_column=Column(Text, nullable=False))
    ticket_id: str | None = Field(default=None, sa_column=Column(String(36), nullable=True))
    is_read: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class WhatsAppTemplateTable(SQLModel, table=True):
    """Operator-managed WhatsApp message bodies keyed by ticket status."""

    __tablename__ = "whatsapp_templates"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    name: str = Field(sa_column=Column(String(255), nullable=False))
    subject: str = Field(sa_column=Column(String(255), nullable=False))
    message: str = Field(sa_column=Column(Text, nullable=False))
    recipient: str = Field(sa_column=Column(String(20), nullable=False))
    status: str = Field(sa_column=Column(String(50), nullable=False, index=True))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    variables: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
